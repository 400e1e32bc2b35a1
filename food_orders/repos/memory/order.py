"""
Memory implementation of OrderRepository.

Orders are kept in a dictionary keyed by order_id. Every write is guarded
by the version check described in the protocol and happens under an
asyncio lock, so the check and the write form one step even when writers
interleave at await points. Refund decisions also write the payment into
the paired MemoryPaymentRepository under the same lock, and only together
with the order write.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from food_orders.domain import Order, Payment, RefundStatus
from food_orders.errors import ConcurrentUpdateError
from food_orders.repos.memory.payment import MemoryPaymentRepository
from food_orders.repositories import OrderRepository

logger = logging.getLogger(__name__)


class MemoryOrderRepository(OrderRepository):
    """
    Memory implementation of OrderRepository using Python dictionaries.

    Pass the MemoryPaymentRepository the engines use, so that approved
    refunds update both stores in one step.
    """

    def __init__(
        self, payment_repo: Optional[MemoryPaymentRepository] = None
    ) -> None:
        logger.debug("Initializing MemoryOrderRepository")
        self._orders: Dict[str, Order] = {}
        self._lock = asyncio.Lock()
        self.payment_repo = payment_repo or MemoryPaymentRepository()

    async def get_order(self, order_id: str) -> Optional[Order]:
        order = self._orders.get(order_id)
        if order is None:
            logger.debug(
                "MemoryOrderRepository: Order not found",
                extra={"order_id": order_id},
            )
            return None
        return order.model_copy(deep=True)

    async def save_order(
        self, order: Order, expected_version: Optional[int]
    ) -> Order:
        async with self._lock:
            saved, _ = self._write(order, expected_version)
            return saved

    async def commit_refund_decision(
        self,
        order: Order,
        payment: Optional[Payment],
        expected_version: int,
    ) -> Order:
        async with self._lock:
            saved, written = self._write(order, expected_version)
            # A retry of a committed decision already stored its payment
            if written and payment is not None:
                self.payment_repo.store(payment)
            return saved

    async def list_orders_by_refund_status(
        self, refund_status: RefundStatus
    ) -> List[Order]:
        return [
            order.model_copy(deep=True)
            for order in self._orders.values()
            if order.refund_details is not None
            and order.refund_details.status == refund_status
        ]

    def _write(
        self, order: Order, expected_version: Optional[int]
    ) -> Tuple[Order, bool]:
        stored = self._orders.get(order.order_id)
        if expected_version is not None:
            current_version = stored.version if stored else None
            if current_version != expected_version:
                if stored is not None and order.is_retry_of(
                    stored, expected_version
                ):
                    logger.info(
                        "MemoryOrderRepository: Write already committed, "
                        "skipping save (idempotent)",
                        extra={
                            "order_id": order.order_id,
                            "write_id": order.last_write_id,
                        },
                    )
                    return stored.model_copy(deep=True), False
                logger.warning(
                    "MemoryOrderRepository: Version conflict",
                    extra={
                        "order_id": order.order_id,
                        "expected_version": expected_version,
                        "actual_version": current_version,
                    },
                )
                raise ConcurrentUpdateError(
                    f"Order {order.order_id} was modified concurrently",
                    expected_version=expected_version,
                    actual_version=current_version,
                )

        new_version = (stored.version if stored else order.version) + 1
        to_store = order.model_copy(
            deep=True,
            update={
                "version": new_version,
                "updated_at": datetime.now(timezone.utc),
            },
        )
        self._orders[order.order_id] = to_store
        logger.info(
            "MemoryOrderRepository: Order saved",
            extra={
                "order_id": order.order_id,
                "status": to_store.status.value,
                "version": new_version,
            },
        )
        return to_store.model_copy(deep=True), True
