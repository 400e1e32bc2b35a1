"""
Memory implementation of PaymentRepository.

Payments are stored in a dictionary keyed by order ID, one record per
order. Copies are handed out and stored so that callers mutating a domain
object never change the stored state behind the repository's back.
"""

import logging
from typing import Dict, Optional

from food_orders.domain import Payment
from food_orders.repositories import PaymentRepository

logger = logging.getLogger(__name__)


class MemoryPaymentRepository(PaymentRepository):
    def __init__(self) -> None:
        logger.debug("Initializing MemoryPaymentRepository")
        self._payments: Dict[str, Payment] = {}

    async def get_payment_for_order(self, order_id: str) -> Optional[Payment]:
        payment = self._payments.get(order_id)
        if payment is None:
            logger.debug(
                "MemoryPaymentRepository: Payment not found",
                extra={"order_id": order_id},
            )
            return None
        return payment.model_copy(deep=True)

    async def save_payment(self, payment: Payment) -> None:
        self.store(payment)

    def store(self, payment: Payment) -> None:
        """Write a payment synchronously; used inside order commits."""
        self._payments[payment.order_id] = payment.model_copy(deep=True)
        logger.info(
            "MemoryPaymentRepository: Payment saved",
            extra={
                "order_id": payment.order_id,
                "payment_id": payment.payment_id,
                "status": payment.status,
                "refund_status": (
                    payment.refund_status.value
                    if payment.refund_status
                    else None
                ),
            },
        )
