"""
PostgreSQL implementation of OrderRepository.

Each write runs in a transaction that locks the order row with
``SELECT ... FOR UPDATE`` before comparing versions, so the version check
and the write cannot be interleaved with another writer. Refund decisions
write the payment row in that same transaction, and only when the order
row was written by it.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from asyncpg import (
    Connection,
    Pool,
    PostgresConnectionError,
    UniqueViolationError,
)

from food_orders.domain import Order, Payment, RefundStatus
from food_orders.errors import ConcurrentUpdateError, StoreUnavailableError
from food_orders.repos.postgresql.payment import upsert_payment
from food_orders.repositories import OrderRepository
from food_orders.validation import validate_domain_model

logger = logging.getLogger(__name__)


class PostgreSQLOrderRepository(OrderRepository):
    """
    PostgreSQL implementation of OrderRepository.
    Uses PostgreSQL for persistence of orders and their refund details.
    """

    def __init__(self, pool: Pool):
        """
        Initialize with an asyncpg connection pool.

        Args:
            pool: asyncpg connection pool for database operations
        """
        self.pool = pool
        logger.debug("Initialized PostgreSQLOrderRepository")

    async def get_order(self, order_id: str) -> Optional[Order]:
        """Retrieves an order object from PostgreSQL."""
        query = """
            SELECT order_data
            FROM orders
            WHERE order_id = $1
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(query, order_id)
        except (PostgresConnectionError, OSError) as e:
            raise StoreUnavailableError(f"Order store unavailable: {e}") from e

        if row is None:
            logger.debug(
                "Order not found in PostgreSQL",
                extra={"order_id": order_id},
            )
            return None
        return validate_domain_model(row["order_data"], Order)

    async def save_order(
        self, order: Order, expected_version: Optional[int]
    ) -> Order:
        """Saves an order object to PostgreSQL under a version check."""
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    saved, _ = await self._write(conn, order, expected_version)
                    return saved
        except (PostgresConnectionError, OSError) as e:
            raise StoreUnavailableError(f"Order store unavailable: {e}") from e

    async def commit_refund_decision(
        self,
        order: Order,
        payment: Optional[Payment],
        expected_version: int,
    ) -> Order:
        """Saves the order and, if given, its payment in one transaction."""
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    saved, written = await self._write(
                        conn, order, expected_version
                    )
                    # A retry of a committed decision already stored its
                    # payment
                    if written and payment is not None:
                        await upsert_payment(conn, payment)
        except (PostgresConnectionError, OSError) as e:
            raise StoreUnavailableError(f"Order store unavailable: {e}") from e

        logger.info(
            "Committed refund decision to PostgreSQL",
            extra={
                "order_id": order.order_id,
                "refund_status": (
                    order.refund_details.status.value
                    if order.refund_details
                    else None
                ),
                "payment_updated": written and payment is not None,
            },
        )
        return saved

    async def list_orders_by_refund_status(
        self, refund_status: RefundStatus
    ) -> List[Order]:
        query = """
            SELECT order_data
            FROM orders
            WHERE refund_status = $1
            ORDER BY created_at
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, RefundStatus(refund_status).value)
        except (PostgresConnectionError, OSError) as e:
            raise StoreUnavailableError(f"Order store unavailable: {e}") from e
        return [validate_domain_model(row["order_data"], Order) for row in rows]

    async def _write(
        self,
        conn: Connection,
        order: Order,
        expected_version: Optional[int],
    ) -> Tuple[Order, bool]:
        row = await conn.fetchrow(
            """
            SELECT version, order_data
            FROM orders
            WHERE order_id = $1
            FOR UPDATE
            """,
            order.order_id,
        )
        current_version = row["version"] if row else None

        if expected_version is not None and current_version != expected_version:
            if row is not None and current_version == expected_version + 1:
                stored = validate_domain_model(row["order_data"], Order)
                if order.is_retry_of(stored, expected_version):
                    logger.info(
                        "Order write already committed, skipping save "
                        "(idempotent)",
                        extra={
                            "order_id": order.order_id,
                            "write_id": order.last_write_id,
                        },
                    )
                    return stored, False
            logger.warning(
                "Order version conflict in PostgreSQL",
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

        new_version = (
            current_version if current_version is not None else order.version
        ) + 1
        to_store = order.model_copy(
            update={
                "version": new_version,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        refund_status = (
            to_store.refund_details.status.value
            if to_store.refund_details
            else None
        )

        if row is None:
            try:
                await conn.execute(
                    """
                    INSERT INTO orders (
                        order_id, customer_id, status, refund_status,
                        version, order_data, created_at, updated_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                    """,
                    to_store.order_id,
                    to_store.customer_id,
                    to_store.status.value,
                    refund_status,
                    new_version,
                    to_store.model_dump_json(),
                    to_store.created_at,
                    to_store.updated_at,
                )
            except UniqueViolationError as e:
                raise ConcurrentUpdateError(
                    f"Order {order.order_id} was created concurrently",
                    expected_version=expected_version,
                ) from e
        else:
            await conn.execute(
                """
                UPDATE orders
                SET status = $2,
                    refund_status = $3,
                    version = $4,
                    order_data = $5,
                    updated_at = $6
                WHERE order_id = $1
                """,
                to_store.order_id,
                to_store.status.value,
                refund_status,
                new_version,
                to_store.model_dump_json(),
                to_store.updated_at,
            )

        logger.info(
            "Saved order to PostgreSQL",
            extra={
                "order_id": to_store.order_id,
                "status": to_store.status.value,
                "version": new_version,
            },
        )
        return to_store, True
