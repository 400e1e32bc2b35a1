"""
PostgreSQL implementation of PaymentRepository.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from asyncpg import Connection, Pool, PostgresConnectionError

from food_orders.domain import Payment
from food_orders.errors import StoreUnavailableError
from food_orders.repositories import PaymentRepository
from food_orders.validation import validate_domain_model

logger = logging.getLogger(__name__)


async def upsert_payment(conn: Connection, payment: Payment) -> None:
    """Write a payment row on an already acquired connection.

    Shared with the order store, which calls it inside the refund decision
    transaction.
    """
    query = """
        INSERT INTO payments (
            payment_id, order_id, status, refund_status,
            payment_data, updated_at
        ) VALUES ($1, $2, $3, $4, $5, $6)
        ON CONFLICT (order_id)
        DO UPDATE SET
            payment_id = EXCLUDED.payment_id,
            status = EXCLUDED.status,
            refund_status = EXCLUDED.refund_status,
            payment_data = EXCLUDED.payment_data,
            updated_at = EXCLUDED.updated_at
    """
    await conn.execute(
        query,
        payment.payment_id,
        payment.order_id,
        payment.status,
        payment.refund_status.value if payment.refund_status else None,
        payment.model_dump_json(),
        datetime.now(timezone.utc),
    )


class PostgreSQLPaymentRepository(PaymentRepository):
    """
    PostgreSQL implementation of PaymentRepository.
    Uses PostgreSQL for persistence of payments.
    """

    def __init__(self, pool: Pool):
        """
        Initialize with an asyncpg connection pool.

        Args:
            pool: asyncpg connection pool for database operations
        """
        self.pool = pool
        logger.debug("Initialized PostgreSQLPaymentRepository")

    async def get_payment_for_order(self, order_id: str) -> Optional[Payment]:
        """Retrieves the payment for an order from PostgreSQL."""
        query = """
            SELECT payment_data
            FROM payments
            WHERE order_id = $1
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(query, order_id)
        except (PostgresConnectionError, OSError) as e:
            raise StoreUnavailableError(
                f"Payment store unavailable: {e}"
            ) from e

        if row is None:
            logger.debug(
                "Payment not found in PostgreSQL",
                extra={"order_id": order_id},
            )
            return None
        return validate_domain_model(row["payment_data"], Payment)

    async def save_payment(self, payment: Payment) -> None:
        """Saves a payment object to PostgreSQL."""
        try:
            async with self.pool.acquire() as conn:
                await upsert_payment(conn, payment)
        except (PostgresConnectionError, OSError) as e:
            raise StoreUnavailableError(
                f"Payment store unavailable: {e}"
            ) from e

        logger.info(
            "Saved payment to PostgreSQL",
            extra={
                "order_id": payment.order_id,
                "payment_id": payment.payment_id,
                "status": payment.status,
            },
        )
