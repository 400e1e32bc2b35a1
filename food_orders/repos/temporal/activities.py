"""
Temporal activity wrapper classes for the food ordering stores.

Each class registers the protocol methods of a concrete store as
activities named ``{activity base}.{method}``. Business errors raised by
the stores (version conflicts above all) become non-retryable activity
failures; connection problems stay retryable.
"""

from food_orders.errors import OrderWorkflowError
from food_orders.repos.minio.activity import MinioActivityRepository
from food_orders.repos.postgresql.order import PostgreSQLOrderRepository
from food_orders.repos.postgresql.payment import PostgreSQLPaymentRepository
from food_orders.repos.temporal.activity_names import (
    ACTIVITY_LOG_ACTIVITY_BASE,
    ORDER_ACTIVITY_BASE,
    PAYMENT_ACTIVITY_BASE,
)
from util.repos.temporal.decorators import temporal_activity_registration


@temporal_activity_registration(
    ORDER_ACTIVITY_BASE, non_retryable=(OrderWorkflowError,)
)
class TemporalPostgreSQLOrderRepository(PostgreSQLOrderRepository):
    """Temporal activity wrapper for PostgreSQLOrderRepository."""

    pass


@temporal_activity_registration(
    PAYMENT_ACTIVITY_BASE, non_retryable=(OrderWorkflowError,)
)
class TemporalPostgreSQLPaymentRepository(PostgreSQLPaymentRepository):
    """Temporal activity wrapper for PostgreSQLPaymentRepository."""

    pass


@temporal_activity_registration(ACTIVITY_LOG_ACTIVITY_BASE)
class TemporalMinioActivityRepository(MinioActivityRepository):
    """Temporal activity wrapper for MinioActivityRepository."""

    pass


__all__ = [
    "TemporalPostgreSQLOrderRepository",
    "TemporalPostgreSQLPaymentRepository",
    "TemporalMinioActivityRepository",
]
