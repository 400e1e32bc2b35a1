"""PostgreSQL implementations of the order and payment repositories."""

from .order import PostgreSQLOrderRepository
from .payment import PostgreSQLPaymentRepository
from .schema import ensure_schema

__all__ = [
    "PostgreSQLOrderRepository",
    "PostgreSQLPaymentRepository",
    "ensure_schema",
]
