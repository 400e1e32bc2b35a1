"""
Memory repository implementations for the food ordering platform.

These hold all state in process and are used by the unit tests and for
running the engines without PostgreSQL or Minio.
"""

from .activity import MemoryActivityRepository
from .order import MemoryOrderRepository
from .payment import MemoryPaymentRepository

__all__ = [
    "MemoryActivityRepository",
    "MemoryOrderRepository",
    "MemoryPaymentRepository",
]
