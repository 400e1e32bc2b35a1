"""
Order lifecycle and refund workflow service for a food ordering platform.

This package keeps its top level free of store and framework imports, since
it is also loaded inside the Temporal workflow sandbox.
"""

from .domain import (
    Activity,
    Actor,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    RefundDetails,
    RefundStatus,
)
from .errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    OrderWorkflowError,
)
from .usecase import (
    GetOrderUseCase,
    OrderLifecycleUseCase,
    RefundWorkflowUseCase,
)

__all__ = [
    # Domain models
    "Activity",
    "Actor",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "RefundDetails",
    "RefundStatus",
    # Errors
    "ConflictError",
    "ForbiddenError",
    "InvalidStateError",
    "NotFoundError",
    "OrderWorkflowError",
    # Use cases
    "GetOrderUseCase",
    "OrderLifecycleUseCase",
    "RefundWorkflowUseCase",
]
