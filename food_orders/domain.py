"""
Domain models defined as Pydantic models.

Orders and payments are pure data structures with validation. The two state
machines (order status and refund sub-state) are expressed as transition
tables with a single transition function each, so every caller shares the
same rules.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Literal, Optional

from pydantic import (
    BaseModel,
    Field,
    field_validator,
    model_validator,
)

from food_orders.errors import InvalidStateError


class OrderStatus(str, Enum):
    """Delivery lifecycle of an order."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class RefundStatus(str, Enum):
    """Sub-state of a refund request attached to a cancelled order."""

    REQUESTED = "requested"
    APPROVED = "approved"
    DENIED = "denied"


PaymentMethod = Literal["cod", "upi", "card"]
PaymentStatus = Literal[
    "pending", "processing", "completed", "failed", "cancelled", "refunded"
]
RefundDecision = Literal["approved", "denied"]


# --- Order status state machine ---

ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.CONFIRMED, OrderStatus.CANCELLED}
    ),
    OrderStatus.CONFIRMED: frozenset(
        {OrderStatus.PREPARING, OrderStatus.CANCELLED}
    ),
    OrderStatus.PREPARING: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_ORDER_STATUSES: FrozenSet[OrderStatus] = frozenset(
    status for status, targets in ORDER_STATUS_TRANSITIONS.items() if not targets
)

CANCELLABLE_ORDER_STATUSES: FrozenSet[OrderStatus] = frozenset(
    status
    for status, targets in ORDER_STATUS_TRANSITIONS.items()
    if OrderStatus.CANCELLED in targets
)


def next_order_status(
    current: OrderStatus, target: OrderStatus, override: bool = False
) -> OrderStatus:
    """Return ``target`` if the order may move there from ``current``.

    With ``override`` any status may be set; callers are responsible for
    checking that the override was authorised.

    Raises:
        InvalidStateError: If the edge is not part of the status graph.
    """
    if override or target in ORDER_STATUS_TRANSITIONS[current]:
        return target
    if current in TERMINAL_ORDER_STATUSES:
        raise InvalidStateError(
            f"Order is already {current.value}; no further status changes "
            "are allowed"
        )
    raise InvalidStateError(
        f"Cannot change order status from {current.value} to {target.value}"
    )


# --- Refund state machine ---

REFUND_STATUS_TRANSITIONS: Dict[RefundStatus, FrozenSet[RefundStatus]] = {
    RefundStatus.REQUESTED: frozenset(
        {RefundStatus.APPROVED, RefundStatus.DENIED}
    ),
    RefundStatus.APPROVED: frozenset(),
    RefundStatus.DENIED: frozenset(),
}


def next_refund_status(
    current: Optional[RefundStatus], decision: RefundStatus
) -> RefundStatus:
    """Return ``decision`` if a refund in ``current`` may be decided so."""
    if current is None or decision not in REFUND_STATUS_TRANSITIONS[current]:
        raise InvalidStateError("Refund is not in requested state")
    return decision


# --- Orders ---


class OrderItem(BaseModel):
    product_id: str
    product_name: str = "Unknown"
    quantity: int
    unit_price: Decimal
    notes: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be positive")
        return v

    @field_validator("unit_price")
    @classmethod
    def unit_price_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Unit price must be positive")
        return v

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class DeliveryAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class RefundDetails(BaseModel):
    """Refund request recorded on a cancelled order.

    ``reason`` starts as the customer's reason and is replaced by the
    administrator's note when the request is denied; ``requested_reason``
    keeps the customer's words.
    """

    status: RefundStatus
    reason: Optional[str] = None
    requested_reason: Optional[str] = None
    amount: Optional[Decimal] = None
    requested_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None


class Order(BaseModel):
    order_id: str
    customer_id: str
    items: List[OrderItem]
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    delivery_address: DeliveryAddress = Field(default_factory=DeliveryAddress)
    payment_method: PaymentMethod = "cod"
    payment_id: Optional[str] = None
    actual_delivery_time: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    refund_details: Optional[RefundDetails] = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    updated_at: Optional[datetime] = None
    version: int = 0
    # Token of the engine operation that produced this version
    last_write_id: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[OrderItem]) -> List[OrderItem]:
        if not v:
            raise ValueError("Order must contain at least one item")
        return v

    @field_validator("total_amount")
    @classmethod
    def total_amount_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Total amount must be positive")
        return v

    @model_validator(mode="after")
    def refund_requires_cancelled_order(self) -> "Order":
        if (
            self.refund_details is not None
            and self.status != OrderStatus.CANCELLED
        ):
            raise ValueError(
                "Refund details may only exist on a cancelled order"
            )
        return self

    def product_snapshot(self) -> List[Dict[str, Any]]:
        """Item names and quantities as recorded in activity entries."""
        return [
            {"name": item.product_name, "qty": item.quantity}
            for item in self.items
        ]

    def is_owned_by(self, user_id: str) -> bool:
        return self.customer_id == user_id

    def is_retry_of(self, stored: "Order", expected_version: int) -> bool:
        """True if ``stored`` is this very write, committed by an earlier
        attempt of the same operation.

        Only the write token identifies the operation; two callers that
        happen to produce the same content are still different writes.
        """
        return (
            self.last_write_id is not None
            and stored.last_write_id == self.last_write_id
            and stored.version == expected_version + 1
        )


# --- Payments ---


class Payment(BaseModel):
    payment_id: str
    order_id: str
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus = "pending"
    transaction_id: Optional[str] = None
    refund_status: Optional[RefundStatus] = None
    refund_amount: Decimal = Decimal("0")
    processed_at: Optional[datetime] = None

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Amount must be positive")
        return v

    @field_validator("refund_amount")
    @classmethod
    def refund_amount_must_be_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Refund amount must be non-negative")
        return v

    @model_validator(mode="after")
    def refund_amount_matches_refund_status(self) -> "Payment":
        approved = self.refund_status == RefundStatus.APPROVED
        if approved != (self.refund_amount != 0):
            raise ValueError(
                "Refund amount must be set if and only if the refund is "
                "approved"
            )
        return self


# --- Actors and activity log ---


class Actor(BaseModel):
    """The authenticated caller of an engine operation."""

    user_id: str
    role: Literal["customer", "admin"] = "customer"


class Activity(BaseModel):
    """Append-only audit record shown on the admin and user dashboards."""

    activity_id: Optional[str] = None
    user_id: str
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class OrderDetails(BaseModel):
    """An order together with its payment record, if any."""

    order: Order
    payment: Optional[Payment] = None
