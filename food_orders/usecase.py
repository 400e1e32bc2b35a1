"""
usecase logic must be clean, without direct dependencies.
dependencies are injected via repository instances.

The two engines in this module hold every order status and refund rule.
They are framework-agnostic: in the API and in tests they run against
concrete stores, inside Temporal workflows they run against workflow
proxies, and they never learn which. For the same reason the current time
comes from an injected clock rather than from the system clock, which is
not available to deterministic workflow code, and the token that marks
each write comes from an injected ``write_ids`` factory.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, NoReturn, Optional

from food_orders.domain import (
    CANCELLABLE_ORDER_STATUSES,
    Activity,
    Actor,
    Order,
    OrderDetails,
    OrderStatus,
    Payment,
    RefundDecision,
    RefundDetails,
    RefundStatus,
    next_order_status,
    next_refund_status,
)
from food_orders.errors import (
    ConcurrentUpdateError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from food_orders.repositories import (
    ActivityRepository,
    AuthorizationService,
    OrderRepository,
    PaymentRepository,
)
from food_orders.validation import (
    ensure_activity_repository,
    ensure_authorization_service,
    ensure_order_repository,
    ensure_payment_repository,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
WriteIds = Callable[[], str]
OrderCheck = Callable[[Order], Awaitable[None]]

DEFAULT_DENIAL_REASON = "No reason provided"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_write_id() -> str:
    return str(uuid.uuid4())


class _OrderEngine:
    """Shared loading, conditional saving and audit logging."""

    def __init__(
        self,
        order_repo: OrderRepository,
        activity_repo: ActivityRepository,
        authorization: AuthorizationService,
        clock: Clock,
        write_ids: WriteIds,
    ) -> None:
        # Validate at construction time for early error detection
        self.order_repo = ensure_order_repository(order_repo)
        self.activity_repo = ensure_activity_repository(activity_repo)
        self.authorization = ensure_authorization_service(authorization)
        self.clock = clock
        self.write_ids = write_ids

    async def _load_order(self, order_id: str) -> Order:
        order = await self.order_repo.get_order(order_id)
        if order is None:
            logger.warning("Order not found", extra={"order_id": order_id})
            raise NotFoundError("Order not found")
        return order

    def _require_admin(self, actor: Actor, operation: str) -> None:
        if not self.authorization.is_admin(actor):
            logger.warning(
                "Non-admin actor attempted an admin-only operation",
                extra={"user_id": actor.user_id, "operation": operation},
            )
            raise ForbiddenError("Access denied. Admin only.")

    async def _save_checked(
        self, order: Order, expected_version: int, check: OrderCheck
    ) -> Order:
        """Save ``order`` if nobody wrote it since ``expected_version``.

        On a lost race the order is reloaded and ``check`` re-run on the
        fresh copy, so the caller sees the business error that now applies.
        A retry of this same call is recognised by the write token.
        """
        order.last_write_id = self.write_ids()
        try:
            return await self.order_repo.save_order(order, expected_version)
        except ConcurrentUpdateError as e:
            await self._raise_after_race(order.order_id, check, e)

    async def _raise_after_race(
        self, order_id: str, check: OrderCheck, error: ConcurrentUpdateError
    ) -> NoReturn:
        logger.info(
            "Order was modified concurrently, re-validating",
            extra={
                "order_id": order_id,
                "expected_version": error.expected_version,
                "actual_version": error.actual_version,
            },
        )
        fresh = await self._load_order(order_id)
        await check(fresh)
        raise ConflictError(
            "Order was modified concurrently; reload it and try again"
        ) from error

    async def _record(
        self, actor: Actor, action: str, details: Dict[str, Any]
    ) -> None:
        activity = Activity(
            user_id=actor.user_id,
            action=action,
            details=details,
            created_at=self.clock(),
        )
        try:
            await self.activity_repo.append_activity(activity)
        except Exception as e:
            # The state change is already committed; the audit entry is
            # not allowed to undo it.
            logger.error(
                "Failed to append activity record",
                extra={
                    "action": action,
                    "order_id": details.get("order_id"),
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )


class OrderLifecycleUseCase(_OrderEngine):
    """
    Enforces valid order status transitions and their side effects.

    Forward transitions follow the strict status graph. Administrators can
    bypass the graph with an explicit override, but only when the engine
    was built with ``allow_status_override``.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        activity_repo: ActivityRepository,
        authorization: AuthorizationService,
        clock: Clock = utc_now,
        allow_status_override: bool = False,
        write_ids: WriteIds = new_write_id,
    ) -> None:
        super().__init__(
            order_repo, activity_repo, authorization, clock, write_ids
        )
        self.allow_status_override = allow_status_override

    async def advance_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        actor: Actor,
        override: bool = False,
    ) -> Order:
        """Move an order to ``new_status``.

        Setting the status the order already has is a no-op and records no
        activity.

        Raises:
            ForbiddenError: If the actor is not an admin, or an override is
                requested while overrides are disabled.
            NotFoundError: If the order does not exist.
            InvalidStateError: If the transition is not allowed.
        """
        new_status = OrderStatus(new_status)
        logger.info(
            "Advancing order status",
            extra={
                "order_id": order_id,
                "new_status": new_status.value,
                "user_id": actor.user_id,
                "override": override,
            },
        )
        self._require_admin(actor, "advance_status")
        if override and not self.allow_status_override:
            raise ForbiddenError("Administrative status override is disabled")

        order = await self._load_order(order_id)
        previous_status = order.status
        if previous_status == new_status:
            logger.info(
                "Order already has the requested status, nothing to do",
                extra={"order_id": order_id, "status": new_status.value},
            )
            return order

        async def check(current: Order) -> None:
            next_order_status(current.status, new_status, override)
            if (
                current.refund_details is not None
                and new_status != OrderStatus.CANCELLED
            ):
                raise InvalidStateError(
                    "An order with a refund request must stay cancelled"
                )

        await check(order)
        expected_version = order.version

        order.status = new_status
        if (
            new_status == OrderStatus.DELIVERED
            and order.actual_delivery_time is None
        ):
            order.actual_delivery_time = self.clock()

        saved = await self._save_checked(order, expected_version, check)

        logger.info(
            "Order status updated",
            extra={
                "order_id": order_id,
                "previous_status": previous_status.value,
                "new_status": new_status.value,
                "version": saved.version,
            },
        )
        await self._record(
            actor,
            "updated order status",
            {
                "order_id": order_id,
                "previous_status": previous_status.value,
                "new_status": new_status.value,
                "total": str(saved.total_amount),
                "products": saved.product_snapshot(),
                "override": override,
            },
        )
        return saved

    async def cancel_order(
        self, order_id: str, actor: Actor, reason: Optional[str] = None
    ) -> Order:
        """Cancel an order that has not started preparation.

        No refund state is created here; a refund has to be requested
        separately once the order is cancelled.
        """
        logger.info(
            "Cancelling order",
            extra={
                "order_id": order_id,
                "user_id": actor.user_id,
                "reason": reason,
            },
        )
        order = await self._load_order(order_id)
        if not (
            order.is_owned_by(actor.user_id)
            or self.authorization.is_admin(actor)
        ):
            raise ForbiddenError("Access denied")

        async def check(current: Order) -> None:
            if current.status not in CANCELLABLE_ORDER_STATUSES:
                raise InvalidStateError(
                    f"Cannot cancel this order: it is already "
                    f"{current.status.value}"
                )

        await check(order)
        expected_version = order.version
        previous_status = order.status

        order.status = next_order_status(order.status, OrderStatus.CANCELLED)
        order.cancellation_reason = reason

        saved = await self._save_checked(order, expected_version, check)

        logger.info(
            "Order cancelled",
            extra={
                "order_id": order_id,
                "previous_status": previous_status.value,
                "version": saved.version,
            },
        )
        await self._record(
            actor,
            "cancelled an order",
            {
                "order_id": order_id,
                "reason": reason,
                "total": str(saved.total_amount),
            },
        )
        return saved


class RefundWorkflowUseCase(_OrderEngine):
    """
    Manages the request/approve/deny refund sub-lifecycle of a cancelled,
    paid order and keeps the payment record in step with it.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        activity_repo: ActivityRepository,
        authorization: AuthorizationService,
        clock: Clock = utc_now,
        write_ids: WriteIds = new_write_id,
    ) -> None:
        super().__init__(
            order_repo, activity_repo, authorization, clock, write_ids
        )
        self.payment_repo = ensure_payment_repository(payment_repo)

    async def request_refund(
        self, order_id: str, requester: Actor, reason: Optional[str]
    ) -> Order:
        """Open a refund request on the requester's cancelled order.

        Raises:
            NotFoundError: If the order does not exist.
            ForbiddenError: If the requester does not own the order.
            InvalidStateError: If the order is not cancelled or has no
                completed payment.
            ConflictError: If a refund was already requested.
        """
        logger.info(
            "Refund requested",
            extra={"order_id": order_id, "user_id": requester.user_id},
        )
        order = await self._load_order(order_id)
        if not order.is_owned_by(requester.user_id):
            raise ForbiddenError("Not your order")

        async def check(current: Order) -> None:
            if current.status != OrderStatus.CANCELLED:
                raise InvalidStateError(
                    "Refunds can only be requested for cancelled orders"
                )
            if current.refund_details is not None:
                raise ConflictError(
                    "A refund has already been requested or processed for "
                    "this order"
                )
            payment = await self.payment_repo.get_payment_for_order(
                current.order_id
            )
            if payment is None or payment.status != "completed":
                logger.warning(
                    "Refund rejected, no completed payment",
                    extra={
                        "order_id": current.order_id,
                        "payment_status": payment.status if payment else None,
                    },
                )
                raise InvalidStateError(
                    "Order has no completed payment to refund"
                )

        await check(order)

        expected_version = order.version
        order.refund_details = RefundDetails(
            status=RefundStatus.REQUESTED,
            reason=reason,
            requested_reason=reason,
            amount=order.total_amount,
            requested_at=self.clock(),
        )

        saved = await self._save_checked(order, expected_version, check)

        await self._record(
            requester,
            "requested a refund",
            {
                "order_id": order_id,
                "reason": reason,
                "amount": str(saved.total_amount),
            },
        )
        return saved

    async def decide_refund(
        self,
        order_id: str,
        decision: RefundDecision,
        admin: Actor,
        note: Optional[str] = None,
    ) -> Order:
        """Approve or deny a pending refund request.

        Approval marks the payment refunded for the full order total. The
        order and payment are committed together, so a failure leaves both
        untouched.

        Raises:
            ForbiddenError: If ``admin`` lacks admin authority.
            NotFoundError: If the order, or on approval its payment, is
                missing.
            InvalidStateError: If the refund is not in requested state.
        """
        target = RefundStatus(decision)
        logger.info(
            "Deciding refund",
            extra={
                "order_id": order_id,
                "decision": target.value,
                "user_id": admin.user_id,
            },
        )
        self._require_admin(admin, "decide_refund")
        order = await self._load_order(order_id)

        async def check(current: Order) -> None:
            current_status = (
                current.refund_details.status
                if current.refund_details
                else None
            )
            next_refund_status(current_status, target)

        await check(order)
        refund_details = order.refund_details
        if refund_details is None:
            raise InvalidStateError("Refund is not in requested state")
        expected_version = order.version
        now = self.clock()

        payment: Optional[Payment] = None
        if target == RefundStatus.APPROVED:
            payment = await self.payment_repo.get_payment_for_order(order_id)
            if payment is None:
                logger.warning(
                    "Refund approval failed, payment record missing",
                    extra={"order_id": order_id},
                )
                raise NotFoundError("Payment record not found for this order")
            payment.refund_status = RefundStatus.APPROVED
            payment.status = "refunded"
            payment.refund_amount = order.total_amount
            refund_details.status = RefundStatus.APPROVED
            refund_details.approved_at = now
        else:
            refund_details.status = RefundStatus.DENIED
            refund_details.rejected_at = now
            refund_details.reason = note or DEFAULT_DENIAL_REASON

        order.last_write_id = self.write_ids()
        try:
            saved = await self.order_repo.commit_refund_decision(
                order, payment, expected_version
            )
        except ConcurrentUpdateError as e:
            await self._raise_after_race(order_id, check, e)

        logger.info(
            "Refund decided",
            extra={
                "order_id": order_id,
                "decision": target.value,
                "refund_amount": (
                    str(payment.refund_amount) if payment else None
                ),
                "version": saved.version,
            },
        )
        if target == RefundStatus.APPROVED:
            await self._record(
                admin,
                "approved a refund request",
                {"order_id": order_id, "amount": str(saved.total_amount)},
            )
        else:
            await self._record(
                admin,
                "denied a refund request",
                {"order_id": order_id, "reason": refund_details.reason},
            )
        return saved


class GetOrderUseCase:
    """
    Use case for retrieving order information for customers and the admin
    dashboard.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        activity_repo: ActivityRepository,
        authorization: AuthorizationService,
    ) -> None:
        self.order_repo = ensure_order_repository(order_repo)
        self.payment_repo = ensure_payment_repository(payment_repo)
        self.activity_repo = ensure_activity_repository(activity_repo)
        self.authorization = ensure_authorization_service(authorization)

    async def get_order_details(
        self, order_id: str, actor: Actor
    ) -> OrderDetails:
        """Return an order with its payment, for its owner or an admin."""
        logger.debug("Getting order", extra={"order_id": order_id})
        order = await self.order_repo.get_order(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        if not (
            order.is_owned_by(actor.user_id)
            or self.authorization.is_admin(actor)
        ):
            raise ForbiddenError("Access denied")
        payment = await self.payment_repo.get_payment_for_order(order_id)
        return OrderDetails(order=order, payment=payment)

    async def list_refund_requests(self, actor: Actor) -> List[OrderDetails]:
        """Orders waiting for a refund decision, oldest request first."""
        if not self.authorization.is_admin(actor):
            raise ForbiddenError("Access denied. Admin only.")
        orders = await self.order_repo.list_orders_by_refund_status(
            RefundStatus.REQUESTED
        )
        orders.sort(
            key=lambda o: (
                o.refund_details.requested_at
                if o.refund_details and o.refund_details.requested_at
                else o.created_at
            )
        )
        results = []
        for order in orders:
            payment = await self.payment_repo.get_payment_for_order(
                order.order_id
            )
            results.append(OrderDetails(order=order, payment=payment))
        logger.info(
            "Refund requests listed", extra={"count": len(results)}
        )
        return results

    async def list_recent_activity(
        self, actor: Actor, limit: int = 20
    ) -> List[Activity]:
        if not self.authorization.is_admin(actor):
            raise ForbiddenError("Access denied. Admin only.")
        return await self.activity_repo.list_recent_activities(limit)
