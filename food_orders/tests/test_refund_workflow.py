"""
Tests for RefundWorkflowUseCase against the memory stores.
"""

from decimal import Decimal
from unittest.mock import patch

import pytest

from food_orders.domain import Actor, OrderStatus, RefundStatus
from food_orders.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from food_orders.repos.memory import (
    MemoryActivityRepository,
    MemoryOrderRepository,
    MemoryPaymentRepository,
)
from food_orders.tests.conftest import FIXED_NOW
from food_orders.tests.factories import (
    OrderFactory,
    PaymentFactory,
    RefundDetailsFactory,
)
from food_orders.usecase import DEFAULT_DENIAL_REASON, RefundWorkflowUseCase


@pytest.fixture
async def cancelled_paid_order(
    order_repo: MemoryOrderRepository, payment_repo: MemoryPaymentRepository
) -> None:
    await order_repo.save_order(
        OrderFactory.build(status=OrderStatus.CANCELLED), None
    )
    await payment_repo.save_payment(PaymentFactory.build())


@pytest.fixture
async def requested_refund(
    order_repo: MemoryOrderRepository, payment_repo: MemoryPaymentRepository
) -> None:
    await order_repo.save_order(
        OrderFactory.build(
            status=OrderStatus.CANCELLED,
            refund_details=RefundDetailsFactory.build(),
        ),
        None,
    )
    await payment_repo.save_payment(PaymentFactory.build())


class TestRequestRefund:
    @pytest.mark.asyncio
    @pytest.mark.usefixtures("cancelled_paid_order")
    async def test_opens_refund_request(
        self,
        refunds: RefundWorkflowUseCase,
        order_repo: MemoryOrderRepository,
        activity_repo: MemoryActivityRepository,
        customer: Actor,
    ) -> None:
        order = await refunds.request_refund(
            "order-1", customer, "Food never arrived"
        )

        details = order.refund_details
        assert details is not None
        assert details.status == RefundStatus.REQUESTED
        assert details.reason == "Food never arrived"
        assert details.requested_reason == "Food never arrived"
        assert details.amount == Decimal("42.50")
        assert details.requested_at == FIXED_NOW

        stored = await order_repo.get_order("order-1")
        assert stored is not None
        assert stored.refund_details == details

        [activity] = activity_repo.activities
        assert activity.action == "requested a refund"
        assert activity.details["order_id"] == "order-1"

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("cancelled_paid_order")
    async def test_only_owner_can_request(
        self, refunds: RefundWorkflowUseCase, other_customer: Actor
    ) -> None:
        with pytest.raises(ForbiddenError, match="Not your order"):
            await refunds.request_refund("order-1", other_customer, "x")

    @pytest.mark.asyncio
    async def test_order_must_be_cancelled(
        self,
        refunds: RefundWorkflowUseCase,
        order_repo: MemoryOrderRepository,
        payment_repo: MemoryPaymentRepository,
        customer: Actor,
    ) -> None:
        await order_repo.save_order(
            OrderFactory.build(status=OrderStatus.DELIVERED), None
        )
        await payment_repo.save_payment(PaymentFactory.build())

        with pytest.raises(InvalidStateError, match="cancelled orders"):
            await refunds.request_refund("order-1", customer, "x")

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("cancelled_paid_order")
    async def test_second_request_conflicts(
        self,
        refunds: RefundWorkflowUseCase,
        order_repo: MemoryOrderRepository,
        customer: Actor,
    ) -> None:
        await refunds.request_refund("order-1", customer, "first")

        with pytest.raises(ConflictError, match="already been requested"):
            await refunds.request_refund("order-1", customer, "second")

        stored = await order_repo.get_order("order-1")
        assert stored is not None
        assert stored.refund_details is not None
        assert stored.refund_details.reason == "first"

    @pytest.mark.asyncio
    async def test_requires_completed_payment(
        self,
        refunds: RefundWorkflowUseCase,
        order_repo: MemoryOrderRepository,
        payment_repo: MemoryPaymentRepository,
        customer: Actor,
    ) -> None:
        await order_repo.save_order(
            OrderFactory.build(status=OrderStatus.CANCELLED), None
        )
        await payment_repo.save_payment(PaymentFactory.build(status="pending"))

        with pytest.raises(InvalidStateError, match="no completed payment"):
            await refunds.request_refund("order-1", customer, "x")

    @pytest.mark.asyncio
    async def test_missing_order(
        self, refunds: RefundWorkflowUseCase, customer: Actor
    ) -> None:
        with pytest.raises(NotFoundError):
            await refunds.request_refund("missing", customer, "x")


class TestDecideRefund:
    @pytest.mark.asyncio
    @pytest.mark.usefixtures("requested_refund")
    async def test_approval_refunds_payment(
        self,
        refunds: RefundWorkflowUseCase,
        order_repo: MemoryOrderRepository,
        payment_repo: MemoryPaymentRepository,
        activity_repo: MemoryActivityRepository,
        admin: Actor,
    ) -> None:
        order = await refunds.decide_refund("order-1", "approved", admin)

        assert order.refund_details is not None
        assert order.refund_details.status == RefundStatus.APPROVED
        assert order.refund_details.approved_at == FIXED_NOW

        payment = await payment_repo.get_payment_for_order("order-1")
        assert payment is not None
        assert payment.status == "refunded"
        assert payment.refund_status == RefundStatus.APPROVED
        assert payment.refund_amount == Decimal("42.50")

        [activity] = activity_repo.activities
        assert activity.action == "approved a refund request"
        assert activity.details == {"order_id": "order-1", "amount": "42.50"}

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("requested_refund")
    async def test_denial_keeps_payment(
        self,
        refunds: RefundWorkflowUseCase,
        payment_repo: MemoryPaymentRepository,
        activity_repo: MemoryActivityRepository,
        admin: Actor,
    ) -> None:
        order = await refunds.decide_refund(
            "order-1", "denied", admin, "Delivered as ordered"
        )

        details = order.refund_details
        assert details is not None
        assert details.status == RefundStatus.DENIED
        assert details.rejected_at == FIXED_NOW
        assert details.reason == "Delivered as ordered"
        assert details.requested_reason == "Changed my mind"

        payment = await payment_repo.get_payment_for_order("order-1")
        assert payment is not None
        assert payment.status == "completed"
        assert payment.refund_status is None
        assert payment.refund_amount == Decimal("0")
        assert activity_repo.activities[0].details == {
            "order_id": "order-1",
            "reason": "Delivered as ordered",
        }

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("requested_refund")
    async def test_denial_without_note(
        self, refunds: RefundWorkflowUseCase, admin: Actor
    ) -> None:
        order = await refunds.decide_refund("order-1", "denied", admin)
        assert order.refund_details is not None
        assert order.refund_details.reason == DEFAULT_DENIAL_REASON

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("requested_refund")
    async def test_decision_is_final(
        self,
        refunds: RefundWorkflowUseCase,
        payment_repo: MemoryPaymentRepository,
        admin: Actor,
    ) -> None:
        await refunds.decide_refund("order-1", "denied", admin)

        with pytest.raises(
            InvalidStateError, match="Refund is not in requested state"
        ):
            await refunds.decide_refund("order-1", "approved", admin)

        payment = await payment_repo.get_payment_for_order("order-1")
        assert payment is not None
        assert payment.refund_status is None

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("cancelled_paid_order")
    async def test_nothing_to_decide(
        self, refunds: RefundWorkflowUseCase, admin: Actor
    ) -> None:
        with pytest.raises(InvalidStateError):
            await refunds.decide_refund("order-1", "approved", admin)

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("cancelled_paid_order")
    async def test_missing_refund_is_rejected_even_if_transition_passes(
        self, refunds: RefundWorkflowUseCase, admin: Actor
    ) -> None:
        with patch("food_orders.usecase.next_refund_status"):
            with pytest.raises(
                InvalidStateError, match="Refund is not in requested state"
            ):
                await refunds.decide_refund("order-1", "approved", admin)

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("requested_refund")
    async def test_requires_admin(
        self,
        refunds: RefundWorkflowUseCase,
        order_repo: MemoryOrderRepository,
        customer: Actor,
    ) -> None:
        with pytest.raises(ForbiddenError):
            await refunds.decide_refund("order-1", "approved", customer)

        stored = await order_repo.get_order("order-1")
        assert stored is not None
        assert stored.refund_details is not None
        assert stored.refund_details.status == RefundStatus.REQUESTED

    @pytest.mark.asyncio
    async def test_approval_without_payment_changes_nothing(
        self,
        refunds: RefundWorkflowUseCase,
        order_repo: MemoryOrderRepository,
        activity_repo: MemoryActivityRepository,
        admin: Actor,
    ) -> None:
        await order_repo.save_order(
            OrderFactory.build(
                status=OrderStatus.CANCELLED,
                refund_details=RefundDetailsFactory.build(),
            ),
            None,
        )

        with pytest.raises(NotFoundError, match="Payment record not found"):
            await refunds.decide_refund("order-1", "approved", admin)

        stored = await order_repo.get_order("order-1")
        assert stored is not None
        assert stored.refund_details is not None
        assert stored.refund_details.status == RefundStatus.REQUESTED
        assert activity_repo.activities == []
