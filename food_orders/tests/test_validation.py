"""
Tests for runtime validation utilities.
"""

from decimal import Decimal

import pytest

from food_orders.authorization import RoleAuthorizationService
from food_orders.domain import Order, Payment
from food_orders.repos.memory import (
    MemoryActivityRepository,
    MemoryOrderRepository,
    MemoryPaymentRepository,
)
from food_orders.tests.factories import OrderFactory
from food_orders.usecase import OrderLifecycleUseCase
from food_orders.validation import (
    DomainValidationError,
    RepositoryValidationError,
    ensure_authorization_service,
    ensure_order_repository,
    ensure_payment_repository,
    validate_domain_model,
)


def test_ensure_repository_returns_the_repository() -> None:
    repo = MemoryOrderRepository()
    assert ensure_order_repository(repo) is repo


def test_ensure_repository_rejects_wrong_object() -> None:
    with pytest.raises(RepositoryValidationError, match="PaymentRepository"):
        ensure_payment_repository(MemoryActivityRepository())


def test_ensure_authorization_service() -> None:
    service = RoleAuthorizationService()
    assert ensure_authorization_service(service) is service

    with pytest.raises(RepositoryValidationError):
        ensure_authorization_service(object())


def test_use_case_validates_collaborators() -> None:
    """Wiring mistakes surface when the engine is built"""
    with pytest.raises(RepositoryValidationError):
        OrderLifecycleUseCase(
            order_repo=MemoryPaymentRepository(),  # type: ignore[arg-type]
            activity_repo=MemoryActivityRepository(),
            authorization=RoleAuthorizationService(),
        )


def test_validate_domain_model_from_dict() -> None:
    data = {
        "payment_id": "payment-1",
        "order_id": "order-1",
        "amount": "42.50",
        "method": "card",
        "status": "completed",
    }

    payment = validate_domain_model(data, Payment)

    assert payment.amount == Decimal("42.50")
    assert payment.refund_amount == Decimal("0")


def test_validate_domain_model_from_json() -> None:
    order = OrderFactory.build()

    loaded = validate_domain_model(order.model_dump_json(), Order)

    assert loaded == order


def test_validate_domain_model_validation_error() -> None:
    data = {
        "order_id": "order-1",
        "customer_id": "customer-1",
        "items": [],  # Invalid - empty items list
        "total_amount": "10.00",
    }

    with pytest.raises(DomainValidationError, match="Order"):
        validate_domain_model(data, Order)


def test_refund_amount_without_approval_is_invalid() -> None:
    data = {
        "payment_id": "payment-1",
        "order_id": "order-1",
        "amount": "42.50",
        "method": "card",
        "refund_amount": "42.50",
    }

    with pytest.raises(DomainValidationError):
        validate_domain_model(data, Payment)
