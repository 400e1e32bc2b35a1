"""
Shared fixtures: memory stores, a fixed clock and the engines wired to them.
"""

from datetime import datetime, timezone
from typing import Callable

import pytest

from food_orders.authorization import RoleAuthorizationService
from food_orders.domain import Actor
from food_orders.repos.memory import (
    MemoryActivityRepository,
    MemoryOrderRepository,
    MemoryPaymentRepository,
)
from food_orders.tests.factories import ActorFactory, AdminFactory
from food_orders.usecase import (
    GetOrderUseCase,
    OrderLifecycleUseCase,
    RefundWorkflowUseCase,
)

FIXED_NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def payment_repo() -> MemoryPaymentRepository:
    return MemoryPaymentRepository()


@pytest.fixture
def order_repo(payment_repo: MemoryPaymentRepository) -> MemoryOrderRepository:
    return MemoryOrderRepository(payment_repo)


@pytest.fixture
def activity_repo() -> MemoryActivityRepository:
    return MemoryActivityRepository()


@pytest.fixture
def authorization() -> RoleAuthorizationService:
    return RoleAuthorizationService()


@pytest.fixture
def customer() -> Actor:
    return ActorFactory.build()


@pytest.fixture
def other_customer() -> Actor:
    return ActorFactory.build(user_id="customer-2")


@pytest.fixture
def admin() -> Actor:
    return AdminFactory.build()


@pytest.fixture
def lifecycle(
    order_repo: MemoryOrderRepository,
    activity_repo: MemoryActivityRepository,
    authorization: RoleAuthorizationService,
    clock: Callable[[], datetime],
) -> OrderLifecycleUseCase:
    return OrderLifecycleUseCase(
        order_repo=order_repo,
        activity_repo=activity_repo,
        authorization=authorization,
        clock=clock,
    )


@pytest.fixture
def refunds(
    order_repo: MemoryOrderRepository,
    payment_repo: MemoryPaymentRepository,
    activity_repo: MemoryActivityRepository,
    authorization: RoleAuthorizationService,
    clock: Callable[[], datetime],
) -> RefundWorkflowUseCase:
    return RefundWorkflowUseCase(
        order_repo=order_repo,
        payment_repo=payment_repo,
        activity_repo=activity_repo,
        authorization=authorization,
        clock=clock,
    )


@pytest.fixture
def reads(
    order_repo: MemoryOrderRepository,
    payment_repo: MemoryPaymentRepository,
    activity_repo: MemoryActivityRepository,
    authorization: RoleAuthorizationService,
) -> GetOrderUseCase:
    return GetOrderUseCase(
        order_repo=order_repo,
        payment_repo=payment_repo,
        activity_repo=activity_repo,
        authorization=authorization,
    )
