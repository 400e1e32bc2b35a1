"""
Workflow-specific proxies for the food ordering repositories.

These classes are used *inside* Temporal workflows. They keep workflows
deterministic by delegating every store call to an activity, and they
raise the same business errors the stores raise.
"""

from datetime import timedelta

from temporalio.common import RetryPolicy

from food_orders.errors import BUSINESS_ERRORS
from food_orders.repos.temporal.activity_names import (
    ACTIVITY_LOG_ACTIVITY_BASE,
    ORDER_ACTIVITY_BASE,
    PAYMENT_ACTIVITY_BASE,
)
from food_orders.repositories import (
    ActivityRepository,
    OrderRepository,
    PaymentRepository,
)
from util.repos.temporal.decorators import temporal_workflow_proxy

# The activity log is best effort; a few quick attempts are enough.
ACTIVITY_LOG_RETRY_POLICY = RetryPolicy(
    initial_interval=timedelta(seconds=1),
    backoff_coefficient=2.0,
    maximum_interval=timedelta(seconds=5),
    maximum_attempts=3,
)


@temporal_workflow_proxy(
    ORDER_ACTIVITY_BASE,
    default_timeout_seconds=10,
    error_types=BUSINESS_ERRORS,
)
class WorkflowOrderRepositoryProxy(OrderRepository):
    """
    Workflow implementation of OrderRepository that calls activities.
    """

    pass


@temporal_workflow_proxy(
    PAYMENT_ACTIVITY_BASE,
    default_timeout_seconds=10,
    error_types=BUSINESS_ERRORS,
)
class WorkflowPaymentRepositoryProxy(PaymentRepository):
    """
    Workflow implementation of PaymentRepository that calls activities.
    """

    pass


@temporal_workflow_proxy(
    ACTIVITY_LOG_ACTIVITY_BASE,
    default_timeout_seconds=10,
    retry_policy=ACTIVITY_LOG_RETRY_POLICY,
)
class WorkflowActivityRepositoryProxy(ActivityRepository):
    """
    Workflow implementation of ActivityRepository that calls activities.
    """

    pass


__all__ = [
    "WorkflowOrderRepositoryProxy",
    "WorkflowPaymentRepositoryProxy",
    "WorkflowActivityRepositoryProxy",
]
