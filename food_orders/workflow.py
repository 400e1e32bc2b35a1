"""
The execution context is bound to the way execution works.
In this case, we are using a temporal.io execution method,
so the use cases run against the workflow repository proxies.

Every workflow is a thin wrapper around one engine operation. The engine's
clock is ``workflow.now`` and its write tokens come from ``workflow.uuid4``,
so that replays see the same values. Business errors leave the workflow as
non-retryable ApplicationErrors typed with the error class name.
"""

from typing import Any, Awaitable, Callable, Dict

from temporalio import workflow
from temporalio.exceptions import ApplicationError

from food_orders.authorization import RoleAuthorizationService
from food_orders.domain import Actor, Order, OrderStatus
from food_orders.errors import OrderWorkflowError
from food_orders.repos.temporal.proxies import (
    WorkflowActivityRepositoryProxy,
    WorkflowOrderRepositoryProxy,
    WorkflowPaymentRepositoryProxy,
)
from food_orders.usecase import OrderLifecycleUseCase, RefundWorkflowUseCase


async def _run_engine_operation(
    operation: Callable[[], Awaitable[Order]], args: Dict[str, Any]
) -> Order:
    try:
        return await operation()
    except OrderWorkflowError as e:
        workflow.logger.info(
            "Engine rejected the operation",
            extra={
                "order_id": args.get("order_id"),
                "error_type": type(e).__name__,
                "error_message": e.message,
            },
        )
        raise ApplicationError(
            e.message, type=type(e).__name__, non_retryable=True
        ) from e


def _workflow_write_id() -> str:
    return str(workflow.uuid4())


def _lifecycle_use_case(allow_status_override: bool) -> OrderLifecycleUseCase:
    return OrderLifecycleUseCase(
        order_repo=WorkflowOrderRepositoryProxy(),  # type: ignore[abstract]
        activity_repo=WorkflowActivityRepositoryProxy(),  # type: ignore[abstract]
        authorization=RoleAuthorizationService(),
        clock=workflow.now,
        allow_status_override=allow_status_override,
        write_ids=_workflow_write_id,
    )


def _refund_use_case() -> RefundWorkflowUseCase:
    return RefundWorkflowUseCase(
        order_repo=WorkflowOrderRepositoryProxy(),  # type: ignore[abstract]
        payment_repo=WorkflowPaymentRepositoryProxy(),  # type: ignore[abstract]
        activity_repo=WorkflowActivityRepositoryProxy(),  # type: ignore[abstract]
        authorization=RoleAuthorizationService(),
        clock=workflow.now,
        write_ids=_workflow_write_id,
    )


@workflow.defn
class AdvanceOrderStatusWorkflow:
    def __init__(self) -> None:
        self.current_step = "initialized"

    @workflow.query
    def get_current_step(self) -> str:
        """Query method to get the current workflow step"""
        return str(self.current_step)

    @workflow.run
    async def run(self, args_dict: dict) -> Order:
        """
        Run a status change.

        Expects ``order_id``, ``status``, ``actor`` (Actor fields),
        ``override`` and ``override_enabled``.
        """
        order_id = args_dict["order_id"]
        new_status = OrderStatus(args_dict["status"])
        actor = Actor.model_validate(args_dict["actor"])

        workflow.logger.info(
            "Starting order status workflow",
            extra={
                "order_id": order_id,
                "new_status": new_status.value,
                "user_id": actor.user_id,
                "workflow_run_id": workflow.info().run_id,
            },
        )

        use_case = _lifecycle_use_case(
            bool(args_dict.get("override_enabled", False))
        )
        self.current_step = "updating_status"
        result = await _run_engine_operation(
            lambda: use_case.advance_status(
                order_id,
                new_status,
                actor,
                bool(args_dict.get("override", False)),
            ),
            args_dict,
        )

        workflow.logger.info(
            "Order status workflow completed",
            extra={"order_id": order_id, "final_status": result.status.value},
        )
        self.current_step = "completed"
        return result


@workflow.defn
class CancelOrderWorkflow:
    def __init__(self) -> None:
        self.current_step = "initialized"

    @workflow.query
    def get_current_step(self) -> str:
        """Query method to get the current workflow step for cancellation"""
        return str(self.current_step)

    @workflow.run
    async def run(self, args_dict: dict) -> Order:
        """
        Run the order cancellation workflow.
        This is a thin wrapper around OrderLifecycleUseCase.cancel_order.
        """
        order_id = args_dict["order_id"]
        reason = args_dict.get("reason")
        actor = Actor.model_validate(args_dict["actor"])

        workflow.logger.info(
            "Starting order cancellation workflow",
            extra={
                "order_id": order_id,
                "reason": reason,
                "user_id": actor.user_id,
                "workflow_run_id": workflow.info().run_id,
            },
        )

        use_case = _lifecycle_use_case(False)
        self.current_step = "cancelling"
        result = await _run_engine_operation(
            lambda: use_case.cancel_order(order_id, actor, reason), args_dict
        )

        workflow.logger.info(
            "Order cancellation workflow completed",
            extra={"order_id": order_id, "final_status": result.status.value},
        )
        self.current_step = "completed"
        return result


@workflow.defn
class RequestRefundWorkflow:
    def __init__(self) -> None:
        self.current_step = "initialized"

    @workflow.query
    def get_current_step(self) -> str:
        return str(self.current_step)

    @workflow.run
    async def run(self, args_dict: dict) -> Order:
        order_id = args_dict["order_id"]
        reason = args_dict.get("reason")
        requester = Actor.model_validate(args_dict["actor"])

        workflow.logger.info(
            "Starting refund request workflow",
            extra={
                "order_id": order_id,
                "user_id": requester.user_id,
                "workflow_run_id": workflow.info().run_id,
            },
        )

        use_case = _refund_use_case()
        self.current_step = "requesting_refund"
        result = await _run_engine_operation(
            lambda: use_case.request_refund(order_id, requester, reason),
            args_dict,
        )

        self.current_step = "completed"
        return result


@workflow.defn
class DecideRefundWorkflow:
    def __init__(self) -> None:
        self.current_step = "initialized"

    @workflow.query
    def get_current_step(self) -> str:
        return str(self.current_step)

    @workflow.run
    async def run(self, args_dict: dict) -> Order:
        """
        Approve or deny a refund request.

        Expects ``order_id``, ``decision`` ("approved" or "denied"),
        ``actor`` and an optional ``note``.
        """
        order_id = args_dict["order_id"]
        decision = args_dict["decision"]
        note = args_dict.get("note")
        admin = Actor.model_validate(args_dict["actor"])

        workflow.logger.info(
            "Starting refund decision workflow",
            extra={
                "order_id": order_id,
                "decision": decision,
                "user_id": admin.user_id,
                "workflow_run_id": workflow.info().run_id,
            },
        )

        use_case = _refund_use_case()
        self.current_step = "deciding_refund"
        result = await _run_engine_operation(
            lambda: use_case.decide_refund(order_id, decision, admin, note),
            args_dict,
        )

        workflow.logger.info(
            "Refund decision workflow completed",
            extra={
                "order_id": order_id,
                "refund_status": (
                    result.refund_details.status.value
                    if result.refund_details
                    else None
                ),
            },
        )
        self.current_step = "completed"
        return result


__all__ = [
    "AdvanceOrderStatusWorkflow",
    "CancelOrderWorkflow",
    "RequestRefundWorkflow",
    "DecideRefundWorkflow",
]
