"""
Dispatching engine operations to Temporal from the API.

A failed workflow comes back as WorkflowFailureError. Its cause chain ends
in the ApplicationError raised by the workflow or by an activity, whose
``type`` names the original error class; that class is rebuilt here so the
API's exception handlers see plain business errors.
"""

import logging
import uuid
from typing import Any, Callable, Dict, Optional

from temporalio.client import Client, WorkflowFailureError
from temporalio.exceptions import ApplicationError

from food_orders import config
from food_orders.domain import Order
from food_orders.errors import error_from_name

logger = logging.getLogger(__name__)


def error_from_workflow_failure(error: WorkflowFailureError) -> Exception:
    """Return the business or store error behind a workflow failure.

    Falls back to ``error`` itself when the failure has no known cause.
    """
    cause: Optional[BaseException] = error.cause
    while cause is not None:
        if isinstance(cause, ApplicationError):
            rebuilt = error_from_name(cause.type, cause.message)
            if rebuilt is not None:
                return rebuilt
        cause = cause.__cause__
    return error


async def execute_order_workflow(
    client: Client,
    workflow_run: Callable[..., Any],
    args: Dict[str, Any],
    id_prefix: str,
) -> Order:
    """Run a workflow to completion and return the order it produced."""
    workflow_id = f"{id_prefix}-{args['order_id']}-{uuid.uuid4()}"
    logger.info(
        "Starting order workflow",
        extra={
            "workflow_id": workflow_id,
            "order_id": args["order_id"],
            "task_queue": config.task_queue(),
        },
    )
    try:
        result = await client.execute_workflow(
            workflow_run,
            args,
            id=workflow_id,
            task_queue=config.task_queue(),
        )
    except WorkflowFailureError as e:
        converted = error_from_workflow_failure(e)
        logger.info(
            "Order workflow failed",
            extra={
                "workflow_id": workflow_id,
                "order_id": args["order_id"],
                "error_type": type(converted).__name__,
            },
        )
        if converted is e:
            raise
        raise converted from e

    return Order.model_validate(result)
