"""
Orders API router.

Routes, mounted with the '/orders' prefix:
- GET /orders/{order_id} - order with its payment (owner or admin)
- PUT /orders/{order_id}/status - move an order along its lifecycle (admin)
- PUT /orders/{order_id}/cancel - cancel a pending or confirmed order
- POST /orders/{order_id}/request-refund - ask for a refund of a cancelled
  order
"""

import logging

from fastapi import APIRouter, Depends
from temporalio.client import Client

from food_orders.api.dependencies import (
    get_current_actor,
    get_get_order_use_case,
    get_status_override_enabled,
    get_temporal_client,
)
from food_orders.api.execution import execute_order_workflow
from food_orders.api.requests import (
    CancelOrderRequest,
    RefundRequest,
    StatusUpdateRequest,
)
from food_orders.api.responses import ERROR_RESPONSES
from food_orders.domain import Actor, Order, OrderDetails
from food_orders.usecase import GetOrderUseCase
from food_orders.workflow import (
    AdvanceOrderStatusWorkflow,
    CancelOrderWorkflow,
    RequestRefundWorkflow,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/{order_id}", response_model=OrderDetails, responses=ERROR_RESPONSES
)
async def get_order(
    order_id: str,
    actor: Actor = Depends(get_current_actor),
    use_case: GetOrderUseCase = Depends(get_get_order_use_case),
) -> OrderDetails:
    """Get an order together with its payment record."""
    return await use_case.get_order_details(order_id, actor)


@router.put(
    "/{order_id}/status", response_model=Order, responses=ERROR_RESPONSES
)
async def update_order_status(
    order_id: str,
    request: StatusUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    override_enabled: bool = Depends(get_status_override_enabled),
    client: Client = Depends(get_temporal_client),
) -> Order:
    """
    Move an order to a new status.

    ``override`` lets an administrator step outside the status graph to
    correct mistakes, when the deployment allows it.
    """
    logger.info(
        "Order status update requested",
        extra={
            "order_id": order_id,
            "new_status": request.status.value,
            "user_id": actor.user_id,
            "override": request.override,
        },
    )
    return await execute_order_workflow(
        client,
        AdvanceOrderStatusWorkflow.run,
        {
            "order_id": order_id,
            "status": request.status.value,
            "actor": actor.model_dump(),
            "override": request.override,
            "override_enabled": override_enabled,
        },
        "order-status",
    )


@router.put(
    "/{order_id}/cancel", response_model=Order, responses=ERROR_RESPONSES
)
async def cancel_order(
    order_id: str,
    request: CancelOrderRequest,
    actor: Actor = Depends(get_current_actor),
    client: Client = Depends(get_temporal_client),
) -> Order:
    """Cancel an order before preparation starts."""
    logger.info(
        "Order cancellation requested",
        extra={
            "order_id": order_id,
            "user_id": actor.user_id,
            "reason": request.reason,
        },
    )
    return await execute_order_workflow(
        client,
        CancelOrderWorkflow.run,
        {
            "order_id": order_id,
            "reason": request.reason,
            "actor": actor.model_dump(),
        },
        "cancel-order",
    )


@router.post(
    "/{order_id}/request-refund",
    response_model=Order,
    responses=ERROR_RESPONSES,
)
async def request_refund(
    order_id: str,
    request: RefundRequest,
    actor: Actor = Depends(get_current_actor),
    client: Client = Depends(get_temporal_client),
) -> Order:
    logger.info(
        "Refund request received",
        extra={"order_id": order_id, "user_id": actor.user_id},
    )
    return await execute_order_workflow(
        client,
        RequestRefundWorkflow.run,
        {
            "order_id": order_id,
            "reason": request.reason,
            "actor": actor.model_dump(),
        },
        "request-refund",
    )
