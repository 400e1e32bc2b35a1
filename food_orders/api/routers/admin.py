"""
Admin API router.

Routes, mounted with the '/admin' prefix:
- PUT /admin/orders/{order_id}/refund - approve or deny a refund request
- GET /admin/refund-requests - paginated refund requests awaiting a decision
- GET /admin/recent-activity - most recent activity records
"""

import logging
from typing import List, cast

from fastapi import APIRouter, Depends, Query
from fastapi_pagination import Page, paginate
from temporalio.client import Client

from food_orders.api.dependencies import (
    get_current_actor,
    get_get_order_use_case,
    get_temporal_client,
)
from food_orders.api.execution import execute_order_workflow
from food_orders.api.requests import RefundDecisionRequest
from food_orders.api.responses import ERROR_RESPONSES
from food_orders.domain import Activity, Actor, Order, OrderDetails
from food_orders.usecase import GetOrderUseCase
from food_orders.workflow import DecideRefundWorkflow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.put(
    "/orders/{order_id}/refund",
    response_model=Order,
    responses=ERROR_RESPONSES,
)
async def decide_refund(
    order_id: str,
    request: RefundDecisionRequest,
    actor: Actor = Depends(get_current_actor),
    client: Client = Depends(get_temporal_client),
) -> Order:
    """Approve or deny the refund request of an order."""
    logger.info(
        "Refund decision requested",
        extra={
            "order_id": order_id,
            "decision": request.refund_status,
            "user_id": actor.user_id,
        },
    )
    return await execute_order_workflow(
        client,
        DecideRefundWorkflow.run,
        {
            "order_id": order_id,
            "decision": request.refund_status,
            "note": request.rejection_reason,
            "actor": actor.model_dump(),
        },
        "decide-refund",
    )


@router.get("/refund-requests", response_model=Page[OrderDetails])
async def list_refund_requests(
    actor: Actor = Depends(get_current_actor),
    use_case: GetOrderUseCase = Depends(get_get_order_use_case),
) -> Page[OrderDetails]:
    """
    List orders whose refund is waiting for a decision, oldest request
    first, each with its payment record.
    """
    requests = await use_case.list_refund_requests(actor)
    return cast(Page[OrderDetails], paginate(requests))


@router.get("/recent-activity", response_model=List[Activity])
async def recent_activity(
    limit: int = Query(default=20, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    use_case: GetOrderUseCase = Depends(get_get_order_use_case),
) -> List[Activity]:
    return await use_case.list_recent_activity(actor, limit)
