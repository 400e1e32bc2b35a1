"""
Pydantic models for API requests.
These define the contract between the API and external clients.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from food_orders.domain import OrderStatus, RefundDecision


class StatusUpdateRequest(BaseModel):
    """Request model for moving an order to a new status."""

    status: OrderStatus
    override: bool = False


class CancelOrderRequest(BaseModel):
    """Request model for cancelling an order."""

    reason: Optional[str] = None


class RefundRequest(BaseModel):
    """Request model for asking for a refund on a cancelled order."""

    reason: Optional[str] = None


class RefundDecisionRequest(BaseModel):
    """Request model for approving or denying a refund.

    Accepts the camelCase field names used by the dashboard as well as the
    snake_case names.
    """

    model_config = ConfigDict(populate_by_name=True)

    refund_status: RefundDecision = Field(alias="refundStatus")
    rejection_reason: Optional[str] = Field(
        default=None, alias="rejectionReason"
    )
