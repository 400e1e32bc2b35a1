"""
System API router.

Routes defined at root level:
- GET /health - Health check endpoint
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from food_orders.api.responses import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""
    return HealthCheckResponse(
        status="healthy",
        version="0.1.0",
        timestamp=datetime.now(timezone.utc),
    )
