"""
Pydantic models for API responses.
These define the contract between the API and external clients.
"""

from datetime import datetime
from typing import Any, Dict, Union

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Body of every error answer."""

    message: str


ERROR_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 403, 404, 409, 503)
}
