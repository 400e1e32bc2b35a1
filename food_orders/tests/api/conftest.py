"""
Fixtures for the API tests.

The Temporal client is replaced with a mock and the read use case is wired
to the memory stores, so no external service is contacted.
"""

from typing import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from food_orders.api.app import app
from food_orders.api.dependencies import (
    get_get_order_use_case,
    get_status_override_enabled,
    get_temporal_client,
)
from food_orders.usecase import GetOrderUseCase

CUSTOMER_HEADERS = {"X-User-Id": "customer-1", "X-User-Role": "customer"}
ADMIN_HEADERS = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture
def temporal_client() -> MagicMock:
    client = MagicMock()
    client.execute_workflow = AsyncMock()
    return client


@pytest.fixture
def api_client(
    temporal_client: MagicMock, reads: GetOrderUseCase
) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_temporal_client] = lambda: temporal_client
    app.dependency_overrides[get_get_order_use_case] = lambda: reads
    app.dependency_overrides[get_status_override_enabled] = lambda: False
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
    # Clean up dependency overrides
    app.dependency_overrides = {}
