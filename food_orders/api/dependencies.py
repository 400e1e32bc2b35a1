"""
Dependency injection for FastAPI endpoints.

Reads go straight to the stores; mutations are dispatched as Temporal
workflows through the client. Tests replace any of these with
``app.dependency_overrides``.
"""

import logging
from typing import Any, Dict, Optional

import asyncpg
from fastapi import Depends, Header, HTTPException
from pydantic import ValidationError
from temporalio.client import Client
from temporalio.contrib.pydantic import pydantic_data_converter

from food_orders import config
from food_orders.authorization import RoleAuthorizationService
from food_orders.domain import Actor
from food_orders.repos.minio.activity import MinioActivityRepository
from food_orders.repos.postgresql.order import PostgreSQLOrderRepository
from food_orders.repos.postgresql.payment import PostgreSQLPaymentRepository
from food_orders.repos.postgresql.schema import ensure_schema
from food_orders.repositories import (
    ActivityRepository,
    AuthorizationService,
    OrderRepository,
    PaymentRepository,
)
from food_orders.usecase import GetOrderUseCase

logger = logging.getLogger(__name__)


class DependencyContainer:
    """
    Dependency injection container with singleton lifecycle management.
    Always creates real clients; mocks are provided by test overrides.
    """

    def __init__(self) -> None:
        self._instances: Dict[str, Any] = {}

    async def get_or_create(self, key: str, factory: Any) -> Any:
        """Get or create a singleton instance."""
        if key not in self._instances:
            self._instances[key] = await factory()
        return self._instances[key]

    async def get_temporal_client(self) -> Client:
        client = await self.get_or_create(
            "temporal_client", self._create_temporal_client
        )
        return client  # type: ignore[no-any-return]

    async def get_pool(self) -> asyncpg.Pool:
        pool = await self.get_or_create("pg_pool", self._create_pool)
        return pool  # type: ignore[no-any-return]

    async def get_activity_repository(self) -> MinioActivityRepository:
        repo = await self.get_or_create(
            "activity_repo", self._create_activity_repository
        )
        return repo  # type: ignore[no-any-return]

    async def _create_temporal_client(self) -> Client:
        endpoint = config.temporal_endpoint()
        namespace = config.temporal_namespace()
        logger.debug(
            "Creating Temporal client",
            extra={"endpoint": endpoint, "namespace": namespace},
        )
        return await Client.connect(
            endpoint,
            namespace=namespace,
            data_converter=pydantic_data_converter,
        )

    async def _create_pool(self) -> asyncpg.Pool:
        logger.debug("Creating PostgreSQL connection pool")
        pool = await asyncpg.create_pool(config.database_url())
        await ensure_schema(pool)
        return pool

    async def _create_activity_repository(self) -> MinioActivityRepository:
        return MinioActivityRepository(
            endpoint=config.minio_endpoint(),
            access_key=config.minio_access_key(),
            secret_key=config.minio_secret_key(),
            secure=config.minio_secure(),
        )

    async def close(self) -> None:
        pool = self._instances.pop("pg_pool", None)
        if pool is not None:
            await pool.close()


# Global container instance
_container = DependencyContainer()


async def get_temporal_client() -> Client:
    """FastAPI dependency for Temporal client."""
    return await _container.get_temporal_client()


async def get_order_repository() -> OrderRepository:
    """FastAPI dependency for the PostgreSQL OrderRepository."""
    return PostgreSQLOrderRepository(await _container.get_pool())


async def get_payment_repository() -> PaymentRepository:
    """FastAPI dependency for the PostgreSQL PaymentRepository."""
    return PostgreSQLPaymentRepository(await _container.get_pool())


async def get_activity_repository() -> ActivityRepository:
    """FastAPI dependency for the Minio ActivityRepository."""
    return await _container.get_activity_repository()


async def get_authorization_service() -> AuthorizationService:
    return RoleAuthorizationService()


async def get_status_override_enabled() -> bool:
    return config.status_override_enabled()


async def get_current_actor(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: str = Header(default="customer"),
) -> Actor:
    """Identify the caller from the headers set by the gateway."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return Actor(user_id=x_user_id, role=x_user_role.lower())  # type: ignore[arg-type]
    except ValidationError as e:
        logger.warning(
            "Rejected request with unknown role",
            extra={"user_id": x_user_id, "role": x_user_role},
        )
        raise HTTPException(
            status_code=401, detail="Unknown user role"
        ) from e


async def get_get_order_use_case(
    order_repo: OrderRepository = Depends(get_order_repository),
    payment_repo: PaymentRepository = Depends(get_payment_repository),
    activity_repo: ActivityRepository = Depends(get_activity_repository),
    authorization: AuthorizationService = Depends(get_authorization_service),
) -> GetOrderUseCase:
    """FastAPI dependency for GetOrderUseCase."""
    return GetOrderUseCase(
        order_repo=order_repo,
        payment_repo=payment_repo,
        activity_repo=activity_repo,
        authorization=authorization,
    )


async def shutdown() -> None:
    await _container.close()
