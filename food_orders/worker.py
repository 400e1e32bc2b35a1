"""
Temporal worker that runs the order workflows and the store activities.
"""

import asyncio
import logging

import asyncpg
from temporalio.client import Client
from temporalio.contrib.pydantic import pydantic_data_converter
from temporalio.service import RPCError
from temporalio.worker import Worker

from food_orders import config
from food_orders.repos.postgresql.schema import ensure_schema
from food_orders.repos.temporal.activities import (
    TemporalMinioActivityRepository,
    TemporalPostgreSQLOrderRepository,
    TemporalPostgreSQLPaymentRepository,
)
from food_orders.workflow import (
    AdvanceOrderStatusWorkflow,
    CancelOrderWorkflow,
    DecideRefundWorkflow,
    RequestRefundWorkflow,
)

logger = logging.getLogger(__name__)


async def get_temporal_client_with_retries(
    endpoint: str,
    namespace: str = "default",
    attempts: int = 10,
    delay: int = 5,
) -> Client:
    """Attempt to connect to Temporal with retries."""
    logger.debug(
        "Attempting to connect to Temporal",
        extra={
            "endpoint": endpoint,
            "namespace": namespace,
            "max_attempts": attempts,
            "delay_seconds": delay,
        },
    )

    for attempt in range(attempts):
        try:
            client = await Client.connect(
                endpoint,
                data_converter=pydantic_data_converter,
                namespace=namespace,
            )
            logger.info(
                "Successfully connected to Temporal",
                extra={"endpoint": endpoint, "attempt": attempt + 1},
            )
            return client
        except RPCError as e:
            logger.warning(
                "Failed to connect to Temporal",
                extra={
                    "endpoint": endpoint,
                    "attempt": attempt + 1,
                    "max_attempts": attempts,
                    "error": str(e),
                    "retry_in_seconds": delay,
                },
            )
            if attempt + 1 == attempts:
                logger.error(
                    "All connection attempts to Temporal failed",
                    extra={"endpoint": endpoint, "total_attempts": attempts},
                )
                raise
            await asyncio.sleep(delay)

    raise RuntimeError("Failed to connect to Temporal after all attempts")


async def run_worker() -> None:
    """Run the Temporal worker"""
    config.setup_logging()

    temporal_endpoint = config.temporal_endpoint()
    task_queue = config.task_queue()
    logger.info(
        "Starting Temporal worker",
        extra={"temporal_endpoint": temporal_endpoint, "task_queue": task_queue},
    )

    client = await get_temporal_client_with_retries(
        temporal_endpoint, namespace=config.temporal_namespace()
    )

    pool = await asyncpg.create_pool(config.database_url())
    await ensure_schema(pool)

    order_repo = TemporalPostgreSQLOrderRepository(pool)
    payment_repo = TemporalPostgreSQLPaymentRepository(pool)
    activity_repo = TemporalMinioActivityRepository(
        endpoint=config.minio_endpoint(),
        access_key=config.minio_access_key(),
        secret_key=config.minio_secret_key(),
        secure=config.minio_secure(),
    )

    activities = [
        order_repo.get_order,
        order_repo.save_order,
        order_repo.commit_refund_decision,
        order_repo.list_orders_by_refund_status,
        payment_repo.get_payment_for_order,
        payment_repo.save_payment,
        activity_repo.append_activity,
        activity_repo.list_recent_activities,
    ]
    workflows = [
        AdvanceOrderStatusWorkflow,
        CancelOrderWorkflow,
        RequestRefundWorkflow,
        DecideRefundWorkflow,
    ]

    logger.info(
        "Creating Temporal worker",
        extra={
            "task_queue": task_queue,
            "workflow_count": len(workflows),
            "activity_count": len(activities),
        },
    )

    worker = Worker(
        client,
        task_queue=task_queue,
        workflows=workflows,
        activities=activities,  # type: ignore[arg-type]
    )

    try:
        await worker.run()
    finally:
        await pool.close()


if __name__ == "__main__":
    asyncio.run(run_worker())
