"""
Tests for the PostgreSQL stores against a fake asyncpg pool.
"""

from decimal import Decimal
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from food_orders.domain import OrderStatus, RefundStatus
from food_orders.errors import ConcurrentUpdateError, StoreUnavailableError
from food_orders.repos.postgresql import (
    PostgreSQLOrderRepository,
    PostgreSQLPaymentRepository,
    ensure_schema,
)
from food_orders.tests.factories import (
    OrderFactory,
    PaymentFactory,
    RefundDetailsFactory,
)


def make_pool(fetchrow_result: Optional[Any] = None) -> MagicMock:
    conn = MagicMock()
    conn.fetchrow = AsyncMock(return_value=fetchrow_result)
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    pool.conn = conn
    return pool


class TestPostgreSQLOrderRepository:
    @pytest.mark.asyncio
    async def test_get_order_parses_stored_document(self) -> None:
        order = OrderFactory.build(version=3)
        pool = make_pool({"order_data": order.model_dump_json()})

        loaded = await PostgreSQLOrderRepository(pool).get_order("order-1")

        assert loaded == order

    @pytest.mark.asyncio
    async def test_get_missing_order(self) -> None:
        pool = make_pool(None)
        assert await PostgreSQLOrderRepository(pool).get_order("x") is None

    @pytest.mark.asyncio
    async def test_first_save_inserts_version_one(self) -> None:
        pool = make_pool(None)

        saved = await PostgreSQLOrderRepository(pool).save_order(
            OrderFactory.build(), None
        )

        assert saved.version == 1
        query, *params = pool.conn.execute.call_args.args
        assert "INSERT INTO orders" in query
        assert params[0] == "order-1"
        assert params[4] == 1

    @pytest.mark.asyncio
    async def test_update_under_matching_version(self) -> None:
        stored = OrderFactory.build(version=2)
        pool = make_pool(
            {"version": 2, "order_data": stored.model_dump_json()}
        )
        order = stored.model_copy(update={"status": OrderStatus.CONFIRMED})

        saved = await PostgreSQLOrderRepository(pool).save_order(order, 2)

        assert saved.version == 3
        query, *params = pool.conn.execute.call_args.args
        assert "UPDATE orders" in query
        assert params[1] == "confirmed"
        assert params[3] == 3

    @pytest.mark.asyncio
    async def test_stale_version_writes_nothing(self) -> None:
        stored = OrderFactory.build(status=OrderStatus.CANCELLED, version=4)
        pool = make_pool(
            {"version": 4, "order_data": stored.model_dump_json()}
        )
        order = OrderFactory.build(status=OrderStatus.CONFIRMED, version=2)

        with pytest.raises(ConcurrentUpdateError):
            await PostgreSQLOrderRepository(pool).save_order(order, 2)

        pool.conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_retried_write_is_idempotent(self) -> None:
        order = OrderFactory.build(
            status=OrderStatus.CONFIRMED, version=1, last_write_id="write-1"
        )
        stored = order.model_copy(update={"version": 2})
        pool = make_pool(
            {"version": 2, "order_data": stored.model_dump_json()}
        )

        saved = await PostgreSQLOrderRepository(pool).save_order(order, 1)

        assert saved.version == 2
        pool.conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_identical_write_from_another_caller_conflicts(self) -> None:
        stored = OrderFactory.build(
            status=OrderStatus.CANCELLED, version=2, last_write_id="write-1"
        )
        pool = make_pool(
            {"version": 2, "order_data": stored.model_dump_json()}
        )
        order = stored.model_copy(
            update={"version": 1, "last_write_id": "write-2"}
        )

        with pytest.raises(ConcurrentUpdateError):
            await PostgreSQLOrderRepository(pool).save_order(order, 1)

        pool.conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_refund_commit_writes_order_and_payment(self) -> None:
        order = OrderFactory.build(
            status=OrderStatus.CANCELLED,
            refund_details=RefundDetailsFactory.build(
                status=RefundStatus.APPROVED
            ),
            version=5,
        )
        pool = make_pool(
            {"version": 5, "order_data": order.model_dump_json()}
        )
        payment = PaymentFactory.build(
            status="refunded",
            refund_status=RefundStatus.APPROVED,
            refund_amount=Decimal("42.50"),
        )

        await PostgreSQLOrderRepository(pool).commit_refund_decision(
            order, payment, 5
        )

        pool.conn.transaction.assert_called_once()
        queries = [c.args[0] for c in pool.conn.execute.call_args_list]
        assert "UPDATE orders" in queries[0]
        assert "INSERT INTO payments" in queries[1]

    @pytest.mark.asyncio
    async def test_retried_refund_commit_skips_payment(self) -> None:
        order = OrderFactory.build(
            status=OrderStatus.CANCELLED,
            refund_details=RefundDetailsFactory.build(
                status=RefundStatus.APPROVED
            ),
            version=5,
            last_write_id="decision-1",
        )
        stored = order.model_copy(update={"version": 6})
        pool = make_pool(
            {"version": 6, "order_data": stored.model_dump_json()}
        )
        payment = PaymentFactory.build(
            status="refunded",
            refund_status=RefundStatus.APPROVED,
            refund_amount=Decimal("42.50"),
        )

        saved = await PostgreSQLOrderRepository(pool).commit_refund_decision(
            order, payment, 5
        )

        assert saved.version == 6
        pool.conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_connection_failure_is_store_unavailable(self) -> None:
        pool = MagicMock()
        pool.acquire.return_value.__aenter__.side_effect = OSError(
            "connection refused"
        )

        with pytest.raises(StoreUnavailableError):
            await PostgreSQLOrderRepository(pool).get_order("order-1")


class TestPostgreSQLPaymentRepository:
    @pytest.mark.asyncio
    async def test_get_payment_for_order(self) -> None:
        payment = PaymentFactory.build()
        pool = make_pool({"payment_data": payment.model_dump_json()})

        loaded = await PostgreSQLPaymentRepository(
            pool
        ).get_payment_for_order("order-1")

        assert loaded == payment

    @pytest.mark.asyncio
    async def test_save_payment_upserts_by_order(self) -> None:
        pool = make_pool()

        await PostgreSQLPaymentRepository(pool).save_payment(
            PaymentFactory.build()
        )

        query, *params = pool.conn.execute.call_args.args
        assert "ON CONFLICT (order_id)" in query
        assert params[:3] == ["payment-1", "order-1", "completed"]


@pytest.mark.asyncio
async def test_ensure_schema_creates_tables() -> None:
    pool = make_pool()

    await ensure_schema(pool)

    statements = " ".join(c.args[0] for c in pool.conn.execute.call_args_list)
    assert "CREATE TABLE IF NOT EXISTS orders" in statements
    assert "CREATE TABLE IF NOT EXISTS payments" in statements
