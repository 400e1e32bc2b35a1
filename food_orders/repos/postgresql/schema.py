"""
Table definitions for the PostgreSQL stores.

Domain objects are kept whole in a JSONB column; the columns next to it are
the ones queries filter or lock on.
"""

import logging

from asyncpg import Pool

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS orders (
        order_id TEXT PRIMARY KEY,
        customer_id TEXT NOT NULL,
        status TEXT NOT NULL,
        refund_status TEXT,
        version INTEGER NOT NULL,
        order_data JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS orders_refund_status_idx
        ON orders (refund_status)
        WHERE refund_status IS NOT NULL
    """,
    """
    CREATE TABLE IF NOT EXISTS payments (
        payment_id TEXT PRIMARY KEY,
        order_id TEXT NOT NULL UNIQUE,
        status TEXT NOT NULL,
        refund_status TEXT,
        payment_data JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
)


async def ensure_schema(pool: Pool) -> None:
    """Create the order and payment tables if they are missing."""
    async with pool.acquire() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)
    logger.info("PostgreSQL schema is up to date")
