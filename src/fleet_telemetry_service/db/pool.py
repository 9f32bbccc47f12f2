"""Asyncpg connection pool helpers."""
from __future__ import annotations

import json
from typing import Any

import asyncpg  # type: ignore[import-untyped]

pool: asyncpg.Pool | None = None


async def _init_connection(conn: asyncpg.Connection) -> None:
    # metadata is stored as jsonb; decode it to dicts on read
    await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


async def init_pool(database_url: str, pool_size: int) -> asyncpg.Pool:
    """Initialize global asyncpg pool."""
    global pool
    if pool is None:
        pool = await asyncpg.create_pool(
            dsn=database_url,
            max_size=pool_size,
            init=_init_connection,
        )
    return pool


async def close_pool(_app: Any = None) -> None:
    """Close pool on shutdown."""
    global pool
    if pool is not None:
        await pool.close()
        pool = None
