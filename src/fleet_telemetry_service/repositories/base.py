"""Common asyncpg helpers for repositories."""
from __future__ import annotations

from typing import Any, List

from asyncpg import Pool, Record  # type: ignore[import-untyped]


class BaseRepository:
    def __init__(self, pool: Pool):
        self._pool = pool

    async def _fetch(self, query: str, *args: Any) -> List[Record]:
        async with self._pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def _fetchval(self, query: str, *args: Any) -> Any:
        async with self._pool.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def _execute(self, query: str, *args: Any) -> str:
        async with self._pool.acquire() as conn:
            return await conn.execute(query, *args)
