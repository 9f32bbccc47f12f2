"""Robot registry lookups backed by asyncpg."""
from __future__ import annotations

from datetime import datetime

from asyncpg import Pool  # type: ignore[import-untyped]

from fleet_telemetry_service.repositories.base import BaseRepository


class RobotRepository(BaseRepository):
    """Read-mostly view of the ``robots`` table owned by the fleet registry."""

    def __init__(self, pool: Pool):
        super().__init__(pool)

    async def exists(self, robot_id: str, organization_id: str) -> bool:
        found = await self._fetchval(
            "SELECT 1 FROM robots WHERE id::text = $1 AND organization_id::text = $2",
            robot_id,
            organization_id,
        )
        return found is not None

    async def touch_last_seen(self, robot_id: str, seen_at: datetime) -> None:
        # Last write wins: a slower concurrent ingest may move last_seen backwards
        await self._execute(
            "UPDATE robots SET last_seen = $1 WHERE id::text = $2",
            seen_at,
            robot_id,
        )
