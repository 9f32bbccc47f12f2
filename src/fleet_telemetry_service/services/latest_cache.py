"""In-memory TTL cache for the most recent telemetry record per robot.

Usage::

    from fleet_telemetry_service.services.latest_cache import TTLCache, latest_key

    await cache.set(latest_key(robot_id), record, ttl_seconds=300)
    record = await cache.get(latest_key(robot_id))
"""
from __future__ import annotations

import time
from typing import Any, Callable


def latest_key(robot_id: str) -> str:
    return f"telemetry:latest:{robot_id}"


class TTLCache:
    """Async get/set over a dict of ``key -> (value, expires_at)``.

    Expiry uses a monotonic clock; entries are dropped lazily on read.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[Any, float]] = {}
        self._clock = clock

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)
