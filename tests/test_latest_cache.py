from __future__ import annotations

from fleet_telemetry_service.services.latest_cache import TTLCache, latest_key


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


async def test_entry_expires_after_ttl():
    clock = _Clock()
    cache = TTLCache(clock=clock)
    await cache.set("k", "v", ttl_seconds=10)

    clock.now = 9.9
    assert await cache.get("k") == "v"
    clock.now = 10.0
    assert await cache.get("k") is None


async def test_overwrite_resets_ttl():
    clock = _Clock()
    cache = TTLCache(clock=clock)
    await cache.set("k", 1, ttl_seconds=5)
    clock.now = 4
    await cache.set("k", 2, ttl_seconds=5)
    clock.now = 8
    assert await cache.get("k") == 2


def test_key_format():
    assert latest_key("abc") == "telemetry:latest:abc"
