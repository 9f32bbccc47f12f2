"""Post-write fan-out of telemetry records to WebSocket subscribers."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog
from aiohttp import web

from fleet_telemetry_service.domain.models import RobotTelemetryRecord

logger = structlog.get_logger(__name__)


class TelemetryNotifier(Protocol):
    async def notify(self, robot_id: str, organization_id: str, record: RobotTelemetryRecord) -> None: ...


def channel_name(robot_id: str) -> str:
    return f"robot:{robot_id}"


class TelemetryBroadcaster:
    """Keeps WebSocket subscribers per robot channel and pushes update events."""

    def __init__(self, send_timeout: float = 5.0) -> None:
        self._channels: dict[str, set[web.WebSocketResponse]] = {}
        self._send_timeout = send_timeout

    def subscribe(self, robot_id: str, ws: web.WebSocketResponse) -> None:
        self._channels.setdefault(channel_name(robot_id), set()).add(ws)

    def unsubscribe(self, robot_id: str, ws: web.WebSocketResponse) -> None:
        channel = channel_name(robot_id)
        subscribers = self._channels.get(channel)
        if subscribers is None:
            return
        subscribers.discard(ws)
        if not subscribers:
            del self._channels[channel]

    def subscriber_count(self, robot_id: str) -> int:
        return len(self._channels.get(channel_name(robot_id), ()))

    async def notify(self, robot_id: str, organization_id: str, record: RobotTelemetryRecord) -> None:
        subscribers = list(self._channels.get(channel_name(robot_id), ()))
        if not subscribers:
            return
        event: dict[str, Any] = {
            "event": "robot:telemetry_update",
            "robotId": robot_id,
            "organizationId": organization_id,
            "telemetry": record.to_api(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        live = []
        for ws in subscribers:
            if ws.closed:
                self.unsubscribe(robot_id, ws)
            else:
                live.append(ws)

        # Sent concurrently; a stalled peer costs at most send_timeout
        results = await asyncio.gather(
            *(asyncio.wait_for(ws.send_json(event), self._send_timeout) for ws in live),
            return_exceptions=True,
        )
        for ws, result in zip(live, results):
            if isinstance(result, Exception):
                logger.info("telemetry_subscriber_dropped", robot_id=robot_id, error=repr(result))
                self.unsubscribe(robot_id, ws)

    async def close(self) -> None:
        for subscribers in list(self._channels.values()):
            for ws in list(subscribers):
                await ws.close()
        self._channels.clear()
