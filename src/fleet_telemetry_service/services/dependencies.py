"""Application-scoped dependencies and request context helpers."""
from __future__ import annotations

from typing import Any

from aiohttp import web

from fleet_telemetry_service.core.exceptions import UnauthorizedError
from fleet_telemetry_service.services.broadcast import TelemetryBroadcaster
from fleet_telemetry_service.services.telemetry import TelemetryService
from fleet_telemetry_service.settings import Settings

CONFIG = web.AppKey("config", Settings)
TELEMETRY_SERVICE = web.AppKey("telemetry_service", TelemetryService)
BROADCASTER = web.AppKey("telemetry_broadcaster", TelemetryBroadcaster)
# Backing repositories, exposed so dev tooling and tests can seed the registry
ROBOT_REPOSITORY = web.AppKey("robot_repository", Any)
TELEMETRY_REPOSITORY = web.AppKey("telemetry_repository", Any)

ORGANIZATION_HEADER = "X-Organization-Id"


def get_telemetry_service(request: web.Request) -> TelemetryService:
    return request.app[TELEMETRY_SERVICE]


def get_broadcaster(request: web.Request) -> TelemetryBroadcaster:
    return request.app[BROADCASTER]


def require_organization(request: web.Request) -> str:
    """Organization id injected by the API gateway after authentication."""
    organization_id = request.headers.get(ORGANIZATION_HEADER, "").strip()
    if not organization_id:
        raise UnauthorizedError("Organization context is required")
    return organization_id
