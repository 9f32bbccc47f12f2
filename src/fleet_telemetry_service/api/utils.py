"""Helper utilities for API handlers."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from aiohttp import web

from fleet_telemetry_service.core.exceptions import ValidationError


async def read_json(request: web.Request) -> dict[str, Any]:
    try:
        data = await request.json()
    except Exception as exc:  # pragma: no cover
        raise ValidationError("Invalid JSON payload") from exc
    if not isinstance(data, dict):
        raise ValidationError("JSON body must be an object")
    return data


def parse_datetime(value: str | None, label: str) -> datetime | None:
    """Parse an ISO-8601 datetime string from query params. Returns None if value is empty."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError) as exc:
        raise ValidationError(f"Invalid datetime for {label}: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_limit(value: str | None, *, default: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    try:
        limit = int(value)
    except ValueError as exc:
        raise ValidationError("limit must be an integer") from exc
    if limit <= 0:
        raise ValidationError("limit must be a positive integer")
    return limit


def success(data: Any, *, status: int = 200) -> web.Response:
    return web.json_response({"success": True, "data": data}, status=status)


def error_payload(code: str, message: str, trace_id: str | None) -> dict[str, Any]:
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "traceId": trace_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    }
