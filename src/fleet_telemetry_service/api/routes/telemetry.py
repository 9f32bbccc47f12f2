"""Telemetry ingest, read, aggregation and live-stream endpoints."""
from __future__ import annotations

from aiohttp import WSMsgType, web

from fleet_telemetry_service.api.utils import parse_datetime, parse_limit, read_json, success
from fleet_telemetry_service.core.exceptions import ValidationError
from fleet_telemetry_service.domain.dto import TelemetryIngestDTO
from fleet_telemetry_service.domain.enums import DataQuality, TelemetrySource
from fleet_telemetry_service.services.aggregation import build_aggregation_query
from fleet_telemetry_service.services.dependencies import (
    get_broadcaster,
    get_telemetry_service,
    require_organization,
)

routes = web.RouteTableDef()


@routes.post("/api/v1/telemetry/{robot_id}")
async def ingest_telemetry(request: web.Request) -> web.Response:
    """Store one nested telemetry reading for a robot."""
    organization_id = require_organization(request)
    robot_id = request.match_info["robot_id"]
    body = await read_json(request)
    if body.get("data") is None:
        raise ValidationError("Telemetry data is required")
    # pydantic errors are rendered as VALIDATION_ERROR by the error middleware
    dto = TelemetryIngestDTO.model_validate(body)

    service = get_telemetry_service(request)
    meta = dto.metadata
    record = await service.ingest(
        robot_id,
        organization_id,
        dto.data,
        dto.timestamp,
        source=meta.source if meta else TelemetrySource.ROBOT_CONTROLLER,
        quality=meta.quality if meta else DataQuality.HIGH,
    )
    return success(record.to_api(), status=201)


@routes.get("/api/v1/telemetry/aggregated")
async def aggregated_telemetry(request: web.Request) -> web.Response:
    organization_id = require_organization(request)
    params = request.rel_url.query
    query = build_aggregation_query(
        organization_id=organization_id,
        metric=params.get("metric"),
        aggregation=params.get("aggregation"),
        time_window=params.get("timeWindow"),
        robot_id=params.get("robotId"),
        from_=parse_datetime(params.get("from"), "from"),
        to=parse_datetime(params.get("to"), "to"),
    )
    results = await get_telemetry_service(request).get_aggregated(query)
    return success([item.to_api() for item in results])


@routes.get("/api/v1/telemetry/{robot_id}/latest")
async def latest_telemetry(request: web.Request) -> web.Response:
    organization_id = require_organization(request)
    record = await get_telemetry_service(request).get_latest(
        request.match_info["robot_id"], organization_id
    )
    return success(record.to_api() if record is not None else None)


@routes.get("/api/v1/telemetry/{robot_id}/history")
async def telemetry_history(request: web.Request) -> web.Response:
    organization_id = require_organization(request)
    params = request.rel_url.query
    records = await get_telemetry_service(request).get_history(
        request.match_info["robot_id"],
        organization_id,
        metric=params.get("metric") or None,
        from_=parse_datetime(params.get("from"), "from"),
        to=parse_datetime(params.get("to"), "to"),
        limit=parse_limit(params.get("limit")),
    )
    return success([record.to_api() for record in records])


@routes.get("/api/v1/telemetry/{robot_id}/metrics")
async def available_metrics(request: web.Request) -> web.Response:
    organization_id = require_organization(request)
    metrics = await get_telemetry_service(request).get_available_metrics(
        request.match_info["robot_id"], organization_id
    )
    return success([item.to_api() for item in metrics])


@routes.get("/api/v1/telemetry/{robot_id}/stream")
async def telemetry_stream(request: web.Request) -> web.StreamResponse:
    """WebSocket feed of ``robot:telemetry_update`` events for one robot."""
    organization_id = require_organization(request)
    robot_id = request.match_info["robot_id"]
    await get_telemetry_service(request).ensure_robot_access(robot_id, organization_id)

    broadcaster = get_broadcaster(request)
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)
    broadcaster.subscribe(robot_id, ws)
    try:
        async for msg in ws:
            # Subscribers only listen; anything but a close frame is ignored
            if msg.type == WSMsgType.ERROR:
                break
    finally:
        broadcaster.unsubscribe(robot_id, ws)
    return ws
