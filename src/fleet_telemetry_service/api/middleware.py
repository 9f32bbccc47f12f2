"""Trace and error middlewares."""
from __future__ import annotations

import uuid
from typing import Awaitable, Callable

import structlog
from aiohttp import web
from pydantic import ValidationError as PydanticValidationError

from fleet_telemetry_service.api.utils import error_payload
from fleet_telemetry_service.core.exceptions import ServiceError

logger = structlog.get_logger(__name__)

TRACE_HEADER = "X-Trace-Id"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def create_trace_middleware(service_name: str):
    @web.middleware
    async def trace_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        trace_id = request.headers.get(TRACE_HEADER) or uuid.uuid4().hex
        request["trace_id"] = trace_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            trace_id=trace_id, service=service_name, method=request.method, path=request.path
        )
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            exc.headers[TRACE_HEADER] = trace_id
            raise
        finally:
            structlog.contextvars.clear_contextvars()
        if not response.prepared:
            response.headers[TRACE_HEADER] = trace_id
        return response

    return trace_middleware


def _pydantic_message(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(item) for item in err.get("loc", ()))
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts)


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Render service errors as the JSON error envelope."""
    trace_id = request.get("trace_id")
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ServiceError as exc:
        logger.info("request_rejected", code=exc.code, reason=str(exc))
        return web.json_response(error_payload(exc.code, str(exc), trace_id), status=exc.status)
    except PydanticValidationError as exc:
        return web.json_response(
            error_payload("VALIDATION_ERROR", _pydantic_message(exc), trace_id), status=400
        )
    except Exception:
        logger.exception("unhandled_error")
        return web.json_response(
            error_payload("INTERNAL_ERROR", "Internal server error", trace_id), status=500
        )
