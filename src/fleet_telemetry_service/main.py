"""aiohttp application entrypoint."""
from __future__ import annotations

import structlog
from aiohttp import web
from aiohttp_cors import ResourceOptions, setup as cors_setup

from fleet_telemetry_service.api.middleware import create_trace_middleware, error_middleware
from fleet_telemetry_service.api.routes.telemetry import routes as telemetry_routes
from fleet_telemetry_service.db.pool import close_pool, init_pool
from fleet_telemetry_service.logging_config import configure_logging
from fleet_telemetry_service.repositories.memory import InMemoryRobotRepository, InMemoryTelemetryRepository
from fleet_telemetry_service.repositories.robots import RobotRepository
from fleet_telemetry_service.repositories.telemetry import TelemetryRepository
from fleet_telemetry_service.services.broadcast import TelemetryBroadcaster
from fleet_telemetry_service.services.dependencies import (
    BROADCASTER,
    CONFIG,
    ROBOT_REPOSITORY,
    TELEMETRY_REPOSITORY,
    TELEMETRY_SERVICE,
)
from fleet_telemetry_service.services.latest_cache import TTLCache
from fleet_telemetry_service.services.telemetry import TelemetryService
from fleet_telemetry_service.settings import Settings, settings as default_settings

logger = structlog.get_logger(__name__)


async def healthcheck(request: web.Request) -> web.Response:
    config = request.app[CONFIG]
    return web.json_response(
        {"status": "ok", "service": config.app_name, "env": config.env, "storage": config.storage_backend}
    )


def _wire_service(app: web.Application, config: Settings, telemetry, robots) -> None:
    app[TELEMETRY_REPOSITORY] = telemetry
    app[ROBOT_REPOSITORY] = robots
    app[TELEMETRY_SERVICE] = TelemetryService(
        telemetry,
        robots,
        TTLCache(),
        notifier=app[BROADCASTER],
        config=config,
    )


def create_app(config: Settings | None = None) -> web.Application:
    config = config or default_settings
    app = web.Application(
        middlewares=[create_trace_middleware(config.app_name), error_middleware],
    )
    app[CONFIG] = config
    app[BROADCASTER] = TelemetryBroadcaster()

    if config.storage_backend == "memory":
        robots = InMemoryRobotRepository()
        _wire_service(app, config, InMemoryTelemetryRepository(robots), robots)
    else:

        async def _init_storage(_app: web.Application) -> None:
            pool = await init_pool(str(config.database_url), config.db_pool_size)
            _wire_service(_app, config, TelemetryRepository(pool), RobotRepository(pool))

        app.on_startup.append(_init_storage)
        app.on_cleanup.append(close_pool)

    async def _close_streams(_app: web.Application) -> None:
        await _app[BROADCASTER].close()

    app.on_shutdown.append(_close_streams)

    cors = cors_setup(
        app,
        defaults={
            origin: ResourceOptions(
                allow_credentials=True,
                expose_headers="*",
                allow_headers="*",
                allow_methods="*",
            )
            for origin in config.cors_allowed_origins
        },
    )

    app.router.add_get("/health", healthcheck)
    app.add_routes(telemetry_routes)

    for route in list(app.router.routes()):
        cors.add(route)

    logger.info("app_created", storage=config.storage_backend, env=config.env)
    return app


def main() -> None:
    configure_logging()
    config = default_settings
    web.run_app(create_app(config), host=config.host, port=config.port, access_log=None)


if __name__ == "__main__":
    main()
