"""structlog configuration shared by the app, workers and tests."""
from __future__ import annotations

import logging
import sys

import structlog

from fleet_telemetry_service.settings import settings


def configure_logging(level: str | None = None, *, json_output: bool | None = None) -> None:
    """Route stdlib and structlog output through one processor chain."""
    level_name = (level or settings.log_level).upper()
    as_json = settings.log_json if json_output is None else json_output

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer: structlog.types.Processor
    if as_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level_name)
    # aiohttp access logs are disabled in main(); keep server errors visible
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
