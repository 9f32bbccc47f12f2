"""Telemetry ingestion, reconstruction reads and aggregation."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, List, Mapping, Protocol, Sequence

import structlog
from pydantic import ValidationError as PydanticValidationError

from fleet_telemetry_service.core.exceptions import (
    InvalidIdentifierError,
    NoValidMetricsError,
    NotFoundError,
    ValidationError,
)
from fleet_telemetry_service.domain.dto import TelemetryReadingDTO
from fleet_telemetry_service.domain.enums import DataQuality, TelemetrySource
from fleet_telemetry_service.domain.models import (
    AggregationResult,
    MetricDescriptor,
    MetricEntry,
    RecordMetadata,
    RobotTelemetryRecord,
    ensure_utc,
    record_id,
)
from fleet_telemetry_service.domain.schema_registry import SchemaRegistry, registry as default_registry
from fleet_telemetry_service.services.aggregation import AggregationQuery
from fleet_telemetry_service.services.broadcast import TelemetryNotifier
from fleet_telemetry_service.services.extractor import extract
from fleet_telemetry_service.services.latest_cache import latest_key
from fleet_telemetry_service.services.reconstructor import reconstruct
from fleet_telemetry_service.settings import Settings, settings as default_settings

logger = structlog.get_logger(__name__)

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def _validate_reading(reading: TelemetryReadingDTO | Mapping[str, Any]) -> TelemetryReadingDTO:
    """Mappings get the same checks as HTTP bodies (GPS bounds, required section units)."""
    if isinstance(reading, TelemetryReadingDTO):
        return reading
    try:
        return TelemetryReadingDTO.model_validate(reading)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(item) for item in first.get("loc", ()))
        raise ValidationError(f"Invalid telemetry data at {location}: {first.get('msg')}") from exc


class RobotRegistry(Protocol):
    async def exists(self, robot_id: str, organization_id: str) -> bool: ...

    async def touch_last_seen(self, robot_id: str, seen_at: datetime) -> None: ...


class MetricStore(Protocol):
    async def insert_batch(self, entries: Sequence[MetricEntry]) -> None: ...

    async def fetch_history(
        self,
        robot_id: str,
        *,
        metric: str | None = None,
        from_: datetime | None = None,
        to: datetime | None = None,
        limit: int,
    ) -> List[MetricEntry]: ...

    async def list_metrics(self, robot_id: str) -> List[tuple[str, str]]: ...

    async def aggregate(self, query: AggregationQuery) -> List[AggregationResult]: ...


class LatestCache(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl_seconds: float) -> None: ...


class TelemetryService:
    """Orchestrates the extractor, the metric store and the reconstructor.

    Ingestion is not idempotent: submitting the same reading twice for the same
    robot and timestamp stores the rows twice.
    """

    def __init__(
        self,
        telemetry: MetricStore,
        robots: RobotRegistry,
        cache: LatestCache,
        *,
        notifier: TelemetryNotifier | None = None,
        config: Settings = default_settings,
        schema: SchemaRegistry = default_registry,
    ):
        self._telemetry = telemetry
        self._robots = robots
        self._cache = cache
        self._notifier = notifier
        self._config = config
        self._schema = schema

    def validate_robot_id(self, robot_id: str) -> None:
        if self._config.test_ids_enabled and robot_id in self._config.test_robot_ids:
            return
        if not UUID_RE.match(robot_id or ""):
            raise InvalidIdentifierError("Invalid robot ID format")

    async def ensure_robot_access(self, robot_id: str, organization_id: str) -> None:
        self.validate_robot_id(robot_id)
        # Not transactional with the registry: a robot deleted right after this check still gets rows
        if not await self._robots.exists(robot_id, organization_id):
            raise NotFoundError("Robot not found")

    async def ingest(
        self,
        robot_id: str,
        organization_id: str,
        reading: TelemetryReadingDTO | Mapping[str, Any],
        timestamp: datetime | None = None,
        *,
        source: TelemetrySource = TelemetrySource.ROBOT_CONTROLLER,
        quality: DataQuality = DataQuality.HIGH,
    ) -> RobotTelemetryRecord:
        await self.ensure_robot_access(robot_id, organization_id)

        ts = ensure_utc(timestamp) if timestamp is not None else datetime.now(timezone.utc)
        dto = _validate_reading(reading)
        extracted = extract(dto, schema=self._schema)
        if not extracted:
            raise NoValidMetricsError("No valid telemetry metrics provided")

        entries = [MetricEntry.from_extracted(m, robot_id=robot_id, time=ts) for m in extracted]
        # Durable write first; a failure here aborts the call with nothing else touched
        await self._telemetry.insert_batch(entries)

        data = dto.to_payload()
        record = RobotTelemetryRecord(
            id=record_id(robot_id, ts),
            robot_id=robot_id,
            timestamp=ts,
            data=data,
            metadata=RecordMetadata(source=source, quality=quality, sampling_rate=len(entries)),
        )

        try:
            await self._robots.touch_last_seen(robot_id, ts)
        except Exception:
            logger.warning("last_seen_update_failed", robot_id=robot_id, exc_info=True)

        try:
            await self._cache.set(latest_key(robot_id), record, self._config.latest_cache_ttl_seconds)
        except Exception:
            logger.warning("latest_cache_update_failed", robot_id=robot_id, exc_info=True)

        if self._notifier is not None:
            try:
                await self._notifier.notify(robot_id, organization_id, record)
            except Exception:
                logger.warning("telemetry_broadcast_failed", robot_id=robot_id, exc_info=True)

        logger.info(
            "telemetry_ingested",
            robot_id=robot_id,
            organization_id=organization_id,
            metrics_count=len(entries),
            timestamp=ts.isoformat(),
        )
        return record

    async def get_history(
        self,
        robot_id: str,
        organization_id: str,
        *,
        metric: str | None = None,
        from_: datetime | None = None,
        to: datetime | None = None,
        limit: int | None = None,
    ) -> list[RobotTelemetryRecord]:
        """Reconstructed records, newest first. ``limit`` counts records, not rows."""
        await self.ensure_robot_access(robot_id, organization_id)
        if limit is None:
            limit = self._config.history_default_limit
        if limit <= 0:
            raise ValidationError("limit must be a positive integer")
        limit = min(limit, self._config.history_max_limit)
        if from_ is not None and to is not None and from_ > to:
            raise ValidationError("'from' must not be later than 'to'")

        rows = await self._telemetry.fetch_history(
            robot_id,
            metric=metric or None,
            from_=ensure_utc(from_) if from_ is not None else None,
            to=ensure_utc(to) if to is not None else None,
            limit=limit,
        )
        return list(reconstruct(rows, schema=self._schema).values())

    async def get_latest(self, robot_id: str, organization_id: str) -> RobotTelemetryRecord | None:
        await self.ensure_robot_access(robot_id, organization_id)
        try:
            cached = await self._cache.get(latest_key(robot_id))
        except Exception:
            logger.warning("latest_cache_read_failed", robot_id=robot_id, exc_info=True)
            cached = None
        if cached is not None:
            return cached

        records = await self.get_history(robot_id, organization_id, limit=1)
        return records[0] if records else None

    async def get_available_metrics(self, robot_id: str, organization_id: str) -> list[MetricDescriptor]:
        await self.ensure_robot_access(robot_id, organization_id)
        pairs = await self._telemetry.list_metrics(robot_id)
        return [
            MetricDescriptor(name=name, unit=unit or "none", inferred_type=self._schema.metric_type(name))
            for name, unit in pairs
        ]

    async def get_aggregated(self, query: AggregationQuery) -> list[AggregationResult]:
        if query.robot_id is not None:
            await self.ensure_robot_access(query.robot_id, query.organization_id)
        return await self._telemetry.aggregate(query)
