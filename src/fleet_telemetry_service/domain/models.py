"""Domain entities: flat metric rows and the records assembled from them."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fleet_telemetry_service.domain.enums import (
    AggregationType,
    DataQuality,
    TelemetrySource,
    TimeWindow,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def epoch_millis(dt: datetime) -> int:
    return (ensure_utc(dt) - _EPOCH) // timedelta(milliseconds=1)


def record_id(robot_id: str, timestamp: datetime) -> str:
    return f"{robot_id}_{epoch_millis(timestamp)}"


@dataclass(frozen=True, slots=True)
class ExtractedMetric:
    """One scalar leaf pulled out of a telemetry payload."""

    metric_name: str
    value: float
    unit: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class MetricEntry:
    """One stored row of ``robot_telemetry``. Never updated once written."""

    time: datetime
    robot_id: str
    metric_name: str
    value: float
    unit: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_extracted(
        cls, metric: ExtractedMetric, *, robot_id: str, time: datetime
    ) -> "MetricEntry":
        return cls(
            time=time,
            robot_id=robot_id,
            metric_name=metric.metric_name,
            value=metric.value,
            unit=metric.unit,
            metadata=dict(metric.metadata),
        )


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RecordMetadata(_CamelModel):
    source: TelemetrySource = TelemetrySource.ROBOT_CONTROLLER
    quality: DataQuality = DataQuality.HIGH
    sampling_rate: int | None = None


class RobotTelemetryRecord(_CamelModel):
    id: str
    robot_id: str
    timestamp: datetime
    data: dict[str, Any] = Field(default_factory=dict)
    metadata: RecordMetadata | None = None


class AggregationResult(_CamelModel):
    robot_id: str
    metric: str
    time_window: TimeWindow
    aggregation_type: AggregationType
    value: float | None
    timestamp: datetime

    def to_api(self) -> dict[str, Any]:
        # value stays in the payload even when the store returns NULL (stddev of one sample)
        return self.model_dump(mode="json", by_alias=True)


class MetricDescriptor(_CamelModel):
    name: str
    unit: str
    inferred_type: str
