"""Fold stored metric rows back into nested telemetry records."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

import structlog

from fleet_telemetry_service.domain.models import MetricEntry, RobotTelemetryRecord, record_id
from fleet_telemetry_service.domain.schema_registry import (
    SchemaRegistry,
    registry as default_registry,
    set_path,
)

logger = structlog.get_logger(__name__)


def apply_entry(data: dict[str, Any], entry: MetricEntry, schema: SchemaRegistry) -> bool:
    """Write one row into ``data`` at its declared path. Returns False for unknown names.

    Only leaves that were stored are written: a section never gains zero
    placeholders for fields that were not measured.
    """
    item = schema.field(entry.metric_name)
    if item is not None:
        value: Any = entry.value != 0 if item.kind == "bool" else entry.value
        set_path(data, item.path, value)
        if item.unit_path is not None and entry.unit:
            set_path(data, item.unit_path, entry.unit)
        metadata = entry.metadata or {}
        for meta_path in item.metadata_paths:
            if metadata.get(meta_path[-1]) is not None:
                set_path(data, meta_path, metadata[meta_path[-1]])
        return True

    owner = schema.family(entry.metric_name)
    if owner is None:
        return False
    family, key = owner
    value = entry.value != 0 if family.kind == "bool" else entry.value
    set_path(data, family.path + (key,), value)
    return True


def reconstruct(
    rows: Iterable[MetricEntry],
    *,
    schema: SchemaRegistry = default_registry,
) -> dict[datetime, RobotTelemetryRecord]:
    """Group rows by exact timestamp and rebuild one record per group.

    The returned mapping is ordered newest first.
    """
    grouped: dict[datetime, RobotTelemetryRecord] = {}
    for row in rows:
        record = grouped.get(row.time)
        if record is None:
            record = RobotTelemetryRecord(
                id=record_id(row.robot_id, row.time),
                robot_id=row.robot_id,
                timestamp=row.time,
            )
            grouped[row.time] = record
        if not apply_entry(record.data, row, schema):
            logger.debug("unknown_metric_skipped", metric_name=row.metric_name, robot_id=row.robot_id)

    return {ts: grouped[ts] for ts in sorted(grouped, reverse=True)}
