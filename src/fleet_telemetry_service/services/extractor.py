"""Decompose a nested telemetry payload into flat metric rows."""
from __future__ import annotations

import math
from typing import Any, Mapping

from fleet_telemetry_service.domain.dto import TelemetryReadingDTO
from fleet_telemetry_service.domain.models import ExtractedMetric
from fleet_telemetry_service.domain.schema_registry import (
    MetricKind,
    SchemaRegistry,
    get_path,
    registry as default_registry,
)


def _is_number(value: Any) -> bool:
    # JSON booleans are not numbers here, even though bool subclasses int
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # integers beyond float range
        return False


def _coerce(value: Any, kind: MetricKind) -> float | None:
    if kind == "bool":
        if isinstance(value, bool):
            return 1.0 if value else 0.0
        return None
    if _is_number(value):
        return float(value)
    return None


def extract(
    reading: TelemetryReadingDTO | Mapping[str, Any],
    *,
    schema: SchemaRegistry = default_registry,
) -> list[ExtractedMetric]:
    """Return one :class:`ExtractedMetric` per present scalar leaf.

    Absent leaves emit nothing. Values of the wrong type (a string under
    ``custom``, a number under a boolean safety flag) are dropped silently.
    An empty list means the payload carried nothing storable; callers treat
    that as a validation failure.
    """
    payload = reading.to_payload() if isinstance(reading, TelemetryReadingDTO) else reading
    metrics: list[ExtractedMetric] = []

    for item in schema.fields:
        value = _coerce(get_path(payload, item.path), item.kind)
        if value is None:
            continue
        metadata: dict[str, Any] = {}
        for meta_path in item.metadata_paths:
            meta_value = get_path(payload, meta_path)
            if meta_value is not None:
                metadata[meta_path[-1]] = meta_value
        metrics.append(
            ExtractedMetric(
                metric_name=item.name,
                value=value,
                unit=item.resolve_unit(payload),
                metadata=metadata,
            )
        )

    for family in schema.families:
        entries = get_path(payload, family.path)
        if not isinstance(entries, Mapping):
            continue
        for key, raw in entries.items():
            # "custom." alone names no leaf and could not be read back
            if not str(key):
                continue
            value = _coerce(raw, family.kind)
            if value is None:
                continue
            metrics.append(
                ExtractedMetric(metric_name=family.metric_name(str(key)), value=value, unit=family.unit)
            )

    return metrics
