"""Aggregation query validation and bucket arithmetic.

``parse_aggregation_type`` and ``parse_time_window`` are the single validation
stage for enumerated parameters: the HTTP layer and the engine both go through
them, and unknown values are rejected instead of defaulting.
"""
from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from fleet_telemetry_service.core.exceptions import ValidationError
from fleet_telemetry_service.domain.enums import AggregationType, TimeWindow
from fleet_telemetry_service.domain.models import ensure_utc

# TimescaleDB time_bucket() default origin (a Monday)
BUCKET_ORIGIN = datetime(2000, 1, 3, tzinfo=timezone.utc)


def parse_aggregation_type(raw: str | AggregationType | None) -> AggregationType:
    if isinstance(raw, AggregationType):
        return raw
    if not raw:
        raise ValidationError("aggregation is required")
    try:
        return AggregationType(raw.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(a.value for a in AggregationType)
        raise ValidationError(f"Unsupported aggregation '{raw}'; expected one of: {allowed}") from exc


def parse_time_window(raw: str | TimeWindow | None) -> TimeWindow:
    if isinstance(raw, TimeWindow):
        return raw
    if not raw:
        raise ValidationError("timeWindow is required")
    try:
        # "1M" (month) is deliberately absent: buckets must have a fixed width
        return TimeWindow(raw.strip())
    except ValueError as exc:
        allowed = ", ".join(w.value for w in TimeWindow)
        raise ValidationError(f"Unsupported timeWindow '{raw}'; expected one of: {allowed}") from exc


@dataclass(frozen=True, slots=True)
class AggregationQuery:
    organization_id: str
    metric: str
    aggregation: AggregationType
    time_window: TimeWindow
    robot_id: str | None = None
    from_: datetime | None = None
    to: datetime | None = None


def build_aggregation_query(
    *,
    organization_id: str,
    metric: str | None,
    aggregation: str | AggregationType | None,
    time_window: str | TimeWindow | None,
    robot_id: str | None = None,
    from_: datetime | None = None,
    to: datetime | None = None,
) -> AggregationQuery:
    """Validate raw parameters before any query is constructed."""
    missing = [
        label
        for label, value in (("metric", metric), ("aggregation", aggregation), ("timeWindow", time_window))
        if not value
    ]
    if missing:
        raise ValidationError(f"Missing required parameters: {', '.join(missing)}")
    assert metric is not None
    if from_ is not None and to is not None and from_ > to:
        raise ValidationError("'from' must not be later than 'to'")
    return AggregationQuery(
        organization_id=organization_id,
        metric=metric,
        aggregation=parse_aggregation_type(aggregation),
        time_window=parse_time_window(time_window),
        robot_id=robot_id or None,
        from_=from_,
        to=to,
    )


def bucket_start(ts: datetime, window: TimeWindow) -> datetime:
    """Start of the ``window`` bucket containing ``ts``, aligned like ``time_bucket``."""
    ts = ensure_utc(ts)
    width = window.width
    return BUCKET_ORIGIN + ((ts - BUCKET_ORIGIN) // width) * width


def _percentile_cont(values: Sequence[float], fraction: float) -> float:
    ordered = sorted(values)
    position = fraction * (len(ordered) - 1)
    lower = math.floor(position)
    upper = math.ceil(position)
    if lower == upper:
        return ordered[lower]
    return ordered[lower] + (ordered[upper] - ordered[lower]) * (position - lower)


def aggregate_values(values: Sequence[float], aggregation: AggregationType) -> float | None:
    """In-process equivalent of the SQL aggregate for one bucket."""
    if aggregation is AggregationType.COUNT:
        return float(len(values))
    if not values:
        return None
    if aggregation is AggregationType.AVG:
        return statistics.fmean(values)
    if aggregation is AggregationType.MIN:
        return min(values)
    if aggregation is AggregationType.MAX:
        return max(values)
    if aggregation is AggregationType.SUM:
        return math.fsum(values)
    if aggregation is AggregationType.STDDEV:
        return statistics.stdev(values) if len(values) > 1 else None
    fraction = aggregation.percentile
    assert fraction is not None
    return _percentile_cont(values, fraction)
