"""Enumerations shared by DTOs, models and the aggregation engine."""
from __future__ import annotations

from datetime import timedelta
from enum import Enum


class CoordinateFrame(str, Enum):
    BASE = "base"
    TOOL = "tool"
    WORLD = "world"
    USER = "user"


class ExecutionMode(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    SINGLE_STEP = "single_step"
    DRY_RUN = "dry_run"


class TelemetrySource(str, Enum):
    ROBOT_CONTROLLER = "robot_controller"
    EXTERNAL_SENSOR = "external_sensor"
    SIMULATION = "simulation"
    MANUAL_INPUT = "manual_input"


class DataQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    QUESTIONABLE = "questionable"


class AggregationType(str, Enum):
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    SUM = "sum"
    COUNT = "count"
    STDDEV = "stddev"
    P50 = "p50"
    P95 = "p95"
    P99 = "p99"

    @property
    def sql_expression(self) -> str:
        """Store-native aggregate over the ``value`` column."""
        return _AGGREGATION_SQL[self]

    @property
    def percentile(self) -> float | None:
        return _PERCENTILES.get(self)


_PERCENTILES = {
    AggregationType.P50: 0.50,
    AggregationType.P95: 0.95,
    AggregationType.P99: 0.99,
}

_AGGREGATION_SQL = {
    AggregationType.AVG: "AVG(value)",
    AggregationType.MIN: "MIN(value)",
    AggregationType.MAX: "MAX(value)",
    AggregationType.SUM: "SUM(value)",
    AggregationType.COUNT: "COUNT(value)",
    AggregationType.STDDEV: "STDDEV_SAMP(value)",
    AggregationType.P50: "PERCENTILE_CONT(0.5) WITHIN GROUP (ORDER BY value)",
    AggregationType.P95: "PERCENTILE_CONT(0.95) WITHIN GROUP (ORDER BY value)",
    AggregationType.P99: "PERCENTILE_CONT(0.99) WITHIN GROUP (ORDER BY value)",
}


class TimeWindow(str, Enum):
    MINUTE = "1m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    HOUR = "1h"
    DAY = "1d"
    WEEK = "1w"

    @property
    def width(self) -> timedelta:
        return _WINDOW_WIDTHS[self]

    @property
    def sql_interval(self) -> str:
        return _WINDOW_INTERVALS[self]


_WINDOW_WIDTHS = {
    TimeWindow.MINUTE: timedelta(minutes=1),
    TimeWindow.FIVE_MINUTES: timedelta(minutes=5),
    TimeWindow.FIFTEEN_MINUTES: timedelta(minutes=15),
    TimeWindow.HOUR: timedelta(hours=1),
    TimeWindow.DAY: timedelta(days=1),
    TimeWindow.WEEK: timedelta(weeks=1),
}

_WINDOW_INTERVALS = {
    TimeWindow.MINUTE: "1 minute",
    TimeWindow.FIVE_MINUTES: "5 minutes",
    TimeWindow.FIFTEEN_MINUTES: "15 minutes",
    TimeWindow.HOUR: "1 hour",
    TimeWindow.DAY: "1 day",
    TimeWindow.WEEK: "1 week",
}
