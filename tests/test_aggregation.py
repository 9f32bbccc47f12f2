"""Unit tests for aggregation validation, bucketing and statement building."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fleet_telemetry_service.core.exceptions import ValidationError
from fleet_telemetry_service.domain.enums import AggregationType, TimeWindow
from fleet_telemetry_service.domain.models import MetricEntry
from fleet_telemetry_service.repositories.telemetry import (
    build_aggregate_statement,
    build_history_statement,
)
from fleet_telemetry_service.services.aggregation import (
    aggregate_values,
    bucket_start,
    build_aggregation_query,
    parse_aggregation_type,
    parse_time_window,
)

from tests.utils import ORG_ID, ROBOT_ID, SECOND_ROBOT_ID, FOREIGN_ROBOT_ID, T0


def _entry(robot_id, offset_s, value, metric="custom.x"):
    return MetricEntry(
        time=T0 + timedelta(seconds=offset_s),
        robot_id=robot_id,
        metric_name=metric,
        value=value,
        unit="custom",
    )


class TestParsers:
    @pytest.mark.parametrize("raw", ["avg", "min", "max", "sum", "count", "AVG", " p95 "])
    def test_known_aggregations(self, raw):
        assert parse_aggregation_type(raw).value == raw.strip().lower()

    @pytest.mark.parametrize("raw", ["median", "average", "mean"])
    def test_unknown_aggregation_rejected(self, raw):
        with pytest.raises(ValidationError):
            parse_aggregation_type(raw)

    @pytest.mark.parametrize("raw", ["1m", "5m", "15m", "1h", "1d", "1w"])
    def test_known_windows(self, raw):
        assert parse_time_window(raw).value == raw

    @pytest.mark.parametrize("raw", ["1M", "2m", "hour", "60s"])
    def test_unknown_window_rejected(self, raw):
        with pytest.raises(ValidationError):
            parse_time_window(raw)

    def test_missing_required_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            build_aggregation_query(
                organization_id=ORG_ID, metric=None, aggregation="avg", time_window=None
            )
        assert "metric" in str(exc_info.value)
        assert "timeWindow" in str(exc_info.value)

    def test_inverted_range(self):
        with pytest.raises(ValidationError):
            build_aggregation_query(
                organization_id=ORG_ID,
                metric="custom.x",
                aggregation="avg",
                time_window="1m",
                from_=T0,
                to=T0 - timedelta(minutes=1),
            )

    def test_empty_robot_id_means_whole_organization(self):
        query = build_aggregation_query(
            organization_id=ORG_ID, metric="custom.x", aggregation="avg", time_window="1m", robot_id=""
        )
        assert query.robot_id is None


class TestBuckets:
    def test_minute_alignment(self):
        ts = T0 + timedelta(seconds=90)
        assert bucket_start(ts, TimeWindow.MINUTE) == T0 + timedelta(minutes=1)

    def test_fifteen_minutes(self):
        ts = datetime(2026, 1, 1, 12, 29, 59, tzinfo=timezone.utc)
        assert bucket_start(ts, TimeWindow.FIFTEEN_MINUTES) == datetime(2026, 1, 1, 12, 15, tzinfo=timezone.utc)

    def test_week_starts_on_monday(self):
        # 2026-01-01 is a Thursday
        assert bucket_start(T0, TimeWindow.WEEK) == datetime(2025, 12, 29, tzinfo=timezone.utc)

    def test_naive_timestamps_are_utc(self):
        naive = datetime(2026, 1, 1, 12, 0, 30)
        assert bucket_start(naive, TimeWindow.MINUTE) == T0


class TestAggregateValues:
    @pytest.mark.parametrize(
        "aggregation, expected",
        [
            (AggregationType.AVG, 2.5),
            (AggregationType.MIN, 1.0),
            (AggregationType.MAX, 4.0),
            (AggregationType.SUM, 10.0),
            (AggregationType.COUNT, 4.0),
            (AggregationType.P50, 2.5),
        ],
    )
    def test_functions(self, aggregation, expected):
        assert aggregate_values([1.0, 2.0, 3.0, 4.0], aggregation) == pytest.approx(expected)

    def test_p95_interpolates(self):
        assert aggregate_values([0.0, 10.0], AggregationType.P95) == pytest.approx(9.5)

    def test_stddev_needs_two_samples(self):
        assert aggregate_values([3.0], AggregationType.STDDEV) is None
        assert aggregate_values([1.0, 3.0], AggregationType.STDDEV) == pytest.approx(2 ** 0.5)


class TestInMemoryAggregation:
    async def test_one_minute_average(self, store):
        await store.insert_batch([_entry(ROBOT_ID, 0, 1.0), _entry(ROBOT_ID, 30, 2.0), _entry(ROBOT_ID, 90, 3.0)])
        query = build_aggregation_query(
            organization_id=ORG_ID, metric="custom.x", aggregation="avg", time_window="1m", robot_id=ROBOT_ID
        )
        results = await store.aggregate(query)
        assert [(r.timestamp, r.value) for r in results] == [
            (T0 + timedelta(minutes=1), 3.0),
            (T0, 1.5),
        ]
        assert all(r.robot_id == ROBOT_ID for r in results)
        assert results[0].time_window is TimeWindow.MINUTE

    async def test_organization_scope(self, store):
        await store.insert_batch(
            [
                _entry(ROBOT_ID, 0, 1.0),
                _entry(SECOND_ROBOT_ID, 10, 5.0),
                _entry(FOREIGN_ROBOT_ID, 20, 100.0),
                _entry(ROBOT_ID, 5, 9.0, metric="custom.y"),
            ]
        )
        query = build_aggregation_query(
            organization_id=ORG_ID, metric="custom.x", aggregation="max", time_window="5m"
        )
        results = await store.aggregate(query)
        assert [(r.robot_id, r.value) for r in results] == [(ROBOT_ID, 1.0), (SECOND_ROBOT_ID, 5.0)]

    async def test_time_range_is_inclusive(self, store):
        await store.insert_batch([_entry(ROBOT_ID, 0, 1.0), _entry(ROBOT_ID, 60, 2.0), _entry(ROBOT_ID, 120, 4.0)])
        query = build_aggregation_query(
            organization_id=ORG_ID,
            metric="custom.x",
            aggregation="count",
            time_window="1h",
            robot_id=ROBOT_ID,
            from_=T0 + timedelta(seconds=60),
            to=T0 + timedelta(seconds=120),
        )
        results = await store.aggregate(query)
        assert [r.value for r in results] == [2.0]


class TestStatements:
    def _query(self, **overrides):
        params = dict(organization_id=ORG_ID, metric="temperature.ambient", aggregation="avg", time_window="15m")
        params.update(overrides)
        return build_aggregation_query(**params)

    def test_org_wide_query_uses_subquery(self):
        sql, params = build_aggregate_statement(self._query())
        assert "robot_id IN (SELECT id::text FROM robots WHERE organization_id::text = $2)" in sql
        assert "time_bucket('15 minutes', time)" in sql
        assert "AVG(value)" in sql
        assert "ORDER BY bucket DESC" in sql
        assert params == ["temperature.ambient", ORG_ID]

    def test_single_robot_with_range(self):
        query = self._query(robot_id=ROBOT_ID, aggregation="p99", from_=T0, to=T0 + timedelta(hours=1))
        sql, params = build_aggregate_statement(query)
        assert "robot_id = $2" in sql
        assert "time >= $3" in sql and "time <= $4" in sql
        assert "PERCENTILE_CONT(0.99)" in sql
        assert params == ["temperature.ambient", ROBOT_ID, T0, T0 + timedelta(hours=1)]

    def test_history_limit_counts_timestamps(self):
        sql, params = build_history_statement(ROBOT_ID, metric="position.x", limit=5)
        assert "SELECT DISTINCT time" in sql
        assert "LIMIT $3" in sql
        assert "t.metric_name = $2" in sql
        assert params == [ROBOT_ID, "position.x", 5]
