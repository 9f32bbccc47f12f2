"""In-process repositories used with ``storage_backend = "memory"``.

They mirror the SQL semantics of :mod:`repositories.telemetry` closely enough
for local development and the test suite: batch writes become visible in one
step, history limits count timestamps, and buckets align like ``time_bucket``.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import List, Sequence

from fleet_telemetry_service.domain.models import AggregationResult, MetricEntry
from fleet_telemetry_service.services.aggregation import (
    AggregationQuery,
    aggregate_values,
    bucket_start,
)


class InMemoryRobotRepository:
    def __init__(self) -> None:
        self._organizations: dict[str, str] = {}
        self.last_seen: dict[str, datetime] = {}

    def register(self, robot_id: str, organization_id: str) -> None:
        self._organizations[robot_id] = organization_id

    def robots_of(self, organization_id: str) -> set[str]:
        return {rid for rid, org in self._organizations.items() if org == organization_id}

    async def exists(self, robot_id: str, organization_id: str) -> bool:
        return self._organizations.get(robot_id) == organization_id

    async def touch_last_seen(self, robot_id: str, seen_at: datetime) -> None:
        self.last_seen[robot_id] = seen_at


class InMemoryTelemetryRepository:
    def __init__(self, robots: InMemoryRobotRepository) -> None:
        self._robots = robots
        self._rows: list[MetricEntry] = []

    @property
    def rows(self) -> tuple[MetricEntry, ...]:
        return tuple(self._rows)

    async def insert_batch(self, entries: Sequence[MetricEntry]) -> None:
        # No await inside: the whole batch becomes visible in one step
        self._rows.extend(entries)

    async def fetch_history(
        self,
        robot_id: str,
        *,
        metric: str | None = None,
        from_: datetime | None = None,
        to: datetime | None = None,
        limit: int,
    ) -> List[MetricEntry]:
        matching = [
            row
            for row in self._rows
            if row.robot_id == robot_id
            and (metric is None or row.metric_name == metric)
            and (from_ is None or row.time >= from_)
            and (to is None or row.time <= to)
        ]
        recent = set(sorted({row.time for row in matching}, reverse=True)[:limit])
        selected = [row for row in matching if row.time in recent]
        selected.sort(key=lambda row: row.metric_name)
        selected.sort(key=lambda row: row.time, reverse=True)
        return selected

    async def list_metrics(self, robot_id: str) -> List[tuple[str, str]]:
        return sorted({(row.metric_name, row.unit) for row in self._rows if row.robot_id == robot_id})

    async def aggregate(self, query: AggregationQuery) -> List[AggregationResult]:
        if query.robot_id is not None:
            scope = {query.robot_id}
        else:
            scope = self._robots.robots_of(query.organization_id)

        buckets: dict[tuple[datetime, str], list[float]] = defaultdict(list)
        for row in self._rows:
            if row.metric_name != query.metric or row.robot_id not in scope:
                continue
            if query.from_ is not None and row.time < query.from_:
                continue
            if query.to is not None and row.time > query.to:
                continue
            buckets[(bucket_start(row.time, query.time_window), row.robot_id)].append(row.value)

        ordered = sorted(buckets, key=lambda key: key[1])
        ordered.sort(key=lambda key: key[0], reverse=True)
        return [
            AggregationResult(
                robot_id=robot_id,
                metric=query.metric,
                time_window=query.time_window,
                aggregation_type=query.aggregation,
                value=aggregate_values(buckets[(bucket, robot_id)], query.aggregation),
                timestamp=bucket,
            )
            for bucket, robot_id in ordered
        ]
