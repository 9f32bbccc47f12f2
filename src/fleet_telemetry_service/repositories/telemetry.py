"""Metric store adapter for the ``robot_telemetry`` hypertable."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, List, Sequence

from asyncpg import Pool, Record  # type: ignore[import-untyped]

from fleet_telemetry_service.domain.models import AggregationResult, MetricEntry
from fleet_telemetry_service.repositories.base import BaseRepository
from fleet_telemetry_service.services.aggregation import AggregationQuery

_INSERT_SQL = """
    INSERT INTO robot_telemetry (time, robot_id, metric_name, value, unit, metadata)
    VALUES ($1, $2, $3, $4, $5, $6::jsonb)
"""


def build_history_statement(
    robot_id: str,
    *,
    metric: str | None = None,
    from_: datetime | None = None,
    to: datetime | None = None,
    limit: int,
) -> tuple[str, list[Any]]:
    """Rows for the ``limit`` most recent timestamps, so no record is cut in half."""
    conditions = ["robot_id = $1"]
    params: list[Any] = [robot_id]
    idx = 2

    if metric is not None:
        conditions.append(f"metric_name = ${idx}")
        params.append(metric)
        idx += 1

    outer = [f"t.{cond}" for cond in conditions]

    if from_ is not None:
        conditions.append(f"time >= ${idx}")
        params.append(from_)
        idx += 1

    if to is not None:
        conditions.append(f"time <= ${idx}")
        params.append(to)
        idx += 1

    params.append(limit)
    query = f"""
        WITH recent AS (
            SELECT DISTINCT time
            FROM robot_telemetry
            WHERE {" AND ".join(conditions)}
            ORDER BY time DESC
            LIMIT ${idx}
        )
        SELECT t.time, t.robot_id, t.metric_name, t.value, t.unit, t.metadata
        FROM robot_telemetry t
        JOIN recent r ON r.time = t.time
        WHERE {" AND ".join(outer)}
        ORDER BY t.time DESC, t.metric_name ASC
    """
    return query, params


def build_aggregate_statement(query: AggregationQuery) -> tuple[str, list[Any]]:
    """Bucketed aggregate; org-wide queries scope robots with a subquery, not client-side."""
    conditions = ["metric_name = $1"]
    params: list[Any] = [query.metric]
    idx = 2

    if query.robot_id is not None:
        conditions.append(f"robot_id = ${idx}")
        params.append(query.robot_id)
    else:
        conditions.append(
            f"robot_id IN (SELECT id::text FROM robots WHERE organization_id::text = ${idx})"
        )
        params.append(query.organization_id)
    idx += 1

    if query.from_ is not None:
        conditions.append(f"time >= ${idx}")
        params.append(query.from_)
        idx += 1

    if query.to is not None:
        conditions.append(f"time <= ${idx}")
        params.append(query.to)
        idx += 1

    # Interval and aggregate come from validated enums, never from raw input
    sql = f"""
        SELECT
            time_bucket('{query.time_window.sql_interval}', time) AS bucket,
            robot_id,
            {query.aggregation.sql_expression} AS value
        FROM robot_telemetry
        WHERE {" AND ".join(conditions)}
        GROUP BY bucket, robot_id
        ORDER BY bucket DESC, robot_id ASC
    """
    return sql, params


class TelemetryRepository(BaseRepository):
    """Append-only writes and range/bucket reads over ``robot_telemetry``."""

    def __init__(self, pool: Pool):
        super().__init__(pool)

    @staticmethod
    def _to_entry(record: Record) -> MetricEntry:
        metadata = record["metadata"]
        if isinstance(metadata, str):
            metadata = json.loads(metadata)
        return MetricEntry(
            time=record["time"],
            robot_id=str(record["robot_id"]),
            metric_name=record["metric_name"],
            value=float(record["value"]),
            unit=record["unit"] or "",
            metadata=metadata or {},
        )

    async def insert_batch(self, entries: Sequence[MetricEntry]) -> None:
        """Write every entry in one transaction: readers see all of them or none."""
        rows = [
            (e.time, e.robot_id, e.metric_name, e.value, e.unit, e.metadata)
            for e in entries
        ]
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(_INSERT_SQL, rows)

    async def fetch_history(
        self,
        robot_id: str,
        *,
        metric: str | None = None,
        from_: datetime | None = None,
        to: datetime | None = None,
        limit: int,
    ) -> List[MetricEntry]:
        query, params = build_history_statement(robot_id, metric=metric, from_=from_, to=to, limit=limit)
        records = await self._fetch(query, *params)
        return [self._to_entry(rec) for rec in records]

    async def list_metrics(self, robot_id: str) -> List[tuple[str, str]]:
        records = await self._fetch(
            """
            SELECT DISTINCT metric_name, unit
            FROM robot_telemetry
            WHERE robot_id = $1
            ORDER BY metric_name, unit
            """,
            robot_id,
        )
        return [(rec["metric_name"], rec["unit"] or "") for rec in records]

    async def aggregate(self, query: AggregationQuery) -> List[AggregationResult]:
        sql, params = build_aggregate_statement(query)
        records = await self._fetch(sql, *params)
        return [
            AggregationResult(
                robot_id=str(rec["robot_id"]),
                metric=query.metric,
                time_window=query.time_window,
                aggregation_type=query.aggregation,
                value=float(rec["value"]) if rec["value"] is not None else None,
                timestamp=rec["bucket"],
            )
            for rec in records
        ]
