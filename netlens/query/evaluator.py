"""Query evaluation: filter, partition, aggregate, then shape the result.

The evaluator reads telemetry from the record store once per call, loads the
device directory only when the query names a directory attribute, and never
mutates shared state, so one instance can serve concurrent requests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from netlens.models.query import (
    DataSource,
    OrderBy,
    QueryDescriptor,
    QueryResult,
    QuerySummary,
    SortDirection,
    TimeSeriesPoint,
)
from netlens.models.telemetry import TelemetryRecord
from netlens.query.aggregator import MetricSpec, aggregate, is_recognized, parse_metric
from netlens.query.bucketing import DEFAULT_BUCKET_COUNT, group_records, time_buckets
from netlens.query.fields import FieldResolver, needs_device_directory
from netlens.query.filters import apply_filters
from netlens.query.timerange import TimeWindow, resolve_time_range, to_iso
from netlens.repositories.base import RecordStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

LATENCY_SOURCES = frozenset({DataSource.NETWORK_FLOWS})
_RESERVED_POINT_KEYS = frozenset({"time", "value", "latency"})


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _dedupe_metrics(metrics: Sequence[str]) -> list[MetricSpec]:
    seen: set[str] = set()
    specs: list[MetricSpec] = []
    for expression in metrics:
        spec = parse_metric(expression)
        if spec.column in seen:
            continue
        seen.add(spec.column)
        specs.append(spec)
    return specs


def _mean_latency(records: Sequence[TelemetryRecord], resolver: FieldResolver) -> float | None:
    values = [
        v
        for v in (resolver.value(r, "latency") for r in records)
        if isinstance(v, (int, float)) and not isinstance(v, bool)
    ]
    if not values:
        return None
    return sum(values) / len(values)


def resolve_order_column(order_field: str, columns: Sequence[str]) -> str | None:
    if order_field in columns:
        return order_field
    lowered = order_field.lower()
    for column in columns:
        if column.lower() == lowered:
            return column
    metric_column = parse_metric(order_field).column
    if metric_column in columns:
        return metric_column
    return None


def _sort_key(value: Any) -> tuple[int, Any]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


def shape_rows(
    rows: list[dict[str, Any]],
    order_by: OrderBy | None,
    limit: int | None,
) -> list[dict[str, Any]]:
    """Apply ORDER BY then LIMIT to already-aggregated rows."""
    shaped = list(rows)
    if order_by is not None and shaped:
        column = resolve_order_column(order_by.field, list(shaped[0].keys()))
        if column is not None:
            shaped = sorted(
                shaped,
                key=lambda row: _sort_key(row.get(column)),
                reverse=order_by.direction is SortDirection.DESC,
            )
    if limit is not None:
        shaped = shaped[:limit]
    return shaped


class QueryEvaluator:
    def __init__(
        self,
        *,
        bucket_count: int = DEFAULT_BUCKET_COUNT,
        clock: Clock | None = None,
    ) -> None:
        self._bucket_count = bucket_count
        self._clock = clock or utc_now

    @property
    def bucket_count(self) -> int:
        return self._bucket_count

    def resolve_window(self, time_range: str) -> TimeWindow:
        return resolve_time_range(time_range, now=self._clock())

    def evaluate(self, descriptor: QueryDescriptor, store: RecordStore) -> QueryResult:
        window = self.resolve_window(descriptor.time_range)
        records = store.fetch_records(
            descriptor.data_source, start=window.start, stop=window.end
        )
        devices = store.list_devices() if self._uses_directory(descriptor) else ()
        resolver = FieldResolver(devices)
        return self.evaluate_records(descriptor, records, window=window, resolver=resolver)

    def evaluate_records(
        self,
        descriptor: QueryDescriptor,
        records: Sequence[TelemetryRecord],
        *,
        window: TimeWindow,
        resolver: FieldResolver,
    ) -> QueryResult:
        kind = descriptor.data_source.record_kind
        warnings = self._collect_warnings(descriptor, kind, resolver)

        candidates = [r for r in records if r.kind == kind and window.contains(r.timestamp)]
        matched = apply_filters(candidates, descriptor.filters, resolver)
        metrics = _dedupe_metrics(descriptor.metrics)

        logger.debug(
            "Evaluating %s over %s..%s: %d candidates, %d matched",
            descriptor.data_source.value,
            to_iso(window.start),
            to_iso(window.end),
            len(candidates),
            len(matched),
        )

        if descriptor.group_by:
            rows, columns = self._grouped_rows(descriptor.group_by, matched, metrics, resolver)
            if descriptor.order_by is not None and rows:
                if resolve_order_column(descriptor.order_by.field, columns) is None:
                    warnings.append(
                        f"Cannot order by '{descriptor.order_by.field}': no such column"
                    )
            rows = shape_rows(rows, descriptor.order_by, descriptor.limit)
            latency = _mean_latency(matched, resolver)
            summary = QuerySummary(
                total_count=len(matched),
                avg_latency=latency if latency is not None else 0,
                start=to_iso(window.start),
                end=to_iso(window.end),
            )
            return QueryResult(
                time_series=[],
                grouped=rows,
                summary=summary,
                columns=columns,
                group_by=descriptor.group_by,
                warnings=warnings,
            )

        points = self._time_series(descriptor.data_source, matched, metrics, window, resolver)
        latencies = [p.latency for p in points if p.latency is not None]
        summary = QuerySummary(
            total_count=sum(p.value for p in points),
            avg_latency=sum(latencies) / len(latencies) if latencies else 0,
            start=to_iso(window.start),
            end=to_iso(window.end),
        )
        columns = ["time", "value", "latency"] + [
            m.column for m in metrics[1:] if m.column not in _RESERVED_POINT_KEYS
        ]
        return QueryResult(
            time_series=points,
            grouped=[],
            summary=summary,
            columns=columns,
            warnings=warnings,
        )

    def _time_series(
        self,
        data_source: DataSource,
        records: Sequence[TelemetryRecord],
        metrics: Sequence[MetricSpec],
        window: TimeWindow,
        resolver: FieldResolver,
    ) -> list[TimeSeriesPoint]:
        primary, secondary = metrics[0], metrics[1:]
        with_latency = data_source in LATENCY_SOURCES
        points: list[TimeSeriesPoint] = []
        for bucket in time_buckets(records, window, self._bucket_count):
            extra = {
                m.column: aggregate(bucket.records, m, resolver)
                for m in secondary
                if m.column not in _RESERVED_POINT_KEYS
            }
            points.append(
                TimeSeriesPoint(
                    time=to_iso(bucket.start),
                    value=aggregate(bucket.records, primary, resolver),
                    latency=_mean_latency(bucket.records, resolver) if with_latency else None,
                    extra=extra,
                )
            )
        return points

    @staticmethod
    def _grouped_rows(
        group_by: str,
        records: Sequence[TelemetryRecord],
        metrics: Sequence[MetricSpec],
        resolver: FieldResolver,
    ) -> tuple[list[dict[str, Any]], list[str]]:
        columns = [group_by] + [m.column for m in metrics if m.column != group_by]
        rows: list[dict[str, Any]] = []
        for group in group_records(records, group_by, resolver):
            row: dict[str, Any] = {group_by: group.key}
            for metric in metrics:
                if metric.column == group_by:
                    continue
                row[metric.column] = aggregate(group.records, metric, resolver)
            rows.append(row)
        return rows, columns

    @staticmethod
    def _uses_directory(descriptor: QueryDescriptor) -> bool:
        names = [c.field for c in descriptor.filters if c.is_valid]
        names.extend(m.field for m in map(parse_metric, descriptor.metrics) if m.field)
        if descriptor.group_by:
            names.append(descriptor.group_by)
        return needs_device_directory(descriptor.data_source.record_kind, names)

    @staticmethod
    def _collect_warnings(
        descriptor: QueryDescriptor, kind: str, resolver: FieldResolver
    ) -> list[str]:
        source = descriptor.data_source.value
        warnings: list[str] = []
        for condition in descriptor.filters:
            if not condition.is_valid:
                warnings.append(f"Filter '{condition.expression}' could not be parsed")
            elif not resolver.knows(kind, condition.field):
                warnings.append(f"Unknown field '{condition.field}' for {source}")
        for expression in descriptor.metrics:
            if not is_recognized(parse_metric(expression), kind, resolver):
                warnings.append(f"Unknown metric '{expression}' for {source}")
        if descriptor.group_by and not resolver.knows(kind, descriptor.group_by):
            warnings.append(f"Unknown field '{descriptor.group_by}' for {source}")
        return warnings
