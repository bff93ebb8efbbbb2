from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from netlens.models.telemetry import TelemetryRecord
from netlens.query.fields import FieldResolver, normalize_field


class Reduction(str, Enum):
    COUNT = "COUNT"
    SUM = "SUM"
    AVG = "AVG"
    MIN = "MIN"
    MAX = "MAX"


# Bare metric names and how each bucket is reduced to a scalar.
SUMMED_METRICS: dict[str, str] = {
    "total": "total",
    "inbound": "inbound",
    "outbound": "outbound",
    "bytes": "bytes",
    "packets": "packets",
    "flows": "flows",
    "error_count": "count",
    "errors": "count",
}
AVERAGED_METRICS: dict[str, str] = {
    "cpu": "cpu",
    "memory": "memory",
    "temperature": "temperature",
    "latency": "latency",
    "packet_loss": "packet_loss",
    "utilization": "utilization",
}
ERROR_TYPE_METRICS: dict[str, str] = {
    "crc_errors": "CRC",
    "fragments": "Fragment",
    "collisions": "Collision",
}

_FUNCTION_RE = re.compile(r"^\s*(?P<fn>[A-Za-z]+)\s*\(\s*(?P<arg>[^()]*?)\s*\)\s*$")


@dataclass(frozen=True)
class MetricSpec:
    expression: str
    name: str
    function: Reduction | None = None
    field: str | None = None

    @property
    def column(self) -> str:
        if self.function is None:
            return self.name
        if self.function is Reduction.COUNT:
            return "count" if self.field is None else f"count_{_column_part(self.field)}"
        if self.function is Reduction.SUM:
            return _column_part(self.field or self.name)
        return f"{self.function.value.lower()}_{_column_part(self.field or self.name)}"


def _column_part(name: str) -> str:
    return normalize_field(name).replace(".", "_")


def parse_metric(expression: str) -> MetricSpec:
    text = expression.strip()
    match = _FUNCTION_RE.match(text)
    if match:
        try:
            fn = Reduction(match.group("fn").upper())
        except ValueError:
            return MetricSpec(expression=expression, name=text.lower())
        arg = match.group("arg")
        field = None if arg in ("", "*") else arg
        if fn is not Reduction.COUNT and field is None:
            return MetricSpec(expression=expression, name=text.lower())
        return MetricSpec(expression=expression, name=text.lower(), function=fn, field=field)

    if text.upper() == "COUNT":
        return MetricSpec(expression=expression, name="count", function=Reduction.COUNT)
    return MetricSpec(expression=expression, name=normalize_field(text))


def is_recognized(metric: MetricSpec, kind: str, resolver: FieldResolver) -> bool:
    if metric.function is Reduction.COUNT and metric.field is None:
        return True
    if metric.function is not None:
        return metric.field is not None and resolver.knows(kind, metric.field)
    if metric.name == "count":
        return True
    if metric.name in ERROR_TYPE_METRICS:
        return kind == "error"
    source = SUMMED_METRICS.get(metric.name) or AVERAGED_METRICS.get(metric.name)
    return source is not None and resolver.knows(kind, source)


def _values(records: Sequence[TelemetryRecord], field: str, resolver: FieldResolver) -> list[float]:
    values: list[float] = []
    for record in records:
        value = resolver.value(record, field)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        values.append(value)
    return values


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0
    return sum(values) / len(values)


def aggregate(
    records: Sequence[TelemetryRecord],
    metric: MetricSpec,
    resolver: FieldResolver,
) -> float:
    """Reduce one bucket to a scalar; unknown metrics and empty buckets give 0."""
    fn = metric.function
    if fn is Reduction.COUNT:
        if metric.field is None:
            return len(records)
        return sum(1 for r in records if resolver.value(r, metric.field) is not None)
    if fn is not None:
        values = _values(records, metric.field or "", resolver)
        if fn is Reduction.SUM:
            return sum(values)
        if fn is Reduction.AVG:
            return _mean(values)
        if not values:
            return 0
        return min(values) if fn is Reduction.MIN else max(values)

    name = metric.name
    if name == "count":
        return len(records)
    if name in ERROR_TYPE_METRICS:
        error_type = ERROR_TYPE_METRICS[name]
        return sum(r.count for r in records if r.kind == "error" and r.type == error_type)
    if name in SUMMED_METRICS:
        return sum(_values(records, SUMMED_METRICS[name], resolver))
    if name in AVERAGED_METRICS:
        return _mean(_values(records, AVERAGED_METRICS[name], resolver))
    return 0
