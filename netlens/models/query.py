from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any

from netlens.core.errors import InvalidQueryError

TIME_RANGES: dict[str, timedelta] = {
    "last_15m": timedelta(minutes=15),
    "last_30m": timedelta(minutes=30),
    "last_1h": timedelta(hours=1),
    "last_6h": timedelta(hours=6),
    "last_12h": timedelta(hours=12),
    "last_24h": timedelta(hours=24),
    "last_7d": timedelta(days=7),
    "last_30d": timedelta(days=30),
}

TIME_RANGE_LABELS: dict[str, str] = {
    "Last 15 minutes": "last_15m",
    "Last 30 minutes": "last_30m",
    "Last hour": "last_1h",
    "Last 6 hours": "last_6h",
    "Last 12 hours": "last_12h",
    "Last 24 hours": "last_24h",
    "Last 7 days": "last_7d",
    "Last 30 days": "last_30d",
}


class DataSource(str, Enum):
    NETWORK_FLOWS = "network-flows"
    DEVICE_METRICS = "device-metrics"
    NETWORK_ERRORS = "network-errors"

    @property
    def record_kind(self) -> str:
        return _RECORD_KINDS[self]


_RECORD_KINDS = {
    DataSource.NETWORK_FLOWS: "traffic",
    DataSource.DEVICE_METRICS: "metric",
    DataSource.NETWORK_ERRORS: "error",
}


class FilterOperator(str, Enum):
    EQ = "="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    IN = "IN"
    BETWEEN = "BETWEEN"
    LIKE = "LIKE"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class FilterCondition:
    """A single comparison; ``operator`` is None when the expression was unparseable."""

    field: str
    operator: FilterOperator | None
    values: tuple[Any, ...] = ()
    expression: str = ""

    @property
    def is_valid(self) -> bool:
        return self.operator is not None


@dataclass(frozen=True)
class OrderBy:
    field: str
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def parse(cls, text: str | None) -> OrderBy | None:
        if not text or not text.strip():
            return None
        parts = text.strip().rsplit(None, 1)
        if len(parts) == 2 and parts[1].upper() in ("ASC", "DESC"):
            return cls(field=parts[0].strip(), direction=SortDirection(parts[1].upper()))
        return cls(field=text.strip())


@dataclass(frozen=True)
class QueryDescriptor:
    data_source: DataSource
    metrics: tuple[str, ...]
    filters: tuple[FilterCondition, ...] = ()
    group_by: str | None = None
    order_by: OrderBy | None = None
    limit: int | None = None
    time_range: str = "last_24h"

    def __post_init__(self) -> None:
        if not self.metrics:
            raise InvalidQueryError("At least one metric must be selected")
        if self.time_range not in TIME_RANGES:
            raise InvalidQueryError(f"Unknown time range '{self.time_range}'")
        if self.limit is not None and self.limit < 1:
            raise InvalidQueryError("'limit' must be a positive integer")


@dataclass(frozen=True)
class TimeSeriesPoint:
    time: str
    value: float
    latency: float | None = None
    extra: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class QuerySummary:
    total_count: float
    avg_latency: float
    start: str
    end: str


@dataclass(frozen=True)
class QueryResult:
    time_series: list[TimeSeriesPoint]
    grouped: list[dict[str, Any]]
    summary: QuerySummary
    columns: list[str]
    group_by: str | None = None
    warnings: list[str] = field(default_factory=list)
