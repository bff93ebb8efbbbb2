from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from netlens.models.query import (
    DataSource,
    FilterCondition,
    OrderBy,
    QueryDescriptor,
    QueryResult,
)
from netlens.query.bucketing import select_group_key
from netlens.query.filters import condition_from_parts, parse_filter
from netlens.query.presets import FilterOption, QueryPreset
from netlens.query.timerange import normalize_time_range


class FilterExpr(BaseModel):
    field: str = Field(min_length=1, max_length=64)
    operator: str = Field(min_length=1, max_length=16)
    value: Any = None


FilterInput = str | FilterExpr


def _to_conditions(filters: list[FilterInput]) -> tuple[FilterCondition, ...]:
    conditions: list[FilterCondition] = []
    for item in filters:
        if isinstance(item, FilterExpr):
            conditions.append(condition_from_parts(item.field, item.operator, item.value))
        elif item.strip():
            conditions.append(parse_filter(item))
    return tuple(conditions)


def _normalize_metrics(v: list[str]) -> list[str]:
    seen: set[str] = set()
    metrics: list[str] = []
    for raw in v:
        metric = raw.strip()
        if metric and metric not in seen:
            seen.add(metric)
            metrics.append(metric)
    if not metrics:
        raise ValueError("At least one metric must be selected")
    return metrics


class _ShapingFields(BaseModel):
    filters: list[FilterInput] = Field(
        default_factory=list,
        max_length=32,
        validation_alias=AliasChoices("filters", "whereConditions", "where_conditions"),
    )
    group_by: str | list[str] | None = Field(
        default=None, validation_alias=AliasChoices("group_by", "groupBy")
    )
    order_by: str | None = Field(
        default=None, max_length=128, validation_alias=AliasChoices("order_by", "orderBy")
    )
    limit: int | None = Field(default=None, ge=1)

    def conditions(self) -> tuple[FilterCondition, ...]:
        return _to_conditions(self.filters)

    def group_key(self) -> str | None:
        return select_group_key(self.group_by)

    def order(self) -> OrderBy | None:
        return OrderBy.parse(self.order_by)


class QueryRequest(_ShapingFields):
    data_source: DataSource = Field(validation_alias=AliasChoices("data_source", "dataSource"))
    metrics: list[str] = Field(
        min_length=1,
        max_length=32,
        validation_alias=AliasChoices("metrics", "visualizeFields", "visualize_fields"),
    )
    time_range: str = Field(
        default="last_24h", validation_alias=AliasChoices("time_range", "timeRange")
    )

    @field_validator("metrics")
    @classmethod
    def _dedupe_metrics(cls, v: list[str]) -> list[str]:
        return _normalize_metrics(v)

    @field_validator("time_range")
    @classmethod
    def _known_time_range(cls, v: str) -> str:
        return normalize_time_range(v)

    def to_descriptor(self) -> QueryDescriptor:
        return QueryDescriptor(
            data_source=self.data_source,
            metrics=tuple(self.metrics),
            filters=self.conditions(),
            group_by=self.group_key(),
            order_by=self.order(),
            limit=self.limit,
            time_range=self.time_range,
        )


class PresetRunRequest(_ShapingFields):
    time_range: str | None = Field(
        default=None, validation_alias=AliasChoices("time_range", "timeRange")
    )

    @field_validator("time_range")
    @classmethod
    def _known_time_range(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return normalize_time_range(v)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeSeriesPointRead(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    time: str
    value: float
    latency: float | None = None


class WindowRead(_CamelModel):
    start: str
    end: str


class SummaryRead(_CamelModel):
    total_count: float
    avg_latency: float
    time_range: WindowRead


class QueryResponse(_CamelModel):
    time_series_data: list[TimeSeriesPointRead] = Field(default_factory=list)
    grouped_data: list[dict[str, Any]] = Field(default_factory=list)
    summary: SummaryRead
    columns: list[str] = Field(default_factory=list)
    group_by: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: QueryResult) -> QueryResponse:
        return cls(
            time_series_data=[
                TimeSeriesPointRead(time=p.time, value=p.value, latency=p.latency, **p.extra)
                for p in result.time_series
            ],
            grouped_data=[dict(row) for row in result.grouped],
            summary=SummaryRead(
                total_count=result.summary.total_count,
                avg_latency=result.summary.avg_latency,
                time_range=WindowRead(start=result.summary.start, end=result.summary.end),
            ),
            columns=list(result.columns),
            group_by=result.group_by,
            warnings=list(result.warnings),
        )


class FilterOptionRead(BaseModel):
    label: str
    value: str

    @classmethod
    def from_option(cls, option: FilterOption) -> FilterOptionRead:
        return cls(label=option.label, value=option.value)


class PresetRead(_CamelModel):
    id: str
    category: str
    name: str
    description: str
    data_source: DataSource
    metrics: list[str]
    default_time_range: str
    applicable_filters: list[str]

    @classmethod
    def from_preset(cls, preset: QueryPreset) -> PresetRead:
        return cls(
            id=preset.id,
            category=preset.category,
            name=preset.name,
            description=preset.description,
            data_source=preset.data_source,
            metrics=list(preset.metrics),
            default_time_range=preset.default_time_range,
            applicable_filters=list(preset.applicable_filters),
        )


class TimeRangeOption(BaseModel):
    value: str
    label: str
