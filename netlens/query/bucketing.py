from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from netlens.core.errors import InvalidQueryError
from netlens.models.telemetry import TelemetryRecord
from netlens.query.fields import FieldResolver
from netlens.query.timerange import TimeWindow, to_utc

DEFAULT_BUCKET_COUNT = 24


@dataclass(frozen=True)
class TimeBucket:
    start: datetime
    end: datetime
    records: tuple[TelemetryRecord, ...]


@dataclass(frozen=True)
class Group:
    key: Any
    records: tuple[TelemetryRecord, ...]


def bucket_width(window: TimeWindow, count: int) -> timedelta:
    if count < 1:
        raise InvalidQueryError("Bucket count must be at least 1")
    width = window.span / count
    if width <= timedelta(0):
        raise InvalidQueryError("Time window is empty")
    return width


def time_buckets(
    records: Iterable[TelemetryRecord],
    window: TimeWindow,
    count: int = DEFAULT_BUCKET_COUNT,
) -> list[TimeBucket]:
    """Split ``window`` into ``count`` equal half-open buckets.

    Every bucket is emitted, empty or not. A timestamp on a boundary belongs
    to the bucket starting there; records outside the window are dropped.
    """
    width = bucket_width(window, count)
    slots: list[list[TelemetryRecord]] = [[] for _ in range(count)]
    for record in records:
        ts = to_utc(record.timestamp)
        if not window.contains(ts):
            continue
        # timedelta division rounds to microseconds, so the last slot can overflow by one.
        index = min((ts - window.start) // width, count - 1)
        slots[index].append(record)

    buckets: list[TimeBucket] = []
    for i, slot in enumerate(slots):
        start = window.start + width * i
        end = window.end if i == count - 1 else window.start + width * (i + 1)
        buckets.append(TimeBucket(start=start, end=end, records=tuple(slot)))
    return buckets


def select_group_key(group_by: str | Sequence[str] | None) -> str | None:
    if group_by is None:
        return None
    if isinstance(group_by, str):
        key = group_by.strip()
        return key or None
    for entry in group_by:
        if entry and entry.strip():
            return entry.strip()
    return None


def group_records(
    records: Iterable[TelemetryRecord],
    key: str,
    resolver: FieldResolver,
) -> list[Group]:
    """Partition records by the value of ``key``, in first-seen order."""
    partitions: dict[Any, list[TelemetryRecord]] = {}
    for record in records:
        value = resolver.value(record, key)
        if value is None:
            continue
        partitions.setdefault(value, []).append(record)
    return [Group(key=k, records=tuple(v)) for k, v in partitions.items()]
