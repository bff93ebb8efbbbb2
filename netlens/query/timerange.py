from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from netlens.core.errors import InvalidQueryError
from netlens.models.query import TIME_RANGE_LABELS, TIME_RANGES


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    def contains(self, ts: datetime) -> bool:
        return self.start <= to_utc(ts) < self.end


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    return to_utc(dt).isoformat().replace("+00:00", "Z")


def normalize_time_range(value: str) -> str:
    text = value.strip()
    if text in TIME_RANGES:
        return text
    if text.lower() in TIME_RANGES:
        return text.lower()
    for label, token in TIME_RANGE_LABELS.items():
        if label.lower() == text.lower():
            return token
    raise InvalidQueryError(f"Unknown time range '{value}'")


def resolve_time_range(token: str, *, now: datetime) -> TimeWindow:
    span = TIME_RANGES.get(normalize_time_range(token))
    if span is None or span <= timedelta(0):
        raise InvalidQueryError(f"Time range '{token}' does not resolve to a window")
    end = to_utc(now)
    return TimeWindow(start=end - span, end=end)
