from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from netlens.models.query import DataSource
from netlens.models.telemetry import TelemetryRecord
from netlens.query.aggregator import aggregate, parse_metric
from netlens.query.bucketing import group_records, time_buckets
from netlens.query.evaluator import QueryEvaluator
from netlens.query.fields import FieldResolver
from netlens.query.timerange import TimeWindow, normalize_time_range, to_iso
from netlens.repositories.base import RecordStore

PACKET_LOSS_THRESHOLD = 2.0


@dataclass(frozen=True)
class BandwidthStats:
    peak: float
    average: float
    current: float
    unit: str = "Mbps"


@dataclass(frozen=True)
class LatencyStats:
    min: float
    max: float
    average: float
    unit: str = "ms"


@dataclass(frozen=True)
class PacketLossStats:
    average: float
    threshold: float = PACKET_LOSS_THRESHOLD
    unit: str = "%"


@dataclass(frozen=True)
class ErrorStats:
    total: int
    crc: int
    fragments: int
    collisions: int


@dataclass(frozen=True)
class DeviceHealth:
    device_id: str
    name: str | None
    cpu: float
    memory: float
    temperature: float
    samples: int


@dataclass(frozen=True)
class NetworkStats:
    time_range: str
    start: str
    end: str
    bandwidth: BandwidthStats
    latency: LatencyStats
    packet_loss: PacketLossStats
    errors: ErrorStats
    devices: list[DeviceHealth]


def _metric(records: Sequence[TelemetryRecord], expression: str, resolver: FieldResolver) -> float:
    return aggregate(records, parse_metric(expression), resolver)


class NetworkStatsService:
    """Dashboard rollups computed with the same bucketing and reductions as queries."""

    def __init__(self, *, store: RecordStore, evaluator: QueryEvaluator) -> None:
        self._store = store
        self._evaluator = evaluator

    def summarize(self, time_range: str = "last_24h") -> NetworkStats:
        token = normalize_time_range(time_range)
        window = self._evaluator.resolve_window(token)
        metrics = self._fetch(DataSource.DEVICE_METRICS, window)
        # Device names are only needed for the health rows.
        resolver = FieldResolver(self._store.list_devices() if metrics else ())
        flows = self._fetch(DataSource.NETWORK_FLOWS, window)
        errors = self._fetch(DataSource.NETWORK_ERRORS, window)

        return NetworkStats(
            time_range=token,
            start=to_iso(window.start),
            end=to_iso(window.end),
            bandwidth=self._bandwidth(metrics, window, resolver),
            latency=self._latency(flows, resolver),
            packet_loss=PacketLossStats(
                average=round(_metric(metrics, "packet_loss", resolver), 2)
            ),
            errors=self._errors(errors, resolver),
            devices=self._device_health(metrics, resolver),
        )

    def _fetch(self, data_source: DataSource, window: TimeWindow) -> list[TelemetryRecord]:
        records = self._store.fetch_records(data_source, start=window.start, stop=window.end)
        return [r for r in records if window.contains(r.timestamp)]

    def _bandwidth(
        self, records: Sequence[TelemetryRecord], window: TimeWindow, resolver: FieldResolver
    ) -> BandwidthStats:
        totals = [
            _metric(bucket.records, "total", resolver)
            for bucket in time_buckets(records, window, self._evaluator.bucket_count)
            if bucket.records
        ]
        if not totals:
            return BandwidthStats(peak=0, average=0, current=0)
        return BandwidthStats(
            peak=max(totals),
            average=round(sum(totals) / len(totals), 2),
            current=totals[-1],
        )

    @staticmethod
    def _latency(records: Sequence[TelemetryRecord], resolver: FieldResolver) -> LatencyStats:
        return LatencyStats(
            min=_metric(records, "MIN(latency)", resolver),
            max=_metric(records, "MAX(latency)", resolver),
            average=round(_metric(records, "latency", resolver), 2),
        )

    @staticmethod
    def _errors(records: Sequence[TelemetryRecord], resolver: FieldResolver) -> ErrorStats:
        crc = int(_metric(records, "crc_errors", resolver))
        fragments = int(_metric(records, "fragments", resolver))
        collisions = int(_metric(records, "collisions", resolver))
        return ErrorStats(
            total=int(_metric(records, "error_count", resolver)),
            crc=crc,
            fragments=fragments,
            collisions=collisions,
        )

    @staticmethod
    def _device_health(
        records: Sequence[TelemetryRecord], resolver: FieldResolver
    ) -> list[DeviceHealth]:
        rows = [
            DeviceHealth(
                device_id=group.key,
                name=resolver.value(group.records[0], "device_name"),
                cpu=round(_metric(group.records, "cpu", resolver), 2),
                memory=round(_metric(group.records, "memory", resolver), 2),
                temperature=round(_metric(group.records, "temperature", resolver), 2),
                samples=len(group.records),
            )
            for group in group_records(records, "device_id", resolver)
        ]
        rows.sort(key=lambda r: r.device_id)
        return rows
