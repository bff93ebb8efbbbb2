from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from netlens.core.config import Settings
from netlens.core.errors import RecordStoreError
from netlens.models.query import DataSource
from netlens.models.telemetry import (
    Bandwidth,
    Device,
    ErrorRecord,
    MetricRecord,
    TelemetryRecord,
    TrafficRecord,
)
from netlens.query.timerange import to_iso, to_utc


def flux_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def create_influx_client(settings: Settings) -> InfluxDBClient:
    return InfluxDBClient(
        url=str(settings.influx_url),
        token=settings.influx_token,
        org=settings.influx_org,
        timeout=settings.influx_timeout_ms,
    )


class InfluxRecordStore:
    def __init__(
        self,
        *,
        client: InfluxDBClient,
        org: str,
        bucket: str,
        measurements: dict[str, str],
        device_measurement: str,
    ) -> None:
        self._client = client
        self._org = org
        self._bucket = bucket
        self._measurements = measurements
        self._device_measurement = device_measurement

    @classmethod
    def from_settings(cls, settings: Settings, client: InfluxDBClient) -> InfluxRecordStore:
        return cls(
            client=client,
            org=settings.influx_org or "",
            bucket=settings.influx_bucket or "",
            measurements={
                "metric": settings.influx_metric_measurement,
                "error": settings.influx_error_measurement,
                "traffic": settings.influx_traffic_measurement,
            },
            device_measurement=settings.influx_device_measurement,
        )

    def ping(self) -> None:
        try:
            ok = self._client.ping()
        except Exception as e:  # noqa: BLE001 - normalize driver failures
            raise RecordStoreError("InfluxDB unavailable") from e
        if not ok:
            raise RecordStoreError("InfluxDB unavailable")

    def fetch_records(
        self, data_source: DataSource, *, start: datetime, stop: datetime
    ) -> list[TelemetryRecord]:
        kind = data_source.record_kind
        query = f"""
from(bucket: {flux_str(self._bucket)})
  |> range(start: time(v: {flux_str(to_iso(start))}), stop: time(v: {flux_str(to_iso(stop))}))
  |> filter(fn: (r) => r["_measurement"] == {flux_str(self._measurements[kind])})
  |> pivot(rowKey: ["_time"], columnKey: ["_field"], valueColumn: "_value")
  |> group()
  |> sort(columns: ["_time"])
"""
        results: list[TelemetryRecord] = []
        for table in self._query(query):
            for row in table.records:
                record = record_from_row(kind, row.values, row.get_time())
                if record is not None:
                    results.append(record)
        return results

    def list_devices(self) -> list[Device]:
        query = f"""
from(bucket: {flux_str(self._bucket)})
  |> range(start: 0)
  |> filter(fn: (r) => r["_measurement"] == {flux_str(self._device_measurement)})
  |> last()
  |> pivot(rowKey: ["_time"], columnKey: ["_field"], valueColumn: "_value")
  |> group()
  |> sort(columns: ["device_id"])
"""
        devices: list[Device] = []
        for table in self._query(query):
            for row in table.records:
                device = device_from_row(row.values)
                if device is not None:
                    devices.append(device)
        return devices

    def write_records(self, records: Sequence[TelemetryRecord]) -> None:
        points = [self._point(r) for r in records]
        self._write(points)

    def write_devices(self, devices: Sequence[Device]) -> None:
        points = [
            Point(self._device_measurement)
            .tag("device_id", d.id)
            .tag("type", d.type)
            .tag("location", d.location)
            .field("name", d.name)
            .field("status", d.status)
            for d in devices
        ]
        self._write(points)

    def _point(self, record: TelemetryRecord) -> Point:
        point = Point(self._measurements[record.kind]).tag("device_id", record.device_id)
        if isinstance(record, MetricRecord):
            point = (
                point.field("cpu", float(record.cpu))
                .field("memory", float(record.memory))
                .field("inbound", float(record.bandwidth.inbound))
                .field("outbound", float(record.bandwidth.outbound))
                .field("temperature", float(record.temperature))
            )
            if record.bandwidth.utilization is not None:
                point = point.field("utilization", float(record.bandwidth.utilization))
            if record.packet_loss is not None:
                point = point.field("packet_loss", float(record.packet_loss))
        elif isinstance(record, ErrorRecord):
            point = (
                point.tag("type", record.type)
                .tag("severity", record.severity)
                .field("count", int(record.count))
            )
        else:
            point = (
                point.tag("protocol", record.protocol)
                .field("bytes", int(record.bytes))
                .field("packets", int(record.packets))
                .field("flows", int(record.flows))
            )
            for tag in ("source_ip", "destination_ip"):
                value = getattr(record, tag)
                if value is not None:
                    point = point.tag(tag, value)
            if record.destination_port is not None:
                point = point.field("destination_port", int(record.destination_port))
            if record.latency is not None:
                point = point.field("latency", float(record.latency))
        return point.time(to_utc(record.timestamp), WritePrecision.NS)

    def _query(self, query: str) -> list[Any]:
        try:
            return self._client.query_api().query(query=query, org=self._org)
        except Exception as e:  # noqa: BLE001 - normalize driver failures
            raise RecordStoreError("InfluxDB query failed") from e

    def _write(self, points: list[Point]) -> None:
        if not points:
            return
        try:
            write_api = self._client.write_api(write_options=SYNCHRONOUS)
            write_api.write(bucket=self._bucket, org=self._org, record=points)
        except Exception as e:  # noqa: BLE001 - normalize driver failures
            raise RecordStoreError("InfluxDB write failed") from e


def record_from_row(
    kind: str, values: dict[str, Any], timestamp: datetime | None
) -> TelemetryRecord | None:
    device_id = values.get("device_id")
    if not isinstance(device_id, str) or timestamp is None:
        return None
    try:
        if kind == "metric":
            return MetricRecord(
                device_id=device_id,
                timestamp=to_utc(timestamp),
                cpu=float(values["cpu"]),
                memory=float(values["memory"]),
                bandwidth=Bandwidth(
                    inbound=float(values["inbound"]),
                    outbound=float(values["outbound"]),
                    utilization=_float_or_none(values.get("utilization")),
                ),
                temperature=float(values["temperature"]),
                packet_loss=_float_or_none(values.get("packet_loss")),
            )
        if kind == "error":
            return ErrorRecord(
                device_id=device_id,
                timestamp=to_utc(timestamp),
                type=values["type"],
                severity=values["severity"],
                count=int(values["count"]),
            )
        if kind == "traffic":
            port = values.get("destination_port")
            return TrafficRecord(
                device_id=device_id,
                timestamp=to_utc(timestamp),
                protocol=values["protocol"],
                bytes=int(values["bytes"]),
                packets=int(values["packets"]),
                flows=int(values["flows"]),
                source_ip=values.get("source_ip"),
                destination_ip=values.get("destination_ip"),
                destination_port=int(port) if port is not None else None,
                latency=_float_or_none(values.get("latency")),
            )
    except (KeyError, TypeError, ValueError):
        return None
    return None


def device_from_row(values: dict[str, Any]) -> Device | None:
    device_id = values.get("device_id")
    if not isinstance(device_id, str):
        return None
    return Device(
        id=device_id,
        name=str(values.get("name") or device_id),
        type=str(values.get("type") or "unknown"),
        location=str(values.get("location") or "unknown"),
        status=str(values.get("status") or "active"),
    )


def _float_or_none(v: Any) -> float | None:
    try:
        if v is None:
            return None
        return float(v)
    except (TypeError, ValueError):
        return None
