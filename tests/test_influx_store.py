from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest

from netlens.core.errors import RecordStoreError
from netlens.models.query import DataSource
from netlens.models.telemetry import ErrorRecord, MetricRecord, TrafficRecord
from netlens.repositories.influx import (
    InfluxRecordStore,
    device_from_row,
    flux_str,
    record_from_row,
)
from tests.fakes import DEVICES, NOW, error, metric, traffic


class _Row:
    def __init__(self, values: dict[str, Any]) -> None:
        self.values = values

    def get_time(self):
        return self.values.get("_time")


class _Table:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self.records = [_Row(r) for r in rows]


class _QueryApi:
    def __init__(self, client: FakeInfluxClient) -> None:
        self._client = client

    def query(self, *, query: str, org: str):
        self._client.queries.append(query)
        if self._client.fail:
            raise ConnectionError("influx down")
        return [_Table(self._client.rows)]


class _WriteApi:
    def __init__(self, client: FakeInfluxClient) -> None:
        self._client = client

    def write(self, *, bucket: str, org: str, record):
        if self._client.fail:
            raise ConnectionError("influx down")
        self._client.written.extend(record)


class FakeInfluxClient:
    def __init__(self, rows: list[dict[str, Any]] | None = None, *, fail: bool = False) -> None:
        self.rows = rows or []
        self.fail = fail
        self.queries: list[str] = []
        self.written: list[Any] = []

    def ping(self) -> bool:
        return not self.fail

    def query_api(self) -> _QueryApi:
        return _QueryApi(self)

    def write_api(self, write_options=None) -> _WriteApi:
        return _WriteApi(self)


def _store(client: FakeInfluxClient) -> InfluxRecordStore:
    return InfluxRecordStore(
        client=client,
        org="test",
        bucket="telemetry",
        measurements={"metric": "device_metrics", "error": "network_errors", "traffic": "network_flows"},
        device_measurement="network_devices",
    )


def test_flux_str_escapes_quotes() -> None:
    assert flux_str('a"b\\c') == '"a\\"b\\\\c"'


def test_fetch_maps_pivoted_rows() -> None:
    ts = NOW - timedelta(minutes=5)
    client = FakeInfluxClient(
        [
            {"_time": ts, "device_id": "r1", "protocol": "TCP", "bytes": 10, "packets": 2,
             "flows": 1, "destination_port": 443.0, "latency": 12},
            {"_time": ts, "protocol": "TCP", "bytes": 1, "packets": 1, "flows": 1},
        ]
    )
    records = _store(client).fetch_records(
        DataSource.NETWORK_FLOWS, start=NOW - timedelta(hours=1), stop=NOW
    )

    assert records == [
        TrafficRecord(
            device_id="r1", timestamp=ts, protocol="TCP", bytes=10, packets=2, flows=1,
            destination_port=443, latency=12.0,
        )
    ]
    query = client.queries[0]
    assert 'from(bucket: "telemetry")' in query
    assert 'r["_measurement"] == "network_flows"' in query
    assert 'stop: time(v: "2024-05-01T12:00:00Z")' in query


def test_row_mapping_per_kind() -> None:
    ts = NOW
    m = record_from_row(
        "metric",
        {"device_id": "s1", "cpu": 1, "memory": 2, "inbound": 3, "outbound": 4, "temperature": 5},
        ts,
    )
    assert isinstance(m, MetricRecord)
    assert m.bandwidth.total == 7
    assert m.packet_loss is None
    assert m.bandwidth.utilization is None

    m = record_from_row(
        "metric",
        {
            "device_id": "s1",
            "cpu": 1,
            "memory": 2,
            "inbound": 3,
            "outbound": 4,
            "temperature": 5,
            "utilization": 81.5,
        },
        ts,
    )
    assert m.bandwidth.utilization == 81.5

    e = record_from_row("error", {"device_id": "s1", "type": "CRC", "severity": "low", "count": 3.0}, ts)
    assert isinstance(e, ErrorRecord)
    assert e.count == 3

    assert record_from_row("metric", {"device_id": "s1", "cpu": 1}, ts) is None
    assert record_from_row("error", {"device_id": "s1", "type": "CRC"}, None) is None


def test_device_rows() -> None:
    device = device_from_row({"device_id": "r1", "name": "Edge", "type": "router", "location": "DC"})
    assert device is not None
    assert (device.id, device.name, device.status) == ("r1", "Edge", "active")
    assert device_from_row({"name": "x"}) is None


def test_write_builds_points() -> None:
    client = FakeInfluxClient()
    store = _store(client)
    store.write_records(
        [metric(packet_loss=0.5, utilization=70), error(), traffic(source_ip="10.0.0.1", latency=3)]
    )
    store.write_devices(DEVICES)

    lines = [p.to_line_protocol() for p in client.written]
    assert len(lines) == 3 + len(DEVICES)
    assert lines[0].startswith("device_metrics,device_id=r1 ")
    assert "packet_loss=0.5" in lines[0]
    assert "utilization=70" in lines[0]
    assert lines[1].startswith("network_errors,device_id=r1,severity=low,type=CRC count=1i")
    assert "source_ip=10.0.0.1" in lines[2]
    assert lines[3].startswith("network_devices,device_id=r1,location=DC-North,type=router ")


def test_driver_failures_become_record_store_errors() -> None:
    store = _store(FakeInfluxClient(fail=True))
    with pytest.raises(RecordStoreError):
        store.fetch_records(DataSource.DEVICE_METRICS, start=NOW - timedelta(hours=1), stop=NOW)
    with pytest.raises(RecordStoreError):
        store.list_devices()
    with pytest.raises(RecordStoreError):
        store.write_records([metric()])
    with pytest.raises(RecordStoreError):
        store.ping()
