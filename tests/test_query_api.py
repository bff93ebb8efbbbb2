from __future__ import annotations

from fastapi.testclient import TestClient

from netlens.api import deps
from netlens.repositories.memory import InMemoryRecordStore
from tests.fakes import FailingRecordStore, ago, error, metric, traffic


def test_root(client: TestClient) -> None:
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"name": "netlens", "status": "ok"}


def test_empty_time_series_query(client: TestClient) -> None:
    resp = client.post(
        "/api/v1/query",
        json={
            "dataSource": "network-flows",
            "metrics": ["COUNT", "AVG(latency)"],
            "filters": [],
            "timeRange": "last_24h",
            "limit": 1000,
        },
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert len(body["timeSeriesData"]) == 24
    assert all(p["value"] == 0 for p in body["timeSeriesData"])
    assert "latency" not in body["timeSeriesData"][0]
    assert body["timeSeriesData"][0]["avg_latency"] == 0
    assert body["groupedData"] == []
    assert body["summary"] == {
        "totalCount": 0,
        "avgLatency": 0,
        "timeRange": {"start": "2024-04-30T12:00:00Z", "end": "2024-05-01T12:00:00Z"},
    }


def test_grouped_query_with_legacy_field_names(
    client: TestClient, store: InMemoryRecordStore
) -> None:
    store.write_records(
        [
            traffic(source_ip="10.0.0.1", bytes=100, latency=10),
            traffic(source_ip="10.0.0.2", bytes=50, latency=30),
            traffic(source_ip="10.0.0.1", bytes=25, protocol="UDP"),
        ]
    )
    resp = client.post(
        "/api/v1/query",
        json={
            "dataSource": "network-flows",
            "visualizeFields": ["bytes", "COUNT"],
            "whereConditions": ['protocol IN ("TCP", "UDP")'],
            "groupBy": ["source_ip", "protocol"],
            "orderBy": "bytes DESC",
            "timeRange": "Last 24 hours",
        },
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["groupBy"] == "source_ip"
    assert body["groupedData"] == [
        {"source_ip": "10.0.0.1", "bytes": 125, "count": 2},
        {"source_ip": "10.0.0.2", "bytes": 50, "count": 1},
    ]
    assert body["summary"]["totalCount"] == 3
    assert body["summary"]["avgLatency"] == 20
    assert body["timeSeriesData"] == []


def test_structured_filters(client: TestClient, store: InMemoryRecordStore) -> None:
    store.write_records([metric("r1", cpu=95), metric("s1", cpu=20), metric("srv1", cpu=99)])
    resp = client.post(
        "/api/v1/query",
        json={
            "data_source": "device-metrics",
            "metrics": ["COUNT"],
            "filters": [
                {"field": "cpu", "operator": ">", "value": 90},
                'type = "router"',
            ],
            "group_by": "device_id",
        },
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["groupedData"] == [{"device_id": "r1", "count": 1}]


def test_unknown_field_returns_warning(client: TestClient, store: InMemoryRecordStore) -> None:
    store.write_records([traffic()])
    resp = client.post(
        "/api/v1/query",
        json={"dataSource": "network-flows", "metrics": ["COUNT"], "filters": ["vlan = 10"]},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["summary"]["totalCount"] == 0
    assert body["warnings"] == ["Unknown field 'vlan' for network-flows"]


def test_invalid_requests_are_rejected(client: TestClient) -> None:
    no_metrics = client.post("/api/v1/query", json={"dataSource": "network-flows", "metrics": []})
    assert no_metrics.status_code == 422

    blank_metrics = client.post(
        "/api/v1/query", json={"dataSource": "network-flows", "metrics": ["  "]}
    )
    assert blank_metrics.status_code == 422

    bad_range = client.post(
        "/api/v1/query",
        json={"dataSource": "network-flows", "metrics": ["COUNT"], "timeRange": "last_2y"},
    )
    assert bad_range.status_code == 422

    bad_source = client.post("/api/v1/query", json={"dataSource": "alerts", "metrics": ["COUNT"]})
    assert bad_source.status_code == 422

    bad_limit = client.post(
        "/api/v1/query",
        json={"dataSource": "network-flows", "metrics": ["COUNT"], "limit": 0},
    )
    assert bad_limit.status_code == 422


def test_store_failure_is_503(client: TestClient) -> None:
    client.app.dependency_overrides[deps.get_record_store] = lambda: FailingRecordStore()
    resp = client.post("/api/v1/query", json={"dataSource": "network-flows", "metrics": ["COUNT"]})
    assert resp.status_code == 503
    assert resp.json()["detail"] == "Record store unavailable"

    health = client.get("/api/v1/records/health")
    assert health.status_code == 503


def test_export_csv(client: TestClient, store: InMemoryRecordStore) -> None:
    store.write_records([error(type="CRC", count=2), error(type="Fragment", count=5)])
    resp = client.post(
        "/api/v1/query/export",
        json={
            "dataSource": "network-errors",
            "metrics": ["error_count"],
            "groupBy": "error_type",
            "orderBy": "error_count DESC",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "attachment" in resp.headers["content-disposition"]
    assert resp.text == "error_type,error_count\nFragment,5\nCRC,2\n"


def test_presets_and_catalogs(client: TestClient, store: InMemoryRecordStore) -> None:
    presets = client.get("/api/v1/query/presets").json()
    assert [p["id"] for p in presets][:2] == ["bandwidth_usage", "network_errors"]
    assert presets[0]["dataSource"] == "device-metrics"
    assert presets[0]["defaultTimeRange"] == "last_24h"

    filters = client.get("/api/v1/query/filters").json()
    assert filters["protocol"][0] == {"label": "HTTP/HTTPS", "value": 'protocol IN ("HTTP", "HTTPS")'}

    ranges = client.get("/api/v1/query/time-ranges").json()
    assert {"value": "last_7d", "label": "Last 7 days"} in ranges

    store.write_records([metric(at=ago(minutes=1), cpu=30), metric(at=ago(minutes=2), cpu=50)])
    resp = client.post("/api/v1/query/presets/device_health")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert len(body["timeSeriesData"]) == 24
    assert body["timeSeriesData"][-1]["value"] == 40
    assert body["timeSeriesData"][-1]["memory"] == 50
    assert body["summary"]["timeRange"]["start"] == "2024-05-01T11:00:00Z"

    grouped = client.post(
        "/api/v1/query/presets/device_health",
        json={"groupBy": "device_id", "timeRange": "last_24h"},
    )
    assert grouped.json()["groupedData"] == [
        {"device_id": "r1", "cpu": 40, "memory": 50, "temperature": 40}
    ]

    missing = client.post("/api/v1/query/presets/nope")
    assert missing.status_code == 404


def test_write_records_and_devices(client: TestClient) -> None:
    resp = client.post(
        "/api/v1/records",
        json={
            "devices": [{"id": "edge-9", "name": "Edge-9", "type": "router", "location": "Edge-1"}],
            "records": [
                {
                    "kind": "traffic",
                    "deviceId": "edge-9",
                    "timestamp": "2024-05-01T11:30:00Z",
                    "protocol": "HTTPS",
                    "bytes": 1200,
                    "packets": 3,
                    "flows": 1,
                },
                {
                    "kind": "error",
                    "device_id": "edge-9",
                    "timestamp": "2024-05-01T11:31:00",
                    "type": "CRC",
                    "severity": "high",
                    "count": 4,
                },
            ],
        },
    )
    assert resp.status_code == 201, resp.text
    assert resp.json() == {"records": 2, "devices": 1}

    devices = client.get("/api/v1/devices").json()
    assert any(d["id"] == "edge-9" and d["location"] == "Edge-1" for d in devices)

    query = client.post(
        "/api/v1/query",
        json={
            "dataSource": "network-flows",
            "metrics": ["bytes"],
            "filters": ['location LIKE "Edge%"'],
            "groupBy": "device_id",
        },
    )
    assert query.json()["groupedData"] == [{"device_id": "edge-9", "bytes": 1200}]


def test_write_rejects_unknown_kind(client: TestClient) -> None:
    resp = client.post(
        "/api/v1/records",
        json={"records": [{"kind": "alert", "deviceId": "r1", "timestamp": "2024-05-01T11:00:00Z"}]},
    )
    assert resp.status_code == 422


def test_write_rejects_unknown_device_type_or_status(client: TestClient) -> None:
    device = {"id": "x1", "name": "X", "type": "router", "location": "Lab"}
    for bad in ({"type": "toaster"}, {"status": "retired"}):
        resp = client.post("/api/v1/records", json={"devices": [{**device, **bad}]})
        assert resp.status_code == 422, bad


def test_metric_utilization_round_trips_through_queries(client: TestClient) -> None:
    resp = client.post(
        "/api/v1/records",
        json={
            "records": [
                {
                    "kind": "metric",
                    "deviceId": "r1",
                    "timestamp": "2024-05-01T11:40:00Z",
                    "cpu": 10,
                    "memory": 20,
                    "bandwidth": {"inbound": 5, "outbound": 5, "utilization": 93},
                    "temperature": 40,
                }
            ]
        },
    )
    assert resp.status_code == 201, resp.text

    result = client.post(
        "/api/v1/query/presets/bandwidth_usage",
        json={"filters": ["utilization > 90"], "groupBy": "device_id"},
    ).json()
    assert result["groupedData"] == [{"device_id": "r1", "inbound": 5, "outbound": 5, "total": 10}]
    assert result["warnings"] == []


def test_preset_filter_options(client: TestClient) -> None:
    resp = client.get("/api/v1/query/presets/device_health/filters")
    assert resp.status_code == 200
    body = resp.json()
    assert list(body) == ["device_type", "location", "status"]
    assert body["status"][2] == {"label": "Maintenance", "value": 'status = "maintenance"'}

    assert client.get("/api/v1/query/presets/nope/filters").status_code == 404


    assert resp.status_code == 422


def test_stats_endpoint(client: TestClient, store: InMemoryRecordStore) -> None:
    store.write_records([metric(inbound=10, outbound=20, packet_loss=0.25), traffic(latency=7)])
    resp = client.get("/api/v1/stats", params={"time_range": "last_1h"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["bandwidth"]["peak"] == 30
    assert body["latency"] == {"min": 7, "max": 7, "average": 7, "unit": "ms"}
    assert body["packetLoss"]["average"] == 0.25
    assert body["devices"][0]["deviceId"] == "r1"

    bad = client.get("/api/v1/stats", params={"time_range": "forever"})
    assert bad.status_code == 400
