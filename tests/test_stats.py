from __future__ import annotations

import pytest

from netlens.core.errors import RecordStoreError
from netlens.query.evaluator import QueryEvaluator
from netlens.repositories.memory import InMemoryRecordStore
from netlens.services.stats import NetworkStatsService
from tests.fakes import DEVICES, CountingRecordStore, FailingRecordStore, ago, error, metric, traffic


def test_empty_store_yields_zeros(evaluator: QueryEvaluator, store: InMemoryRecordStore) -> None:
    stats = NetworkStatsService(store=store, evaluator=evaluator).summarize("last_24h")
    assert stats.bandwidth.peak == 0
    assert stats.bandwidth.unit == "Mbps"
    assert stats.latency.average == 0
    assert stats.packet_loss.average == 0
    assert stats.packet_loss.threshold == 2.0
    assert stats.errors.total == 0
    assert stats.devices == []
    assert stats.start == "2024-04-30T12:00:00Z"


def test_rollups(evaluator: QueryEvaluator, store: InMemoryRecordStore) -> None:
    store.write_records(
        [
            metric("r1", at=ago(minutes=10), inbound=100, outbound=100, cpu=20, packet_loss=1.0),
            metric("s1", at=ago(minutes=20), inbound=50, outbound=50, cpu=40, packet_loss=2.0),
            metric("r1", at=ago(hours=5, minutes=30), inbound=400, outbound=400, cpu=30),
            traffic(latency=10),
            traffic(latency=25),
            traffic(),
            error(type="CRC", count=3),
            error(type="Fragment", count=2),
            error(type="Collision", count=1),
            error(type="CRC", count=4),
        ]
    )
    stats = NetworkStatsService(store=store, evaluator=evaluator).summarize("last_24h")

    assert stats.bandwidth.peak == 800
    assert stats.bandwidth.current == 300
    assert stats.bandwidth.average == 550
    assert (stats.latency.min, stats.latency.max, stats.latency.average) == (10, 25, 17.5)
    assert stats.packet_loss.average == 1.5
    assert (stats.errors.total, stats.errors.crc, stats.errors.fragments, stats.errors.collisions) == (
        10,
        7,
        2,
        1,
    )

    health = {d.device_id: d for d in stats.devices}
    assert list(health) == ["r1", "s1"]
    assert health["r1"].cpu == 25
    assert health["r1"].samples == 2
    assert health["r1"].name == "Router-DC-North"


def test_store_failure_propagates(evaluator: QueryEvaluator) -> None:
    service = NetworkStatsService(store=FailingRecordStore(), evaluator=evaluator)
    with pytest.raises(RecordStoreError):
        service.summarize()


def test_time_range_label_is_normalized(evaluator: QueryEvaluator, store: InMemoryRecordStore) -> None:
    stats = NetworkStatsService(store=store, evaluator=evaluator).summarize("Last hour")
    assert stats.time_range == "last_1h"
    assert stats.start == "2024-05-01T11:00:00Z"


def test_device_directory_read_only_for_health_rows(evaluator: QueryEvaluator) -> None:
    store = CountingRecordStore(devices=DEVICES)
    store.write_records([traffic(latency=5), error()])
    service = NetworkStatsService(store=store, evaluator=evaluator)

    service.summarize()
    assert store.fetch_calls == 3
    assert store.list_devices_calls == 0

    store.write_records([metric("s1")])
    stats = service.summarize()
    assert store.list_devices_calls == 1
    assert stats.devices[0].name == "Switch-Core-1"
