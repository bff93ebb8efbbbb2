from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta

from netlens.models.telemetry import (
    ERROR_TYPES,
    PROTOCOLS,
    SEVERITY_LEVELS,
    Bandwidth,
    Device,
    ErrorRecord,
    MetricRecord,
    TrafficRecord,
)
from netlens.query.timerange import to_utc
from netlens.repositories.base import RecordStore

logger = logging.getLogger(__name__)

DEVICES: tuple[Device, ...] = (
    Device(id="r1", name="Router-DC-North", type="router", location="DC-North"),
    Device(id="r2", name="Router-DC-South", type="router", location="DC-South"),
    Device(id="s1", name="Switch-Core-1", type="switch", location="DC-North"),
    Device(id="f1", name="Firewall-Edge", type="firewall", location="DC-North"),
    Device(id="srv1", name="Server-App-1", type="server", location="DC-South"),
)

_ADDRESS_POOL = (
    "10.0.0.5",
    "10.0.0.12",
    "10.0.1.20",
    "192.168.1.10",
    "192.168.1.42",
    "172.16.4.2",
)
_PORTS = (80, 443, 53, 22)
_ERROR_PROBABILITY = 0.3


@dataclass(frozen=True)
class SyntheticDataset:
    devices: tuple[Device, ...]
    metrics: tuple[MetricRecord, ...]
    errors: tuple[ErrorRecord, ...]
    traffic: tuple[TrafficRecord, ...]

    @property
    def records(self) -> list[MetricRecord | ErrorRecord | TrafficRecord]:
        return [*self.metrics, *self.errors, *self.traffic]


def _business_hours_factor(ts: datetime) -> float:
    return 1.5 if 9 <= ts.hour <= 17 else 1.0


def generate_network_data(
    *,
    now: datetime,
    hours: int = 24,
    seed: int | None = None,
    devices: tuple[Device, ...] = DEVICES,
) -> SyntheticDataset:
    """Hourly metric, error and flow records per device, ending just before ``now``.

    A fixed ``seed`` and ``now`` reproduce the same dataset.
    """
    rng = random.Random(seed)
    end = to_utc(now).replace(minute=0, second=0, microsecond=0)
    metrics: list[MetricRecord] = []
    errors: list[ErrorRecord] = []
    traffic: list[TrafficRecord] = []

    for device in devices:
        for offset in range(hours, 0, -1):
            hour_start = end - timedelta(hours=offset)
            ts = hour_start + timedelta(seconds=rng.randint(0, 3599))

            metrics.append(
                MetricRecord(
                    device_id=device.id,
                    timestamp=ts,
                    cpu=rng.randint(10, 90),
                    memory=rng.randint(20, 85),
                    bandwidth=Bandwidth(
                        inbound=rng.randint(100, 1000),
                        outbound=rng.randint(100, 1000),
                        utilization=rng.randint(0, 99),
                    ),
                    temperature=rng.randint(35, 75),
                    packet_loss=round(rng.uniform(0, 2), 2),
                )
            )

            if rng.random() < _ERROR_PROBABILITY:
                errors.append(
                    ErrorRecord(
                        device_id=device.id,
                        timestamp=ts,
                        type=rng.choice(ERROR_TYPES),
                        severity=rng.choice(SEVERITY_LEVELS),
                        count=rng.randint(1, 10),
                    )
                )

            traffic.append(
                TrafficRecord(
                    device_id=device.id,
                    timestamp=ts,
                    protocol=rng.choice(PROTOCOLS),
                    bytes=int(rng.random() * 1000 * _business_hours_factor(ts)),
                    packets=rng.randint(100, 1000),
                    flows=rng.randint(10, 100),
                    source_ip=rng.choice(_ADDRESS_POOL),
                    destination_ip=rng.choice(_ADDRESS_POOL),
                    destination_port=rng.choice(_PORTS),
                    latency=rng.randint(20, 50),
                )
            )

    return SyntheticDataset(
        devices=tuple(devices),
        metrics=tuple(metrics),
        errors=tuple(errors),
        traffic=tuple(traffic),
    )


def seed_store(store: RecordStore, dataset: SyntheticDataset) -> int:
    store.write_devices(dataset.devices)
    records = dataset.records
    store.write_records(records)
    logger.info(
        "Seeded record store with %d synthetic records for %d devices",
        len(records),
        len(dataset.devices),
    )
    return len(records)
