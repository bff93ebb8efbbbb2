from __future__ import annotations

import threading
from collections.abc import Sequence
from datetime import datetime

from netlens.models.query import DataSource
from netlens.models.telemetry import Device, TelemetryRecord
from netlens.query.timerange import to_utc


class InMemoryRecordStore:
    def __init__(
        self,
        *,
        records: Sequence[TelemetryRecord] = (),
        devices: Sequence[Device] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, list[TelemetryRecord]] = {
            "metric": [],
            "error": [],
            "traffic": [],
        }
        self._devices: dict[str, Device] = {}
        self.write_devices(devices)
        self.write_records(records)

    def ping(self) -> None:
        return None

    def write_records(self, records: Sequence[TelemetryRecord]) -> None:
        with self._lock:
            for record in records:
                self._records[record.kind].append(record)

    def write_devices(self, devices: Sequence[Device]) -> None:
        with self._lock:
            for device in devices:
                self._devices[device.id] = device

    def fetch_records(
        self, data_source: DataSource, *, start: datetime, stop: datetime
    ) -> list[TelemetryRecord]:
        start, stop = to_utc(start), to_utc(stop)
        with self._lock:
            rows = list(self._records[data_source.record_kind])
        selected = [r for r in rows if start <= to_utc(r.timestamp) < stop]
        selected.sort(key=lambda r: to_utc(r.timestamp))
        return selected

    def list_devices(self) -> list[Device]:
        with self._lock:
            devices = list(self._devices.values())
        devices.sort(key=lambda d: d.id)
        return devices

    def count(self) -> int:
        with self._lock:
            return sum(len(rows) for rows in self._records.values())
