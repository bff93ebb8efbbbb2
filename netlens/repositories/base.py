from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from netlens.models.query import DataSource
from netlens.models.telemetry import Device, TelemetryRecord


class RecordStore(Protocol):
    def ping(self) -> None: ...

    def fetch_records(
        self, data_source: DataSource, *, start: datetime, stop: datetime
    ) -> list[TelemetryRecord]: ...

    def list_devices(self) -> list[Device]: ...

    def write_records(self, records: Sequence[TelemetryRecord]) -> None: ...

    def write_devices(self, devices: Sequence[Device]) -> None: ...
