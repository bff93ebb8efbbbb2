from __future__ import annotations

from collections.abc import Callable, Iterable
from operator import attrgetter
from typing import Any

from netlens.models.telemetry import Device, TelemetryRecord

Accessor = Callable[[Any], Any]

FIELD_ALIASES: dict[str, str] = {
    "deviceid": "device_id",
    "device": "device_id",
    "bytes_transferred": "bytes",
    "bytestransferred": "bytes",
    "packets_transferred": "packets",
    "packetstransferred": "packets",
    "port": "destination_port",
    "source": "source_ip",
    "destination": "destination_ip",
    "latency_ms": "latency",
    "bandwidth.inbound": "inbound",
    "bandwidth.outbound": "outbound",
    "bandwidth.total": "total",
    "bandwidth.utilization": "utilization",
    "packetloss": "packet_loss",
    "error_type": "type",
    "errortype": "type",
}

_COMMON_FIELDS: dict[str, Accessor] = {
    "device_id": attrgetter("device_id"),
    "timestamp": attrgetter("timestamp"),
}

_FIELDS_BY_KIND: dict[str, dict[str, Accessor]] = {
    "metric": {
        "cpu": attrgetter("cpu"),
        "memory": attrgetter("memory"),
        "temperature": attrgetter("temperature"),
        "inbound": attrgetter("bandwidth.inbound"),
        "outbound": attrgetter("bandwidth.outbound"),
        "total": attrgetter("bandwidth.total"),
        "utilization": attrgetter("bandwidth.utilization"),
        "packet_loss": attrgetter("packet_loss"),
    },
    "error": {
        "type": attrgetter("type"),
        "severity": attrgetter("severity"),
        "count": attrgetter("count"),
    },
    "traffic": {
        "protocol": attrgetter("protocol"),
        "bytes": attrgetter("bytes"),
        "packets": attrgetter("packets"),
        "flows": attrgetter("flows"),
        "source_ip": attrgetter("source_ip"),
        "destination_ip": attrgetter("destination_ip"),
        "destination_port": attrgetter("destination_port"),
        "latency": attrgetter("latency"),
    },
}

_DEVICE_FIELDS: dict[str, Accessor] = {
    "device_type": attrgetter("type"),
    "type": attrgetter("type"),
    "location": attrgetter("location"),
    "status": attrgetter("status"),
    "device_name": attrgetter("name"),
    "name": attrgetter("name"),
}


def normalize_field(name: str) -> str:
    key = name.strip().lower()
    return FIELD_ALIASES.get(key, key)


def needs_device_directory(kind: str, names: Iterable[str]) -> bool:
    """True when any name only resolves through the device directory for ``kind``."""
    record_fields = _FIELDS_BY_KIND.get(kind, {})
    for name in names:
        key = normalize_field(name)
        if key in _COMMON_FIELDS or key in record_fields:
            continue
        if key in _DEVICE_FIELDS:
            return True
    return False


class FieldResolver:
    """Looks up query field names on telemetry records.

    Record fields win over device-directory attributes, so ``type`` on an
    error record is the error type while on any other record it is the
    owning device's type. Names that resolve to nothing yield ``None``.
    """

    def __init__(self, devices: Iterable[Device] = ()) -> None:
        self._devices = {d.id: d for d in devices}

    def knows(self, kind: str, name: str) -> bool:
        key = normalize_field(name)
        return key in _COMMON_FIELDS or key in _FIELDS_BY_KIND.get(kind, {}) or key in _DEVICE_FIELDS

    def value(self, record: TelemetryRecord, name: str) -> Any:
        key = normalize_field(name)
        accessor = _COMMON_FIELDS.get(key) or _FIELDS_BY_KIND[record.kind].get(key)
        if accessor is not None:
            return accessor(record)

        device_accessor = _DEVICE_FIELDS.get(key)
        if device_accessor is None:
            return None
        device = self._devices.get(record.device_id)
        if device is None:
            return None
        return device_accessor(device)
