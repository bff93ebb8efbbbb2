from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Union

ErrorType = Literal["CRC", "Fragment", "Collision"]
SeverityLevel = Literal["low", "medium", "high"]
NetworkProtocol = Literal["HTTP", "HTTPS", "TCP", "UDP", "ICMP"]
DeviceType = Literal["router", "switch", "firewall", "server"]
DeviceStatus = Literal["active", "inactive", "maintenance"]

ERROR_TYPES: tuple[str, ...] = ("CRC", "Fragment", "Collision")
SEVERITY_LEVELS: tuple[str, ...] = ("low", "medium", "high")
PROTOCOLS: tuple[str, ...] = ("HTTP", "HTTPS", "TCP", "UDP", "ICMP")


@dataclass(frozen=True)
class Device:
    id: str
    name: str
    type: str
    location: str
    status: str = "active"


@dataclass(frozen=True)
class Bandwidth:
    inbound: float
    outbound: float
    utilization: float | None = None

    @property
    def total(self) -> float:
        return self.inbound + self.outbound


@dataclass(frozen=True)
class MetricRecord:
    device_id: str
    timestamp: datetime
    cpu: float
    memory: float
    bandwidth: Bandwidth
    temperature: float
    packet_loss: float | None = None
    kind: Literal["metric"] = field(default="metric", init=False)


@dataclass(frozen=True)
class ErrorRecord:
    device_id: str
    timestamp: datetime
    type: ErrorType
    severity: SeverityLevel
    count: int
    kind: Literal["error"] = field(default="error", init=False)


@dataclass(frozen=True)
class TrafficRecord:
    device_id: str
    timestamp: datetime
    protocol: NetworkProtocol
    bytes: int
    packets: int
    flows: int
    source_ip: str | None = None
    destination_ip: str | None = None
    destination_port: int | None = None
    latency: float | None = None
    kind: Literal["traffic"] = field(default="traffic", init=False)


TelemetryRecord = Union[MetricRecord, ErrorRecord, TrafficRecord]
