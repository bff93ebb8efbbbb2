from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from netlens.models.telemetry import (
    Bandwidth,
    Device,
    DeviceStatus,
    DeviceType,
    ErrorRecord,
    ErrorType,
    MetricRecord,
    NetworkProtocol,
    SeverityLevel,
    TelemetryRecord,
    TrafficRecord,
)

DEVICE_ID_PATTERN = r"^[a-zA-Z0-9][a-zA-Z0-9:_.-]{0,63}$"

DeviceId = Annotated[str, Field(pattern=DEVICE_ID_PATTERN)]


class _RecordIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    device_id: DeviceId
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _timestamp_to_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class BandwidthIn(BaseModel):
    inbound: float = Field(ge=0)
    outbound: float = Field(ge=0)
    utilization: float | None = Field(default=None, ge=0, le=100)


class MetricRecordIn(_RecordIn):
    kind: Literal["metric"] = "metric"
    cpu: float = Field(ge=0, le=100)
    memory: float = Field(ge=0, le=100)
    bandwidth: BandwidthIn
    temperature: float
    packet_loss: float | None = Field(default=None, ge=0, le=100)

    @field_validator("temperature")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("temperature must be a finite number")
        return v

    def to_record(self) -> MetricRecord:
        return MetricRecord(
            device_id=self.device_id,
            timestamp=self.timestamp,
            cpu=self.cpu,
            memory=self.memory,
            bandwidth=Bandwidth(
                inbound=self.bandwidth.inbound,
                outbound=self.bandwidth.outbound,
                utilization=self.bandwidth.utilization,
            ),
            temperature=self.temperature,
            packet_loss=self.packet_loss,
        )


class ErrorRecordIn(_RecordIn):
    kind: Literal["error"] = "error"
    type: ErrorType
    severity: SeverityLevel
    count: int = Field(ge=0)

    def to_record(self) -> ErrorRecord:
        return ErrorRecord(
            device_id=self.device_id,
            timestamp=self.timestamp,
            type=self.type,
            severity=self.severity,
            count=self.count,
        )


class TrafficRecordIn(_RecordIn):
    kind: Literal["traffic"] = "traffic"
    protocol: NetworkProtocol
    bytes: int = Field(ge=0)
    packets: int = Field(ge=0)
    flows: int = Field(ge=0)
    source_ip: str | None = Field(default=None, max_length=64)
    destination_ip: str | None = Field(default=None, max_length=64)
    destination_port: int | None = Field(default=None, ge=0, le=65535)
    latency: float | None = Field(default=None, ge=0)

    def to_record(self) -> TrafficRecord:
        return TrafficRecord(
            device_id=self.device_id,
            timestamp=self.timestamp,
            protocol=self.protocol,
            bytes=self.bytes,
            packets=self.packets,
            flows=self.flows,
            source_ip=self.source_ip,
            destination_ip=self.destination_ip,
            destination_port=self.destination_port,
            latency=self.latency,
        )


RecordIn = Annotated[
    Union[MetricRecordIn, ErrorRecordIn, TrafficRecordIn], Field(discriminator="kind")
]


class DeviceIn(BaseModel):
    id: DeviceId
    name: str = Field(min_length=1, max_length=64)
    type: DeviceType
    location: str = Field(min_length=1, max_length=64)
    status: DeviceStatus = "active"

    def to_device(self) -> Device:
        return Device(
            id=self.id, name=self.name, type=self.type, location=self.location, status=self.status
        )


class RecordBatch(BaseModel):
    records: list[RecordIn] = Field(default_factory=list, max_length=10_000)
    devices: list[DeviceIn] = Field(default_factory=list, max_length=1000)

    def to_records(self) -> list[TelemetryRecord]:
        return [r.to_record() for r in self.records]

    def to_devices(self) -> list[Device]:
        return [d.to_device() for d in self.devices]


class RecordWriteResponse(BaseModel):
    records: int = Field(ge=0)
    devices: int = Field(ge=0)


class DeviceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: str
    location: str
    status: str
