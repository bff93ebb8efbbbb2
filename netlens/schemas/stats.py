from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _StatsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class BandwidthStatsRead(_StatsModel):
    peak: float
    average: float
    current: float
    unit: str


class LatencyStatsRead(_StatsModel):
    min: float
    max: float
    average: float
    unit: str


class PacketLossStatsRead(_StatsModel):
    average: float
    threshold: float
    unit: str


class ErrorStatsRead(_StatsModel):
    total: int
    crc: int
    fragments: int
    collisions: int


class DeviceHealthRead(_StatsModel):
    device_id: str
    name: str | None = None
    cpu: float
    memory: float
    temperature: float
    samples: int


class NetworkStatsRead(_StatsModel):
    time_range: str
    start: str
    end: str
    bandwidth: BandwidthStatsRead
    latency: LatencyStatsRead
    packet_loss: PacketLossStatsRead
    errors: ErrorStatsRead
    devices: list[DeviceHealthRead]
