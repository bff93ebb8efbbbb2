from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from netlens.core.errors import UnknownPresetError
from netlens.models.query import DataSource, FilterCondition, OrderBy, QueryDescriptor


@dataclass(frozen=True)
class FilterOption:
    label: str
    value: str


@dataclass(frozen=True)
class QueryPreset:
    id: str
    category: str
    name: str
    description: str
    data_source: DataSource
    metrics: tuple[str, ...]
    default_time_range: str
    applicable_filters: tuple[str, ...]


PRESETS: tuple[QueryPreset, ...] = (
    QueryPreset(
        id="bandwidth_usage",
        category="Performance",
        name="Bandwidth Usage Analysis",
        description="Monitor bandwidth consumption patterns",
        data_source=DataSource.DEVICE_METRICS,
        metrics=("inbound", "outbound", "total"),
        default_time_range="last_24h",
        applicable_filters=("threshold", "device"),
    ),
    QueryPreset(
        id="network_errors",
        category="Troubleshooting",
        name="Network Error Analysis",
        description="Analyze network errors and their distribution",
        data_source=DataSource.NETWORK_ERRORS,
        metrics=("crc_errors", "fragments", "collisions"),
        default_time_range="last_6h",
        applicable_filters=("error_type", "severity", "device"),
    ),
    QueryPreset(
        id="traffic_patterns",
        category="Analysis",
        name="Traffic Pattern Analysis",
        description="Analyze traffic patterns by protocol and port",
        data_source=DataSource.NETWORK_FLOWS,
        metrics=("bytes", "packets", "flows"),
        default_time_range="last_12h",
        applicable_filters=("protocol", "port", "device"),
    ),
    QueryPreset(
        id="device_health",
        category="Monitoring",
        name="Device Health Metrics",
        description="Monitor device health and performance",
        data_source=DataSource.DEVICE_METRICS,
        metrics=("cpu", "memory", "temperature"),
        default_time_range="last_1h",
        applicable_filters=("device_type", "location", "status"),
    ),
)

_PRESETS_BY_ID = {p.id: p for p in PRESETS}

FILTER_OPTIONS: dict[str, tuple[FilterOption, ...]] = {
    "threshold": (
        FilterOption("High Usage (>90%)", "utilization > 90"),
        FilterOption("Medium Usage (50-90%)", "utilization BETWEEN 50 AND 90"),
        FilterOption("Low Usage (<50%)", "utilization < 50"),
    ),
    "device_type": (
        FilterOption("Routers", 'type = "router"'),
        FilterOption("Switches", 'type = "switch"'),
        FilterOption("Firewalls", 'type = "firewall"'),
        FilterOption("Servers", 'type = "server"'),
    ),
    "protocol": (
        FilterOption("HTTP/HTTPS", 'protocol IN ("HTTP", "HTTPS")'),
        FilterOption("TCP", 'protocol = "TCP"'),
        FilterOption("UDP", 'protocol = "UDP"'),
        FilterOption("ICMP", 'protocol = "ICMP"'),
    ),
    "error_type": (
        FilterOption("CRC Errors", 'error_type = "CRC"'),
        FilterOption("Fragments", 'error_type = "Fragment"'),
        FilterOption("Collisions", 'error_type = "Collision"'),
    ),
    "location": (
        FilterOption("Data Center North", 'location = "DC-North"'),
        FilterOption("Data Center South", 'location = "DC-South"'),
        FilterOption("Edge Locations", 'location LIKE "Edge%"'),
    ),
    "device": (
        FilterOption("Core Routers", 'device_id LIKE "r%"'),
        FilterOption("Switches", 'device_id LIKE "s%"'),
        FilterOption("Firewalls", 'device_id LIKE "f%"'),
        FilterOption("Servers", 'device_id LIKE "srv%"'),
    ),
    "severity": (
        FilterOption("High", 'severity = "high"'),
        FilterOption("Medium", 'severity = "medium"'),
        FilterOption("Low", 'severity = "low"'),
    ),
    "status": (
        FilterOption("Active", 'status = "active"'),
        FilterOption("Inactive", 'status = "inactive"'),
        FilterOption("Maintenance", 'status = "maintenance"'),
    ),
    "port": (
        FilterOption("HTTP (80)", "port = 80"),
        FilterOption("HTTPS (443)", "port = 443"),
        FilterOption("DNS (53)", "port = 53"),
        FilterOption("SSH (22)", "port = 22"),
    ),
}


def get_preset(preset_id: str) -> QueryPreset:
    try:
        return _PRESETS_BY_ID[preset_id]
    except KeyError:
        raise UnknownPresetError(preset_id) from None


def filter_options_for(preset: QueryPreset) -> dict[str, tuple[FilterOption, ...]]:
    return {name: FILTER_OPTIONS[name] for name in preset.applicable_filters if name in FILTER_OPTIONS}


def preset_descriptor(
    preset: QueryPreset,
    *,
    time_range: str | None = None,
    filters: Sequence[FilterCondition] = (),
    group_by: str | None = None,
    order_by: OrderBy | None = None,
    limit: int | None = None,
) -> QueryDescriptor:
    return QueryDescriptor(
        data_source=preset.data_source,
        metrics=preset.metrics,
        filters=tuple(filters),
        group_by=group_by,
        order_by=order_by,
        limit=limit,
        time_range=time_range or preset.default_time_range,
    )
