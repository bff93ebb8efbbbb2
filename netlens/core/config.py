from __future__ import annotations

from typing import Literal

from pydantic import AnyHttpUrl, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="NETLENS_",
        case_sensitive=False,
    )

    env: str = Field(default="development")
    debug: bool = Field(default=False)
    docs_enabled: bool = Field(default=True)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    cors_origins: list[str] = Field(default_factory=list)
    trusted_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1"])

    record_store: Literal["memory", "influx"] = Field(default="memory")

    synthetic_data_enabled: bool = Field(default=True)
    synthetic_seed: int | None = Field(default=None)
    synthetic_history_hours: int = Field(default=24 * 7, ge=1, le=24 * 31)

    query_bucket_count: int = Field(default=24, ge=1, le=1440)
    query_default_limit: int = Field(default=1000, ge=1)
    query_max_limit: int = Field(default=100_000, ge=1)

    influx_url: AnyHttpUrl = Field(default="http://influxdb:8086")
    influx_token: str | None = Field(default=None, min_length=10)
    influx_org: str | None = Field(default=None, min_length=1)
    influx_bucket: str | None = Field(default=None, min_length=1)
    influx_timeout_ms: int = Field(default=10_000, ge=1000, le=120_000)
    influx_metric_measurement: str = Field(default="device_metrics", min_length=1, max_length=64)
    influx_error_measurement: str = Field(default="network_errors", min_length=1, max_length=64)
    influx_traffic_measurement: str = Field(default="network_flows", min_length=1, max_length=64)
    influx_device_measurement: str = Field(default="network_devices", min_length=1, max_length=64)

    @model_validator(mode="after")
    def _require_influx_credentials(self) -> Settings:
        if self.record_store == "influx":
            missing = [
                name
                for name in ("influx_token", "influx_org", "influx_bucket")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"record_store=influx requires {', '.join(missing)}")
        if self.query_default_limit > self.query_max_limit:
            raise ValueError("query_default_limit must be <= query_max_limit")
        return self

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"


def load_settings() -> Settings:
    settings = Settings()
    if not settings.cors_origins:
        settings.cors_origins = ["http://localhost:3000", "http://localhost:8000"]
    return settings
