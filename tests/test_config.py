from __future__ import annotations

import pytest
from pydantic import ValidationError

from netlens.core.config import Settings
from netlens.factory import build_record_store
from netlens.repositories.influx import InfluxRecordStore
from netlens.repositories.memory import InMemoryRecordStore


def test_influx_store_requires_credentials() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, record_store="influx")


def test_default_limit_cannot_exceed_max() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, query_default_limit=10, query_max_limit=5)


def test_env_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NETLENS_QUERY_BUCKET_COUNT", "12")
    monkeypatch.setenv("NETLENS_RECORD_STORE", "memory")
    assert Settings(_env_file=None).query_bucket_count == 12


def test_memory_store_is_seeded_with_synthetic_data() -> None:
    settings = Settings(_env_file=None, synthetic_seed=5, synthetic_history_hours=2)
    store, client = build_record_store(settings)
    assert isinstance(store, InMemoryRecordStore)
    assert client is None
    assert len(store.list_devices()) == 5
    assert store.count() >= 5 * 2 * 2


def test_influx_store_from_settings() -> None:
    settings = Settings(
        _env_file=None,
        record_store="influx",
        influx_url="http://example.com:8086",
        influx_token="test-token-1234567890",
        influx_org="test",
        influx_bucket="telemetry",
    )
    store, client = build_record_store(settings)
    try:
        assert isinstance(store, InfluxRecordStore)
        assert client is not None
    finally:
        client.close()
