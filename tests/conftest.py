from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from netlens.api import deps
from netlens.core.config import Settings
from netlens.factory import create_app
from netlens.query.evaluator import QueryEvaluator
from netlens.repositories.memory import InMemoryRecordStore
from tests.fakes import DEVICES, NOW


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        env="test",
        debug=True,
        docs_enabled=False,
        cors_origins=["http://localhost"],
        trusted_hosts=["testserver", "localhost"],
        record_store="memory",
        synthetic_data_enabled=False,
        query_bucket_count=24,
    )


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore(devices=DEVICES)


@pytest.fixture()
def evaluator(now: datetime) -> QueryEvaluator:
    return QueryEvaluator(bucket_count=24, clock=lambda: now)


@pytest.fixture()
def client(settings: Settings, store: InMemoryRecordStore, now: datetime) -> TestClient:
    app = create_app(settings)
    app.dependency_overrides[deps.get_record_store] = lambda: store
    app.dependency_overrides[deps.get_clock] = lambda: (lambda: now)
    with TestClient(app) as client:
        yield client
