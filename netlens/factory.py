from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from influxdb_client import InfluxDBClient
from starlette.middleware.trustedhost import TrustedHostMiddleware

from netlens.api.router import api_router
from netlens.core.config import Settings, load_settings
from netlens.core.logging import configure_logging
from netlens.query.evaluator import utc_now
from netlens.repositories.base import RecordStore
from netlens.repositories.influx import InfluxRecordStore, create_influx_client
from netlens.repositories.memory import InMemoryRecordStore
from netlens.repositories.synthetic import generate_network_data, seed_store
from netlens.web.router import ui_router

logger = logging.getLogger(__name__)


def build_record_store(settings: Settings) -> tuple[RecordStore, InfluxDBClient | None]:
    if settings.record_store == "influx":
        client = create_influx_client(settings)
        return InfluxRecordStore.from_settings(settings, client), client

    store = InMemoryRecordStore()
    if settings.synthetic_data_enabled:
        dataset = generate_network_data(
            now=utc_now(),
            hours=settings.synthetic_history_hours,
            seed=settings.synthetic_seed,
        )
        seed_store(store, dataset)
    return store, None


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    store, influx_client = build_record_store(settings)
    logger.info("Using %s record store", settings.record_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if influx_client is not None:
            influx_client.close()

    docs_enabled = settings.docs_enabled and not settings.is_production
    app = FastAPI(
        title="Netlens Telemetry Query API",
        version="0.1.0",
        debug=settings.debug,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.record_store = store
    app.state.clock = utc_now

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    if settings.trusted_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if settings.is_production:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response

    @app.get("/", tags=["meta"])
    def root():
        return {"name": "netlens", "status": "ok"}

    app.include_router(api_router)
    app.include_router(ui_router)

    static_dir = Path(__file__).resolve().parent / "web" / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    return app
