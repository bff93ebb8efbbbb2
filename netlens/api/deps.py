from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from netlens.core.config import Settings
from netlens.query.evaluator import Clock, QueryEvaluator
from netlens.repositories.base import RecordStore
from netlens.services.queries import QueryService
from netlens.services.stats import NetworkStatsService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_evaluator(
    settings: Annotated[Settings, Depends(get_settings)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> QueryEvaluator:
    return QueryEvaluator(bucket_count=settings.query_bucket_count, clock=clock)


def get_query_service(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[RecordStore, Depends(get_record_store)],
    evaluator: Annotated[QueryEvaluator, Depends(get_evaluator)],
) -> QueryService:
    return QueryService(
        store=store,
        evaluator=evaluator,
        default_limit=settings.query_default_limit,
        max_limit=settings.query_max_limit,
    )


def get_stats_service(
    store: Annotated[RecordStore, Depends(get_record_store)],
    evaluator: Annotated[QueryEvaluator, Depends(get_evaluator)],
) -> NetworkStatsService:
    return NetworkStatsService(store=store, evaluator=evaluator)
