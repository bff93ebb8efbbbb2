from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from netlens.api.deps import get_stats_service
from netlens.api.errors import invalid_query, store_unavailable
from netlens.core.errors import InvalidQueryError, RecordStoreError
from netlens.schemas.stats import NetworkStatsRead
from netlens.services.stats import NetworkStatsService

router = APIRouter(prefix="/stats")


@router.get("", response_model=NetworkStatsRead)
def network_stats(
    service: Annotated[NetworkStatsService, Depends(get_stats_service)],
    time_range: Annotated[str, Query(min_length=1, max_length=32)] = "last_24h",
) -> NetworkStatsRead:
    try:
        stats = service.summarize(time_range)
    except InvalidQueryError as e:
        raise invalid_query(e) from e
    except RecordStoreError as e:
        raise store_unavailable(e) from e
    return NetworkStatsRead.model_validate(stats)
