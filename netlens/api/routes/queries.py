from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status

from netlens.api.deps import get_query_service
from netlens.api.errors import invalid_query, store_unavailable
from netlens.core.errors import InvalidQueryError, RecordStoreError, UnknownPresetError
from netlens.models.query import TIME_RANGE_LABELS
from netlens.query.presets import FILTER_OPTIONS, PRESETS, filter_options_for, get_preset
from netlens.schemas.query import (
    FilterOptionRead,
    PresetRead,
    PresetRunRequest,
    QueryRequest,
    QueryResponse,
    TimeRangeOption,
)
from netlens.services.queries import QueryService

router = APIRouter(prefix="/query")

QueryServiceDep = Annotated[QueryService, Depends(get_query_service)]


@router.post("", response_model=QueryResponse, response_model_exclude_none=True)
def run_query(payload: QueryRequest, service: QueryServiceDep) -> QueryResponse:
    try:
        result = service.run(payload.to_descriptor())
    except InvalidQueryError as e:
        raise invalid_query(e) from e
    except RecordStoreError as e:
        raise store_unavailable(e) from e
    return QueryResponse.from_result(result)


@router.post("/export")
def export_query(payload: QueryRequest, service: QueryServiceDep) -> Response:
    try:
        body = service.export_csv(payload.to_descriptor())
    except InvalidQueryError as e:
        raise invalid_query(e) from e
    except RecordStoreError as e:
        raise store_unavailable(e) from e
    filename = f"{payload.data_source.value}-{payload.time_range}.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/presets", response_model=list[PresetRead])
def list_presets() -> list[PresetRead]:
    return [PresetRead.from_preset(p) for p in PRESETS]


@router.post(
    "/presets/{preset_id}", response_model=QueryResponse, response_model_exclude_none=True
)
def run_preset(
    preset_id: str,
    service: QueryServiceDep,
    payload: Annotated[PresetRunRequest | None, Body()] = None,
) -> QueryResponse:
    overrides = payload or PresetRunRequest()
    try:
        get_preset(preset_id)
    except UnknownPresetError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    try:
        result = service.run_preset(
            preset_id,
            time_range=overrides.time_range,
            filters=overrides.conditions(),
            group_by=overrides.group_key(),
            order_by=overrides.order(),
            limit=overrides.limit,
        )
    except InvalidQueryError as e:
        raise invalid_query(e) from e
    except RecordStoreError as e:
        raise store_unavailable(e) from e
    return QueryResponse.from_result(result)


@router.get("/filters", response_model=dict[str, list[FilterOptionRead]])
def list_filter_options() -> dict[str, list[FilterOptionRead]]:
    return {
        category: [FilterOptionRead.from_option(o) for o in options]
        for category, options in FILTER_OPTIONS.items()
    }


@router.get(
    "/presets/{preset_id}/filters", response_model=dict[str, list[FilterOptionRead]]
)
def list_preset_filter_options(preset_id: str) -> dict[str, list[FilterOptionRead]]:
    try:
        preset = get_preset(preset_id)
    except UnknownPresetError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return {
        category: [FilterOptionRead.from_option(o) for o in options]
        for category, options in filter_options_for(preset).items()
    }


@router.get("/time-ranges", response_model=list[TimeRangeOption])
def list_time_ranges() -> list[TimeRangeOption]:
    return [TimeRangeOption(value=token, label=label) for label, token in TIME_RANGE_LABELS.items()]
