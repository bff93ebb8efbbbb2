from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse, Response
from pydantic import ValidationError

from netlens.api.deps import get_query_service, get_record_store, get_stats_service
from netlens.core.errors import InvalidQueryError, RecordStoreError, UnknownPresetError
from netlens.models.query import TIME_RANGE_LABELS, DataSource, QueryDescriptor, QueryResult
from netlens.models.telemetry import Device
from netlens.query.export import result_rows
from netlens.query.presets import FILTER_OPTIONS, PRESETS, get_preset, preset_descriptor
from netlens.query.timerange import normalize_time_range
from netlens.repositories.base import RecordStore
from netlens.schemas.query import PresetRunRequest, QueryRequest
from netlens.services.queries import QueryService
from netlens.services.stats import NetworkStats, NetworkStatsService
from netlens.web.templates import templates

router = APIRouter()

STORE_ERROR = "Record store unavailable"


@dataclass
class QueryForm:
    data_source: str = DataSource.NETWORK_FLOWS.value
    metrics: str = "COUNT"
    where: str = ""
    group_by: str = ""
    order_by: str = ""
    limit: str = ""
    time_range: str = "last_24h"
    preset: str = ""
    submitted: bool = field(default=False, repr=False)

    def where_lines(self) -> list[str]:
        return [line.strip() for line in self.where.splitlines() if line.strip()]

    def to_descriptor(self) -> QueryDescriptor:
        shaping: dict[str, Any] = {
            "filters": self.where_lines(),
            "group_by": self.group_by or None,
            "order_by": self.order_by or None,
            "limit": self.limit or None,
        }
        if self.preset:
            overrides = PresetRunRequest.model_validate(
                {**shaping, "time_range": self.time_range or None}
            )
            return preset_descriptor(
                get_preset(self.preset),
                time_range=overrides.time_range,
                filters=overrides.conditions(),
                group_by=overrides.group_key(),
                order_by=overrides.order(),
                limit=overrides.limit,
            )
        payload = QueryRequest.model_validate(
            {
                **shaping,
                "data_source": self.data_source,
                "metrics": [m for m in self.metrics.split(",") if m.strip()],
                "time_range": self.time_range,
            }
        )
        return payload.to_descriptor()


def get_query_form(
    data_source: Annotated[str | None, Query(max_length=32)] = None,
    metrics: Annotated[str | None, Query(max_length=512)] = None,
    where: Annotated[str | None, Query(max_length=4096)] = None,
    group_by: Annotated[str | None, Query(max_length=64)] = None,
    order_by: Annotated[str | None, Query(max_length=128)] = None,
    limit: Annotated[str | None, Query(max_length=12)] = None,
    time_range: Annotated[str | None, Query(max_length=32)] = None,
    preset: Annotated[str | None, Query(max_length=64)] = None,
) -> QueryForm:
    submitted = data_source is not None or preset is not None
    defaults = QueryForm()
    if time_range is None and preset:
        time_range = next((p.default_time_range for p in PRESETS if p.id == preset), None)
    return QueryForm(
        data_source=data_source or defaults.data_source,
        metrics=metrics if metrics is not None else defaults.metrics,
        where=where or "",
        group_by=group_by or "",
        order_by=order_by or "",
        limit=limit or "",
        time_range=time_range or defaults.time_range,
        preset=preset or "",
        submitted=submitted,
    )


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid query (" + "; ".join(parts) + ")"


def _error_status(error: str | None) -> int:
    if error is None:
        return 200
    return 503 if error == STORE_ERROR else 400


def _run_form(
    form: QueryForm, service: QueryService
) -> tuple[QueryResult | None, str | None]:
    try:
        return service.run(form.to_descriptor()), None
    except ValidationError as e:
        return None, _validation_message(e)
    except (InvalidQueryError, UnknownPresetError) as e:
        return None, str(e)
    except RecordStoreError:
        return None, STORE_ERROR


@router.get("/", include_in_schema=False)
def ui_index():
    return RedirectResponse("/ui/dashboard", status_code=303)


@router.get("/dashboard", include_in_schema=False)
def dashboard(
    request: Request,
    stats_service: Annotated[NetworkStatsService, Depends(get_stats_service)],
    query_service: Annotated[QueryService, Depends(get_query_service)],
    time_range: Annotated[str, Query(max_length=32)] = "last_24h",
):
    error: str | None = None
    stats: NetworkStats | None = None
    series: QueryResult | None = None
    try:
        token = normalize_time_range(time_range)
        stats = stats_service.summarize(token)
        series = query_service.run(
            QueryDescriptor(
                data_source=DataSource.NETWORK_FLOWS,
                metrics=("bytes", "COUNT"),
                time_range=token,
            )
        )
    except InvalidQueryError as e:
        error = str(e)
    except RecordStoreError:
        error = STORE_ERROR

    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "title": "Dashboard",
            "stats": stats,
            "series": series,
            "time_range": time_range,
            "time_ranges": TIME_RANGE_LABELS,
            "error": error,
        },
    )


@router.get("/devices", include_in_schema=False)
def devices_page(
    request: Request,
    store: Annotated[RecordStore, Depends(get_record_store)],
):
    error: str | None = None
    devices: list[Device] = []
    try:
        devices = sorted(store.list_devices(), key=lambda d: d.id)
    except RecordStoreError:
        error = STORE_ERROR

    return templates.TemplateResponse(
        request,
        "devices.html",
        {"title": "Devices", "devices": devices, "error": error},
        status_code=_error_status(error),
    )


@router.get("/query", include_in_schema=False)
def query_page(
    request: Request,
    form: Annotated[QueryForm, Depends(get_query_form)],
    service: Annotated[QueryService, Depends(get_query_service)],
):
    result: QueryResult | None = None
    error: str | None = None
    if form.submitted:
        result, error = _run_form(form, service)

    header: list[str] = []
    rows: list[list[Any]] = []
    if result is not None:
        header, rows = result_rows(result)

    return templates.TemplateResponse(
        request,
        "query.html",
        {
            "title": "Query",
            "form": form,
            "result": result,
            "header": header,
            "rows": rows,
            "error": error,
            "data_sources": [d.value for d in DataSource],
            "time_ranges": TIME_RANGE_LABELS,
            "presets": PRESETS,
            "filter_options": FILTER_OPTIONS,
        },
        status_code=_error_status(error),
    )


@router.get("/query.csv", include_in_schema=False)
def query_csv(
    form: Annotated[QueryForm, Depends(get_query_form)],
    service: Annotated[QueryService, Depends(get_query_service)],
):
    try:
        body = service.export_csv(form.to_descriptor())
    except ValidationError as e:
        return Response(_validation_message(e), status_code=400, media_type="text/plain")
    except UnknownPresetError as e:
        return Response(str(e), status_code=404, media_type="text/plain")
    except InvalidQueryError as e:
        return Response(str(e), status_code=400, media_type="text/plain")
    except RecordStoreError:
        return Response(STORE_ERROR, status_code=503, media_type="text/plain")
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="query.csv"'},
    )
