from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from netlens.api.deps import get_record_store
from netlens.api.errors import store_unavailable
from netlens.core.errors import RecordStoreError
from netlens.repositories.base import RecordStore
from netlens.schemas.records import DeviceRead, RecordBatch, RecordWriteResponse

router = APIRouter()

StoreDep = Annotated[RecordStore, Depends(get_record_store)]


@router.post(
    "/records",
    response_model=RecordWriteResponse,
    status_code=status.HTTP_201_CREATED,
)
def write_records(payload: RecordBatch, store: StoreDep) -> RecordWriteResponse:
    devices = payload.to_devices()
    records = payload.to_records()
    try:
        store.write_devices(devices)
        store.write_records(records)
    except RecordStoreError as e:
        raise store_unavailable(e) from e
    return RecordWriteResponse(records=len(records), devices=len(devices))


@router.get("/devices", response_model=list[DeviceRead])
def list_devices(store: StoreDep) -> list[DeviceRead]:
    try:
        devices = store.list_devices()
    except RecordStoreError as e:
        raise store_unavailable(e) from e
    return [DeviceRead.model_validate(d) for d in devices]


@router.get("/records/health", tags=["meta"])
def health(store: StoreDep) -> dict[str, str]:
    try:
        store.ping()
    except RecordStoreError as e:
        raise store_unavailable(e) from e
    return {"status": "ok"}
