"""HTTP route definitions for the readings API."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.schemas import (
    ErrorListResponse,
    ErrorResponse,
    Reading,
    ReadingBatch,
    SensorDirectory,
    batch_adapter,
)
from datastore.bucket_store import StoreError
from services.readings import ReadingQueryError, ReadingsService

router = APIRouter(prefix="/api")

_ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
}
_ERROR_LIST_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorListResponse},
}


def get_readings_service(request: Request) -> ReadingsService:
    return request.app.state.readings_service


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


def _errors(messages: list[str]) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": messages})


def _dump_reading(reading: Reading) -> Dict[str, Any]:
    return reading.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.get(
    "/sensors",
    response_model=SensorDirectory,
    responses=_ERROR_RESPONSES,
    summary="List the serial number to name directory.",
)
def list_sensors(service: ReadingsService = Depends(get_readings_service)):
    try:
        return service.list_sensors()
    except StoreError as exc:
        return _error(str(exc))


@router.get(
    "/readings/{start}/{end}",
    responses=_ERROR_LIST_RESPONSES,
    summary="Fetch reading batches stored between two Unix timestamps (inclusive).",
)
def get_readings(
    start: str,
    end: str,
    sensors: Optional[str] = Query(None, description="Comma separated serial numbers that must exist."),
    limit: Optional[str] = Query(None, description="Validated but not applied to the result."),
    service: ReadingsService = Depends(get_readings_service),
):
    try:
        readings = service.query_readings(start, end, sensors=sensors, limit=limit)
    except ReadingQueryError as exc:
        return _errors(exc.errors)
    except StoreError as exc:
        return _error(str(exc))
    return {
        key: [_dump_reading(reading) for reading in batch]
        for key, batch in readings.items()
    }


@router.get(
    "/sensors/{serial}/readings/{start}/{end}",
    responses=_ERROR_LIST_RESPONSES,
    summary="Fetch one sensor's readings stored between two Unix timestamps (inclusive).",
)
def get_sensor_history(
    serial: str,
    start: str,
    end: str,
    service: ReadingsService = Depends(get_readings_service),
):
    try:
        history = service.sensor_history(serial, start, end)
    except ReadingQueryError as exc:
        return _errors(exc.errors)
    except StoreError as exc:
        return _error(str(exc))
    return {key: _dump_reading(reading) for key, reading in history.items()}


@router.post(
    "/new",
    status_code=status.HTTP_200_OK,
    responses=_ERROR_RESPONSES,
    summary="Store a batch of readings under the current timestamp.",
)
async def new_readings(
    request: Request,
    service: ReadingsService = Depends(get_readings_service),
) -> Response:
    body = await request.body()
    try:
        readings: ReadingBatch = batch_adapter.validate_json(body)
    except ValidationError as exc:
        return _error(str(exc))

    try:
        await run_in_threadpool(service.ingest, readings)
    except StoreError as exc:
        return _error(str(exc))
    return Response(status_code=status.HTTP_200_OK)
