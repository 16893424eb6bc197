from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from quizpost.scheduling import service as scheduling_service
from quizpost.scheduling.errors import (
    AutoScheduleSlotConflictError,
    AutoScheduleSlotNotFoundError,
    InvalidTimeSlotError,
    NoAutoScheduleSlotsError,
    NoAvailableSlotError,
)
from quizpost.scheduling.service import AutoScheduleSlotSnapshot, SlotInput
from quizpost.services.api_auth import assert_api_access

router = APIRouter(tags=["time-slots"])

TIME_OF_DAY_PATTERN = r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$"


class TimeSlotRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    time_of_day: str = Field(pattern=TIME_OF_DAY_PATTERN)
    is_active: bool = True


class TimeSlotBulkRequest(BaseModel):
    slots: list[TimeSlotRequest] = Field(min_length=1, max_length=7 * 24 * 4)


class TimeSlotUpdateRequest(BaseModel):
    id: UUID
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    time_of_day: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    is_active: bool | None = None


class TimeSlotResponse(BaseModel):
    id: UUID
    day_of_week: int
    time_of_day: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TimeSlotBulkResponse(BaseModel):
    message: str
    slots: list[TimeSlotResponse]


class NextAvailableResponse(BaseModel):
    scheduled_at: datetime


def _as_response(snapshot: AutoScheduleSlotSnapshot) -> TimeSlotResponse:
    return TimeSlotResponse(
        id=snapshot.slot_id,
        day_of_week=snapshot.day_of_week,
        time_of_day=snapshot.time_of_day,
        is_active=snapshot.is_active,
        created_at=snapshot.created_at,
        updated_at=snapshot.updated_at,
    )


def _to_input(payload: TimeSlotRequest) -> SlotInput:
    return SlotInput(
        day_of_week=payload.day_of_week,
        time_of_day=payload.time_of_day,
        is_active=payload.is_active,
    )


@router.get("/api/settings/schedule/time-slots", response_model=list[TimeSlotResponse])
async def list_time_slots(request: Request) -> list[TimeSlotResponse]:
    assert_api_access(request)
    slots = await scheduling_service.list_time_slots()
    return [_as_response(slot) for slot in slots]


@router.post("/api/settings/schedule/time-slots", response_model=TimeSlotResponse, status_code=201)
async def create_time_slot(payload: TimeSlotRequest, request: Request) -> TimeSlotResponse:
    assert_api_access(request)
    try:
        snapshot = await scheduling_service.create_time_slot(_to_input(payload))
    except InvalidTimeSlotError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_TIME_SLOT_INVALID", "message": str(exc)}) from exc
    except AutoScheduleSlotConflictError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_TIME_SLOT_EXISTS"}) from exc
    return _as_response(snapshot)


@router.post(
    "/api/settings/schedule/time-slots/bulk",
    response_model=TimeSlotBulkResponse,
    status_code=201,
)
async def create_time_slots_bulk(payload: TimeSlotBulkRequest, request: Request) -> TimeSlotBulkResponse:
    assert_api_access(request)
    try:
        created = await scheduling_service.create_time_slots([_to_input(slot) for slot in payload.slots])
    except InvalidTimeSlotError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_TIME_SLOT_INVALID", "message": str(exc)}) from exc
    return TimeSlotBulkResponse(
        message=f"Created {len(created)} time slots",
        slots=[_as_response(slot) for slot in created],
    )


@router.patch("/api/settings/schedule/time-slots", response_model=TimeSlotResponse)
async def update_time_slot(payload: TimeSlotUpdateRequest, request: Request) -> TimeSlotResponse:
    assert_api_access(request)
    try:
        snapshot = await scheduling_service.update_time_slot(
            payload.id,
            day_of_week=payload.day_of_week,
            time_of_day=payload.time_of_day,
            is_active=payload.is_active,
        )
    except AutoScheduleSlotNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_TIME_SLOT_NOT_FOUND"}) from exc
    except InvalidTimeSlotError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_TIME_SLOT_INVALID", "message": str(exc)}) from exc
    except AutoScheduleSlotConflictError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_TIME_SLOT_EXISTS"}) from exc
    return _as_response(snapshot)


@router.delete("/api/settings/schedule/time-slots")
async def delete_time_slot(request: Request, slot_id: UUID = Query(alias="id")) -> dict[str, str]:
    assert_api_access(request)
    try:
        await scheduling_service.delete_time_slot(slot_id)
    except AutoScheduleSlotNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_TIME_SLOT_NOT_FOUND"}) from exc
    return {"message": "Time slot deleted successfully"}


@router.get("/api/auto-schedule-slots/next-available", response_model=NextAvailableResponse)
async def next_available_slot(request: Request) -> NextAvailableResponse:
    assert_api_access(request)
    try:
        scheduled_at = await scheduling_service.find_next_available()
    except NoAutoScheduleSlotsError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_NO_AUTO_SCHEDULE_SLOTS"}) from exc
    except NoAvailableSlotError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_NO_AVAILABLE_SLOT"}) from exc
    return NextAvailableResponse(scheduled_at=scheduled_at)
