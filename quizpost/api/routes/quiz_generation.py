from __future__ import annotations

from datetime import datetime
from typing import NoReturn
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from quizpost.batches import service as batch_service
from quizpost.batches.errors import (
    BatchNotCancellableError,
    BatchNotFinalizableError,
    BatchNotFoundError,
    BatchTemplatesNotFoundError,
    BatchValidationError,
)
from quizpost.core.statuses import Difficulty
from quizpost.services.api_auth import assert_api_access
from quizpost.workers.tasks.quiz_batches import enqueue_quiz_batch

router = APIRouter(tags=["quiz-generation"])


class DistributionEntryRequest(BaseModel):
    date: str = Field(min_length=10, max_length=10)
    slot_id: str = Field(min_length=1, max_length=32)
    weight: float = Field(gt=0)


class BatchCreateRequest(BaseModel):
    template_ids: list[UUID] = Field(min_length=1)
    count: int = Field(ge=1, le=batch_service.MAX_BATCH_COUNT)
    time_slot_distribution: list[DistributionEntryRequest] = Field(min_length=1)
    theme: str | None = Field(default=None, max_length=200)
    difficulty: Difficulty = Difficulty.MEDIUM
    variety: int = Field(default=50, ge=0, le=100)
    language: str = Field(default="en", min_length=2, max_length=8)


class BatchCreateResponse(BaseModel):
    batch_id: UUID
    status: str
    total_count: int


class BatchQuizResponse(BaseModel):
    id: UUID
    title: str
    type: str
    scheduled_at: datetime | None
    image_url: str | None
    created_at: datetime


class BatchStatusResponse(BaseModel):
    batch_id: UUID
    is_complete: bool
    status: str
    completed_count: int = Field(ge=0)
    total_count: int = Field(ge=1)
    current_template: UUID | None
    stage: str
    generated_quizzes: list[BatchQuizResponse]
    images_completed: int = Field(ge=0)
    error_message: str | None


class BatchFinalizeResponse(BaseModel):
    batch_id: UUID
    status: str
    promoted_total: int = Field(ge=0)


def _raise_not_found(exc: Exception) -> NoReturn:
    raise HTTPException(status_code=404, detail={"code": "E_BATCH_NOT_FOUND"}) from exc


@router.post("/api/quiz-generation/batch", response_model=BatchCreateResponse, status_code=202)
async def create_batch(payload: BatchCreateRequest, request: Request) -> BatchCreateResponse:
    assert_api_access(request)
    try:
        result = await batch_service.create_batch(
            template_ids=payload.template_ids,
            count=payload.count,
            time_slot_distribution=[entry.model_dump() for entry in payload.time_slot_distribution],
            theme=payload.theme,
            difficulty=payload.difficulty.value,
            variety=payload.variety,
            language=payload.language,
        )
    except BatchTemplatesNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_TEMPLATES_NOT_FOUND"}) from exc
    except BatchValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "E_BATCH_INVALID", "message": str(exc)},
        ) from exc

    status = result.status
    if not enqueue_quiz_batch(batch_id=str(result.batch_id)):
        status = await batch_service.fail_unqueued_batch(result.batch_id)
    return BatchCreateResponse(
        batch_id=result.batch_id,
        status=status,
        total_count=result.total_count,
    )


@router.get("/api/quiz-generation/batch/{batch_id}/status", response_model=BatchStatusResponse)
async def get_batch_status(batch_id: UUID, request: Request) -> BatchStatusResponse:
    assert_api_access(request)
    try:
        snapshot = await batch_service.get_batch_status(batch_id)
    except BatchNotFoundError as exc:
        _raise_not_found(exc)

    return BatchStatusResponse(
        batch_id=snapshot.batch_id,
        is_complete=snapshot.is_complete,
        status=snapshot.status,
        completed_count=snapshot.completed_count,
        total_count=snapshot.total_count,
        current_template=snapshot.current_template,
        stage=snapshot.stage,
        generated_quizzes=[
            BatchQuizResponse(
                id=item.quiz_id,
                title=item.title,
                type=item.quiz_type,
                scheduled_at=item.scheduled_at,
                image_url=item.image_url,
                created_at=item.created_at,
            )
            for item in snapshot.generated_quizzes
        ],
        images_completed=snapshot.images_completed,
        error_message=snapshot.error_message,
    )


@router.post("/api/quiz-generation/batch/{batch_id}/finalize", response_model=BatchFinalizeResponse)
async def finalize_batch(batch_id: UUID, request: Request) -> BatchFinalizeResponse:
    assert_api_access(request)
    try:
        promoted_total = await batch_service.finalize_batch(batch_id)
    except BatchNotFoundError as exc:
        _raise_not_found(exc)
    except BatchNotFinalizableError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_BATCH_NOT_FINALIZABLE"}) from exc
    return BatchFinalizeResponse(batch_id=batch_id, status="COMPLETE", promoted_total=promoted_total)


@router.post("/api/quiz-generation/batch/{batch_id}/cancel")
async def cancel_batch(batch_id: UUID, request: Request) -> dict[str, object]:
    assert_api_access(request)
    try:
        await batch_service.cancel_batch(batch_id)
    except BatchNotFoundError as exc:
        _raise_not_found(exc)
    except BatchNotCancellableError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_BATCH_NOT_CANCELLABLE"}) from exc
    return {"batch_id": str(batch_id), "status": "CANCELLED"}
