from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from quizpost.catalog.errors import QuizNotFoundError
from quizpost.publishing import service as publishing_service
from quizpost.publishing.errors import (
    InvalidScheduleTimeError,
    PostConflictError,
    PostNotCancellableError,
    PostNotFoundError,
    PostNotRetryableError,
    RetryLimitExceededError,
)
from quizpost.publishing.types import ScheduledPostSnapshot
from quizpost.services.api_auth import assert_api_access

router = APIRouter(tags=["scheduled-posts"])


class ScheduledPostCreateRequest(BaseModel):
    quiz_id: UUID
    scheduled_at: datetime
    caption: str | None = Field(default=None, max_length=2000)


class ScheduledPostResponse(BaseModel):
    id: UUID
    quiz_id: UUID
    quiz_title: str | None
    image_url: str | None
    scheduled_at: datetime
    published_at: datetime | None
    status: str
    fb_post_id: str | None
    caption: str | None
    error_message: str | None
    retry_count: int = Field(ge=0)
    last_retry_at: datetime | None


def _as_response(snapshot: ScheduledPostSnapshot) -> ScheduledPostResponse:
    return ScheduledPostResponse(
        id=snapshot.post_id,
        quiz_id=snapshot.quiz_id,
        quiz_title=snapshot.quiz_title,
        image_url=snapshot.image_url,
        scheduled_at=snapshot.scheduled_at,
        published_at=snapshot.published_at,
        status=snapshot.status,
        fb_post_id=snapshot.fb_post_id,
        caption=snapshot.caption,
        error_message=snapshot.error_message,
        retry_count=snapshot.retry_count,
        last_retry_at=snapshot.last_retry_at,
    )


@router.get("/api/scheduled-posts", response_model=list[ScheduledPostResponse])
async def list_scheduled_posts(request: Request) -> list[ScheduledPostResponse]:
    assert_api_access(request)
    posts = await publishing_service.list_scheduled_posts()
    return [_as_response(post) for post in posts]


@router.post("/api/scheduled-posts", response_model=ScheduledPostResponse, status_code=201)
async def create_scheduled_post(
    payload: ScheduledPostCreateRequest,
    request: Request,
) -> ScheduledPostResponse:
    assert_api_access(request)
    try:
        snapshot = await publishing_service.schedule_post(
            quiz_id=payload.quiz_id,
            scheduled_at=payload.scheduled_at,
            caption=payload.caption,
        )
    except QuizNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_QUIZ_NOT_FOUND"}) from exc
    except InvalidScheduleTimeError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "E_SCHEDULE_TIME_INVALID", "message": str(exc)},
        ) from exc
    except PostConflictError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_SCHEDULE_CONFLICT"}) from exc
    return _as_response(snapshot)


@router.delete("/api/scheduled-posts/{post_id}")
async def cancel_scheduled_post(post_id: UUID, request: Request) -> dict[str, bool]:
    assert_api_access(request)
    try:
        await publishing_service.cancel_post(post_id)
    except PostNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_POST_NOT_FOUND"}) from exc
    except PostNotCancellableError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "E_POST_NOT_CANCELLABLE", "message": str(exc)},
        ) from exc
    return {"success": True}


@router.post("/api/scheduled-posts/{post_id}/retry", response_model=ScheduledPostResponse)
async def retry_scheduled_post(post_id: UUID, request: Request) -> ScheduledPostResponse:
    assert_api_access(request)
    try:
        snapshot = await publishing_service.retry_post(post_id)
    except PostNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_POST_NOT_FOUND"}) from exc
    except PostNotRetryableError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "E_POST_NOT_RETRYABLE", "message": str(exc)},
        ) from exc
    except RetryLimitExceededError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "E_RETRY_LIMIT_REACHED", "message": str(exc)},
        ) from exc
    return _as_response(snapshot)
