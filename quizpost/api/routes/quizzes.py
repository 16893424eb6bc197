from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from quizpost.catalog import service as catalog_service
from quizpost.catalog.errors import InvalidTemplateError, QuizNotFoundError, TemplateNotFoundError
from quizpost.catalog.images import render_quiz_image
from quizpost.catalog.service import MAX_PAGE_SIZE
from quizpost.catalog.types import QuizSnapshot
from quizpost.core.statuses import Difficulty, QuizType
from quizpost.generation.errors import GenerationError, ImageRenderError
from quizpost.services.api_auth import assert_api_access

router = APIRouter(tags=["quizzes"])


class QuizCreateRequest(BaseModel):
    template_id: UUID
    title: str | None = Field(default=None, max_length=300)
    answer: str | None = Field(default=None, max_length=500)
    solution: str | None = None
    variables: dict[str, object] = Field(default_factory=dict)
    language: str = Field(default="en", min_length=2, max_length=8)
    theme: str | None = Field(default=None, max_length=200)
    difficulty: Difficulty = Difficulty.MEDIUM
    content: str | None = Field(default=None, max_length=500)


class QuizResponse(BaseModel):
    id: UUID
    title: str
    answer: str
    solution: str | None
    variables: dict[str, object]
    template_id: UUID
    template_name: str
    quiz_type: str
    batch_id: UUID | None
    image_url: str | None
    status: str
    language: str
    created_at: datetime
    updated_at: datetime


class QuizListResponse(BaseModel):
    items: list[QuizResponse]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    pages: int = Field(ge=1)


class QuizImageResponse(BaseModel):
    quiz_id: UUID
    image_url: str


def _as_response(snapshot: QuizSnapshot) -> QuizResponse:
    return QuizResponse(
        id=snapshot.quiz_id,
        title=snapshot.title,
        answer=snapshot.answer,
        solution=snapshot.solution,
        variables=snapshot.variables,
        template_id=snapshot.template_id,
        template_name=snapshot.template_name,
        quiz_type=snapshot.quiz_type,
        batch_id=snapshot.batch_id,
        image_url=snapshot.image_url,
        status=snapshot.status,
        language=snapshot.language,
        created_at=snapshot.created_at,
        updated_at=snapshot.updated_at,
    )


@router.get("/api/quizzes", response_model=QuizListResponse)
async def list_quizzes(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE),
    search: str | None = Query(default=None, max_length=200),
    quiz_type: QuizType | None = Query(default=None, alias="type"),
) -> QuizListResponse:
    assert_api_access(request)
    result = await catalog_service.list_quizzes(
        page=page,
        limit=limit,
        search=search,
        quiz_type=quiz_type.value if quiz_type else None,
    )
    return QuizListResponse(
        items=[_as_response(item) for item in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
    )


@router.post("/api/quizzes", response_model=QuizResponse, status_code=201)
async def create_quiz(payload: QuizCreateRequest, request: Request) -> QuizResponse:
    assert_api_access(request)
    try:
        snapshot = await catalog_service.create_quiz(
            template_id=payload.template_id,
            title=payload.title,
            answer=payload.answer,
            solution=payload.solution,
            variables=payload.variables,
            language=payload.language,
            theme=payload.theme,
            difficulty=payload.difficulty.value,
            content=payload.content,
        )
    except TemplateNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_TEMPLATE_NOT_FOUND"}) from exc
    except InvalidTemplateError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_QUIZ_INVALID", "message": str(exc)}) from exc
    except GenerationError as exc:
        raise HTTPException(
            status_code=502,
            detail={"code": "E_GENERATION_FAILED", "message": str(exc)},
        ) from exc
    return _as_response(snapshot)


@router.get("/api/quizzes/{quiz_id}", response_model=QuizResponse)
async def get_quiz(quiz_id: UUID, request: Request) -> QuizResponse:
    assert_api_access(request)
    try:
        snapshot = await catalog_service.get_quiz(quiz_id)
    except QuizNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_QUIZ_NOT_FOUND"}) from exc
    return _as_response(snapshot)


@router.post("/api/quizzes/{quiz_id}/image", response_model=QuizImageResponse)
async def render_image(quiz_id: UUID, request: Request) -> QuizImageResponse:
    assert_api_access(request)
    try:
        image_url = await render_quiz_image(quiz_id)
    except QuizNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_QUIZ_NOT_FOUND"}) from exc
    except ImageRenderError as exc:
        raise HTTPException(status_code=500, detail={"code": "E_IMAGE_RENDER_FAILED"}) from exc
    return QuizImageResponse(quiz_id=quiz_id, image_url=image_url)
