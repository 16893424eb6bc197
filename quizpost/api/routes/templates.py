from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from quizpost.catalog import service as catalog_service
from quizpost.catalog.errors import InvalidTemplateError, TemplateNotFoundError
from quizpost.catalog.types import TemplateSnapshot
from quizpost.core.statuses import QuizType
from quizpost.services.api_auth import assert_api_access

router = APIRouter(tags=["templates"])


class TemplateCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    html: str = Field(min_length=1)
    css: str | None = None
    variables: dict[str, object] = Field(default_factory=dict)
    quiz_type: QuizType
    image_url: str | None = None
    description: str | None = Field(default=None, max_length=2000)


class TemplateResponse(BaseModel):
    id: UUID
    name: str
    quiz_type: str
    html: str
    css: str | None
    variables: dict[str, object]
    image_url: str | None
    description: str | None
    created_at: datetime
    updated_at: datetime


def _as_response(snapshot: TemplateSnapshot) -> TemplateResponse:
    return TemplateResponse(
        id=snapshot.template_id,
        name=snapshot.name,
        quiz_type=snapshot.quiz_type,
        html=snapshot.html,
        css=snapshot.css,
        variables=snapshot.variables,
        image_url=snapshot.image_url,
        description=snapshot.description,
        created_at=snapshot.created_at,
        updated_at=snapshot.updated_at,
    )


@router.get("/api/templates", response_model=list[TemplateResponse])
async def list_templates(
    request: Request,
    quiz_type: QuizType | None = Query(default=None, alias="type"),
) -> list[TemplateResponse]:
    assert_api_access(request)
    templates = await catalog_service.list_templates(quiz_type=quiz_type.value if quiz_type else None)
    return [_as_response(template) for template in templates]


@router.post("/api/templates", response_model=TemplateResponse, status_code=201)
async def create_template(payload: TemplateCreateRequest, request: Request) -> TemplateResponse:
    assert_api_access(request)
    try:
        snapshot = await catalog_service.create_template(
            name=payload.name,
            html=payload.html,
            quiz_type=payload.quiz_type.value,
            css=payload.css,
            variables=payload.variables,
            image_url=payload.image_url,
            description=payload.description,
        )
    except InvalidTemplateError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "E_TEMPLATE_INVALID", "message": str(exc)},
        ) from exc
    return _as_response(snapshot)


@router.get("/api/templates/{template_id}", response_model=TemplateResponse)
async def get_template(template_id: UUID, request: Request) -> TemplateResponse:
    assert_api_access(request)
    try:
        snapshot = await catalog_service.get_template(template_id)
    except TemplateNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_TEMPLATE_NOT_FOUND"}) from exc
    return _as_response(snapshot)


@router.get("/api/templates/{template_id}/preview", response_class=HTMLResponse)
async def preview_template(template_id: UUID, request: Request) -> HTMLResponse:
    assert_api_access(request)
    overrides = {key: value for key, value in request.query_params.items()}
    try:
        document = await catalog_service.preview_template(template_id, overrides=overrides)
    except TemplateNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_TEMPLATE_NOT_FOUND"}) from exc
    return HTMLResponse(content=document)
