from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from quizpost.batches.errors import BatchTemplatesNotFoundError, BatchValidationError
from quizpost.batches.smart_generator import SMART_MAX_COUNT, SMART_MAX_MULTIPLIER, run_smart_generation
from quizpost.batches.types import SmartGenerationResult
from quizpost.core.statuses import Difficulty
from quizpost.generation.errors import GenerationError
from quizpost.scheduling.time_slots import TimeSlotSetting
from quizpost.services.api_auth import assert_api_access

router = APIRouter(tags=["smart-generator"])


class SmartTimeSlotRequest(BaseModel):
    id: str = Field(min_length=1, max_length=32)
    multiplier: int = Field(ge=1, le=SMART_MAX_MULTIPLIER)


class SmartGeneratorRequest(BaseModel):
    templates: list[UUID] = Field(min_length=1)
    count: int = Field(ge=1, le=SMART_MAX_COUNT)
    theme: str | None = Field(default=None, max_length=200)
    start_date: date
    difficulty: Difficulty = Difficulty.MEDIUM
    variety: int = Field(default=50, ge=0, le=100)
    time_slots: list[SmartTimeSlotRequest] = Field(min_length=1)
    language: str = Field(default="en", min_length=2, max_length=8)


class SmartGeneratedQuizResponse(BaseModel):
    id: UUID
    title: str
    type: str
    difficulty: str
    scheduled_at: datetime | None
    time_slot: str | None
    image_url: str | None


class SmartGeneratorResponse(BaseModel):
    success: bool
    message: str
    quizzes: int = Field(ge=0)
    schedules: int = Field(ge=0)
    generated_quizzes: list[SmartGeneratedQuizResponse]


def _as_response(result: SmartGenerationResult) -> SmartGeneratorResponse:
    if result.success:
        message = f"Successfully generated and scheduled {result.quizzes_total} quizzes"
    else:
        message = result.error_message or "Generation finished with errors"
    return SmartGeneratorResponse(
        success=result.success,
        message=message,
        quizzes=result.quizzes_total,
        schedules=result.schedules_total,
        generated_quizzes=[
            SmartGeneratedQuizResponse(
                id=item.quiz_id,
                title=item.title,
                type=item.quiz_type,
                difficulty=item.difficulty,
                scheduled_at=item.scheduled_at,
                time_slot=item.time_slot,
                image_url=item.image_url,
            )
            for item in result.generated_quizzes
        ],
    )


@router.post(
    "/api/smart-generator",
    response_model=SmartGeneratorResponse,
    responses={207: {"model": SmartGeneratorResponse}},
)
async def smart_generate(payload: SmartGeneratorRequest, request: Request) -> SmartGeneratorResponse | JSONResponse:
    assert_api_access(request)
    try:
        result = await run_smart_generation(
            template_ids=payload.templates,
            count=payload.count,
            start_date=payload.start_date,
            time_slots=[
                TimeSlotSetting(slot_id=slot.id, multiplier=slot.multiplier) for slot in payload.time_slots
            ],
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
            detail={"code": "E_SMART_GENERATOR_INVALID", "message": str(exc)},
        ) from exc
    except GenerationError as exc:
        raise HTTPException(
            status_code=502,
            detail={"code": "E_GENERATION_FAILED", "message": str(exc)},
        ) from exc

    response = _as_response(result)
    if result.is_partial:
        return JSONResponse(status_code=207, content=response.model_dump(mode="json"))
    return response
