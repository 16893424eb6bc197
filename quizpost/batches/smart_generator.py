from __future__ import annotations

import random
from datetime import date, datetime, timezone
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import SQLAlchemyError

from quizpost.batches.errors import BatchTemplatesNotFoundError, BatchValidationError
from quizpost.batches.types import SmartGeneratedQuiz, SmartGenerationResult
from quizpost.catalog.images import render_quiz_image
from quizpost.core.config import get_settings
from quizpost.core.languages import SUPPORTED_LANGUAGES
from quizpost.core.statuses import Difficulty, PostStatus, QuizStatus, QuizType
from quizpost.db.models.quizzes import Quiz
from quizpost.db.models.scheduled_posts import ScheduledPost
from quizpost.db.repo.quizzes_repo import QuizzesRepo
from quizpost.db.repo.scheduled_posts_repo import ScheduledPostsRepo
from quizpost.db.repo.templates_repo import TemplatesRepo
from quizpost.db.session import SessionLocal
from quizpost.generation.strategies.factory import StrategyFactory
from quizpost.generation.types import GenerationContext
from quizpost.scheduling.errors import SchedulingError
from quizpost.scheduling.planning import difficulty_for_index, pick_template
from quizpost.scheduling.time_slots import SLOT_DEFINITIONS, TimeSlotSetting, plan_schedule, resolve_timezone

logger = structlog.get_logger(__name__)

SMART_MIN_COUNT = 1
SMART_MAX_COUNT = 20
SMART_MIN_MULTIPLIER = 1
SMART_MAX_MULTIPLIER = 5


def _validate(
    *,
    template_ids: list[UUID],
    count: int,
    difficulty: str,
    variety: int,
    time_slots: list[TimeSlotSetting],
    language: str,
) -> None:
    if not template_ids:
        raise BatchValidationError("at least one template must be selected")
    if not SMART_MIN_COUNT <= count <= SMART_MAX_COUNT:
        raise BatchValidationError(f"count must be between {SMART_MIN_COUNT} and {SMART_MAX_COUNT}")
    if difficulty not in {item.value for item in Difficulty}:
        raise BatchValidationError(f"unsupported difficulty: {difficulty}")
    if not 0 <= variety <= 100:
        raise BatchValidationError("variety must be between 0 and 100")
    if language not in SUPPORTED_LANGUAGES:
        raise BatchValidationError(f"unsupported language: {language}")
    if not time_slots:
        raise BatchValidationError("at least one time slot is required")
    for slot in time_slots:
        if slot.slot_id not in SLOT_DEFINITIONS:
            raise BatchValidationError(f"unknown time slot: {slot.slot_id}")
        if not SMART_MIN_MULTIPLIER <= slot.multiplier <= SMART_MAX_MULTIPLIER:
            raise BatchValidationError(
                f"multiplier must be between {SMART_MIN_MULTIPLIER} and {SMART_MAX_MULTIPLIER}"
            )


async def run_smart_generation(
    *,
    template_ids: list[UUID],
    count: int,
    start_date: date,
    time_slots: list[TimeSlotSetting],
    theme: str | None = None,
    difficulty: str = Difficulty.MEDIUM,
    variety: int = 50,
    language: str = "en",
    factory: StrategyFactory | None = None,
    rng: random.Random | None = None,
) -> SmartGenerationResult:
    _validate(
        template_ids=template_ids,
        count=count,
        difficulty=difficulty,
        variety=variety,
        time_slots=time_slots,
        language=language,
    )
    resolved_rng = rng or random.Random()
    resolved_factory = factory or StrategyFactory(rng=resolved_rng)
    tz = resolve_timezone(get_settings().schedule_timezone)
    unique_ids = list(dict.fromkeys(template_ids))

    async with SessionLocal.begin() as session:
        templates = await TemplatesRepo.list_by_ids(session, template_ids=unique_ids)
    if len(templates) != len(unique_ids):
        raise BatchTemplatesNotFoundError

    quizzes_total = 0
    schedules_total = 0
    generated: list[SmartGeneratedQuiz] = []
    for index in range(count):
        template = pick_template(templates, index, variety, rng=resolved_rng)
        quiz_difficulty = difficulty_for_index(difficulty, index, count)
        strategy = resolved_factory.get(template.quiz_type)
        content = await strategy.generate(
            GenerationContext(
                quiz_type=QuizType(template.quiz_type),
                language=language,
                difficulty=quiz_difficulty.value,
                theme=theme,
            )
        )

        now_utc = datetime.now(timezone.utc)
        async with SessionLocal.begin() as session:
            quiz = await QuizzesRepo.create(
                session,
                quiz=Quiz(
                    id=uuid4(),
                    title=content.title,
                    answer=content.answer,
                    solution=content.solution,
                    variables={**content.template_variables(), "difficulty": quiz_difficulty.value},
                    template_id=template.id,
                    batch_id=None,
                    status=QuizStatus.SCHEDULED,
                    language=language,
                    created_at=now_utc,
                    updated_at=now_utc,
                ),
            )
            quiz_id = quiz.id
        quizzes_total += 1

        try:
            scheduled_at, slot_id = plan_schedule(index, start_date, time_slots, rng=resolved_rng, tz=tz)
            async with SessionLocal.begin() as session:
                await ScheduledPostsRepo.create(
                    session,
                    post=ScheduledPost(
                        id=uuid4(),
                        quiz_id=quiz_id,
                        scheduled_at=scheduled_at,
                        status=PostStatus.PENDING,
                        retry_count=0,
                        created_at=now_utc,
                        updated_at=now_utc,
                    ),
                )
        except (SchedulingError, SQLAlchemyError) as exc:
            logger.warning(
                "smart_generation_scheduling_failed",
                quiz_id=str(quiz_id),
                quizzes_total=quizzes_total,
                error_type=type(exc).__name__,
            )
            return SmartGenerationResult(
                success=False,
                quizzes_total=quizzes_total,
                schedules_total=schedules_total,
                generated_quizzes=generated,
                error_message=(
                    f"Created {quizzes_total} quizzes but failed to schedule them: {exc}"
                ),
            )
        schedules_total += 1

        image_url: str | None = None
        try:
            image_url = await render_quiz_image(quiz_id)
        except Exception as exc:
            logger.warning(
                "smart_generation_image_failed",
                quiz_id=str(quiz_id),
                error_type=type(exc).__name__,
            )

        generated.append(
            SmartGeneratedQuiz(
                quiz_id=quiz_id,
                title=content.title,
                quiz_type=template.quiz_type,
                difficulty=quiz_difficulty.value,
                scheduled_at=scheduled_at,
                time_slot=slot_id,
                image_url=image_url,
            )
        )

    logger.info(
        "smart_generation_completed",
        quizzes_total=quizzes_total,
        schedules_total=schedules_total,
        language=language,
    )
    return SmartGenerationResult(
        success=True,
        quizzes_total=quizzes_total,
        schedules_total=schedules_total,
        generated_quizzes=generated,
    )
