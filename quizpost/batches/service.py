from __future__ import annotations

import asyncio
import random
import secrets
import time
from datetime import datetime, timezone
from uuid import UUID, uuid4

import structlog

from quizpost.batches.errors import (
    BatchNotCancellableError,
    BatchNotFinalizableError,
    BatchNotFoundError,
    BatchTemplatesNotFoundError,
    BatchValidationError,
)
from quizpost.batches.types import BatchCreateResult, BatchQuizSummary, BatchRunResult, BatchStatusSnapshot
from quizpost.catalog.images import render_quiz_image
from quizpost.core.config import get_settings
from quizpost.core.languages import SUPPORTED_LANGUAGES
from quizpost.core.statuses import BatchStage, BatchStatus, Difficulty, PostStatus, QuizStatus, QuizType
from quizpost.db.models.quiz_batches import QuizBatch
from quizpost.db.models.quizzes import Quiz
from quizpost.db.models.scheduled_posts import ScheduledPost
from quizpost.db.repo.quiz_batches_repo import QuizBatchesRepo
from quizpost.db.repo.quizzes_repo import QuizzesRepo
from quizpost.db.repo.scheduled_posts_repo import ScheduledPostsRepo
from quizpost.db.repo.templates_repo import TemplatesRepo
from quizpost.db.session import SessionLocal
from quizpost.generation.storage import with_cache_buster
from quizpost.generation.strategies.factory import StrategyFactory
from quizpost.generation.types import GenerationContext
from quizpost.scheduling.errors import SchedulingError
from quizpost.scheduling.planning import difficulty_for_index, pick_template, themed_variation
from quizpost.scheduling.time_slots import (
    DistributionEntry,
    distribution_time_for_index,
    parse_distribution_entry,
    resolve_timezone,
)

logger = structlog.get_logger(__name__)

MAX_BATCH_COUNT = 100
UNQUEUED_BATCH_ERROR = "Generation could not be queued"


def _validate_batch_request(
    *,
    template_ids: list[UUID],
    count: int,
    time_slot_distribution: list[dict[str, object]],
    difficulty: str,
    variety: int,
    language: str,
) -> list[DistributionEntry]:
    if not template_ids:
        raise BatchValidationError("at least one template id must be provided")
    if not 1 <= count <= MAX_BATCH_COUNT:
        raise BatchValidationError(f"count must be between 1 and {MAX_BATCH_COUNT}")
    if not time_slot_distribution:
        raise BatchValidationError("at least one time slot distribution entry must be provided")
    if difficulty not in {item.value for item in Difficulty}:
        raise BatchValidationError(f"unsupported difficulty: {difficulty}")
    if not 0 <= variety <= 100:
        raise BatchValidationError("variety must be between 0 and 100")
    if language not in SUPPORTED_LANGUAGES:
        raise BatchValidationError(f"unsupported language: {language}")
    try:
        entries = [parse_distribution_entry(entry) for entry in time_slot_distribution]
    except SchedulingError as exc:
        raise BatchValidationError(str(exc)) from exc
    if any(entry.weight <= 0 for entry in entries):
        raise BatchValidationError("time slot weights must be positive")
    return entries


async def create_batch(
    *,
    template_ids: list[UUID],
    count: int,
    time_slot_distribution: list[dict[str, object]],
    theme: str | None = None,
    difficulty: str = Difficulty.MEDIUM,
    variety: int = 50,
    language: str = "en",
) -> BatchCreateResult:
    entries = _validate_batch_request(
        template_ids=template_ids,
        count=count,
        time_slot_distribution=time_slot_distribution,
        difficulty=difficulty,
        variety=variety,
        language=language,
    )
    unique_ids = list(dict.fromkeys(template_ids))
    now_utc = datetime.now(timezone.utc)

    async with SessionLocal.begin() as session:
        templates = await TemplatesRepo.list_by_ids(session, template_ids=unique_ids)
        if len(templates) != len(unique_ids):
            raise BatchTemplatesNotFoundError
        batch = await QuizBatchesRepo.create(
            session,
            batch=QuizBatch(
                id=uuid4(),
                template_ids=unique_ids,
                count=count,
                completed_count=0,
                theme=(theme or "").strip() or None,
                difficulty=difficulty,
                variety=variety,
                language=language,
                time_slot_distribution=[entry.as_dict() for entry in entries],
                status=BatchStatus.PROCESSING,
                current_stage=BatchStage.PREPARING,
                current_template_id=unique_ids[0],
                created_at=now_utc,
                updated_at=now_utc,
            ),
        )
        result = BatchCreateResult(batch_id=batch.id, status=batch.status, total_count=batch.count)

    logger.info(
        "quiz_batch_created",
        batch_id=str(result.batch_id),
        count=count,
        templates_total=len(unique_ids),
        difficulty=difficulty,
        language=language,
    )
    return result


async def _is_cancelled(batch_id: UUID) -> bool:
    async with SessionLocal.begin() as session:
        return await QuizBatchesRepo.get_status(session, batch_id) == BatchStatus.CANCELLED


async def _generate_batch_quizzes(
    batch: QuizBatch,
    *,
    factory: StrategyFactory,
    rng: random.Random,
) -> list[UUID] | None:
    settings = get_settings()
    tz = resolve_timezone(settings.schedule_timezone)
    distribution = [parse_distribution_entry(entry) for entry in batch.time_slot_distribution]

    async with SessionLocal.begin() as session:
        templates = await TemplatesRepo.list_by_ids(session, template_ids=list(batch.template_ids))
        # Stored quizzes mark finished indexes.
        quiz_ids = await QuizzesRepo.list_ids_by_batch(session, batch_id=batch.id)
        await QuizBatchesRepo.set_stage(
            session,
            batch_id=batch.id,
            stage=BatchStage.GENERATING,
            now_utc=datetime.now(timezone.utc),
        )
    if not templates:
        raise BatchTemplatesNotFoundError
    if quiz_ids:
        logger.info("quiz_batch_resumed", batch_id=str(batch.id), resume_index=len(quiz_ids), count=batch.count)

    for index in range(len(quiz_ids), batch.count):
        if await _is_cancelled(batch.id):
            logger.info("quiz_batch_cancelled_midway", batch_id=str(batch.id), generated_total=len(quiz_ids))
            return None

        template = pick_template(templates, index, batch.variety, rng=rng)
        difficulty = difficulty_for_index(batch.difficulty, index, batch.count)
        strategy = factory.get(template.quiz_type)
        generated = await strategy.generate(
            GenerationContext(
                quiz_type=QuizType(template.quiz_type),
                language=batch.language,
                difficulty=difficulty.value,
                theme=themed_variation(batch.theme, index),
                unique_marker=f"{int(time.time() * 1000)}-{index}-{secrets.token_hex(3)}",
            )
        )
        scheduled_at = distribution_time_for_index(distribution, index, tz)
        now_utc = datetime.now(timezone.utc)

        async with SessionLocal.begin() as session:
            quiz = await QuizzesRepo.create(
                session,
                quiz=Quiz(
                    id=uuid4(),
                    title=generated.title,
                    answer=generated.answer,
                    solution=generated.solution,
                    variables={
                        **generated.template_variables(),
                        "description": generated.subtitle,
                        "difficulty": difficulty.value,
                        "metadata": generated.metadata,
                    },
                    template_id=template.id,
                    batch_id=batch.id,
                    status=QuizStatus.DRAFT,
                    language=batch.language,
                    created_at=now_utc,
                    updated_at=now_utc,
                ),
            )
            await ScheduledPostsRepo.create(
                session,
                post=ScheduledPost(
                    id=uuid4(),
                    quiz_id=quiz.id,
                    scheduled_at=scheduled_at,
                    status=PostStatus.PENDING,
                    retry_count=0,
                    created_at=now_utc,
                    updated_at=now_utc,
                ),
            )
            await QuizBatchesRepo.set_stage(
                session,
                batch_id=batch.id,
                stage=BatchStage.GENERATING,
                now_utc=now_utc,
                current_template_id=template.id,
            )
            await QuizBatchesRepo.increment_completed(session, batch_id=batch.id, now_utc=now_utc)
            quiz_ids.append(quiz.id)

        logger.info(
            "quiz_batch_item_generated",
            batch_id=str(batch.id),
            quiz_id=str(quiz_ids[-1]),
            index=index,
            quiz_type=template.quiz_type,
            difficulty=difficulty.value,
        )
    return quiz_ids


async def _render_batch_images(batch_id: UUID, quiz_ids: list[UUID]) -> int:
    settings = get_settings()
    async with SessionLocal.begin() as session:
        await QuizBatchesRepo.set_stage(
            session,
            batch_id=batch_id,
            stage=BatchStage.PROCESSING_IMAGES,
            now_utc=datetime.now(timezone.utc),
        )

    rendered = 0
    for position, quiz_id in enumerate(quiz_ids):
        try:
            await render_quiz_image(quiz_id)
        except Exception as exc:
            logger.warning(
                "quiz_batch_image_failed",
                batch_id=str(batch_id),
                quiz_id=str(quiz_id),
                error_type=type(exc).__name__,
            )
        else:
            rendered += 1
        if position < len(quiz_ids) - 1 and settings.batch_image_delay_ms > 0:
            await asyncio.sleep(settings.batch_image_delay_ms / 1000)
    return rendered


async def run_batch(
    batch_id: UUID,
    *,
    factory: StrategyFactory | None = None,
    rng: random.Random | None = None,
) -> BatchRunResult:
    async with SessionLocal.begin() as session:
        batch = await QuizBatchesRepo.get_by_id(session, batch_id)
        if batch is None:
            raise BatchNotFoundError
        if batch.status != BatchStatus.PROCESSING:
            logger.info("quiz_batch_run_skipped", batch_id=str(batch_id), status=batch.status)
            return BatchRunResult(batch_id=batch_id, status=batch.status, generated_total=0, images_total=0)

    logger.info("quiz_batch_started", batch_id=str(batch_id), count=batch.count)
    try:
        quiz_ids = await _generate_batch_quizzes(
            batch,
            factory=factory or StrategyFactory(rng=rng),
            rng=rng or random.Random(),
        )
        if quiz_ids is None:
            return BatchRunResult(
                batch_id=batch_id,
                status=BatchStatus.CANCELLED,
                generated_total=0,
                images_total=0,
            )
        images_total = await _render_batch_images(batch_id, quiz_ids)
    except Exception as exc:
        await _fail_batch(batch_id, str(exc) or "Unknown error during quiz generation")
        raise

    async with SessionLocal.begin() as session:
        await QuizBatchesRepo.mark_complete(session, batch_id=batch_id, now_utc=datetime.now(timezone.utc))

    logger.info(
        "quiz_batch_completed",
        batch_id=str(batch_id),
        generated_total=len(quiz_ids),
        images_total=images_total,
    )
    return BatchRunResult(
        batch_id=batch_id,
        status=BatchStatus.COMPLETE,
        generated_total=len(quiz_ids),
        images_total=images_total,
    )


async def _fail_batch(batch_id: UUID, message: str) -> None:
    logger.exception("quiz_batch_failed", batch_id=str(batch_id), error=message)
    async with SessionLocal.begin() as session:
        await QuizBatchesRepo.mark_failed(
            session,
            batch_id=batch_id,
            error_message=message,
            now_utc=datetime.now(timezone.utc),
        )


async def fail_unqueued_batch(batch_id: UUID) -> str:
    """Fail a batch nobody will pick up; returns the status it ends in."""
    logger.warning("quiz_batch_left_unqueued", batch_id=str(batch_id))
    async with SessionLocal.begin() as session:
        failed = await QuizBatchesRepo.mark_failed(
            session,
            batch_id=batch_id,
            error_message=UNQUEUED_BATCH_ERROR,
            now_utc=datetime.now(timezone.utc),
        )
        if failed:
            return BatchStatus.FAILED
        status = await QuizBatchesRepo.get_status(session, batch_id)
    return status or BatchStatus.FAILED


async def get_batch_status(batch_id: UUID, *, now_utc: datetime | None = None) -> BatchStatusSnapshot:
    stamp = int((now_utc or datetime.now(timezone.utc)).timestamp() * 1000)
    async with SessionLocal.begin() as session:
        batch = await QuizBatchesRepo.get_by_id(session, batch_id)
        if batch is None:
            raise BatchNotFoundError
        rows = await QuizzesRepo.list_by_batch(session, batch_id=batch_id)
        scheduled = await ScheduledPostsRepo.map_scheduled_at_by_quiz(
            session,
            quiz_ids=[quiz.id for quiz, _ in rows],
        )
        generated = [
            BatchQuizSummary(
                quiz_id=quiz.id,
                title=quiz.title,
                quiz_type=template.quiz_type,
                scheduled_at=scheduled.get(quiz.id),
                image_url=with_cache_buster(quiz.image_url, stamp=stamp),
                created_at=quiz.created_at,
            )
            for quiz, template in rows
        ]
        return BatchStatusSnapshot(
            batch_id=batch.id,
            status=batch.status,
            is_complete=batch.status == BatchStatus.COMPLETE,
            completed_count=batch.completed_count,
            total_count=batch.count,
            current_template=batch.current_template_id,
            stage=batch.current_stage,
            generated_quizzes=generated,
            images_completed=sum(1 for quiz, _ in rows if quiz.image_url),
            error_message=batch.error_message,
        )


async def finalize_batch(batch_id: UUID) -> int:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        batch = await QuizBatchesRepo.get_by_id_for_update(session, batch_id)
        if batch is None:
            raise BatchNotFoundError
        if batch.status == BatchStatus.CANCELLED:
            raise BatchNotFinalizableError
        if batch.status != BatchStatus.COMPLETE:
            await QuizBatchesRepo.finalize(session, batch_id=batch_id, now_utc=now_utc)
        promoted = await QuizzesRepo.promote_batch_drafts(session, batch_id=batch_id, now_utc=now_utc)

    logger.info("quiz_batch_finalized", batch_id=str(batch_id), promoted_total=promoted)
    return promoted


async def cancel_batch(batch_id: UUID) -> None:
    async with SessionLocal.begin() as session:
        batch = await QuizBatchesRepo.get_by_id_for_update(session, batch_id)
        if batch is None:
            raise BatchNotFoundError
        if batch.status != BatchStatus.PROCESSING:
            raise BatchNotCancellableError
        await QuizBatchesRepo.mark_cancelled(session, batch_id=batch_id, now_utc=datetime.now(timezone.utc))
    logger.info("quiz_batch_cancelled", batch_id=str(batch_id))
