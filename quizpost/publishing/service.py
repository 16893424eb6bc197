from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import structlog

from quizpost.catalog.errors import QuizNotFoundError
from quizpost.core.config import get_settings
from quizpost.core.statuses import OutboxEventStatus, PostStatus, QuizStatus
from quizpost.db.models.scheduled_posts import ScheduledPost
from quizpost.db.repo.outbox_events_repo import OutboxEventsRepo
from quizpost.db.repo.quizzes_repo import QuizzesRepo
from quizpost.db.repo.scheduled_posts_repo import ScheduledPostsRepo
from quizpost.db.session import SessionLocal
from quizpost.publishing.errors import (
    InvalidScheduleTimeError,
    PostConflictError,
    PostNotCancellableError,
    PostNotFoundError,
    PostNotRetryableError,
    PublishError,
    RetryLimitExceededError,
)
from quizpost.publishing.facebook import FacebookClient
from quizpost.publishing.retry import with_connection_retry
from quizpost.publishing.types import ClaimedPost, PublishOutcome, PublishRunResult, ScheduledPostSnapshot

logger = structlog.get_logger(__name__)

DEFAULT_PUBLISH_LIMIT = 5
PUBLISH_FAILED_EVENT = "scheduled_post_publish_failed"
STALE_PROCESSING_ERROR = "Publishing was interrupted before the outcome was recorded"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


async def schedule_post(
    *,
    quiz_id: UUID,
    scheduled_at: datetime,
    caption: str | None = None,
    now_utc: datetime | None = None,
) -> ScheduledPostSnapshot:
    now = now_utc or datetime.now(timezone.utc)
    target = _as_utc(scheduled_at)
    if target <= now:
        raise InvalidScheduleTimeError("scheduled time must be in the future")
    max_days = get_settings().scheduling_max_future_days
    if target > now + timedelta(days=max_days):
        raise InvalidScheduleTimeError(f"scheduled time must be within {max_days} days")

    async with SessionLocal.begin() as session:
        quiz = await QuizzesRepo.get_by_id(session, quiz_id)
        if quiz is None:
            raise QuizNotFoundError
        conflict = await ScheduledPostsRepo.find_pending_conflict(
            session,
            quiz_id=quiz_id,
            scheduled_at=target,
        )
        if conflict is not None:
            raise PostConflictError
        post = await ScheduledPostsRepo.create(
            session,
            post=ScheduledPost(
                id=uuid4(),
                quiz_id=quiz_id,
                scheduled_at=target,
                status=PostStatus.PENDING,
                caption=caption,
                retry_count=0,
                created_at=now,
                updated_at=now,
            ),
        )
        await QuizzesRepo.set_status(session, quiz_id=quiz_id, status=QuizStatus.SCHEDULED, now_utc=now)
        snapshot = ScheduledPostSnapshot.from_models(post, quiz)

    logger.info(
        "scheduled_post_created",
        post_id=str(snapshot.post_id),
        quiz_id=str(quiz_id),
        scheduled_at=target.isoformat(),
    )
    return snapshot


async def list_scheduled_posts() -> list[ScheduledPostSnapshot]:
    async with SessionLocal.begin() as session:
        rows = await ScheduledPostsRepo.list_with_quizzes(session)
        return [ScheduledPostSnapshot.from_models(post, quiz) for post, quiz in rows]


async def _claim_due_posts(*, now_utc: datetime, limit: int) -> list[ClaimedPost]:
    async with SessionLocal.begin() as session:
        posts = await ScheduledPostsRepo.list_due_pending_for_update(
            session,
            now_utc=now_utc,
            limit=limit,
        )
        if not posts:
            return []
        await ScheduledPostsRepo.mark_processing(
            session,
            post_ids=[post.id for post in posts],
            now_utc=now_utc,
        )
        quizzes = await QuizzesRepo.get_many(session, quiz_ids=[post.quiz_id for post in posts])

    claimed: list[ClaimedPost] = []
    for post in posts:
        quiz = quizzes.get(post.quiz_id)
        claimed.append(
            ClaimedPost(
                post_id=post.id,
                quiz_id=post.quiz_id,
                quiz_title=quiz.title if quiz is not None else "",
                image_url=quiz.image_url if quiz is not None else None,
                caption=post.caption,
            )
        )
    return claimed


async def _record_success(claim: ClaimedPost, *, fb_post_id: str) -> None:
    async with SessionLocal.begin() as session:
        now = datetime.now(timezone.utc)
        await ScheduledPostsRepo.mark_published(
            session,
            post_id=claim.post_id,
            fb_post_id=fb_post_id,
            now_utc=now,
        )
        await QuizzesRepo.set_status(
            session,
            quiz_id=claim.quiz_id,
            status=QuizStatus.PUBLISHED,
            now_utc=now,
        )


async def _record_failure(claim: ClaimedPost, *, error_message: str) -> int | None:
    async with SessionLocal.begin() as session:
        retry_count = await ScheduledPostsRepo.mark_failed(
            session,
            post_id=claim.post_id,
            error_message=error_message,
            now_utc=datetime.now(timezone.utc),
        )
        await OutboxEventsRepo.create(
            session,
            event_type=PUBLISH_FAILED_EVENT,
            payload={
                "post_id": str(claim.post_id),
                "quiz_id": str(claim.quiz_id),
                "error": error_message,
                "retry_count": retry_count,
            },
            status=OutboxEventStatus.NEW,
        )
    return retry_count


async def _fail_claim(claim: ClaimedPost, *, error_message: str) -> PublishOutcome:
    retry_count = await with_connection_retry(lambda: _record_failure(claim, error_message=error_message))
    return PublishOutcome(
        post_id=claim.post_id,
        status="error",
        error=error_message,
        retry_count=retry_count,
    )


async def _publish_claim(client: FacebookClient, claim: ClaimedPost) -> PublishOutcome:
    try:
        if not claim.image_url:
            raise PublishError("Quiz has no image to publish")
        fb_post_id = await client.publish_photo_post(image_url=claim.image_url, message=claim.message)
    except Exception as exc:
        logger.warning(
            "scheduled_post_publish_failed",
            post_id=str(claim.post_id),
            quiz_id=str(claim.quiz_id),
            error_type=type(exc).__name__,
        )
        return await _fail_claim(claim, error_message=str(exc) or type(exc).__name__)

    try:
        await with_connection_retry(lambda: _record_success(claim, fb_post_id=fb_post_id))
    except Exception as exc:
        logger.exception(
            "scheduled_post_record_success_failed",
            post_id=str(claim.post_id),
            quiz_id=str(claim.quiz_id),
            fb_post_id=fb_post_id,
        )
        # Graph post exists; the stored error keeps its id.
        return await _fail_claim(
            claim,
            error_message=f"Published as {fb_post_id} but recording the result failed: {exc}",
        )

    logger.info(
        "scheduled_post_published",
        post_id=str(claim.post_id),
        quiz_id=str(claim.quiz_id),
        fb_post_id=fb_post_id,
    )
    return PublishOutcome(post_id=claim.post_id, status="success", fb_post_id=fb_post_id)


async def _fail_stale_processing_posts(*, now_utc: datetime) -> list[UUID]:
    timeout_minutes = max(1, int(get_settings().publish_processing_timeout_minutes))
    async with SessionLocal.begin() as session:
        post_ids = await ScheduledPostsRepo.fail_stale_processing(
            session,
            stale_before=now_utc - timedelta(minutes=timeout_minutes),
            error_message=STALE_PROCESSING_ERROR,
            now_utc=now_utc,
        )
    if post_ids:
        logger.warning(
            "scheduled_posts_stale_processing_failed",
            post_ids=[str(post_id) for post_id in post_ids],
            timeout_minutes=timeout_minutes,
        )
    return post_ids


async def publish_due_posts(
    *,
    now_utc: datetime | None = None,
    limit: int | None = None,
    client: FacebookClient | None = None,
) -> PublishRunResult:
    now = now_utc or datetime.now(timezone.utc)
    resolved_limit = limit or get_settings().publish_batch_size or DEFAULT_PUBLISH_LIMIT
    await with_connection_retry(lambda: _fail_stale_processing_posts(now_utc=now))
    claims = await with_connection_retry(lambda: _claim_due_posts(now_utc=now, limit=resolved_limit))
    result = PublishRunResult()
    if not claims:
        return result

    resolved_client = client or FacebookClient()
    for claim in claims:
        try:
            outcome = await _publish_claim(resolved_client, claim)
        except Exception as exc:
            # Post stays PROCESSING; the stale sweep of a later run fails it.
            logger.exception(
                "scheduled_post_outcome_unrecorded",
                post_id=str(claim.post_id),
                quiz_id=str(claim.quiz_id),
            )
            outcome = PublishOutcome(post_id=claim.post_id, status="error", error=str(exc) or type(exc).__name__)
        result.results.append(outcome)

    logger.info(
        "scheduled_posts_publish_run_completed",
        processed=result.processed,
        published=sum(1 for item in result.results if item.status == "success"),
    )
    return result


async def retry_post(post_id: UUID, *, now_utc: datetime | None = None) -> ScheduledPostSnapshot:
    now = now_utc or datetime.now(timezone.utc)
    max_attempts = get_settings().publish_max_retry_attempts
    async with SessionLocal.begin() as session:
        post = await ScheduledPostsRepo.get_by_id_for_update(session, post_id)
        if post is None:
            raise PostNotFoundError
        if post.status != PostStatus.FAILED:
            raise PostNotRetryableError(f"only failed posts can be retried (status={post.status})")
        if post.retry_count >= max_attempts:
            raise RetryLimitExceededError(f"maximum retry attempts ({max_attempts}) reached")
        updated = await ScheduledPostsRepo.reset_for_retry(session, post_id=post_id, now_utc=now)
        if updated is None:
            raise PostNotRetryableError
        snapshot = ScheduledPostSnapshot.from_models(updated)

    logger.info("scheduled_post_retry_requested", post_id=str(post_id), retry_count=snapshot.retry_count)
    return snapshot


async def cancel_post(post_id: UUID, *, now_utc: datetime | None = None) -> None:
    now = now_utc or datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        post = await ScheduledPostsRepo.get_by_id_for_update(session, post_id)
        if post is None:
            raise PostNotFoundError
        if post.status not in {PostStatus.PENDING, PostStatus.FAILED}:
            raise PostNotCancellableError(f"post cannot be cancelled (status={post.status})")
        await ScheduledPostsRepo.cancel(session, post_id=post_id, now_utc=now)

    logger.info("scheduled_post_cancelled", post_id=str(post_id))
