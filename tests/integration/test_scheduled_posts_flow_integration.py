from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from quizpost.catalog import service as catalog_service
from quizpost.core.statuses import PostStatus, QuizStatus
from quizpost.db.models.outbox_events import OutboxEvent
from quizpost.db.models.scheduled_posts import ScheduledPost
from quizpost.db.session import SessionLocal
from quizpost.publishing import service as publishing_service
from quizpost.publishing.errors import PostConflictError, PostNotCancellableError, PublishError
from tests.integration.publishing_fixtures import RecordingFacebookClient, create_manual_quiz

UTC = timezone.utc


@pytest.mark.asyncio
async def test_schedule_post_marks_quiz_and_rejects_duplicate_slot() -> None:
    quiz = await create_manual_quiz()
    scheduled_at = (datetime.now(UTC) + timedelta(days=2)).replace(microsecond=0)

    snapshot = await publishing_service.schedule_post(quiz_id=quiz.quiz_id, scheduled_at=scheduled_at)

    assert snapshot.status == PostStatus.PENDING
    assert snapshot.quiz_title == "Count Up"
    stored_quiz = await catalog_service.get_quiz(quiz.quiz_id)
    assert stored_quiz.status == QuizStatus.SCHEDULED

    with pytest.raises(PostConflictError):
        await publishing_service.schedule_post(quiz_id=quiz.quiz_id, scheduled_at=scheduled_at)

    listed = await publishing_service.list_scheduled_posts()
    assert [item.post_id for item in listed] == [snapshot.post_id]

    await publishing_service.cancel_post(snapshot.post_id)
    with pytest.raises(PostNotCancellableError):
        await publishing_service.cancel_post(snapshot.post_id)

    rescheduled = await publishing_service.schedule_post(quiz_id=quiz.quiz_id, scheduled_at=scheduled_at)
    assert rescheduled.post_id != snapshot.post_id


@pytest.mark.asyncio
async def test_publish_due_posts_publishes_and_records_failures() -> None:
    published_quiz = await create_manual_quiz(title="Published")
    imageless_quiz = await create_manual_quiz(title="Imageless", with_image=False)
    now_utc = datetime.now(UTC)
    ok_post = await publishing_service.schedule_post(
        quiz_id=published_quiz.quiz_id,
        scheduled_at=now_utc + timedelta(minutes=5),
        caption="Can you solve it?",
    )
    failed_post = await publishing_service.schedule_post(
        quiz_id=imageless_quiz.quiz_id,
        scheduled_at=now_utc + timedelta(minutes=6),
    )
    client = RecordingFacebookClient()

    result = await publishing_service.publish_due_posts(now_utc=now_utc + timedelta(minutes=10), client=client)

    assert [item.status for item in result.results] == ["success", "error"]
    assert client.calls == [
        {
            "image_url": f"http://localhost:8000/media/quizzes/{published_quiz.quiz_id}.png",
            "message": "Can you solve it?",
        }
    ]

    async with SessionLocal.begin() as session:
        posts = {
            post.id: post
            for post in (await session.execute(select(ScheduledPost))).scalars().all()
        }
        events = list((await session.execute(select(OutboxEvent))).scalars().all())

    assert posts[ok_post.post_id].status == PostStatus.PUBLISHED
    assert posts[ok_post.post_id].fb_post_id == "page_1"
    assert posts[ok_post.post_id].published_at is not None
    assert posts[failed_post.post_id].status == PostStatus.FAILED
    assert posts[failed_post.post_id].error_message == "Quiz has no image to publish"
    assert [event.event_type for event in events] == [publishing_service.PUBLISH_FAILED_EVENT]
    assert (await catalog_service.get_quiz(published_quiz.quiz_id)).status == QuizStatus.PUBLISHED

    second_run = await publishing_service.publish_due_posts(
        now_utc=now_utc + timedelta(minutes=10),
        client=client,
    )
    assert second_run.processed == 0


@pytest.mark.asyncio
async def test_retry_post_requeues_failed_post_once_per_request() -> None:
    quiz = await create_manual_quiz()
    now_utc = datetime.now(UTC)
    post = await publishing_service.schedule_post(quiz_id=quiz.quiz_id, scheduled_at=now_utc + timedelta(minutes=1))
    failing_client = RecordingFacebookClient(fail_with=PublishError("Invalid OAuth access token."))

    await publishing_service.publish_due_posts(now_utc=now_utc + timedelta(minutes=2), client=failing_client)
    retried = await publishing_service.retry_post(post.post_id)

    assert retried.status == PostStatus.PENDING
    assert retried.error_message is None
    assert retried.retry_count == 2
    assert retried.last_retry_at is not None

    success_client = RecordingFacebookClient()
    result = await publishing_service.publish_due_posts(now_utc=now_utc + timedelta(minutes=3), client=success_client)
    assert [item.status for item in result.results] == ["success"]
