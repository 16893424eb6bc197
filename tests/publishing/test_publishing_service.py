from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace
from uuid import uuid4

import pytest

from quizpost.catalog.errors import QuizNotFoundError
from quizpost.core.statuses import PostStatus, QuizStatus
from quizpost.db.repo.outbox_events_repo import OutboxEventsRepo
from quizpost.db.repo.quizzes_repo import QuizzesRepo
from quizpost.db.repo.scheduled_posts_repo import ScheduledPostsRepo
from quizpost.publishing import service as publishing_service
from quizpost.publishing.errors import (
    InvalidScheduleTimeError,
    PostConflictError,
    PostNotCancellableError,
    PostNotFoundError,
    PostNotRetryableError,
    PublishError,
    RetryLimitExceededError,
)
from tests.fakes import FIXED_NOW, DummySessionLocal, make_post, make_quiz


@pytest.fixture(autouse=True)
def _publishing_settings(monkeypatch) -> None:
    monkeypatch.setattr(
        publishing_service,
        "get_settings",
        lambda: SimpleNamespace(
            scheduling_max_future_days=365,
            publish_batch_size=5,
            publish_max_retry_attempts=3,
            publish_processing_timeout_minutes=15,
        ),
    )
    monkeypatch.setattr(publishing_service, "SessionLocal", DummySessionLocal())


class _FakeFacebookClient:
    def __init__(self, outcomes: dict[str, str | Exception]) -> None:
        self._outcomes = outcomes
        self.calls: list[dict[str, str | None]] = []

    async def publish_photo_post(self, *, image_url: str, message: str | None = None) -> str:
        self.calls.append({"image_url": image_url, "message": message})
        outcome = self._outcomes[image_url]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.mark.asyncio
async def test_schedule_post_rejects_past_and_far_future_times() -> None:
    with pytest.raises(InvalidScheduleTimeError, match="future"):
        await publishing_service.schedule_post(
            quiz_id=uuid4(),
            scheduled_at=FIXED_NOW - timedelta(minutes=1),
            now_utc=FIXED_NOW,
        )
    with pytest.raises(InvalidScheduleTimeError, match="365 days"):
        await publishing_service.schedule_post(
            quiz_id=uuid4(),
            scheduled_at=FIXED_NOW + timedelta(days=366),
            now_utc=FIXED_NOW,
        )


def _patch_schedule_repos(monkeypatch, *, quiz, conflict=None) -> dict[str, list]:
    recorded: dict[str, list] = {"posts": [], "statuses": []}

    async def _get_quiz(session, quiz_id):
        del session, quiz_id
        return quiz

    async def _find_conflict(session, *, quiz_id, scheduled_at):
        del session, quiz_id, scheduled_at
        return conflict

    async def _create(session, *, post):
        del session
        recorded["posts"].append(post)
        return post

    async def _set_status(session, *, quiz_id, status, now_utc):
        del session, quiz_id, now_utc
        recorded["statuses"].append(status)

    monkeypatch.setattr(QuizzesRepo, "get_by_id", _get_quiz)
    monkeypatch.setattr(ScheduledPostsRepo, "find_pending_conflict", _find_conflict)
    monkeypatch.setattr(ScheduledPostsRepo, "create", _create)
    monkeypatch.setattr(QuizzesRepo, "set_status", _set_status)
    return recorded


@pytest.mark.asyncio
async def test_schedule_post_requires_existing_quiz(monkeypatch) -> None:
    _patch_schedule_repos(monkeypatch, quiz=None)
    with pytest.raises(QuizNotFoundError):
        await publishing_service.schedule_post(
            quiz_id=uuid4(),
            scheduled_at=FIXED_NOW + timedelta(hours=1),
            now_utc=FIXED_NOW,
        )


@pytest.mark.asyncio
async def test_schedule_post_rejects_duplicate_pending_slot(monkeypatch) -> None:
    quiz = make_quiz()
    _patch_schedule_repos(monkeypatch, quiz=quiz, conflict=make_post(quiz_id=quiz.id))
    with pytest.raises(PostConflictError):
        await publishing_service.schedule_post(
            quiz_id=quiz.id,
            scheduled_at=FIXED_NOW + timedelta(hours=1),
            now_utc=FIXED_NOW,
        )


@pytest.mark.asyncio
async def test_schedule_post_creates_pending_post_and_marks_quiz(monkeypatch) -> None:
    quiz = make_quiz(image_url="http://localhost/media/q.png")
    recorded = _patch_schedule_repos(monkeypatch, quiz=quiz)
    naive_target = (FIXED_NOW + timedelta(days=1)).replace(tzinfo=None)

    snapshot = await publishing_service.schedule_post(
        quiz_id=quiz.id,
        scheduled_at=naive_target,
        caption="Can you solve it?",
        now_utc=FIXED_NOW,
    )

    assert snapshot.status == PostStatus.PENDING
    assert snapshot.scheduled_at == FIXED_NOW + timedelta(days=1)
    assert snapshot.quiz_title == quiz.title
    assert snapshot.image_url == quiz.image_url
    assert snapshot.caption == "Can you solve it?"
    assert snapshot.retry_count == 0
    assert recorded["statuses"] == [QuizStatus.SCHEDULED]


def _patch_publish_repos(monkeypatch, *, posts, quizzes, stale_ids=()) -> dict[str, list]:
    recorded: dict[str, list] = {
        "processing": [],
        "published": [],
        "failed": [],
        "events": [],
        "statuses": [],
        "stale_sweeps": [],
    }

    async def _fail_stale(session, *, stale_before, error_message, now_utc):
        del session, now_utc
        recorded["stale_sweeps"].append((stale_before, error_message))
        return list(stale_ids)

    async def _list_due(session, *, now_utc, limit):
        del session, now_utc
        return posts[:limit]

    async def _mark_processing(session, *, post_ids, now_utc):
        del session, now_utc
        recorded["processing"].extend(post_ids)

    async def _get_many(session, *, quiz_ids):
        del session
        return {quiz.id: quiz for quiz in quizzes if quiz.id in set(quiz_ids)}

    async def _mark_published(session, *, post_id, fb_post_id, now_utc):
        del session, now_utc
        recorded["published"].append((post_id, fb_post_id))

    async def _mark_failed(session, *, post_id, error_message, now_utc):
        del session, now_utc
        recorded["failed"].append((post_id, error_message))
        return 1

    async def _set_status(session, *, quiz_id, status, now_utc):
        del session, now_utc
        recorded["statuses"].append((quiz_id, status))

    async def _create_event(session, *, event_type, payload, status):
        del session
        recorded["events"].append({"event_type": event_type, "payload": payload, "status": status})

    monkeypatch.setattr(ScheduledPostsRepo, "fail_stale_processing", _fail_stale)
    monkeypatch.setattr(ScheduledPostsRepo, "list_due_pending_for_update", _list_due)
    monkeypatch.setattr(ScheduledPostsRepo, "mark_processing", _mark_processing)
    monkeypatch.setattr(ScheduledPostsRepo, "mark_published", _mark_published)
    monkeypatch.setattr(ScheduledPostsRepo, "mark_failed", _mark_failed)
    monkeypatch.setattr(QuizzesRepo, "get_many", _get_many)
    monkeypatch.setattr(QuizzesRepo, "set_status", _set_status)
    monkeypatch.setattr(OutboxEventsRepo, "create", _create_event)
    return recorded


@pytest.mark.asyncio
async def test_publish_due_posts_returns_empty_result_when_nothing_is_due(monkeypatch) -> None:
    recorded = _patch_publish_repos(monkeypatch, posts=[], quizzes=[])

    result = await publishing_service.publish_due_posts(now_utc=FIXED_NOW, client=_FakeFacebookClient({}))

    assert result.processed == 0
    assert recorded["processing"] == []


@pytest.mark.asyncio
async def test_publish_due_posts_records_success_and_failures(monkeypatch) -> None:
    ok_quiz = make_quiz(title="Numbers", image_url="http://localhost/media/ok.png")
    broken_quiz = make_quiz(title="Words", image_url="http://localhost/media/broken.png")
    imageless_quiz = make_quiz(title="Rhymes")
    ok_post = make_post(quiz_id=ok_quiz.id)
    broken_post = make_post(quiz_id=broken_quiz.id, caption="Guess the word")
    imageless_post = make_post(quiz_id=imageless_quiz.id)
    recorded = _patch_publish_repos(
        monkeypatch,
        posts=[ok_post, broken_post, imageless_post],
        quizzes=[ok_quiz, broken_quiz, imageless_quiz],
    )
    client = _FakeFacebookClient(
        {
            ok_quiz.image_url: "page_1",
            broken_quiz.image_url: PublishError("Invalid OAuth access token."),
        }
    )

    result = await publishing_service.publish_due_posts(now_utc=FIXED_NOW, client=client)

    assert result.processed == 3
    assert [item.status for item in result.results] == ["success", "error", "error"]
    assert result.results[0].as_dict() == {"id": str(ok_post.id), "status": "success", "fbPostId": "page_1"}
    assert result.results[1].as_dict() == {
        "id": str(broken_post.id),
        "status": "error",
        "error": "Invalid OAuth access token.",
        "retryCount": 1,
    }
    assert result.results[2].error == "Quiz has no image to publish"
    assert recorded["processing"] == [ok_post.id, broken_post.id, imageless_post.id]
    assert recorded["published"] == [(ok_post.id, "page_1")]
    assert recorded["statuses"] == [(ok_quiz.id, QuizStatus.PUBLISHED)]
    assert [post_id for post_id, _ in recorded["failed"]] == [broken_post.id, imageless_post.id]
    assert [event["event_type"] for event in recorded["events"]] == [publishing_service.PUBLISH_FAILED_EVENT] * 2
    assert recorded["events"][0]["status"] == "NEW"
    assert recorded["events"][0]["payload"]["post_id"] == str(broken_post.id)
    assert client.calls[0] == {"image_url": ok_quiz.image_url, "message": "Quiz: Numbers"}
    assert client.calls[1]["message"] == "Guess the word"


@pytest.mark.asyncio
async def test_publish_due_posts_respects_batch_limit(monkeypatch) -> None:
    quizzes = [make_quiz(image_url=f"http://localhost/media/{index}.png") for index in range(4)]
    posts = [make_post(quiz_id=quiz.id) for quiz in quizzes]
    _patch_publish_repos(monkeypatch, posts=posts, quizzes=quizzes)
    client = _FakeFacebookClient({quiz.image_url: f"fb_{index}" for index, quiz in enumerate(quizzes)})

    result = await publishing_service.publish_due_posts(now_utc=FIXED_NOW, limit=2, client=client)

    assert result.processed == 2
    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_publish_due_posts_fails_posts_stuck_in_processing(monkeypatch) -> None:
    stale_id = uuid4()
    recorded = _patch_publish_repos(monkeypatch, posts=[], quizzes=[], stale_ids=[stale_id])

    result = await publishing_service.publish_due_posts(now_utc=FIXED_NOW, client=_FakeFacebookClient({}))

    assert result.processed == 0
    assert recorded["stale_sweeps"] == [
        (FIXED_NOW - timedelta(minutes=15), publishing_service.STALE_PROCESSING_ERROR),
    ]


@pytest.mark.asyncio
async def test_publish_due_posts_records_each_post_when_marking_published_breaks(monkeypatch) -> None:
    quizzes = [make_quiz(image_url=f"http://localhost/media/{index}.png") for index in range(3)]
    posts = [make_post(quiz_id=quiz.id) for quiz in quizzes]
    recorded = _patch_publish_repos(monkeypatch, posts=posts, quizzes=quizzes)

    async def _broken_mark_published(session, *, post_id, fb_post_id, now_utc):
        del session, post_id, fb_post_id, now_utc
        raise RuntimeError("unique violation on fb_post_id")

    monkeypatch.setattr(ScheduledPostsRepo, "mark_published", _broken_mark_published)
    client = _FakeFacebookClient({quiz.image_url: f"page_{index}" for index, quiz in enumerate(quizzes)})

    result = await publishing_service.publish_due_posts(now_utc=FIXED_NOW, client=client)

    assert len(client.calls) == 3
    assert [item.status for item in result.results] == ["error", "error", "error"]
    assert [post_id for post_id, _ in recorded["failed"]] == [post.id for post in posts]
    assert recorded["failed"][0][1] == (
        "Published as page_0 but recording the result failed: unique violation on fb_post_id"
    )
    assert len(recorded["events"]) == 3
    assert recorded["statuses"] == []


@pytest.mark.asyncio
async def test_publish_due_posts_keeps_going_when_failure_cannot_be_recorded(monkeypatch) -> None:
    broken_quiz = make_quiz(title="Broken")
    ok_quiz = make_quiz(image_url="http://localhost/media/ok.png")
    broken_post = make_post(quiz_id=broken_quiz.id)
    ok_post = make_post(quiz_id=ok_quiz.id)
    recorded = _patch_publish_repos(monkeypatch, posts=[broken_post, ok_post], quizzes=[broken_quiz, ok_quiz])

    async def _broken_mark_failed(session, *, post_id, error_message, now_utc):
        del session, post_id, error_message, now_utc
        raise RuntimeError("deadlock detected")

    monkeypatch.setattr(ScheduledPostsRepo, "mark_failed", _broken_mark_failed)
    client = _FakeFacebookClient({ok_quiz.image_url: "page_ok"})

    result = await publishing_service.publish_due_posts(now_utc=FIXED_NOW, client=client)

    assert [item.status for item in result.results] == ["error", "success"]
    assert result.results[0].error == "deadlock detected"
    assert result.results[0].retry_count is None
    assert recorded["published"] == [(ok_post.id, "page_ok")]


def _patch_locked_post(monkeypatch, post) -> dict[str, int]:
    calls = {"reset": 0, "cancel": 0}

    async def _get_for_update(session, post_id):
        del session, post_id
        return post

    async def _reset(session, *, post_id, now_utc):
        del session, post_id
        calls["reset"] += 1
        post.status = PostStatus.PENDING
        post.error_message = None
        post.retry_count += 1
        post.last_retry_at = now_utc
        return post

    async def _cancel(session, *, post_id, now_utc):
        del session, post_id, now_utc
        calls["cancel"] += 1

    monkeypatch.setattr(ScheduledPostsRepo, "get_by_id_for_update", _get_for_update)
    monkeypatch.setattr(ScheduledPostsRepo, "reset_for_retry", _reset)
    monkeypatch.setattr(ScheduledPostsRepo, "cancel", _cancel)
    return calls


@pytest.mark.asyncio
async def test_retry_post_resets_failed_post(monkeypatch) -> None:
    post = make_post(status=PostStatus.FAILED, retry_count=1)
    calls = _patch_locked_post(monkeypatch, post)

    snapshot = await publishing_service.retry_post(post.id, now_utc=FIXED_NOW)

    assert calls["reset"] == 1
    assert snapshot.status == PostStatus.PENDING
    assert snapshot.retry_count == 2
    assert snapshot.last_retry_at == FIXED_NOW


@pytest.mark.asyncio
async def test_retry_post_rejects_invalid_states(monkeypatch) -> None:
    _patch_locked_post(monkeypatch, None)
    with pytest.raises(PostNotFoundError):
        await publishing_service.retry_post(uuid4())

    _patch_locked_post(monkeypatch, make_post(status=PostStatus.PUBLISHED))
    with pytest.raises(PostNotRetryableError):
        await publishing_service.retry_post(uuid4())

    calls = _patch_locked_post(monkeypatch, make_post(status=PostStatus.FAILED, retry_count=3))
    with pytest.raises(RetryLimitExceededError):
        await publishing_service.retry_post(uuid4())
    assert calls["reset"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [PostStatus.PENDING, PostStatus.FAILED])
async def test_cancel_post_allows_pending_and_failed(monkeypatch, status: str) -> None:
    calls = _patch_locked_post(monkeypatch, make_post(status=status))

    await publishing_service.cancel_post(uuid4(), now_utc=FIXED_NOW)

    assert calls["cancel"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [PostStatus.PROCESSING, PostStatus.PUBLISHED, PostStatus.CANCELLED])
async def test_cancel_post_rejects_other_states(monkeypatch, status: str) -> None:
    calls = _patch_locked_post(monkeypatch, make_post(status=status))

    with pytest.raises(PostNotCancellableError):
        await publishing_service.cancel_post(uuid4())
    assert calls["cancel"] == 0

    _patch_locked_post(monkeypatch, None)
    with pytest.raises(PostNotFoundError):
        await publishing_service.cancel_post(uuid4())
