from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from quizpost.publishing.types import PublishOutcome, PublishRunResult
from quizpost.workers.celery_app import celery_app
from quizpost.workers.tasks import publish_posts


def test_run_publish_due_posts_task_wrapper(monkeypatch) -> None:
    async def fake_async(*, batch_size: int) -> dict[str, object]:
        return {"processed": batch_size, "results": []}

    monkeypatch.setattr(publish_posts, "run_publish_due_posts_async", fake_async)
    monkeypatch.setattr(publish_posts, "run_async_job", asyncio.run)

    assert publish_posts.run_publish_due_posts(batch_size=3) == {"processed": 3, "results": []}


@pytest.mark.asyncio
async def test_run_publish_due_posts_async_serializes_outcomes(monkeypatch) -> None:
    ok_id = uuid4()
    failed_id = uuid4()
    captured: dict[str, int] = {}

    async def fake_publish_due_posts(*, limit: int) -> PublishRunResult:
        captured["limit"] = limit
        return PublishRunResult(
            results=[
                PublishOutcome(post_id=ok_id, status="success", fb_post_id="page_1"),
                PublishOutcome(post_id=failed_id, status="error", error="timeout", retry_count=2),
            ]
        )

    monkeypatch.setattr(publish_posts, "publish_due_posts", fake_publish_due_posts)

    summary = await publish_posts.run_publish_due_posts_async(batch_size=0)

    assert captured == {"limit": 1}
    assert summary == {
        "processed": 2,
        "results": [
            {"id": str(ok_id), "status": "success", "fbPostId": "page_1"},
            {"id": str(failed_id), "status": "error", "error": "timeout", "retryCount": 2},
        ],
    }


def test_publish_due_posts_is_scheduled_on_beat() -> None:
    entry = celery_app.conf.beat_schedule["publish-due-posts-every-minute"]

    assert entry["task"] == "quizpost.workers.tasks.publish_posts.run_publish_due_posts"
    assert entry["schedule"] == float(publish_posts.SCHEDULE_SECONDS)
    assert entry["options"] == {"queue": "q_publishing"}
    assert publish_posts.SCHEDULE_SECONDS >= 10


def test_tasks_are_routed_to_their_queues() -> None:
    routes = celery_app.conf.task_routes

    assert routes["quizpost.workers.tasks.quiz_batches.*"] == {"queue": "q_generation"}
    assert routes["quizpost.workers.tasks.publish_posts.*"] == {"queue": "q_publishing"}
