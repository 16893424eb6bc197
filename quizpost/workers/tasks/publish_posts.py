from __future__ import annotations

import structlog

from quizpost.core.config import get_settings
from quizpost.publishing.service import publish_due_posts
from quizpost.workers.asyncio_runner import run_async_job
from quizpost.workers.celery_app import PUBLISHING_QUEUE, celery_app

logger = structlog.get_logger(__name__)
settings = get_settings()

PUBLISH_BATCH_SIZE = max(1, int(settings.publish_batch_size))
SCHEDULE_SECONDS = max(10, int(settings.publish_schedule_seconds))


async def run_publish_due_posts_async(*, batch_size: int = PUBLISH_BATCH_SIZE) -> dict[str, object]:
    result = await publish_due_posts(limit=max(1, int(batch_size)))
    summary: dict[str, object] = {
        "processed": result.processed,
        "results": [item.as_dict() for item in result.results],
    }
    if result.processed:
        logger.info("publish_due_posts_processed", processed=result.processed)
    return summary


@celery_app.task(name="quizpost.workers.tasks.publish_posts.run_publish_due_posts")
def run_publish_due_posts(batch_size: int = PUBLISH_BATCH_SIZE) -> dict[str, object]:
    return run_async_job(run_publish_due_posts_async(batch_size=batch_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "publish-due-posts-every-minute": {
            "task": "quizpost.workers.tasks.publish_posts.run_publish_due_posts",
            "schedule": float(SCHEDULE_SECONDS),
            "options": {"queue": PUBLISHING_QUEUE},
        },
    }
)
