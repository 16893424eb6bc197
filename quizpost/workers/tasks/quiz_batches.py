from __future__ import annotations

from uuid import UUID

import structlog

from quizpost.batches.service import run_batch
from quizpost.workers.asyncio_runner import run_async_job
from quizpost.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


def _is_celery_task(task_obj: object) -> bool:
    return type(task_obj).__module__.startswith("celery.")


async def run_quiz_batch_async(*, batch_id: str) -> dict[str, object]:
    result = await run_batch(UUID(batch_id))
    return {
        "batch_id": str(result.batch_id),
        "status": result.status,
        "generated_total": result.generated_total,
        "images_total": result.images_total,
    }


def enqueue_quiz_batch(*, batch_id: str) -> bool:
    try:
        if _is_celery_task(run_quiz_batch):
            run_quiz_batch.delay(batch_id=batch_id)
        else:
            run_async_job(run_quiz_batch_async(batch_id=batch_id))
    except Exception as exc:
        logger.warning(
            "quiz_batch_enqueue_failed",
            batch_id=batch_id,
            error_type=type(exc).__name__,
        )
        return False
    return True


@celery_app.task(name="quizpost.workers.tasks.quiz_batches.run_quiz_batch")
def run_quiz_batch(*, batch_id: str) -> dict[str, object]:
    return run_async_job(run_quiz_batch_async(batch_id=batch_id))
