from celery import Celery

from quizpost.core.config import get_settings

settings = get_settings()

GENERATION_QUEUE = "q_generation"
PUBLISHING_QUEUE = "q_publishing"

celery_app = Celery(
    "quizpost",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "quizpost.workers.tasks.quiz_batches",
        "quizpost.workers.tasks.publish_posts",
    ],
)

celery_app.conf.update(
    task_default_queue=PUBLISHING_QUEUE,
    task_routes={
        "quizpost.workers.tasks.quiz_batches.*": {"queue": GENERATION_QUEUE},
        "quizpost.workers.tasks.publish_posts.*": {"queue": PUBLISHING_QUEUE},
    },
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    result_expires=24 * 60 * 60,
    timezone=settings.schedule_timezone,
    enable_utc=True,
)
