from quizpost.workers.tasks.publish_posts import run_publish_due_posts
from quizpost.workers.tasks.quiz_batches import run_quiz_batch

__all__ = [
    "run_publish_due_posts",
    "run_quiz_batch",
]
