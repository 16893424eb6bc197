from quizpost.db.repo.auto_schedule_slots_repo import AutoScheduleSlotsRepo
from quizpost.db.repo.outbox_events_repo import OutboxEventsRepo
from quizpost.db.repo.quiz_batches_repo import QuizBatchesRepo
from quizpost.db.repo.quizzes_repo import QuizzesRepo
from quizpost.db.repo.scheduled_posts_repo import ScheduledPostsRepo
from quizpost.db.repo.templates_repo import TemplatesRepo

__all__ = [
    "AutoScheduleSlotsRepo",
    "OutboxEventsRepo",
    "QuizBatchesRepo",
    "QuizzesRepo",
    "ScheduledPostsRepo",
    "TemplatesRepo",
]
