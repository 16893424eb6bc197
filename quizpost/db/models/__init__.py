from quizpost.db.models.auto_schedule_slots import AutoScheduleSlot
from quizpost.db.models.outbox_events import OutboxEvent
from quizpost.db.models.quiz_batches import QuizBatch
from quizpost.db.models.quizzes import Quiz
from quizpost.db.models.scheduled_posts import ScheduledPost
from quizpost.db.models.templates import Template

__all__ = [
    "AutoScheduleSlot",
    "OutboxEvent",
    "Quiz",
    "QuizBatch",
    "ScheduledPost",
    "Template",
]
