from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(slots=True)
class BatchCreateResult:
    batch_id: UUID
    status: str
    total_count: int


@dataclass(slots=True)
class BatchQuizSummary:
    quiz_id: UUID
    title: str
    quiz_type: str
    scheduled_at: datetime | None
    image_url: str | None
    created_at: datetime


@dataclass(slots=True)
class BatchStatusSnapshot:
    batch_id: UUID
    status: str
    is_complete: bool
    completed_count: int
    total_count: int
    current_template: UUID | None
    stage: str
    generated_quizzes: list[BatchQuizSummary]
    images_completed: int
    error_message: str | None


@dataclass(slots=True)
class BatchRunResult:
    batch_id: UUID
    status: str
    generated_total: int
    images_total: int


@dataclass(slots=True)
class SmartGeneratedQuiz:
    quiz_id: UUID
    title: str
    quiz_type: str
    difficulty: str
    scheduled_at: datetime | None
    time_slot: str | None
    image_url: str | None


@dataclass(slots=True)
class SmartGenerationResult:
    success: bool
    quizzes_total: int
    schedules_total: int
    generated_quizzes: list[SmartGeneratedQuiz]
    error_message: str | None = None

    @property
    def is_partial(self) -> bool:
        return not self.success and self.quizzes_total > 0
