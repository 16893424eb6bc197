from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from quizpost.db.models.quizzes import Quiz
from quizpost.db.models.templates import Template


@dataclass(slots=True)
class TemplateSnapshot:
    template_id: UUID
    name: str
    quiz_type: str
    html: str
    css: str | None
    variables: dict[str, object]
    image_url: str | None
    description: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, template: Template) -> TemplateSnapshot:
        return cls(
            template_id=template.id,
            name=template.name,
            quiz_type=template.quiz_type,
            html=template.html,
            css=template.css,
            variables=dict(template.variables or {}),
            image_url=template.image_url,
            description=template.description,
            created_at=template.created_at,
            updated_at=template.updated_at,
        )


@dataclass(slots=True)
class QuizSnapshot:
    quiz_id: UUID
    title: str
    answer: str
    solution: str | None
    variables: dict[str, object]
    template_id: UUID
    template_name: str
    quiz_type: str
    batch_id: UUID | None
    image_url: str | None
    status: str
    language: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_models(cls, quiz: Quiz, template: Template) -> QuizSnapshot:
        return cls(
            quiz_id=quiz.id,
            title=quiz.title,
            answer=quiz.answer,
            solution=quiz.solution,
            variables=dict(quiz.variables or {}),
            template_id=template.id,
            template_name=template.name,
            quiz_type=template.quiz_type,
            batch_id=quiz.batch_id,
            image_url=quiz.image_url,
            status=quiz.status,
            language=quiz.language,
            created_at=quiz.created_at,
            updated_at=quiz.updated_at,
        )


@dataclass(slots=True)
class QuizPage:
    items: list[QuizSnapshot]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return max(1, -(-self.total // self.limit)) if self.limit else 1
