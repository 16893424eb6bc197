from __future__ import annotations

from dataclasses import dataclass, field

from quizpost.core.statuses import QuizType


@dataclass(slots=True)
class GenerationContext:
    quiz_type: QuizType
    language: str = "en"
    difficulty: str = "medium"
    theme: str | None = None
    unique_marker: str | None = None
    content: str | None = None


@dataclass(slots=True)
class StrategyContent:
    answer: str
    variables: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class GeneratedQuiz:
    quiz_type: QuizType
    title: str
    subtitle: str
    hint: str
    branding_text: str
    answer: str
    solution: str
    variables: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, str] = field(default_factory=dict)

    def template_variables(self) -> dict[str, str]:
        return {
            "title": self.title,
            "subtitle": self.subtitle,
            "hint": self.hint,
            "brandingText": self.branding_text,
            **self.variables,
        }
