from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any
from uuid import UUID, uuid4

from quizpost.core.statuses import QuizType
from quizpost.generation.errors import GenerationError
from quizpost.generation.llm import TextPurpose

UTC = timezone.utc
FIXED_NOW = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)


class DummySession:
    def __init__(self, objects: dict[UUID, object] | None = None) -> None:
        self.objects = objects or {}

    async def get(self, model: type, object_id: UUID) -> object | None:
        del model
        return self.objects.get(object_id)


class DummySessionBegin:
    def __init__(self, session: DummySession) -> None:
        self._session = session

    async def __aenter__(self) -> DummySession:
        return self._session

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class DummySessionLocal:
    def __init__(self, objects: dict[UUID, object] | None = None) -> None:
        self.session = DummySession(objects)
        self.begin_calls = 0

    def begin(self) -> DummySessionBegin:
        self.begin_calls += 1
        return DummySessionBegin(self.session)


class ScriptedTextGenerator:
    """Text generator double that replays canned answers per purpose."""

    def __init__(self, responses: dict[TextPurpose, Iterable[str] | str] | None = None) -> None:
        self._responses: dict[TextPurpose, list[str]] = {}
        for purpose, value in (responses or {}).items():
            self._responses[purpose] = [value] if isinstance(value, str) else list(value)
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        purpose: TextPurpose,
        system_prompt: str,
        user_prompt: str,
        *,
        quiz_type: QuizType | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        self.calls.append({"purpose": purpose, "system": system_prompt, "user": user_prompt})
        queue = self._responses.get(purpose)
        if queue:
            return queue.pop(0) if len(queue) > 1 else queue[0]
        defaults = {
            TextPurpose.TITLE: "Brain Quiz",
            TextPurpose.SUBTITLE: "Solve the puzzle",
            TextPurpose.HINT: "Look closely.",
            TextPurpose.BRANDING: "Quiz Daily",
            TextPurpose.SOLUTION: "Here is the answer.",
        }
        if purpose in defaults:
            return defaults[purpose]
        raise GenerationError(f"no scripted response for {purpose.value}")

    def purposes(self) -> list[TextPurpose]:
        return [call["purpose"] for call in self.calls]


def make_template(
    *,
    quiz_type: QuizType = QuizType.NUMBER_SEQUENCE,
    template_id: UUID | None = None,
    name: str = "Template",
    variables: dict[str, object] | None = None,
) -> SimpleNamespace:
    return SimpleNamespace(
        id=template_id or uuid4(),
        name=name,
        quiz_type=quiz_type.value,
        html="<h1>{{title}}</h1>",
        css=None,
        variables=variables or {},
        image_url=None,
        description=None,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


def make_quiz(
    *,
    quiz_id: UUID | None = None,
    template_id: UUID | None = None,
    title: str = "Number Quiz",
    image_url: str | None = None,
    status: str = "DRAFT",
    batch_id: UUID | None = None,
) -> SimpleNamespace:
    return SimpleNamespace(
        id=quiz_id or uuid4(),
        title=title,
        answer="12",
        solution="Add two.",
        variables={"title": title},
        template_id=template_id or uuid4(),
        batch_id=batch_id,
        image_url=image_url,
        status=status,
        language="en",
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


def make_post(
    *,
    post_id: UUID | None = None,
    quiz_id: UUID | None = None,
    status: str = "PENDING",
    retry_count: int = 0,
    caption: str | None = None,
    scheduled_at: datetime = FIXED_NOW,
) -> SimpleNamespace:
    return SimpleNamespace(
        id=post_id or uuid4(),
        quiz_id=quiz_id or uuid4(),
        scheduled_at=scheduled_at,
        published_at=None,
        status=status,
        fb_post_id=None,
        caption=caption,
        error_message=None,
        retry_count=retry_count,
        last_retry_at=None,
    )


def api_settings(**overrides: object) -> SimpleNamespace:
    base: dict[str, object] = {
        "api_token": "api-secret",
        "api_allowlist": "127.0.0.1/32",
        "api_trusted_proxies": "",
    }
    base.update(overrides)
    return SimpleNamespace(**base)


API_HEADERS = {"X-Api-Token": "api-secret"}
