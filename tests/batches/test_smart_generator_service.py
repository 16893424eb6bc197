from __future__ import annotations

import random
from datetime import date, datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError

from quizpost.batches import smart_generator
from quizpost.batches.errors import BatchTemplatesNotFoundError, BatchValidationError
from quizpost.core.statuses import PostStatus, QuizStatus, QuizType
from quizpost.db.repo.quizzes_repo import QuizzesRepo
from quizpost.db.repo.scheduled_posts_repo import ScheduledPostsRepo
from quizpost.db.repo.templates_repo import TemplatesRepo
from quizpost.generation.strategies.factory import StrategyFactory
from quizpost.scheduling.time_slots import TimeSlotSetting
from tests.fakes import DummySessionLocal, ScriptedTextGenerator, make_template

START = date(2026, 3, 10)
SLOTS = [TimeSlotSetting("morning", 1.0), TimeSlotSetting("evening", 1.0)]


class _SmartRecorder:
    def __init__(self, monkeypatch, templates: list[SimpleNamespace], *, fail_post_at: int | None = None) -> None:
        self.quizzes: list[object] = []
        self.posts: list[object] = []
        self.rendered: list[object] = []
        self.render_error: Exception | None = None

        async def _list_by_ids(session, *, template_ids):
            del session
            return [template for template in templates if template.id in set(template_ids)]

        async def _create_quiz(session, *, quiz):
            del session
            self.quizzes.append(quiz)
            return quiz

        async def _create_post(session, *, post):
            del session
            if fail_post_at is not None and len(self.posts) == fail_post_at:
                raise SQLAlchemyError("insert failed")
            self.posts.append(post)
            return post

        async def _render(quiz_id):
            if self.render_error is not None:
                raise self.render_error
            self.rendered.append(quiz_id)
            return f"http://localhost/media/quizzes/{quiz_id}.png"

        monkeypatch.setattr(smart_generator, "SessionLocal", DummySessionLocal())
        monkeypatch.setattr(smart_generator, "get_settings", lambda: SimpleNamespace(schedule_timezone="UTC"))
        monkeypatch.setattr(smart_generator, "render_quiz_image", _render)
        monkeypatch.setattr(TemplatesRepo, "list_by_ids", _list_by_ids)
        monkeypatch.setattr(QuizzesRepo, "create", _create_quiz)
        monkeypatch.setattr(ScheduledPostsRepo, "create", _create_post)


def _factory() -> StrategyFactory:
    return StrategyFactory(ScriptedTextGenerator(), rng=random.Random(5))


@pytest.mark.parametrize(
    "overrides",
    [
        {"template_ids": []},
        {"count": 0},
        {"count": 21},
        {"difficulty": "impossible"},
        {"variety": -1},
        {"language": "ru"},
        {"time_slots": []},
        {"time_slots": [TimeSlotSetting("midnight", 1.0)]},
        {"time_slots": [TimeSlotSetting("morning", 6.0)]},
        {"time_slots": [TimeSlotSetting("morning", 0.0)]},
    ],
)
@pytest.mark.asyncio
async def test_smart_generation_validates_request(monkeypatch, overrides: dict[str, object]) -> None:
    session_local = DummySessionLocal()
    monkeypatch.setattr(smart_generator, "SessionLocal", session_local)
    kwargs: dict[str, object] = {
        "template_ids": [uuid4()],
        "count": 3,
        "start_date": START,
        "time_slots": SLOTS,
    }
    kwargs.update(overrides)

    with pytest.raises(BatchValidationError):
        await smart_generator.run_smart_generation(**kwargs)
    assert session_local.begin_calls == 0


@pytest.mark.asyncio
async def test_smart_generation_requires_known_templates(monkeypatch) -> None:
    _SmartRecorder(monkeypatch, [])
    with pytest.raises(BatchTemplatesNotFoundError):
        await smart_generator.run_smart_generation(
            template_ids=[uuid4()],
            count=1,
            start_date=START,
            time_slots=SLOTS,
            factory=_factory(),
        )


@pytest.mark.asyncio
async def test_smart_generation_creates_schedules_and_renders(monkeypatch) -> None:
    template = make_template(quiz_type=QuizType.NUMBER_SEQUENCE)
    recorder = _SmartRecorder(monkeypatch, [template])

    result = await smart_generator.run_smart_generation(
        template_ids=[template.id],
        count=3,
        start_date=START,
        time_slots=SLOTS,
        difficulty="progressive",
        factory=_factory(),
        rng=random.Random(5),
    )

    assert result.success is True
    assert result.is_partial is False
    assert result.quizzes_total == 3
    assert result.schedules_total == 3
    assert [item.time_slot for item in result.generated_quizzes] == ["morning", "evening", "morning"]
    assert [item.difficulty for item in result.generated_quizzes] == ["easy", "medium", "hard"]
    assert all(quiz.status == QuizStatus.SCHEDULED for quiz in recorder.quizzes)
    assert all(quiz.batch_id is None for quiz in recorder.quizzes)
    assert all(post.status == PostStatus.PENDING for post in recorder.posts)

    first, second, third = (item.scheduled_at for item in result.generated_quizzes)
    assert first.date() == second.date() == START
    assert third.date() == date(2026, 3, 11)
    assert 8 <= first.hour < 11
    assert 17 <= second.hour < 20
    assert first.tzinfo == timezone.utc
    assert recorder.rendered == [quiz.id for quiz in recorder.quizzes]


@pytest.mark.asyncio
async def test_smart_generation_returns_partial_result_when_scheduling_fails(monkeypatch) -> None:
    template = make_template()
    recorder = _SmartRecorder(monkeypatch, [template], fail_post_at=1)

    result = await smart_generator.run_smart_generation(
        template_ids=[template.id],
        count=4,
        start_date=START,
        time_slots=SLOTS,
        factory=_factory(),
    )

    assert result.success is False
    assert result.is_partial is True
    assert result.quizzes_total == 2
    assert result.schedules_total == 1
    assert len(result.generated_quizzes) == 1
    assert len(recorder.quizzes) == 2
    assert result.error_message is not None
    assert result.error_message.startswith("Created 2 quizzes but failed to schedule them")


@pytest.mark.asyncio
async def test_smart_generation_tolerates_image_failures(monkeypatch) -> None:
    template = make_template()
    recorder = _SmartRecorder(monkeypatch, [template])
    recorder.render_error = RuntimeError("renderer offline")

    result = await smart_generator.run_smart_generation(
        template_ids=[template.id],
        count=2,
        start_date=START,
        time_slots=[TimeSlotSetting("afternoon", 2.0)],
        factory=_factory(),
    )

    assert result.success is True
    assert result.schedules_total == 2
    assert [item.image_url for item in result.generated_quizzes] == [None, None]
    assert isinstance(result.generated_quizzes[0].scheduled_at, datetime)
