from __future__ import annotations

from datetime import datetime, timezone

from quizpost.catalog import service as catalog_service
from quizpost.catalog.types import QuizSnapshot
from quizpost.core.statuses import QuizType
from quizpost.db.repo.quizzes_repo import QuizzesRepo
from quizpost.db.session import SessionLocal


class RecordingFacebookClient:
    def __init__(self, *, fail_with: Exception | None = None) -> None:
        self.fail_with = fail_with
        self.calls: list[dict[str, str | None]] = []

    async def publish_photo_post(self, *, image_url: str, message: str | None = None) -> str:
        self.calls.append({"image_url": image_url, "message": message})
        if self.fail_with is not None:
            raise self.fail_with
        return f"page_{len(self.calls)}"


async def create_manual_quiz(*, title: str = "Count Up", with_image: bool = True) -> QuizSnapshot:
    template = await catalog_service.create_template(
        name="Numbers",
        html="<h1>{{title}}</h1><div>{{sequence}}</div>",
        quiz_type=QuizType.NUMBER_SEQUENCE.value,
    )
    quiz = await catalog_service.create_quiz(
        template_id=template.template_id,
        title=title,
        answer="10",
        solution="Add two each time.",
        variables={"sequence": "2 4 6 8"},
    )
    if with_image:
        async with SessionLocal.begin() as session:
            await QuizzesRepo.set_image_url(
                session,
                quiz_id=quiz.quiz_id,
                image_url=f"http://localhost:8000/media/quizzes/{quiz.quiz_id}.png",
                now_utc=datetime.now(timezone.utc),
            )
    return quiz
