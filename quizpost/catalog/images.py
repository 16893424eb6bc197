from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from uuid import UUID

import structlog

from quizpost.catalog.errors import QuizNotFoundError
from quizpost.core.statuses import QuizType
from quizpost.db.repo.quizzes_repo import QuizzesRepo
from quizpost.db.session import SessionLocal
from quizpost.generation.errors import ImageRenderError
from quizpost.generation.images import QuizCard, render_quiz_card_png
from quizpost.generation.storage import save_quiz_image
from quizpost.generation.templating import merge_variables, stringify

logger = structlog.get_logger(__name__)


async def render_quiz_image(quiz_id: UUID) -> str:
    async with SessionLocal.begin() as session:
        row = await QuizzesRepo.get_with_template(session, quiz_id)
        if row is None:
            raise QuizNotFoundError
        quiz, template = row
        variables = merge_variables(template.variables, quiz.variables, {"title": quiz.title})
        card = QuizCard(
            quiz_type=QuizType(template.quiz_type),
            title=quiz.title,
            subtitle=stringify(variables.get("subtitle") or variables.get("description")),
            branding_text=stringify(variables.get("brandingText")),
            variables=variables,
        )

    try:
        png_bytes = await asyncio.to_thread(render_quiz_card_png, card)
        image_url = await asyncio.to_thread(save_quiz_image, quiz_id, png_bytes)
    except (OSError, ValueError) as exc:
        raise ImageRenderError(f"quiz image rendering failed: {exc}") from exc

    async with SessionLocal.begin() as session:
        await QuizzesRepo.set_image_url(
            session,
            quiz_id=quiz_id,
            image_url=image_url,
            now_utc=datetime.now(timezone.utc),
        )
    logger.info("quiz_image_rendered", quiz_id=str(quiz_id), image_url=image_url)
    return image_url
