from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quizpost.core.statuses import QuizStatus
from quizpost.db.models.quizzes import Quiz
from quizpost.db.models.templates import Template


class QuizzesRepo:
    @staticmethod
    async def create(session: AsyncSession, *, quiz: Quiz) -> Quiz:
        session.add(quiz)
        await session.flush()
        return quiz

    @staticmethod
    async def get_by_id(session: AsyncSession, quiz_id: UUID) -> Quiz | None:
        return await session.get(Quiz, quiz_id)

    @staticmethod
    async def get_with_template(
        session: AsyncSession,
        quiz_id: UUID,
    ) -> tuple[Quiz, Template] | None:
        stmt = (
            select(Quiz, Template)
            .join(Template, Template.id == Quiz.template_id)
            .where(Quiz.id == quiz_id)
        )
        result = await session.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return row[0], row[1]

    @staticmethod
    async def list_page(
        session: AsyncSession,
        *,
        page: int,
        limit: int,
        search: str | None = None,
        quiz_type: str | None = None,
    ) -> tuple[list[tuple[Quiz, Template]], int]:
        resolved_page = max(1, int(page))
        resolved_limit = max(1, int(limit))
        conditions = []
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(or_(Quiz.title.ilike(pattern), Quiz.answer.ilike(pattern)))
        if quiz_type:
            conditions.append(Template.quiz_type == quiz_type)

        count_stmt = (
            select(func.count(Quiz.id))
            .select_from(Quiz)
            .join(Template, Template.id == Quiz.template_id)
            .where(*conditions)
        )
        total = int((await session.execute(count_stmt)).scalar_one())

        stmt = (
            select(Quiz, Template)
            .join(Template, Template.id == Quiz.template_id)
            .where(*conditions)
            .order_by(Quiz.created_at.desc(), Quiz.id.asc())
            .offset((resolved_page - 1) * resolved_limit)
            .limit(resolved_limit)
        )
        result = await session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()], total

    @staticmethod
    async def list_by_batch(
        session: AsyncSession,
        *,
        batch_id: UUID,
    ) -> list[tuple[Quiz, Template]]:
        stmt = (
            select(Quiz, Template)
            .join(Template, Template.id == Quiz.template_id)
            .where(Quiz.batch_id == batch_id)
            .order_by(Quiz.created_at.asc(), Quiz.id.asc())
        )
        result = await session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    @staticmethod
    async def list_ids_by_batch(session: AsyncSession, *, batch_id: UUID) -> list[UUID]:
        stmt = select(Quiz.id).where(Quiz.batch_id == batch_id).order_by(Quiz.created_at.asc(), Quiz.id.asc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def set_image_url(
        session: AsyncSession,
        *,
        quiz_id: UUID,
        image_url: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(Quiz)
            .where(Quiz.id == quiz_id)
            .values(image_url=image_url, updated_at=now_utc)
            .returning(Quiz.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def set_status(
        session: AsyncSession,
        *,
        quiz_id: UUID,
        status: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(Quiz)
            .where(Quiz.id == quiz_id)
            .values(status=status, updated_at=now_utc)
            .returning(Quiz.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def promote_batch_drafts(
        session: AsyncSession,
        *,
        batch_id: UUID,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(Quiz)
            .where(
                Quiz.batch_id == batch_id,
                Quiz.status == QuizStatus.DRAFT,
            )
            .values(status=QuizStatus.SCHEDULED, updated_at=now_utc)
            .returning(Quiz.id)
        )
        result = await session.execute(stmt)
        return len(list(result.scalars().all()))

    @staticmethod
    async def get_many(session: AsyncSession, *, quiz_ids: Sequence[UUID]) -> dict[UUID, Quiz]:
        if not quiz_ids:
            return {}
        stmt = select(Quiz).where(Quiz.id.in_(tuple(quiz_ids)))
        result = await session.execute(stmt)
        return {quiz.id: quiz for quiz in result.scalars().all()}
