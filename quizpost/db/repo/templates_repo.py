from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quizpost.db.models.templates import Template


class TemplatesRepo:
    @staticmethod
    async def create(session: AsyncSession, *, template: Template) -> Template:
        session.add(template)
        await session.flush()
        return template

    @staticmethod
    async def get_by_id(session: AsyncSession, template_id: UUID) -> Template | None:
        return await session.get(Template, template_id)

    @staticmethod
    async def list_all(session: AsyncSession, *, quiz_type: str | None = None) -> list[Template]:
        stmt = select(Template).order_by(Template.created_at.desc(), Template.id.asc())
        if quiz_type is not None:
            stmt = stmt.where(Template.quiz_type == quiz_type)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_by_ids(session: AsyncSession, *, template_ids: Sequence[UUID]) -> list[Template]:
        if not template_ids:
            return []
        stmt = select(Template).where(Template.id.in_(tuple(template_ids)))
        result = await session.execute(stmt)
        by_id = {template.id: template for template in result.scalars().all()}
        return [by_id[template_id] for template_id in template_ids if template_id in by_id]
