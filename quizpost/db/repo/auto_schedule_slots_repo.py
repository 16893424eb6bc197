from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quizpost.db.models.auto_schedule_slots import AutoScheduleSlot


class AutoScheduleSlotsRepo:
    @staticmethod
    async def list_all(session: AsyncSession, *, active_only: bool = False) -> list[AutoScheduleSlot]:
        stmt = select(AutoScheduleSlot).order_by(
            AutoScheduleSlot.day_of_week.asc(),
            AutoScheduleSlot.time_of_day.asc(),
        )
        if active_only:
            stmt = stmt.where(AutoScheduleSlot.is_active.is_(True))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_by_day_time(
        session: AsyncSession,
        *,
        day_of_week: int,
        time_of_day: str,
    ) -> AutoScheduleSlot | None:
        stmt = select(AutoScheduleSlot).where(
            AutoScheduleSlot.day_of_week == day_of_week,
            AutoScheduleSlot.time_of_day == time_of_day,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, slot: AutoScheduleSlot) -> AutoScheduleSlot:
        session.add(slot)
        await session.flush()
        return slot

    @staticmethod
    async def update_fields(
        session: AsyncSession,
        *,
        slot_id: UUID,
        values: dict[str, object],
        now_utc: datetime,
    ) -> AutoScheduleSlot | None:
        stmt = (
            update(AutoScheduleSlot)
            .where(AutoScheduleSlot.id == slot_id)
            .values(**values, updated_at=now_utc)
            .returning(AutoScheduleSlot)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete_by_id(session: AsyncSession, *, slot_id: UUID) -> bool:
        stmt = delete(AutoScheduleSlot).where(AutoScheduleSlot.id == slot_id).returning(AutoScheduleSlot.id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
