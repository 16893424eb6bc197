from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quizpost.core.statuses import BatchStage, BatchStatus
from quizpost.db.models.quiz_batches import QuizBatch


class QuizBatchesRepo:
    @staticmethod
    async def create(session: AsyncSession, *, batch: QuizBatch) -> QuizBatch:
        session.add(batch)
        await session.flush()
        return batch

    @staticmethod
    async def get_by_id(session: AsyncSession, batch_id: UUID) -> QuizBatch | None:
        return await session.get(QuizBatch, batch_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, batch_id: UUID) -> QuizBatch | None:
        stmt = select(QuizBatch).where(QuizBatch.id == batch_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_status(session: AsyncSession, batch_id: UUID) -> str | None:
        stmt = select(QuizBatch.status).where(QuizBatch.id == batch_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def set_stage(
        session: AsyncSession,
        *,
        batch_id: UUID,
        stage: BatchStage,
        now_utc: datetime,
        current_template_id: UUID | None = None,
    ) -> bool:
        values: dict[str, object] = {"current_stage": stage, "updated_at": now_utc}
        if current_template_id is not None:
            values["current_template_id"] = current_template_id
        stmt = (
            update(QuizBatch)
            .where(
                QuizBatch.id == batch_id,
                QuizBatch.status == BatchStatus.PROCESSING,
            )
            .values(**values)
            .returning(QuizBatch.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def increment_completed(
        session: AsyncSession,
        *,
        batch_id: UUID,
        now_utc: datetime,
    ) -> int | None:
        stmt = (
            update(QuizBatch)
            .where(
                QuizBatch.id == batch_id,
                QuizBatch.completed_count < QuizBatch.count,
            )
            .values(completed_count=QuizBatch.completed_count + 1, updated_at=now_utc)
            .returning(QuizBatch.completed_count)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_complete(
        session: AsyncSession,
        *,
        batch_id: UUID,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(QuizBatch)
            .where(
                QuizBatch.id == batch_id,
                QuizBatch.status == BatchStatus.PROCESSING,
            )
            .values(
                status=BatchStatus.COMPLETE,
                current_stage=BatchStage.COMPLETE,
                completed_at=now_utc,
                updated_at=now_utc,
            )
            .returning(QuizBatch.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def mark_failed(
        session: AsyncSession,
        *,
        batch_id: UUID,
        error_message: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(QuizBatch)
            .where(
                QuizBatch.id == batch_id,
                QuizBatch.status == BatchStatus.PROCESSING,
            )
            .values(
                status=BatchStatus.FAILED,
                error_message=error_message,
                updated_at=now_utc,
            )
            .returning(QuizBatch.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def mark_cancelled(
        session: AsyncSession,
        *,
        batch_id: UUID,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(QuizBatch)
            .where(
                QuizBatch.id == batch_id,
                QuizBatch.status == BatchStatus.PROCESSING,
            )
            .values(status=BatchStatus.CANCELLED, updated_at=now_utc)
            .returning(QuizBatch.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def finalize(
        session: AsyncSession,
        *,
        batch_id: UUID,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(QuizBatch)
            .where(
                QuizBatch.id == batch_id,
                QuizBatch.status.in_((BatchStatus.PROCESSING, BatchStatus.FAILED)),
            )
            .values(
                status=BatchStatus.COMPLETE,
                current_stage=BatchStage.COMPLETE,
                completed_at=now_utc,
                updated_at=now_utc,
            )
            .returning(QuizBatch.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
