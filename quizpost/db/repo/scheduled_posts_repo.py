from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quizpost.core.statuses import PostStatus
from quizpost.db.models.quizzes import Quiz
from quizpost.db.models.scheduled_posts import ScheduledPost


class ScheduledPostsRepo:
    @staticmethod
    async def create(session: AsyncSession, *, post: ScheduledPost) -> ScheduledPost:
        session.add(post)
        await session.flush()
        return post

    @staticmethod
    async def get_by_id(session: AsyncSession, post_id: UUID) -> ScheduledPost | None:
        return await session.get(ScheduledPost, post_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, post_id: UUID) -> ScheduledPost | None:
        stmt = select(ScheduledPost).where(ScheduledPost.id == post_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def find_pending_conflict(
        session: AsyncSession,
        *,
        quiz_id: UUID,
        scheduled_at: datetime,
    ) -> ScheduledPost | None:
        stmt = (
            select(ScheduledPost)
            .where(
                ScheduledPost.quiz_id == quiz_id,
                ScheduledPost.scheduled_at == scheduled_at,
                ScheduledPost.status == PostStatus.PENDING,
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_with_quizzes(session: AsyncSession) -> list[tuple[ScheduledPost, Quiz]]:
        stmt = (
            select(ScheduledPost, Quiz)
            .join(Quiz, Quiz.id == ScheduledPost.quiz_id)
            .order_by(ScheduledPost.scheduled_at.asc(), ScheduledPost.id.asc())
        )
        result = await session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    @staticmethod
    async def map_scheduled_at_by_quiz(
        session: AsyncSession,
        *,
        quiz_ids: list[UUID],
    ) -> dict[UUID, datetime]:
        if not quiz_ids:
            return {}
        stmt = (
            select(ScheduledPost.quiz_id, func.min(ScheduledPost.scheduled_at))
            .where(
                ScheduledPost.quiz_id.in_(tuple(quiz_ids)),
                ScheduledPost.status != PostStatus.CANCELLED,
            )
            .group_by(ScheduledPost.quiz_id)
        )
        result = await session.execute(stmt)
        return {quiz_id: scheduled_at for quiz_id, scheduled_at in result.all()}

    @staticmethod
    async def list_busy_times(
        session: AsyncSession,
        *,
        from_utc: datetime,
        to_utc: datetime,
    ) -> set[datetime]:
        stmt = select(ScheduledPost.scheduled_at).where(
            ScheduledPost.status.in_((PostStatus.PENDING, PostStatus.PROCESSING)),
            ScheduledPost.scheduled_at >= from_utc,
            ScheduledPost.scheduled_at <= to_utc,
        )
        result = await session.execute(stmt)
        return set(result.scalars().all())

    @staticmethod
    async def list_due_pending_for_update(
        session: AsyncSession,
        *,
        now_utc: datetime,
        limit: int,
    ) -> list[ScheduledPost]:
        resolved_limit = max(1, int(limit))
        stmt = (
            select(ScheduledPost)
            .where(
                ScheduledPost.status == PostStatus.PENDING,
                ScheduledPost.scheduled_at <= now_utc,
            )
            .order_by(ScheduledPost.scheduled_at.asc(), ScheduledPost.id.asc())
            .limit(resolved_limit)
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def mark_processing(
        session: AsyncSession,
        *,
        post_ids: list[UUID],
        now_utc: datetime,
    ) -> int:
        if not post_ids:
            return 0
        stmt = (
            update(ScheduledPost)
            .where(
                ScheduledPost.id.in_(tuple(post_ids)),
                ScheduledPost.status == PostStatus.PENDING,
            )
            .values(status=PostStatus.PROCESSING, updated_at=now_utc)
            .returning(ScheduledPost.id)
        )
        result = await session.execute(stmt)
        return len(list(result.scalars().all()))

    @staticmethod
    async def mark_published(
        session: AsyncSession,
        *,
        post_id: UUID,
        fb_post_id: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(ScheduledPost)
            .where(ScheduledPost.id == post_id)
            .values(
                status=PostStatus.PUBLISHED,
                fb_post_id=fb_post_id,
                published_at=now_utc,
                error_message=None,
                updated_at=now_utc,
            )
            .returning(ScheduledPost.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def mark_failed(
        session: AsyncSession,
        *,
        post_id: UUID,
        error_message: str,
        now_utc: datetime,
    ) -> int | None:
        stmt = (
            update(ScheduledPost)
            .where(ScheduledPost.id == post_id)
            .values(
                status=PostStatus.FAILED,
                error_message=error_message,
                retry_count=ScheduledPost.retry_count + 1,
                last_retry_at=now_utc,
                updated_at=now_utc,
            )
            .returning(ScheduledPost.retry_count)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def fail_stale_processing(
        session: AsyncSession,
        *,
        stale_before: datetime,
        error_message: str,
        now_utc: datetime,
    ) -> list[UUID]:
        stmt = (
            update(ScheduledPost)
            .where(
                ScheduledPost.status == PostStatus.PROCESSING,
                ScheduledPost.updated_at < stale_before,
            )
            .values(
                status=PostStatus.FAILED,
                error_message=error_message,
                retry_count=ScheduledPost.retry_count + 1,
                last_retry_at=now_utc,
                updated_at=now_utc,
            )
            .returning(ScheduledPost.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def reset_for_retry(
        session: AsyncSession,
        *,
        post_id: UUID,
        now_utc: datetime,
    ) -> ScheduledPost | None:
        stmt = (
            update(ScheduledPost)
            .where(
                ScheduledPost.id == post_id,
                ScheduledPost.status == PostStatus.FAILED,
            )
            .values(
                status=PostStatus.PENDING,
                error_message=None,
                retry_count=ScheduledPost.retry_count + 1,
                last_retry_at=now_utc,
                updated_at=now_utc,
            )
            .returning(ScheduledPost)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def cancel(
        session: AsyncSession,
        *,
        post_id: UUID,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(ScheduledPost)
            .where(
                ScheduledPost.id == post_id,
                ScheduledPost.status.in_((PostStatus.PENDING, PostStatus.FAILED)),
            )
            .values(status=PostStatus.CANCELLED, updated_at=now_utc)
            .returning(ScheduledPost.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
