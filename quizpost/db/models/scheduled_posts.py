from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from quizpost.core.statuses import PostStatus, sql_in
from quizpost.db.models.base import Base


class ScheduledPost(Base):
    __tablename__ = "scheduled_posts"
    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in(PostStatus)})", name="ck_scheduled_posts_status"),
        CheckConstraint("retry_count >= 0", name="ck_scheduled_posts_retry_count_non_negative"),
        CheckConstraint(
            "(status != 'PUBLISHED') OR published_at IS NOT NULL",
            name="ck_scheduled_posts_published_at_required",
        ),
        Index(
            "uq_scheduled_posts_pending_quiz_time",
            "quiz_id",
            "scheduled_at",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
        ),
        Index(
            "idx_scheduled_posts_pending_due",
            "scheduled_at",
            postgresql_where=text("status = 'PENDING'"),
        ),
        Index("idx_scheduled_posts_quiz", "quiz_id"),
        Index("idx_scheduled_posts_status_scheduled", "status", "scheduled_at"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    quiz_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
    )
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    fb_post_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    last_retry_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
