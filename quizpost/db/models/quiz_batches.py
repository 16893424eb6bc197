from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, SmallInteger, String, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from quizpost.core.statuses import BatchStage, BatchStatus, Difficulty, sql_in
from quizpost.db.models.base import Base


class QuizBatch(Base):
    __tablename__ = "quiz_batches"
    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in(BatchStatus)})", name="ck_quiz_batches_status"),
        CheckConstraint(f"current_stage IN ({sql_in(BatchStage)})", name="ck_quiz_batches_stage"),
        CheckConstraint(f"difficulty IN ({sql_in(Difficulty)})", name="ck_quiz_batches_difficulty"),
        CheckConstraint("count > 0", name="ck_quiz_batches_count_positive"),
        CheckConstraint(
            "completed_count >= 0 AND completed_count <= count",
            name="ck_quiz_batches_completed_range",
        ),
        CheckConstraint("variety >= 0 AND variety <= 100", name="ck_quiz_batches_variety_range"),
        Index("idx_quiz_batches_status_created", "status", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    template_ids: Mapped[list[UUID]] = mapped_column(ARRAY(PG_UUID(as_uuid=True)), nullable=False)
    count: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    theme: Mapped[str | None] = mapped_column(Text, nullable=True)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    variety: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    language: Mapped[str] = mapped_column(String(8), nullable=False)
    time_slot_distribution: Mapped[list[dict[str, object]]] = mapped_column(JSONB, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    current_stage: Mapped[str] = mapped_column(String(32), nullable=False)
    current_template_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
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
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
