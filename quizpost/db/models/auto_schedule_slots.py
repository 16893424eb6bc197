from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, DateTime, SmallInteger, String, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from quizpost.db.models.base import Base


class AutoScheduleSlot(Base):
    __tablename__ = "auto_schedule_slots"
    __table_args__ = (
        CheckConstraint(
            "day_of_week >= 0 AND day_of_week <= 6",
            name="ck_auto_schedule_slots_day_range",
        ),
        CheckConstraint(
            "time_of_day ~ '^([01][0-9]|2[0-3]):[0-5][0-9]$'",
            name="ck_auto_schedule_slots_time_format",
        ),
        UniqueConstraint("day_of_week", "time_of_day", name="uq_auto_schedule_slots_day_time"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    time_of_day: Mapped[str] = mapped_column(String(5), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"))
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
