from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import structlog

from quizpost.db.models.auto_schedule_slots import AutoScheduleSlot
from quizpost.db.repo.auto_schedule_slots_repo import AutoScheduleSlotsRepo
from quizpost.db.repo.scheduled_posts_repo import ScheduledPostsRepo
from quizpost.db.session import SessionLocal
from quizpost.scheduling.auto_schedule import LOOKAHEAD_DAYS, WeeklySlot, next_available_slot, parse_time_of_day
from quizpost.scheduling.errors import (
    AutoScheduleSlotConflictError,
    AutoScheduleSlotNotFoundError,
    InvalidTimeSlotError,
    NoAutoScheduleSlotsError,
    NoAvailableSlotError,
)

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class AutoScheduleSlotSnapshot:
    slot_id: UUID
    day_of_week: int
    time_of_day: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, slot: AutoScheduleSlot) -> AutoScheduleSlotSnapshot:
        return cls(
            slot_id=slot.id,
            day_of_week=slot.day_of_week,
            time_of_day=slot.time_of_day,
            is_active=slot.is_active,
            created_at=slot.created_at,
            updated_at=slot.updated_at,
        )


@dataclass(frozen=True, slots=True)
class SlotInput:
    day_of_week: int
    time_of_day: str
    is_active: bool = True


def normalize_time_of_day(value: str) -> str:
    candidate = value.strip()
    if len(candidate) == 4 and candidate[1] == ":":
        candidate = f"0{candidate}"
    return parse_time_of_day(candidate).strftime("%H:%M")


def _validate_day(day_of_week: int) -> int:
    if not 0 <= day_of_week <= 6:
        raise InvalidTimeSlotError("day of week must be between 0 and 6")
    return day_of_week


async def list_time_slots() -> list[AutoScheduleSlotSnapshot]:
    async with SessionLocal.begin() as session:
        slots = await AutoScheduleSlotsRepo.list_all(session)
        return [AutoScheduleSlotSnapshot.from_model(slot) for slot in slots]


async def create_time_slot(slot_input: SlotInput, *, now_utc: datetime | None = None) -> AutoScheduleSlotSnapshot:
    created = await create_time_slots([slot_input], now_utc=now_utc, skip_duplicates=False)
    return created[0]


async def create_time_slots(
    slot_inputs: list[SlotInput],
    *,
    now_utc: datetime | None = None,
    skip_duplicates: bool = True,
) -> list[AutoScheduleSlotSnapshot]:
    now = now_utc or datetime.now(timezone.utc)
    normalized = [
        SlotInput(
            day_of_week=_validate_day(item.day_of_week),
            time_of_day=normalize_time_of_day(item.time_of_day),
            is_active=item.is_active,
        )
        for item in slot_inputs
    ]

    created: list[AutoScheduleSlotSnapshot] = []
    async with SessionLocal.begin() as session:
        for item in normalized:
            existing = await AutoScheduleSlotsRepo.get_by_day_time(
                session,
                day_of_week=item.day_of_week,
                time_of_day=item.time_of_day,
            )
            if existing is not None:
                if not skip_duplicates:
                    raise AutoScheduleSlotConflictError("time slot already exists for this day and time")
                logger.warning(
                    "auto_schedule_slot_duplicate_skipped",
                    day_of_week=item.day_of_week,
                    time_of_day=item.time_of_day,
                )
                continue
            slot = await AutoScheduleSlotsRepo.create(
                session,
                slot=AutoScheduleSlot(
                    id=uuid4(),
                    day_of_week=item.day_of_week,
                    time_of_day=item.time_of_day,
                    is_active=item.is_active,
                    created_at=now,
                    updated_at=now,
                ),
            )
            created.append(AutoScheduleSlotSnapshot.from_model(slot))

    logger.info("auto_schedule_slots_created", created_total=len(created), requested_total=len(normalized))
    return created


async def update_time_slot(
    slot_id: UUID,
    *,
    day_of_week: int | None = None,
    time_of_day: str | None = None,
    is_active: bool | None = None,
    now_utc: datetime | None = None,
) -> AutoScheduleSlotSnapshot:
    values: dict[str, object] = {}
    if day_of_week is not None:
        values["day_of_week"] = _validate_day(day_of_week)
    if time_of_day is not None:
        values["time_of_day"] = normalize_time_of_day(time_of_day)
    if is_active is not None:
        values["is_active"] = is_active

    async with SessionLocal.begin() as session:
        current = await session.get(AutoScheduleSlot, slot_id)
        if current is None:
            raise AutoScheduleSlotNotFoundError
        target_day = int(values.get("day_of_week", current.day_of_week))
        target_time = str(values.get("time_of_day", current.time_of_day))
        duplicate = await AutoScheduleSlotsRepo.get_by_day_time(
            session,
            day_of_week=target_day,
            time_of_day=target_time,
        )
        if duplicate is not None and duplicate.id != slot_id:
            raise AutoScheduleSlotConflictError("time slot already exists for this day and time")
        slot = await AutoScheduleSlotsRepo.update_fields(
            session,
            slot_id=slot_id,
            values=values,
            now_utc=now_utc or datetime.now(timezone.utc),
        )
        if slot is None:
            raise AutoScheduleSlotNotFoundError
        return AutoScheduleSlotSnapshot.from_model(slot)


async def delete_time_slot(slot_id: UUID) -> None:
    async with SessionLocal.begin() as session:
        deleted = await AutoScheduleSlotsRepo.delete_by_id(session, slot_id=slot_id)
    if not deleted:
        raise AutoScheduleSlotNotFoundError
    logger.info("auto_schedule_slot_deleted", slot_id=str(slot_id))


async def find_next_available(*, now_utc: datetime | None = None) -> datetime:
    now = now_utc or datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        slots = await AutoScheduleSlotsRepo.list_all(session, active_only=True)
        if not slots:
            raise NoAutoScheduleSlotsError("no auto-schedule slots configured")
        busy = await ScheduledPostsRepo.list_busy_times(
            session,
            from_utc=now,
            to_utc=now + timedelta(days=LOOKAHEAD_DAYS + 1),
        )

    candidate = next_available_slot(
        [WeeklySlot(day_of_week=slot.day_of_week, time_of_day=slot.time_of_day) for slot in slots],
        busy,
        now,
    )
    if candidate is None:
        raise NoAvailableSlotError(f"no available slots found in the next {LOOKAHEAD_DAYS} days")
    return candidate
