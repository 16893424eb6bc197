from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone

from quizpost.scheduling.errors import InvalidTimeSlotError

LOOKAHEAD_DAYS = 30


@dataclass(frozen=True, slots=True)
class WeeklySlot:
    day_of_week: int
    time_of_day: str


def parse_time_of_day(value: str) -> time:
    try:
        hours_raw, minutes_raw = value.split(":")
        parsed = time(hour=int(hours_raw), minute=int(minutes_raw))
    except ValueError as exc:
        raise InvalidTimeSlotError(f"invalid time of day: {value}") from exc
    if len(value) != 5:
        raise InvalidTimeSlotError(f"invalid time of day: {value}")
    return parsed


def sunday_based_weekday(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


def next_available_slot(
    slots: Iterable[WeeklySlot],
    busy: set[datetime],
    now_utc: datetime,
    *,
    lookahead_days: int = LOOKAHEAD_DAYS,
) -> datetime | None:
    ordered = sorted(slots, key=lambda slot: (slot.day_of_week, slot.time_of_day))
    busy_minutes = {moment.astimezone(timezone.utc).replace(second=0, microsecond=0) for moment in busy}
    for offset in range(lookahead_days):
        day = (now_utc + timedelta(days=offset)).date()
        weekday = sunday_based_weekday(datetime.combine(day, time(), tzinfo=timezone.utc))
        for slot in ordered:
            if slot.day_of_week != weekday:
                continue
            candidate = datetime.combine(day, parse_time_of_day(slot.time_of_day), tzinfo=timezone.utc)
            if candidate <= now_utc:
                continue
            if candidate not in busy_minutes:
                return candidate
    return None
