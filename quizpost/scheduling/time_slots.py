from __future__ import annotations

import math
import random
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from quizpost.scheduling.errors import InvalidTimeSlotError

DEFAULT_SLOT_HOUR = 12
MULTIPLIER_MIN = 0.0
MULTIPLIER_MAX = 5.0
MULTIPLIER_STEP = 0.5


@dataclass(frozen=True, slots=True)
class SlotDefinition:
    slot_id: str
    label: str
    start_hour: int
    end_hour: int
    fixed_hour: int


SLOT_DEFINITIONS: dict[str, SlotDefinition] = {
    "morning": SlotDefinition("morning", "Morning", 8, 11, 9),
    "lunch": SlotDefinition("lunch", "Lunch", 11, 14, 12),
    "afternoon": SlotDefinition("afternoon", "Afternoon", 14, 17, 15),
    "evening": SlotDefinition("evening", "Evening", 17, 20, 18),
    "night": SlotDefinition("night", "Night", 20, 23, 21),
}


@dataclass(frozen=True, slots=True)
class TimeSlotSetting:
    slot_id: str
    multiplier: float


@dataclass(frozen=True, slots=True)
class DistributionEntry:
    date: date
    slot_id: str
    weight: float

    def as_dict(self) -> dict[str, object]:
        return {"date": self.date.isoformat(), "slotId": self.slot_id, "weight": self.weight}


def default_time_slots() -> list[TimeSlotSetting]:
    return [TimeSlotSetting(slot_id, 1.0) for slot_id in SLOT_DEFINITIONS]


def resolve_timezone(name: str | None) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def multiplier_label(multiplier: float) -> str:
    if multiplier == 0:
        return "Rare"
    if multiplier < 1:
        return "Less frequent"
    if multiplier == 1:
        return "Normal"
    if multiplier < 2:
        return "More frequent"
    if multiplier < 3:
        return "Frequent"
    if multiplier < 4:
        return "Very frequent"
    return "Maximum"


def validate_multiplier(multiplier: float) -> float:
    if not MULTIPLIER_MIN <= multiplier <= MULTIPLIER_MAX:
        raise InvalidTimeSlotError(f"multiplier must be between {MULTIPLIER_MIN} and {MULTIPLIER_MAX}")
    if not math.isclose((multiplier / MULTIPLIER_STEP) % 1, 0.0, abs_tol=1e-9):
        raise InvalidTimeSlotError(f"multiplier must be a multiple of {MULTIPLIER_STEP}")
    return multiplier


def build_time_slot_distribution(
    slots: list[TimeSlotSetting],
    start_date: date,
    total: int,
) -> list[DistributionEntry]:
    active = [slot for slot in slots if slot.multiplier > 0]
    if not active:
        return [DistributionEntry(start_date, "morning", 1.0)]

    per_day = sum(slot.multiplier for slot in active)
    days = max(1, math.ceil(total / per_day))
    return [
        DistributionEntry(start_date + timedelta(days=day), slot.slot_id, slot.multiplier)
        for day in range(days)
        for slot in active
    ]


def parse_distribution_entry(entry: dict[str, object]) -> DistributionEntry:
    raw_date = entry.get("date")
    slot_id = entry.get("slotId") or entry.get("slot_id")
    if not isinstance(raw_date, str) or not isinstance(slot_id, str):
        raise InvalidTimeSlotError("distribution entry requires date and slotId")
    try:
        parsed_date = date.fromisoformat(raw_date[:10])
    except ValueError as exc:
        raise InvalidTimeSlotError(f"invalid distribution date: {raw_date}") from exc
    weight = entry.get("weight", 1)
    return DistributionEntry(parsed_date, slot_id, float(weight) if isinstance(weight, (int, float)) else 1.0)


def distribution_slot_time(entry: DistributionEntry, tz: tzinfo = timezone.utc) -> datetime:
    definition = SLOT_DEFINITIONS.get(entry.slot_id)
    hour = definition.fixed_hour if definition else DEFAULT_SLOT_HOUR
    local = datetime.combine(entry.date, time(hour=hour), tzinfo=tz)
    return local.astimezone(timezone.utc)


def distribution_time_for_index(
    distribution: list[DistributionEntry],
    index: int,
    tz: tzinfo = timezone.utc,
) -> datetime:
    if not distribution:
        raise InvalidTimeSlotError("time slot distribution is empty")
    return distribution_slot_time(distribution[index % len(distribution)], tz)


def expand_time_slots(slots: list[TimeSlotSetting]) -> list[str]:
    expanded: list[str] = []
    for slot in slots:
        expanded.extend([slot.slot_id] * int(slot.multiplier))
    return expanded


def plan_schedule(
    index: int,
    start_date: date,
    slots: list[TimeSlotSetting],
    *,
    rng: random.Random | None = None,
    tz: tzinfo = timezone.utc,
) -> tuple[datetime, str]:
    expanded = expand_time_slots(slots)
    if not expanded:
        raise InvalidTimeSlotError("at least one time slot with a multiplier of 1 or more is required")
    for slot_id in expanded:
        if slot_id not in SLOT_DEFINITIONS:
            raise InvalidTimeSlotError(f"unknown time slot: {slot_id}")

    resolved_rng = rng or random.Random()
    day = start_date + timedelta(days=index // len(expanded))
    slot_id = expanded[index % len(expanded)]
    definition = SLOT_DEFINITIONS[slot_id]
    hour = resolved_rng.randrange(definition.start_hour, definition.end_hour)
    minute = resolved_rng.randrange(60)
    local = datetime.combine(day, time(hour=hour, minute=minute), tzinfo=tz)
    return local.astimezone(timezone.utc), slot_id
