"""Time-of-day helpers shared by the booking and availability checks."""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from saloony.models import ScheduleModification

MINUTES_PER_DAY = 24 * 60

FULL_DAY = "full_day"
INTERVAL = "interval"
ONCE = "once"
RECURRING = "recurring"

_MOD_TYPE_ALIASES = {
    "once": ONCE,
    "date": ONCE,
    "recurring": RECURRING,
    "day": RECURRING,
    "weekly": RECURRING,
}


def to_minutes(value: str) -> int:
    """Convert ``HH:MM`` (seconds are ignored) into minutes since midnight."""

    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time of day: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid time of day: {value!r}")
    return hours * 60 + minutes


def minutes_of(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def weekday_index(day: date) -> int:
    """Day index with 0=Sunday .. 6=Saturday."""

    return (day.weekday() + 1) % 7


def overlaps(start_a: int | datetime, end_a: int | datetime, start_b: int | datetime, end_b: int | datetime) -> bool:
    """Half-open interval overlap: touching intervals do not conflict."""

    return start_a < end_b and end_a > start_b


def is_overnight(opening: int, closing: int) -> bool:
    return opening > closing


def normalise_mod_type(value: str) -> str:
    try:
        return _MOD_TYPE_ALIASES[value.strip().lower()]
    except KeyError as exc:
        raise ValueError(f"Unknown modification type: {value!r}") from exc


def modification_applies(mod: ScheduleModification, day: date) -> bool:
    """Return True when ``mod`` is in force on ``day``."""

    mod_type = _MOD_TYPE_ALIASES.get((mod.mod_type or "").lower())
    if mod_type == ONCE:
        return mod.mod_date == day
    if mod_type == RECURRING:
        return mod.mod_day_index == weekday_index(day)
    return False


def matches_staff(scope_staff_id: Optional[int], staff_id: Optional[int]) -> bool:
    """A row scoped to no staff applies to everyone; otherwise only to that member."""

    return not scope_staff_id or (staff_id is not None and scope_staff_id == staff_id)


def active_modifications(
    modifications: Iterable[ScheduleModification], day: date
) -> list[ScheduleModification]:
    return [mod for mod in modifications if modification_applies(mod, day)]


def has_full_day_closure(
    modifications: Sequence[ScheduleModification],
    *,
    staff_id: Optional[int] = None,
    staff_scoped: bool = False,
) -> bool:
    """True when a full-day closure applies.

    Salon-wide closures always count. Closures scoped to one staff member only
    count when ``staff_scoped`` is set and they target ``staff_id``.
    """

    for mod in modifications:
        if mod.closure_type != FULL_DAY:
            continue
        if not mod.staff_id:
            return True
        if staff_scoped and staff_id is not None and mod.staff_id == staff_id:
            return True
    return False
