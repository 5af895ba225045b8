"""Open / closing-soon / opening-soon / closed status for a salon."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from saloony.db import run_read
from saloony.models import Schedule, ScheduleModification
from saloony.services.scheduling import (
    MINUTES_PER_DAY,
    active_modifications,
    has_full_day_closure,
    is_overnight,
    minutes_of,
    to_minutes,
    weekday_index,
)

logger = logging.getLogger(__name__)

OPEN = "open"
OPENING_SOON = "opening_soon"
CLOSING_SOON = "closing_soon"
CLOSED = "closed"

SOON_WINDOW_MINUTES = 60


@dataclass(frozen=True)
class AvailabilityStatus:
    status: str

    @property
    def is_available_today(self) -> bool:
        """Open for walk-ins right now."""

        return self.status in (OPEN, CLOSING_SOON)

    @property
    def available_next_hour(self) -> bool:
        return self.status in (OPEN, CLOSING_SOON, OPENING_SOON)

    def as_dict(self) -> Dict[str, object]:
        return {
            "status": self.status,
            "is_available_today": self.is_available_today,
            "available_next_hour": self.available_next_hour,
        }


def compute_status(
    schedule: Optional[Schedule],
    modifications: Iterable[ScheduleModification],
    now: datetime,
) -> AvailabilityStatus:
    """Status of a salon at the local wall-clock time ``now``.

    ``modifications`` may contain rows for any day; only the ones in force on
    ``now``'s date are considered.
    """

    if schedule is None:
        return AvailabilityStatus(CLOSED)

    today = now.date()
    if weekday_index(today) in (schedule.closed_days or []):
        return AvailabilityStatus(CLOSED)
    if has_full_day_closure(active_modifications(modifications, today)):
        return AvailabilityStatus(CLOSED)

    opening = to_minutes(schedule.opening_time or "09:00")
    closing = to_minutes(schedule.closing_time or "18:00")
    current = minutes_of(now)

    if is_overnight(opening, closing):
        if current >= opening or current < closing:
            if current >= opening:
                until_close = MINUTES_PER_DAY - current + closing
            else:
                until_close = closing - current
            return AvailabilityStatus(CLOSING_SOON if until_close <= SOON_WINDOW_MINUTES else OPEN)
        until_open = opening - current
        if 0 < until_open <= SOON_WINDOW_MINUTES:
            return AvailabilityStatus(OPENING_SOON)
        return AvailabilityStatus(CLOSED)

    if opening <= current < closing:
        until_close = closing - current
        return AvailabilityStatus(CLOSING_SOON if until_close <= SOON_WINDOW_MINUTES else OPEN)
    if current < opening and opening - current <= SOON_WINDOW_MINUTES:
        return AvailabilityStatus(OPENING_SOON)
    return AvailabilityStatus(CLOSED)


def salon_clock(timezone_name: str) -> Callable[[], datetime]:
    """Return a callable giving the naive local wall-clock time of the salons."""

    zone = ZoneInfo(timezone_name)

    def _now() -> datetime:
        return datetime.now(zone).replace(tzinfo=None)

    return _now


class AvailabilityService:
    """Database backed availability lookups."""

    def __init__(self, session: Session, *, clock: Callable[[], datetime]) -> None:
        self._session = session
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def status_for(self, salon_id: int, now: datetime | None = None) -> AvailabilityStatus:
        moment = now or self._clock()
        statuses = self.status_for_many([salon_id], moment)
        return statuses[salon_id]

    def status_for_many(
        self, salon_ids: Sequence[int], now: datetime | None = None
    ) -> Dict[int, AvailabilityStatus]:
        moment = now or self._clock()
        if not salon_ids:
            return {}

        def _load(session: Session):
            schedules = session.scalars(
                select(Schedule).where(Schedule.salon_id.in_(salon_ids))
            ).all()
            mods = session.scalars(
                select(ScheduleModification).where(
                    ScheduleModification.salon_id.in_(salon_ids),
                    ScheduleModification.staff_id.is_(None),
                )
            ).all()
            return schedules, mods

        schedules, mods = run_read(self._session, _load)
        by_salon = {schedule.salon_id: schedule for schedule in schedules}
        result: Dict[int, AvailabilityStatus] = {}
        for salon_id in salon_ids:
            salon_mods = [mod for mod in mods if mod.salon_id == salon_id]
            result[salon_id] = compute_status(by_salon.get(salon_id), salon_mods, moment)
        logger.debug("Computed availability for %s salons at %s", len(result), moment)
        return result
