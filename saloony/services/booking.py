"""Booking slot validation and the appointment lifecycle."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from threading import Lock
from typing import Callable, DefaultDict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from saloony.db import run_read
from saloony.models import (
    ABSENT,
    CANCELLED,
    COMPLETED,
    SCHEDULED,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentItem,
    Break,
    SalonService,
    Schedule,
    ScheduleModification,
    Staff,
    User,
)
from saloony.schemas.appointment import (
    AppointmentListResponse,
    AppointmentServiceOut,
    AppointmentSummary,
    BookingRequest,
    BookingResponse,
    CancelResponse,
    StatusUpdateResponse,
)
from saloony.services.exceptions import (
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from saloony.services.scheduling import (
    FULL_DAY,
    INTERVAL,
    MINUTES_PER_DAY,
    active_modifications,
    has_full_day_closure,
    is_overnight,
    matches_staff,
    minutes_of,
    overlaps,
    to_minutes,
    weekday_index,
)

logger = logging.getLogger(__name__)

SLOT_GRANULARITY_MINUTES = 30

SALON_FILTERS = ("today", "upcoming", "past", "completed", "cancelled")
USER_FILTERS = ("upcoming", "past")


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: str

    def as_dict(self) -> dict:
        return {"valid": self.valid, "message": self.message}


def _rejected(message: str) -> ValidationResult:
    return ValidationResult(False, message)


def earliest_bookable(now: datetime, lead_minutes: int) -> datetime:
    """``now`` plus the lead time, rounded up to the next half hour."""

    base = now.replace(second=0, microsecond=0) + timedelta(minutes=lead_minutes)
    remainder = base.minute % SLOT_GRANULARITY_MINUTES
    if remainder:
        base += timedelta(minutes=SLOT_GRANULARITY_MINUTES - remainder)
    return base


def _clock_range_hits(start: datetime, end: datetime, from_hm: str, to_hm: str) -> bool:
    """True when the daily window ``from_hm``-``to_hm`` overlaps ``[start, end)``."""

    window_start_min = to_minutes(from_hm)
    window_end_min = to_minutes(to_hm)
    days = {start.date(), (end - timedelta(microseconds=1)).date()}
    for day in days:
        window_start = datetime.combine(day, time.min) + timedelta(minutes=window_start_min)
        window_end = datetime.combine(day, time.min) + timedelta(minutes=window_end_min)
        if window_end <= window_start:
            window_end += timedelta(days=1)
        if overlaps(start, end, window_start, window_end):
            return True
    return False


def within_operating_hours(schedule: Schedule, start: datetime, end: datetime) -> bool:
    opening = to_minutes(schedule.opening_time or "09:00")
    closing = to_minutes(schedule.closing_time or "18:00")
    start_min = minutes_of(start)
    end_min = start_min + int((end - start).total_seconds() // 60)

    if is_overnight(opening, closing):
        # early-morning tail of the previous evening's opening
        if end_min <= closing:
            return True
        return start_min >= opening and end_min <= MINUTES_PER_DAY + closing
    return start_min >= opening and end_min <= closing


class BookingValidator:
    """Read-only check that an interval can be booked at a salon."""

    def __init__(
        self,
        session: Session,
        *,
        clock: Callable[[], datetime],
        lead_minutes: int = 30,
    ) -> None:
        self._session = session
        self._clock = clock
        self._lead_minutes = lead_minutes

    def validate(
        self,
        salon_id: int,
        staff_id: Optional[int],
        start_time: datetime,
        end_time: datetime,
        duration_minutes: int,
    ) -> ValidationResult:
        staff = staff_id or None
        requested_minutes = (end_time - start_time).total_seconds() / 60
        if requested_minutes != duration_minutes:
            return _rejected("مدة الخدمة غير متطابقة مع الوقت المحدد.")

        day = start_time.date()
        schedule, modifications, breaks, staff_ids, appointments = run_read(
            self._session,
            lambda session: self._load(session, salon_id, day, start_time, end_time),
        )

        if schedule is None:
            return _rejected("جدول الصالون غير متوفر.")
        if weekday_index(day) in (schedule.closed_days or []):
            return _rejected("الصالون مغلق في هذا اليوم.")
        if has_full_day_closure(modifications, staff_id=staff, staff_scoped=True):
            return _rejected("الصالون مغلق في هذا اليوم بسبب ظروف خاصة.")
        if not within_operating_hours(schedule, start_time, end_time):
            return _rejected("الموعد خارج ساعات العمل.")
        if start_time < earliest_bookable(self._clock(), self._lead_minutes):
            return _rejected("لا يمكن حجز موعد في الماضي.")

        for mod in modifications:
            if mod.closure_type != INTERVAL or not (mod.start_time and mod.end_time):
                continue
            if mod.staff_id and staff is None:
                continue  # counted against that member's capacity below
            if matches_staff(mod.staff_id, staff) and _clock_range_hits(
                start_time, end_time, mod.start_time, mod.end_time
            ):
                return _rejected("الوقت المحدد غير متاح بسبب ظروف خاصة.")

        for item in breaks:
            if item.staff_id and staff is None:
                continue
            if matches_staff(item.staff_id, staff) and _clock_range_hits(
                start_time, end_time, item.start_time, item.end_time
            ):
                return _rejected("الوقت المحدد يتعارض مع فترة استراحة.")

        if staff is not None:
            if any(appt.staff_id == staff for appt in appointments):
                return _rejected("الموظف غير متاح في هذا الوقت - يوجد موعد آخر.")
            return ValidationResult(True, "الموعد متاح للحجز.")

        unassigned = sum(1 for appt in appointments if appt.staff_id is None)
        if not staff_ids:
            if unassigned:
                return _rejected("الوقت المحدد غير متاح.")
            return ValidationResult(True, "الموعد متاح للحجز.")

        free = self.free_staff(staff_ids, modifications, breaks, appointments, start_time, end_time)
        if len(free) <= unassigned:
            return _rejected("لا يوجد موظفين متاحين في هذا الوقت.")
        return ValidationResult(True, "الموعد متاح للحجز.")

    @staticmethod
    def free_staff(
        staff_ids: Sequence[int],
        modifications: Iterable[ScheduleModification],
        breaks: Iterable[Break],
        appointments: Iterable[Appointment],
        start_time: datetime,
        end_time: datetime,
    ) -> List[int]:
        """Staff members with no overlapping appointment, closure or break."""

        busy = {appt.staff_id for appt in appointments if appt.staff_id is not None}
        for mod in modifications:
            if not mod.staff_id:
                continue
            if mod.closure_type == FULL_DAY:
                busy.add(mod.staff_id)
            elif mod.start_time and mod.end_time and _clock_range_hits(
                start_time, end_time, mod.start_time, mod.end_time
            ):
                busy.add(mod.staff_id)
        for item in breaks:
            if item.staff_id and _clock_range_hits(start_time, end_time, item.start_time, item.end_time):
                busy.add(item.staff_id)
        return [staff_id for staff_id in staff_ids if staff_id not in busy]

    @staticmethod
    def _load(session: Session, salon_id: int, day: date, start: datetime, end: datetime):
        schedule = session.get(Schedule, salon_id)
        modifications = active_modifications(
            session.scalars(
                select(ScheduleModification).where(ScheduleModification.salon_id == salon_id)
            ).all(),
            day,
        )
        breaks = [
            item
            for item in session.scalars(select(Break).where(Break.salon_id == salon_id)).all()
            if item.break_date is None or item.break_date == day
        ]
        staff_ids = list(
            session.scalars(
                select(Staff.id).where(Staff.salon_id == salon_id).order_by(Staff.id)
            ).all()
        )
        appointments = session.scalars(
            select(Appointment).where(
                Appointment.salon_id == salon_id,
                Appointment.status == SCHEDULED,
                Appointment.start_time < end,
                Appointment.end_time > start,
            )
        ).all()
        return schedule, modifications, breaks, staff_ids, appointments


_salon_locks: DefaultDict[int, Lock] = defaultdict(Lock)
_salon_locks_guard = Lock()


def _salon_lock(salon_id: int) -> Lock:
    with _salon_locks_guard:
        return _salon_locks[salon_id]


def _summarise(appointment: Appointment) -> AppointmentSummary:
    return AppointmentSummary(
        id=appointment.id,
        salon_id=appointment.salon_id,
        salon_name=appointment.salon.salon_name if appointment.salon else None,
        user_id=appointment.user_id,
        user_name=appointment.user.name if appointment.user else None,
        staff_id=appointment.staff_id,
        staff_name=appointment.staff.name if appointment.staff else None,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        status=appointment.status,
        price=appointment.price,
        services=[
            AppointmentServiceOut(
                service_id=item.service_id,
                name_ar=item.service.name_ar if item.service else None,
                price=item.price,
            )
            for item in appointment.items
        ],
    )


class AppointmentService:
    """Books, cancels, updates and lists appointments."""

    def __init__(
        self,
        session: Session,
        *,
        clock: Callable[[], datetime],
        lead_minutes: int = 30,
        cancellation_notice_hours: int = 3,
    ) -> None:
        self._session = session
        self._clock = clock
        self._cancellation_notice = timedelta(hours=cancellation_notice_hours)
        self.validator = BookingValidator(session, clock=clock, lead_minutes=lead_minutes)

    def validate_slot(
        self,
        salon_id: int,
        staff_id: Optional[int],
        start_time: datetime,
        end_time: datetime,
        duration_minutes: int,
    ) -> ValidationResult:
        return self.validator.validate(salon_id, staff_id, start_time, end_time, duration_minutes)

    def book(self, user_id: int, request: BookingRequest) -> BookingResponse:
        logger.info("Booking appointment for user %s at salon %s", user_id, request.salon_id)
        requested = request.services or []
        service_ids = [item.id for item in requested] or [request.service_id]

        offerings = {
            offering.service_id: offering
            for offering in self._session.scalars(
                select(SalonService).where(
                    SalonService.salon_id == request.salon_id,
                    SalonService.service_id.in_(service_ids),
                )
            ).all()
        }
        missing = [service_id for service_id in service_ids if service_id not in offerings]
        if missing:
            raise InvalidRequestError("خدمة غير صالحة.")
        duration = sum(offerings[service_id].duration for service_id in service_ids)
        prices = {service_id: offerings[service_id].price for service_id in service_ids}

        staff_id = request.staff_id or None
        with _salon_lock(request.salon_id):
            try:
                result = self.validator.validate(
                    request.salon_id, staff_id, request.start_time, request.end_time, duration
                )
                if not result.valid:
                    raise InvalidRequestError(result.message)

                staff_name = None
                if staff_id is None:
                    staff_id, staff_name = self._auto_assign(
                        request.salon_id, request.start_time, request.end_time
                    )
                else:
                    member = self._session.get(Staff, staff_id)
                    if member is None or member.salon_id != request.salon_id:
                        raise InvalidRequestError("المختص غير موجود في هذا الصالون.")
                    staff_name = member.name

                total = sum(prices.values())
                appointment = Appointment(
                    salon_id=request.salon_id,
                    user_id=user_id,
                    staff_id=staff_id,
                    service_id=service_ids[0],
                    start_time=request.start_time,
                    end_time=request.end_time,
                    status=SCHEDULED,
                    price=total,
                )
                appointment.items = [
                    AppointmentItem(service_id=service_id, price=prices[service_id])
                    for service_id in service_ids
                ]
                self._session.add(appointment)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

        logger.info("Booked appointment %s with staff %s", appointment.id, staff_id)
        return BookingResponse(
            message="تم حجز موعدك بنجاح!",
            appointment_id=appointment.id,
            assigned_staff_name=staff_name,
            services_count=len(service_ids),
            price=total,
        )

    def _auto_assign(self, salon_id: int, start: datetime, end: datetime) -> tuple[Optional[int], Optional[str]]:
        members = self._session.scalars(
            select(Staff).where(Staff.salon_id == salon_id).order_by(Staff.id)
        ).all()
        if not members:
            return None, None
        _, modifications, breaks, staff_ids, appointments = BookingValidator._load(
            self._session, salon_id, start.date(), start, end
        )
        free = BookingValidator.free_staff(staff_ids, modifications, breaks, appointments, start, end)
        if not free:
            raise InvalidRequestError("عفواً، لا يوجد مختص متاح لإتمام هذا الحجز في هذا الوقت.")
        chosen = next(member for member in members if member.id == free[0])
        return chosen.id, chosen.name

    def cancel(self, user_id: int, appointment_id: int) -> CancelResponse:
        appointment = self._session.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFoundError("الموعد غير موجود.")
        if appointment.user_id != user_id:
            raise PermissionDeniedError("غير مصرح لك بإلغاء هذا الموعد.")
        if appointment.status != SCHEDULED:
            raise InvalidRequestError("لا يمكن إلغاء موعد غير مجدول.")

        late = appointment.start_time - self._clock() < self._cancellation_notice
        appointment.status = CANCELLED
        strikes = None
        if late:
            user = self._session.get(User, user_id)
            user.strikes = (user.strikes or 0) + 1
            strikes = user.strikes
        self._session.commit()

        if late:
            logger.info("Late cancellation of appointment %s, user %s strikes=%s", appointment_id, user_id, strikes)
            return CancelResponse(
                message=f"تم إلغاء الموعد. تم إضافة إنذار لحسابك (الإنذارات: {strikes}/3) لأن الإلغاء كان متأخراً.",
                strike_issued=True,
                strikes=strikes,
            )
        logger.info("Cancelled appointment %s", appointment_id)
        return CancelResponse(message="تم إلغاء الموعد بنجاح.")

    def update_status(self, salon_id: Optional[int], appointment_id: int, status: str) -> StatusUpdateResponse:
        if status not in TERMINAL_STATUSES:
            raise InvalidRequestError("حالة غير صالحة.")
        appointment = self._session.get(Appointment, appointment_id)
        if appointment is None or (salon_id is not None and appointment.salon_id != salon_id):
            raise NotFoundError("الموعد غير موجود.")
        if appointment.status != SCHEDULED:
            raise InvalidRequestError("لا يمكن تعديل حالة موعد منتهٍ.")

        appointment.status = status
        if status == ABSENT:
            user = self._session.get(User, appointment.user_id)
            if user is not None:
                user.strikes = (user.strikes or 0) + 1
        self._session.commit()
        logger.info("Appointment %s moved to %s", appointment_id, status)
        return StatusUpdateResponse(message="تم تحديث حالة الموعد.", status=status)

    def list_for_salon(self, salon_id: int, filter_name: str) -> AppointmentListResponse:
        if filter_name not in SALON_FILTERS:
            raise InvalidRequestError(f"Unknown filter: {filter_name}")
        now = self._clock()
        query = self._base_query().where(Appointment.salon_id == salon_id)
        if filter_name == "today":
            start_of_day = datetime.combine(now.date(), time.min)
            query = query.where(
                Appointment.start_time >= start_of_day,
                Appointment.start_time < start_of_day + timedelta(days=1),
            ).order_by(Appointment.start_time)
        elif filter_name == "upcoming":
            query = query.where(
                Appointment.status == SCHEDULED, Appointment.start_time >= now
            ).order_by(Appointment.start_time)
        elif filter_name == "past":
            query = query.where(Appointment.start_time < now).order_by(Appointment.start_time.desc())
        elif filter_name == "completed":
            query = query.where(Appointment.status == COMPLETED).order_by(Appointment.start_time.desc())
        else:
            query = query.where(Appointment.status == CANCELLED).order_by(Appointment.start_time.desc())
        return self._run_list(query)

    def list_for_user(self, acting_user_id: int, user_id: int, filter_name: str) -> AppointmentListResponse:
        if acting_user_id != user_id:
            raise PermissionDeniedError("غير مصرح لك بعرض هذه المواعيد.")
        if filter_name not in USER_FILTERS:
            raise InvalidRequestError(f"Unknown filter: {filter_name}")
        now = self._clock()
        query = self._base_query().where(Appointment.user_id == user_id)
        if filter_name == "upcoming":
            query = query.where(
                Appointment.status == SCHEDULED, Appointment.start_time >= now
            ).order_by(Appointment.start_time)
        else:
            query = query.where(
                (Appointment.start_time < now) | (Appointment.status != SCHEDULED)
            ).order_by(Appointment.start_time.desc())
        return self._run_list(query)

    def scheduled_on(self, salon_id: int, day: date) -> AppointmentListResponse:
        start_of_day = datetime.combine(day, time.min)
        query = self._base_query().where(
            Appointment.salon_id == salon_id,
            Appointment.status == SCHEDULED,
            Appointment.start_time >= start_of_day,
            Appointment.start_time < start_of_day + timedelta(days=1),
        ).order_by(Appointment.start_time)
        return self._run_list(query)

    @staticmethod
    def _base_query():
        return select(Appointment).options(
            selectinload(Appointment.salon),
            selectinload(Appointment.user),
            selectinload(Appointment.staff),
            selectinload(Appointment.items).selectinload(AppointmentItem.service),
        )

    def _run_list(self, query) -> AppointmentListResponse:
        rows = run_read(self._session, lambda session: session.scalars(query).all())
        items = [_summarise(row) for row in rows]
        return AppointmentListResponse(total=len(items), items=items)
