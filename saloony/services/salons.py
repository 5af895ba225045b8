from __future__ import annotations

import logging
from typing import List

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from saloony.db import run_read
from saloony.models import (
    Appointment,
    Break,
    Review,
    Salon,
    SalonService,
    Schedule,
    ScheduleModification,
    Service,
    Staff,
)
from saloony.schemas.salon import (
    BreakIn,
    BreakOut,
    ModificationIn,
    ModificationOut,
    SalonDetails,
    SalonInfo,
    SalonServiceIn,
    SalonServiceOut,
    ScheduleIn,
    ScheduleOut,
    ScheduleResponse,
    StaffOut,
)
from saloony.services.exceptions import InvalidRequestError, NotFoundError
from saloony.services.scheduling import ONCE, RECURRING, normalise_mod_type

logger = logging.getLogger(__name__)

DEFAULT_CLOSURE_REASON = "حجب يدوي"


class SalonManagementService:
    """Owner-side management of services, staff and the weekly schedule."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _require_salon(self, salon_id: int) -> Salon:
        salon = run_read(self._session, lambda session: session.get(Salon, salon_id))
        if salon is None:
            raise NotFoundError("الصالون غير موجود.")
        return salon

    def info(self, salon_id: int) -> SalonInfo:
        return SalonInfo.model_validate(self._require_salon(salon_id))

    def details(self, salon_id: int) -> SalonDetails:
        """Public profile with the salon's average rating and review count."""

        row = run_read(
            self._session,
            lambda session: session.execute(
                select(Salon, func.coalesce(func.avg(Review.rating), 0), func.count(Review.id))
                .outerjoin(Review, Review.salon_id == Salon.id)
                .where(Salon.id == salon_id)
                .group_by(Salon.id)
            ).first(),
        )
        if row is None:
            raise NotFoundError("الصالون غير موجود.")
        salon, avg_rating, review_count = row
        return SalonDetails(
            salon_id=salon.id,
            salon_name=salon.salon_name,
            address=salon.address,
            city=salon.city,
            image_url=salon.image_url,
            phone=salon.phone,
            plan=salon.plan,
            avg_rating=round(float(avg_rating or 0), 1),
            review_count=int(review_count or 0),
        )

    # Services

    def list_services(self, salon_id: int) -> List[SalonServiceOut]:
        rows = run_read(
            self._session,
            lambda session: session.execute(
                select(Service, SalonService)
                .join(SalonService, SalonService.service_id == Service.id)
                .where(SalonService.salon_id == salon_id)
                .order_by(Service.id)
            ).all(),
        )
        return [
            SalonServiceOut(
                id=service.id,
                name_ar=service.name_ar,
                icon=service.icon,
                service_type=service.service_type,
                price=offering.price,
                duration=offering.duration,
            )
            for service, offering in rows
        ]

    def replace_services(self, salon_id: int, services: List[SalonServiceIn]) -> int:
        """Replace the salon's whole offering list in one transaction."""

        self._require_salon(salon_id)
        known = set(
            self._session.scalars(
                select(Service.id).where(Service.id.in_([item.service_id for item in services]))
            ).all()
        )
        unknown = [item.service_id for item in services if item.service_id not in known]
        if unknown:
            raise InvalidRequestError(f"Unknown service ids: {unknown}")
        try:
            self._session.execute(delete(SalonService).where(SalonService.salon_id == salon_id))
            for item in services:
                self._session.add(
                    SalonService(
                        salon_id=salon_id,
                        service_id=item.service_id,
                        price=item.price,
                        duration=item.duration,
                    )
                )
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise InvalidRequestError("Duplicate service in list.", cause=exc) from exc
        logger.info("Salon %s now offers %s services", salon_id, len(services))
        return len(services)

    # Staff

    def list_staff(self, salon_id: int) -> List[StaffOut]:
        rows = run_read(
            self._session,
            lambda session: session.scalars(
                select(Staff).where(Staff.salon_id == salon_id).order_by(Staff.id)
            ).all(),
        )
        return [StaffOut.model_validate(row) for row in rows]

    def add_staff(self, salon_id: int, name: str) -> int:
        self._require_salon(salon_id)
        member = Staff(salon_id=salon_id, name=name.strip())
        self._session.add(member)
        self._session.commit()
        logger.info("Added staff %s to salon %s", member.id, salon_id)
        return member.id

    def delete_staff(self, staff_id: int) -> None:
        member = self._session.get(Staff, staff_id)
        if member is None:
            raise NotFoundError("المختص غير موجود.")
        has_appointments = self._session.scalar(
            select(Appointment.id).where(Appointment.staff_id == staff_id).limit(1)
        )
        if has_appointments is not None:
            raise InvalidRequestError(
                "لا يمكن حذف المختص. لديه حجوزات سابقة أو حالية مرتبطة به أو استراحات روتينية."
            )
        self._session.delete(member)
        self._session.commit()
        logger.info("Deleted staff %s", staff_id)

    # Schedule

    def get_schedule(self, salon_id: int) -> ScheduleResponse:
        def _load(session: Session):
            schedule = session.get(Schedule, salon_id)
            breaks = session.scalars(
                select(Break).where(Break.salon_id == salon_id).order_by(Break.id)
            ).all()
            mods = session.scalars(
                select(ScheduleModification)
                .where(ScheduleModification.salon_id == salon_id)
                .order_by(ScheduleModification.id)
            ).all()
            return schedule, breaks, mods

        schedule, breaks, mods = run_read(self._session, _load)
        return ScheduleResponse(
            schedule=ScheduleOut.model_validate(schedule) if schedule else None,
            breaks=[BreakOut.model_validate(item) for item in breaks],
            modifications=[ModificationOut.model_validate(mod) for mod in mods],
        )

    def save_schedule(self, salon_id: int, payload: ScheduleIn) -> None:
        self._require_salon(salon_id)
        schedule = self._session.get(Schedule, salon_id)
        if schedule is None:
            schedule = Schedule(salon_id=salon_id)
            self._session.add(schedule)
        schedule.opening_time = payload.opening_time
        schedule.closing_time = payload.closing_time
        schedule.closed_days = list(payload.closed_days)
        self._session.commit()
        logger.info(
            "Schedule for salon %s set to %s-%s closed=%s",
            salon_id,
            payload.opening_time,
            payload.closing_time,
            payload.closed_days,
        )

    def _check_staff_scope(self, salon_id: int, staff_id: int | None) -> None:
        if not staff_id:
            return
        member = self._session.get(Staff, staff_id)
        if member is None or member.salon_id != salon_id:
            raise InvalidRequestError("المختص غير موجود في هذا الصالون.")

    def add_break(self, salon_id: int, payload: BreakIn) -> int:
        self._require_salon(salon_id)
        self._check_staff_scope(salon_id, payload.staff_id)
        item = Break(
            salon_id=salon_id,
            staff_id=payload.staff_id or None,
            start_time=payload.start_time,
            end_time=payload.end_time,
            reason=payload.reason,
            break_date=payload.break_date,
        )
        self._session.add(item)
        self._session.commit()
        return item.id

    def delete_break(self, break_id: int) -> None:
        item = self._session.get(Break, break_id)
        if item is None:
            raise NotFoundError("الاستراحة غير موجودة.")
        self._session.delete(item)
        self._session.commit()

    def add_modification(self, salon_id: int, payload: ModificationIn) -> int:
        self._require_salon(salon_id)
        self._check_staff_scope(salon_id, payload.staff_id)
        try:
            mod_type = normalise_mod_type(payload.mod_type)
        except ValueError as exc:
            raise InvalidRequestError(str(exc), cause=exc) from exc
        if mod_type == ONCE and payload.mod_date is None:
            raise InvalidRequestError("mod_date is required for one-off closures.")
        if mod_type == RECURRING and payload.mod_day_index is None:
            raise InvalidRequestError("mod_day_index is required for recurring closures.")

        reason = (payload.reason or "").strip() or DEFAULT_CLOSURE_REASON
        mod = ScheduleModification(
            salon_id=salon_id,
            mod_type=mod_type,
            mod_date=payload.mod_date if mod_type == ONCE else None,
            mod_day_index=payload.mod_day_index if mod_type == RECURRING else None,
            start_time=payload.start_time,
            end_time=payload.end_time,
            closure_type=payload.closure_type,
            reason=reason,
            staff_id=payload.staff_id or None,
        )
        self._session.add(mod)
        self._session.commit()
        logger.info("Added %s %s closure %s for salon %s", mod_type, mod.closure_type, mod.id, salon_id)
        return mod.id

    def delete_modification(self, mod_id: int) -> None:
        mod = self._session.get(ScheduleModification, mod_id)
        if mod is None:
            raise NotFoundError("التعديل غير موجود.")
        self._session.delete(mod)
        self._session.commit()
