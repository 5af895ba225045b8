"""Real salon rows rendered as plain text blocks for the assistant's prompt."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from saloony.db import run_read
from saloony.models import ACCEPTED, Review, Salon, SalonService, Service
from saloony.services.availability import CLOSING_SOON, OPEN, OPENING_SOON, AvailabilityService
from saloony.services.discovery import gender_focus_for
from saloony.services.intent import (
    APPOINTMENT,
    LOCATION_BASED,
    RECOMMENDATION,
    SERVICE_INQUIRY,
)

logger = logging.getLogger(__name__)

NO_SERVICE_SALONS = "لا توجد صالونات متاحة لهذه الخدمة في منطقتك حالياً."
NO_SALONS = "لا توجد صالونات متاحة في منطقتك حالياً."
NO_COMPARISON = "لا توجد بيانات مقارنة متاحة لهذه الخدمة حالياً في مدينتك."
NO_URGENT = "لا يوجد صالونات متاحة خلال الساعة القادمة في منطقتك."

_STATUS_LABELS = {
    OPEN: ("✅", "متاح الآن"),
    OPENING_SOON: ("⏳", "سيفتح قريباً"),
    CLOSING_SOON: ("⚠️", "يغلق قريباً"),
}


@dataclass
class SalonStats:
    id: int
    salon_name: str
    city: str
    address: str
    special: bool
    service_count: int = 0
    avg_price: Optional[float] = None
    avg_rating: Optional[float] = None
    review_count: int = 0


def _star(special: bool) -> str:
    return " ⭐" if special else ""


def _price(value: Optional[float]) -> str:
    return f"{value:.0f}₪" if value else "—"


def _service_gender_filter(focus: str):
    return or_(Service.gender == focus, Service.gender == "both")


class SalonContextProvider:
    def __init__(self, session: Session, availability: AvailabilityService) -> None:
        self._session = session
        self._availability = availability

    def _accepted_salons(self, session: Session, city: str, limit: int) -> Sequence[Salon]:
        return session.scalars(
            select(Salon)
            .where(Salon.city == city, Salon.status == ACCEPTED)
            .order_by(Salon.special.desc(), Salon.id)
            .limit(limit)
        ).all()

    def _stats(self, city: str, gender: str, limit: int) -> List[SalonStats]:
        focus = gender_focus_for(gender)

        def _load(session: Session):
            salons = session.scalars(
                select(Salon).where(Salon.city == city, Salon.status == ACCEPTED)
            ).all()
            ids = [salon.id for salon in salons]
            if not ids:
                return salons, {}, {}
            service_rows = session.execute(
                select(
                    SalonService.salon_id,
                    func.count(SalonService.service_id),
                    func.avg(SalonService.price),
                )
                .join(Service, Service.id == SalonService.service_id)
                .where(SalonService.salon_id.in_(ids), _service_gender_filter(focus))
                .group_by(SalonService.salon_id)
            ).all()
            review_rows = session.execute(
                select(Review.salon_id, func.avg(Review.rating), func.count(Review.id))
                .where(Review.salon_id.in_(ids))
                .group_by(Review.salon_id)
            ).all()
            return (
                salons,
                {row[0]: (row[1], row[2]) for row in service_rows},
                {row[0]: (row[1], row[2]) for row in review_rows},
            )

        salons, services, reviews = run_read(self._session, _load)
        stats = []
        for salon in salons:
            service_count, avg_price = services.get(salon.id, (0, None))
            avg_rating, review_count = reviews.get(salon.id, (None, 0))
            stats.append(
                SalonStats(
                    id=salon.id,
                    salon_name=salon.salon_name,
                    city=salon.city,
                    address=salon.address,
                    special=bool(salon.special),
                    service_count=int(service_count or 0),
                    avg_price=float(avg_price) if avg_price is not None else None,
                    avg_rating=float(avg_rating) if avg_rating is not None else None,
                    review_count=int(review_count or 0),
                )
            )
        return stats[:limit] if limit else stats

    def per_location(self, city: str, gender: str) -> str:
        stats = self._stats(city, gender, 0)
        stats.sort(key=lambda item: (not item.special, -item.service_count))
        lines = []
        for item in stats[:10]:
            rating = (
                f"{item.avg_rating:.1f}⭐ ({item.review_count})" if item.avg_rating else "جديد"
            )
            lines.append(
                f"• {item.salon_name}{_star(item.special)} — خدمات: {item.service_count}، "
                f"متوسط سعر: {_price(item.avg_price)}، تقييم: {rating}"
            )
        return "\n".join(lines)

    def deep_analysis(self, city: str, gender: str) -> str:
        stats = self._stats(city, gender, 0)
        stats.sort(
            key=lambda item: (
                not item.special,
                item.avg_rating is None,
                -(item.avg_rating or 0),
                -item.review_count,
            )
        )
        lines = []
        for item in stats[:8]:
            rating = f"{item.avg_rating:.1f}⭐" if item.avg_rating else "جديد"
            lines.append(
                f"• {item.salon_name} — خدمات: {item.service_count}, "
                f"متوسط سعر: {_price(item.avg_price)}, تقييم: {rating} ({item.review_count})"
            )
        return "\n".join(lines)

    def comparison(self, city: str, gender: str, service_term: Optional[str]) -> str:
        if not service_term:
            return ""
        focus = gender_focus_for(gender)
        pattern = f"%{service_term}%"

        def _load(session: Session):
            ratings = (
                select(
                    Review.salon_id.label("salon_id"),
                    func.avg(Review.rating).label("avg_rating"),
                    func.count(Review.id).label("review_count"),
                )
                .group_by(Review.salon_id)
                .subquery()
            )
            return session.execute(
                select(
                    Salon.salon_name,
                    SalonService.price,
                    SalonService.duration,
                    ratings.c.avg_rating,
                    func.coalesce(ratings.c.review_count, 0),
                )
                .join(SalonService, SalonService.salon_id == Salon.id)
                .join(Service, Service.id == SalonService.service_id)
                .outerjoin(ratings, ratings.c.salon_id == Salon.id)
                .where(
                    Salon.city == city,
                    Salon.status == ACCEPTED,
                    _service_gender_filter(focus),
                    or_(Service.name_ar.ilike(pattern), Service.name.ilike(pattern)),
                )
                .order_by(SalonService.price.asc())
                .limit(10)
            ).all()

        rows = run_read(self._session, _load)
        if not rows:
            return NO_COMPARISON
        header = "| الصالون | السعر (₪) | المدة (دقائق) | التقييم | التقييمات |\n|---|---|---|---|---|"
        body = "\n".join(
            f"| {name} | {price:.0f} | {duration} | "
            f"{f'{rating:.1f}' if rating else '—'} | {count} |"
            for name, price, duration, rating, count in rows
        )
        return f"{header}\n{body}"

    def urgent_availability(self, city: str) -> str:
        salons = run_read(self._session, lambda session: self._accepted_salons(session, city, 12))
        if not salons:
            return NO_URGENT
        statuses = self._availability.status_for_many([salon.id for salon in salons])
        lines = []
        for salon in salons:
            status = statuses[salon.id]
            if not status.available_next_hour:
                continue
            icon, label = _STATUS_LABELS[status.status]
            lines.append(
                f"{icon} {salon.salon_name}{_star(salon.special)} — {salon.address or salon.city} ({label})"
            )
        return "\n".join(lines) if lines else NO_URGENT

    def focused(self, query_type: str, city: str, gender: str, service_term: Optional[str]) -> str:
        """Salon rows chosen by the secondary query classification."""

        if query_type == SERVICE_INQUIRY and service_term:
            return self._service_specific(city, gender, service_term)
        if query_type in (LOCATION_BASED, RECOMMENDATION):
            return self._recommendations(city, gender)
        if query_type == APPOINTMENT:
            salons = run_read(self._session, lambda session: self._accepted_salons(session, city, 5))
            return "\n".join(f"🏪 {salon.salon_name}{_star(salon.special)} - {salon.city}" for salon in salons)
        return self.general(city)

    def general(self, city: str) -> str:
        salons = run_read(self._session, lambda session: self._accepted_salons(session, city, 8))
        return "\n".join(f"- {salon.salon_name}{_star(salon.special)}: {salon.city}" for salon in salons)

    def _service_specific(self, city: str, gender: str, service_term: str) -> str:
        focus = gender_focus_for(gender)
        rows = run_read(
            self._session,
            lambda session: session.execute(
                select(Salon, Service.name_ar, SalonService.price, SalonService.duration)
                .join(SalonService, SalonService.salon_id == Salon.id)
                .join(Service, Service.id == SalonService.service_id)
                .where(
                    Salon.city == city,
                    Salon.status == ACCEPTED,
                    _service_gender_filter(focus),
                    Service.name_ar.ilike(f"%{service_term}%"),
                )
                .order_by(Salon.special.desc(), SalonService.price.asc())
                .limit(8)
            ).all(),
        )
        if not rows:
            return NO_SERVICE_SALONS
        grouped: Dict[int, List] = {}
        salons: Dict[int, Salon] = {}
        for salon, name, price, duration in rows:
            salons[salon.id] = salon
            grouped.setdefault(salon.id, []).append(f"{name}: {price:.0f}ش ({duration}د)")
        blocks = []
        for salon_id, services in grouped.items():
            salon = salons[salon_id]
            blocks.append(
                f"🏪 {salon.salon_name} ({salon.city}){_star(salon.special)}\n   📋 {', '.join(services)}"
            )
        return "\n\n".join(blocks)

    def _recommendations(self, city: str, gender: str) -> str:
        stats = self._stats(city, gender, 0)
        if not stats:
            return NO_SALONS
        stats.sort(key=lambda item: (not item.special, -item.service_count, item.avg_price or 0))
        top = stats[:6]

        def _cheapest(session: Session):
            result: Dict[int, list] = {}
            for item in top:
                result[item.id] = session.execute(
                    select(Service.name_ar, SalonService.price)
                    .join(Service, Service.id == SalonService.service_id)
                    .where(SalonService.salon_id == item.id)
                    .order_by(SalonService.price.asc())
                    .limit(3)
                ).all()
            return result

        cheapest = run_read(self._session, _cheapest)
        blocks = []
        for item in top:
            info = f"🏪 {item.salon_name}{' ⭐ مميز' if item.special else ''}"
            info += f"\n   📍 {item.address or item.city}"
            info += f"\n   📊 {item.service_count} خدمة متاحة"
            services = cheapest.get(item.id) or []
            if services:
                info += "\n   💅 " + ", ".join(f"{name} ({price:.0f}ش)" for name, price in services)
            blocks.append(info)
        return "\n\n".join(blocks)
