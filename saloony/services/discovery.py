from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from saloony.db import run_read
from saloony.models import ACCEPTED, Favorite, Review, Salon, SalonService, Service
from saloony.schemas.discovery import (
    DiscoveryResponse,
    DiscoveryService,
    FavoriteSalon,
    FavoriteToggleResponse,
    SalonCard,
)
from saloony.services.availability import AvailabilityService
from saloony.services.exceptions import NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)


def gender_focus_for(gender: str) -> str:
    """Map a customer gender (``male``/``female``) to a salon focus."""

    return "men" if (gender or "").strip().lower() in ("male", "men") else "women"


def parse_service_ids(raw: Optional[str]) -> List[int]:
    if not raw:
        return []
    ids: List[int] = []
    for part in str(raw).split(","):
        part = part.strip()
        if part.isdigit():
            ids.append(int(part))
    return ids


class SalonDiscoveryService:
    """Customer-facing salon discovery and favorites."""

    def __init__(self, session: Session, availability: AvailabilityService) -> None:
        self._session = session
        self._availability = availability

    def _rated_salons(self, session: Session, gender_focus: str):
        avg_rating = func.coalesce(func.avg(Review.rating), 0).label("avg_rating")
        review_count = func.count(Review.id).label("review_count")
        return session.execute(
            select(Salon, avg_rating, review_count)
            .outerjoin(Review, Review.salon_id == Salon.id)
            .where(Salon.gender_focus == gender_focus, Salon.status == ACCEPTED)
            .group_by(Salon.id)
            .order_by(Salon.special.desc(), avg_rating.desc())
        ).all()

    def salons_with_availability(self, gender_focus: str) -> List[SalonCard]:
        rows = run_read(self._session, lambda session: self._rated_salons(session, gender_focus))
        statuses = self._availability.status_for_many([salon.id for salon, _, _ in rows])
        cards = []
        for salon, avg_rating, review_count in rows:
            status = statuses[salon.id]
            cards.append(
                SalonCard(
                    id=salon.id,
                    salon_name=salon.salon_name,
                    address=salon.address,
                    city=salon.city,
                    image_url=salon.image_url,
                    gender_focus=salon.gender_focus,
                    special=bool(salon.special),
                    avg_rating=float(avg_rating or 0),
                    review_count=int(review_count or 0),
                    is_available_today=status.is_available_today,
                    status=status.status,
                )
            )
        return cards

    def _salons_offering_all(self, service_ids: Sequence[int]) -> set[int]:
        unique = sorted(set(service_ids))
        rows = run_read(
            self._session,
            lambda session: session.scalars(
                select(SalonService.salon_id)
                .where(SalonService.service_id.in_(unique))
                .group_by(SalonService.salon_id)
                .having(func.count(func.distinct(SalonService.service_id)) == len(unique))
            ).all(),
        )
        return set(rows)

    def discover(self, city: str, gender: str, service_ids: Sequence[int] = ()) -> DiscoveryResponse:
        focus = gender_focus_for(gender)
        salons = self.salons_with_availability(focus)
        if service_ids:
            allowed = self._salons_offering_all(service_ids)
            salons = [salon for salon in salons if salon.id in allowed]

        services = run_read(
            self._session,
            lambda session: session.scalars(
                select(Service).where(Service.gender.in_((focus, "both"))).order_by(Service.id)
            ).all(),
        )
        city_salons = sorted(
            (salon for salon in salons if salon.city == city),
            key=lambda salon: (not salon.is_available_today, -salon.avg_rating),
        )
        logger.info(
            "Discovery for %s/%s: %s salons, %s in city", city, focus, len(salons), len(city_salons)
        )
        return DiscoveryResponse(
            services=[
                DiscoveryService(
                    id=service.id,
                    name_ar=service.name_ar,
                    icon=service.icon,
                    service_type=service.service_type,
                )
                for service in services
            ],
            city_salons=city_salons,
            featured_salons=salons,
            all_salons=salons,
        )

    def favorites(self, acting_user_id: int, user_id: int) -> List[FavoriteSalon]:
        if acting_user_id != user_id:
            raise PermissionDeniedError("Forbidden: cannot access another user's favorites.")
        avg_rating = func.coalesce(func.avg(Review.rating), 0)
        rows = run_read(
            self._session,
            lambda session: session.execute(
                select(Salon, avg_rating, func.count(Review.id))
                .join(Favorite, Favorite.salon_id == Salon.id)
                .outerjoin(Review, Review.salon_id == Salon.id)
                .where(Favorite.user_id == user_id)
                .group_by(Salon.id)
                .order_by(Salon.id)
            ).all(),
        )
        return [
            FavoriteSalon(
                salon_id=salon.id,
                salon_name=salon.salon_name,
                address=salon.address,
                city=salon.city,
                image_url=salon.image_url,
                avg_rating=float(rating or 0),
                review_count=int(count or 0),
            )
            for salon, rating, count in rows
        ]

    def toggle_favorite(self, user_id: int, salon_id: int) -> FavoriteToggleResponse:
        if self._session.get(Salon, salon_id) is None:
            raise NotFoundError("الصالون غير موجود.")
        existing = self._session.get(Favorite, (user_id, salon_id))
        if existing is not None:
            self._session.delete(existing)
            self._session.commit()
            return FavoriteToggleResponse(is_favorite=False, message="Unfavorited successfully.")
        self._session.add(Favorite(user_id=user_id, salon_id=salon_id))
        self._session.commit()
        return FavoriteToggleResponse(is_favorite=True, message="Favorited successfully.")

