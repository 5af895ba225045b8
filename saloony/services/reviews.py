from __future__ import annotations

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from saloony.db import run_read
from saloony.models import Review, Salon, User
from saloony.schemas.review import ReviewOut, ReviewSubmit
from saloony.services.exceptions import InvalidRequestError, NotFoundError

logger = logging.getLogger(__name__)

ALREADY_REVIEWED = "You have already reviewed this salon."


class ReviewService:
    def __init__(self, session: Session) -> None:
        self._session = session

    def for_user(self, user_id: int) -> List[ReviewOut]:
        rows = run_read(
            self._session,
            lambda session: session.execute(
                select(Review, Salon.salon_name)
                .join(Salon, Salon.id == Review.salon_id)
                .where(Review.user_id == user_id)
                .order_by(Review.date_posted.desc())
            ).all(),
        )
        return [
            ReviewOut.model_validate(review).model_copy(update={"salon_name": salon_name})
            for review, salon_name in rows
        ]

    def for_salon(self, salon_id: int) -> List[ReviewOut]:
        rows = run_read(
            self._session,
            lambda session: session.execute(
                select(Review, User.name)
                .outerjoin(User, User.id == Review.user_id)
                .where(Review.salon_id == salon_id)
                .order_by(Review.date_posted.desc())
            ).all(),
        )
        return [
            ReviewOut.model_validate(review).model_copy(update={"user_name": user_name})
            for review, user_name in rows
        ]

    def submit(self, user_id: int, payload: ReviewSubmit) -> int:
        comment = (payload.comment or "").strip()
        if not payload.salon_id or not payload.rating or not comment:
            raise InvalidRequestError("Missing required fields.")
        if payload.rating < 1 or payload.rating > 5:
            raise InvalidRequestError("Rating must be between 1 and 5.")
        if self._session.get(Salon, payload.salon_id) is None:
            raise NotFoundError("الصالون غير موجود.")

        existing = self._session.scalar(
            select(Review.id).where(Review.user_id == user_id, Review.salon_id == payload.salon_id)
        )
        if existing is not None:
            raise InvalidRequestError(ALREADY_REVIEWED)

        review = Review(
            user_id=user_id,
            salon_id=payload.salon_id,
            rating=payload.rating,
            comment=comment,
        )
        self._session.add(review)
        try:
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise InvalidRequestError(ALREADY_REVIEWED, cause=exc) from exc
        logger.info("User %s reviewed salon %s with %s stars", user_id, payload.salon_id, payload.rating)
        return review.id

    def delete(self, user_id: int, salon_id: int | None) -> None:
        if not salon_id:
            raise InvalidRequestError("User ID and Salon ID are required.")
        review = self._session.scalar(
            select(Review).where(Review.user_id == user_id, Review.salon_id == salon_id)
        )
        if review is None:
            raise NotFoundError("Review not found.")
        self._session.delete(review)
        self._session.commit()
