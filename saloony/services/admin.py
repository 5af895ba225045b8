from __future__ import annotations

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from saloony.db import run_read
from saloony.models import SALON_STATUSES, Salon
from saloony.schemas.admin import AdminSalon
from saloony.services.exceptions import InvalidRequestError, NotFoundError

logger = logging.getLogger(__name__)


class AdminService:
    """Back-office review of salon registrations."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_salons(self) -> List[AdminSalon]:
        rows = run_read(
            self._session,
            lambda session: session.scalars(
                select(Salon).order_by(Salon.created_at.desc(), Salon.id.desc())
            ).all(),
        )
        return [AdminSalon.model_validate(row) for row in rows]

    def set_salon_status(self, salon_id: int, status: str) -> None:
        """Move a salon to pending, accepted or rejected.

        Only accepted salons are shown in discovery and to the chat assistant.
        """

        status = status.strip().lower()
        if status not in SALON_STATUSES:
            raise InvalidRequestError(f"Unknown salon status: {status}")
        salon = self._session.get(Salon, salon_id)
        if salon is None:
            raise NotFoundError("الصالون غير موجود.")
        previous = salon.status
        salon.status = status
        self._session.commit()
        logger.info("Salon %s status changed from %s to %s", salon_id, previous, status)
