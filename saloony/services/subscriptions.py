"""Salon subscriptions and the payment ledger behind them.

Renewals are recorded by an admin after an offline bank transfer; no money
moves through this service.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from saloony.db import run_read
from saloony.models import ACCEPTED, Payment, Salon, Subscription
from saloony.schemas.admin import PaymentOut, SubscriptionOut
from saloony.services.exceptions import NotFoundError

logger = logging.getLogger(__name__)

MONTHLY_PACKAGE = "monthly_100"
MONTHLY_PRICE = 100.0
PACKAGE_DAYS = 30
CURRENCY = "ILS"
PAYMENT_COMPLETED = "مكتملة"
PAYMENT_METHOD = "bank_transfer"
PAYMENT_DESCRIPTION = "اشتراك شهري موحد: 100 شيكل"


def _subscription_out(subscription: Subscription, salon: Optional[Salon]) -> SubscriptionOut:
    return SubscriptionOut.model_validate(subscription).model_copy(
        update={
            "salon_name": salon.salon_name if salon else None,
            "owner_name": salon.owner_name if salon else None,
        }
    )


class SubscriptionService:
    def __init__(self, session: Session, *, clock: Callable[[], datetime]) -> None:
        self._session = session
        self._clock = clock

    def subscriptions(self, salon_id: Optional[int] = None) -> List[SubscriptionOut]:
        """Newest first; every salon's when ``salon_id`` is not given."""

        query = select(Subscription, Salon).outerjoin(Salon, Salon.id == Subscription.salon_id)
        if salon_id is not None:
            query = query.where(Subscription.salon_id == salon_id)
        query = query.order_by(Subscription.start_date.desc(), Subscription.id.desc())
        rows = run_read(self._session, lambda session: session.execute(query).all())
        return [_subscription_out(subscription, salon) for subscription, salon in rows]

    def payments(self, salon_id: Optional[int] = None) -> List[PaymentOut]:
        query = select(Payment)
        if salon_id is not None:
            query = query.where(Payment.salon_id == salon_id)
        query = query.order_by(Payment.created_at.desc(), Payment.id.desc())
        rows = run_read(self._session, lambda session: session.scalars(query).all())
        return [PaymentOut.model_validate(row) for row in rows]

    def renew(self, salon_id: int) -> SubscriptionOut:
        """Start a 30 day monthly subscription, record its payment and accept the salon."""

        salon = self._session.get(Salon, salon_id)
        if salon is None:
            raise NotFoundError("الصالون غير موجود.")

        now = self._clock()
        valid_until = now + timedelta(days=PACKAGE_DAYS)
        subscription = Subscription(
            salon_id=salon_id,
            package=MONTHLY_PACKAGE,
            start_date=now.date(),
            end_date=valid_until.date(),
            status="active",
        )
        try:
            self._session.add(subscription)
            self._session.flush()
            self._session.add(
                Payment(
                    salon_id=salon_id,
                    payment_type=MONTHLY_PACKAGE,
                    amount=MONTHLY_PRICE,
                    currency=CURRENCY,
                    payment_status=PAYMENT_COMPLETED,
                    payment_method=PAYMENT_METHOD,
                    description=PAYMENT_DESCRIPTION,
                    valid_from=now,
                    valid_until=valid_until,
                    invoice_number=f"INV-REN-{now:%Y%m%d}-{salon_id}-{subscription.id}",
                    admin_notes="Admin renewal",
                )
            )
            salon.status = ACCEPTED
            salon.plan = MONTHLY_PACKAGE
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "Renewed subscription %s for salon %s until %s", subscription.id, salon_id, subscription.end_date
        )
        return _subscription_out(subscription, salon)
