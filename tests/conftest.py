import os
import sys
from datetime import datetime

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from saloony.db import build_engine, init_db
from saloony.models import (
    Salon,
    SalonService,
    Schedule,
    Service,
    Staff,
    User,
)

# Monday 2 June 2025, 08:00 salon time
FIXED_NOW = datetime(2025, 6, 2, 8, 0)


class FakeClock:
    """Callable clock whose time tests can move."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def seed_salon(
    session,
    *,
    salon_id: int = 5,
    name: str = "صالون الياسمين",
    city: str = "رام الله",
    gender_focus: str = "women",
    opening: str = "09:00",
    closing: str = "18:00",
    closed_days=(),
    staff_names=("سارة", "ليلى"),
    special: bool = False,
    status: str = "accepted",
) -> Salon:
    salon = Salon(
        id=salon_id,
        salon_name=name,
        email=f"salon{salon_id}@example.com",
        address=f"شارع {salon_id}",
        city=city,
        gender_focus=gender_focus,
        special=special,
        status=status,
    )
    session.add(salon)
    session.add(
        Schedule(
            salon_id=salon_id,
            opening_time=opening,
            closing_time=closing,
            closed_days=list(closed_days),
        )
    )
    session.flush()
    for staff_name in staff_names:
        session.add(Staff(salon_id=salon_id, name=staff_name))
    session.commit()
    return salon


def seed_service(session, *, service_id: int, name_ar: str, name: str = "", gender: str = "women") -> Service:
    service = Service(id=service_id, name_ar=name_ar, name=name or None, icon="✂️", gender=gender)
    session.add(service)
    session.commit()
    return service


def offer(session, salon_id: int, service_id: int, *, price: float, duration: int) -> None:
    session.add(SalonService(salon_id=salon_id, service_id=service_id, price=price, duration=duration))
    session.commit()


def seed_user(session, *, user_id: int = 1, name: str = "ريم", gender: str = "female", city: str = "رام الله") -> User:
    user = User(id=user_id, name=name, email=f"user{user_id}@example.com", gender=gender, city=city)
    session.add(user)
    session.commit()
    return user
