import pytest
from conftest import offer, seed_salon, seed_service

from saloony.models import Review, User
from saloony.services.availability import AvailabilityService
from saloony.services.intent import APPOINTMENT, GENERAL_QUERY, RECOMMENDATION, SERVICE_INQUIRY
from saloony.services.salon_context import (
    NO_COMPARISON,
    NO_SERVICE_SALONS,
    NO_URGENT,
    SalonContextProvider,
)


@pytest.fixture
def provider(session, clock):
    seed_salon(session, salon_id=1, name="صالون الياسمين", special=True)
    seed_salon(session, salon_id=2, name="صالون الورد")
    seed_salon(session, salon_id=3, name="صالون نابلس", city="نابلس")
    seed_salon(session, salon_id=4, name="صالون معلق", status="pending")
    seed_service(session, service_id=10, name_ar="قص شعر", name="Haircut")
    seed_service(session, service_id=11, name_ar="مانيكير", name="Manicure")
    seed_service(session, service_id=12, name_ar="حلاقة ذقن", gender="men")
    offer(session, 1, 10, price=80, duration=45)
    offer(session, 1, 11, price=40, duration=30)
    offer(session, 1, 12, price=30, duration=20)
    offer(session, 2, 10, price=60, duration=30)
    offer(session, 3, 10, price=20, duration=30)
    session.add(User(id=1, name="ريم", email="u1@example.com"))
    session.add(Review(salon_id=2, user_id=1, rating=4, comment="حلو"))
    session.commit()
    return SalonContextProvider(session, AvailabilityService(session, clock=clock))


def test_per_location_lists_city_salons_with_stats(provider) -> None:
    text = provider.per_location("رام الله", "female")
    lines = text.splitlines()

    assert len(lines) == 2
    assert lines[0].startswith("• صالون الياسمين ⭐ — خدمات: 2")
    assert "تقييم: جديد" in lines[0]
    assert "متوسط سعر: 60₪" in lines[1]
    assert "تقييم: 4.0⭐ (1)" in lines[1]
    assert "نابلس" not in text
    assert "معلق" not in text


def test_comparison_table_orders_by_price(provider) -> None:
    table = provider.comparison("رام الله", "female", "haircut")
    rows = table.splitlines()

    assert rows[0].startswith("| الصالون | السعر (₪)")
    assert rows[2].startswith("| صالون الورد | 60 | 30 | 4.0 | 1 |")
    assert rows[3].startswith("| صالون الياسمين | 80 | 45 | — | 0 |")
    assert provider.comparison("رام الله", "female", "مساج") == NO_COMPARISON
    assert provider.comparison("رام الله", "female", None) == ""


def test_focused_context_by_query_type(provider) -> None:
    service_rows = provider.focused(SERVICE_INQUIRY, "رام الله", "female", "شعر")
    assert "🏪 صالون الورد (رام الله)" in service_rows
    assert "قص شعر: 60ش (30د)" in service_rows
    assert provider.focused(SERVICE_INQUIRY, "رام الله", "female", "مساج") == NO_SERVICE_SALONS

    recommendations = provider.focused(RECOMMENDATION, "رام الله", "female", None)
    assert recommendations.index("صالون الياسمين ⭐ مميز") < recommendations.index("صالون الورد")

    appointment = provider.focused(APPOINTMENT, "رام الله", "female", None)
    assert appointment.splitlines()[0] == "🏪 صالون الياسمين ⭐ - رام الله"

    general = provider.focused(GENERAL_QUERY, "رام الله", "female", None)
    assert general.splitlines() == ["- صالون الياسمين ⭐: رام الله", "- صالون الورد: رام الله"]


def test_urgent_availability_uses_salon_clock(provider, clock) -> None:
    # 08:00, salons open at 09:00
    lines = provider.urgent_availability("رام الله").splitlines()
    assert lines[0].startswith("⏳ صالون الياسمين ⭐")
    assert lines[0].endswith("(سيفتح قريباً)")

    clock.now = clock.now.replace(hour=12)
    assert "(متاح الآن)" in provider.urgent_availability("رام الله")

    clock.now = clock.now.replace(hour=20)
    assert provider.urgent_availability("رام الله") == NO_URGENT
