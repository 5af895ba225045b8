from datetime import date, datetime

import pytest
from conftest import offer, seed_salon, seed_service, seed_user
from fastapi.testclient import TestClient

from saloony.db import get_session
from saloony.dependencies.services import get_chat_assistant, get_clock
from saloony.main import app
from saloony.models import Appointment, Review
from saloony.services.cache import LayeredCache, NamespaceConfig
from saloony.services.chat import FALLBACK_AR, ChatAssistant
from saloony.services.conversation_memory import ConversationMemoryStore

USER = {"X-User-Id": "1"}
ADMIN = {"X-User-Role": "admin"}


class StubModel:
    def __init__(self, configured: bool = True) -> None:
        self.configured = configured

    async def complete(self, messages):
        return "أهلاً وسهلاً"

    async def close(self) -> None:
        return None


@pytest.fixture
def client(session_factory, session, clock):
    seed_salon(session, salon_id=5)
    seed_service(session, service_id=10, name_ar="قص شعر")
    seed_service(session, service_id=11, name_ar="حلاقة", gender="men")
    offer(session, 5, 10, price=50, duration=30)
    seed_user(session, user_id=1)
    seed_user(session, user_id=2, name="دانا")

    def _session():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    model = StubModel()
    assistant = ChatAssistant(
        model=model,
        memory=ConversationMemoryStore(),
        cache=LayeredCache(
            {
                "salons": NamespaceConfig(ttl=300),
                "responses": NamespaceConfig(ttl=600),
                "profiles": NamespaceConfig(ttl=1800),
            }
        ),
        session_factory=session_factory,
        clock=clock,
    )
    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_chat_assistant] = lambda: assistant
    yield TestClient(app)
    app.dependency_overrides.clear()


def _booking(start="2025-06-03T10:00:00", end="2025-06-03T10:30:00", staff_id=2):
    return {"salon_id": 5, "staff_id": staff_id, "service_id": 10, "start_time": start, "end_time": end}


def test_health(client) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_book_then_conflict_then_cancel(client, session) -> None:
    response = client.post("/api/appointment/book", json=_booking(), headers=USER)
    assert response.status_code == 201
    body = response.json()
    assert body["assignedStaffName"] == "ليلى"
    assert body["servicesCount"] == 1
    assert body["price"] == 50

    conflict = client.post(
        "/api/appointment/book",
        json=_booking("2025-06-03T10:15:00", "2025-06-03T10:45:00"),
        headers={"X-User-Id": "2"},
    )
    assert conflict.status_code == 400
    assert conflict.json()["detail"] == "الموظف غير متاح في هذا الوقت - يوجد موعد آخر."

    forbidden = client.post(f"/api/appointments/cancel/{body['appointmentId']}", headers={"X-User-Id": "2"})
    assert forbidden.status_code == 403

    cancelled = client.post(f"/api/appointments/cancel/{body['appointmentId']}", headers=USER)
    assert cancelled.status_code == 200
    assert cancelled.json()["strikeIssued"] is False


def test_booking_with_utc_times_is_stored_in_salon_time(client, session) -> None:
    # 07:00Z is 10:00 in Asia/Jerusalem (UTC+3 in June)
    response = client.post(
        "/api/appointment/book",
        json=_booking("2025-06-03T07:00:00Z", "2025-06-03T07:30:00Z"),
        headers=USER,
    )

    assert response.status_code == 201
    stored = session.get(Appointment, response.json()["appointmentId"])
    assert stored.start_time == datetime(2025, 6, 3, 10, 0)
    assert stored.end_time == datetime(2025, 6, 3, 10, 30)


def test_validate_slot_accepts_offset_times(client) -> None:
    response = client.post(
        "/api/appointment/validate",
        json={
            "salon_id": 5,
            "staff_id": 1,
            "start_time": "2025-06-03T10:00:00+03:00",
            "end_time": "2025-06-03T10:30:00+03:00",
            "duration": 30,
        },
    )

    assert response.status_code == 200
    assert response.json() == {"valid": True, "message": "الموعد متاح للحجز."}


def test_booking_requires_user_header(client) -> None:
    response = client.post("/api/appointment/book", json=_booking())

    assert response.status_code == 401


def test_validate_slot_route(client) -> None:
    response = client.post(
        "/api/appointment/validate",
        json={
            "salon_id": 5,
            "staff_id": 1,
            "start_time": "2025-06-03T18:00:00",
            "end_time": "2025-06-03T18:30:00",
            "duration": 30,
        },
    )

    assert response.status_code == 200
    assert response.json() == {"valid": False, "message": "الموعد خارج ساعات العمل."}


def test_salon_appointment_listing_and_status(client, session) -> None:
    booked = client.post("/api/appointment/book", json=_booking(staff_id=0), headers=USER).json()

    listing = client.get("/api/salon/appointments/5/upcoming")
    on_day = client.get("/api/salon/5/appointments/2025-06-03")
    mine = client.get("/api/appointments/user/1/upcoming", headers=USER)
    theirs = client.get("/api/appointments/user/1/upcoming", headers={"X-User-Id": "2"})
    assert listing.json()["total"] == 1
    assert on_day.json()["items"][0]["id"] == booked["appointmentId"]
    assert mine.json()["total"] == 1
    assert theirs.status_code == 403

    updated = client.post(
        f"/api/salon/appointment/status/{booked['appointmentId']}", json={"status": "Completed", "salon_id": 5}
    )
    assert updated.status_code == 200
    bad = client.post(f"/api/salon/appointment/status/{booked['appointmentId']}", json={"status": "Done"})
    assert bad.status_code == 400


def test_salon_management_routes(client) -> None:
    services = client.get("/api/salons/5/services").json()["services"]
    assert [service["id"] for service in services] == [10]

    saved = client.post(
        "/api/salon/services/5",
        json={"services": [{"service_id": 10, "price": 55, "duration": 30}, {"service_id": 11, "price": 20, "duration": 15}]},
    )
    assert saved.status_code == 200
    assert len(client.get("/api/salon/services/5").json()["services"]) == 2
    assert client.post("/api/salon/services/5", json={"services": [{"service_id": 99, "price": 1, "duration": 5}]}).status_code == 400

    staff = client.post("/api/salon/staff/5", json={"name": "منى"})
    assert staff.status_code == 201
    assert len(client.get("/api/salon/staff/5").json()["staff"]) == 3
    assert client.delete(f"/api/salon/staff/{staff.json()['id']}").status_code == 200
    assert client.delete("/api/salon/staff/999").status_code == 404

    assert client.post(
        "/api/salon/schedule/5", json={"opening_time": "10:00", "closing_time": "02:00", "closed_days": [5, 5, 0]}
    ).status_code == 200
    brk = client.post("/api/salon/break/5", json={"start_time": "13:00", "end_time": "13:30", "reason": "غداء"})
    mod = client.post(
        "/api/salon/schedule/modification/5", json={"mod_type": "date", "mod_date": "2025-06-10", "closure_type": "full_day"}
    )
    assert brk.status_code == 201 and mod.status_code == 201

    schedule = client.get("/api/salon/schedule/5").json()
    assert schedule["schedule"]["closed_days"] == [0, 5]
    assert schedule["breaks"][0]["reason"] == "غداء"
    assert schedule["modifications"][0]["mod_type"] == "once"
    assert schedule["modifications"][0]["reason"] == "حجب يدوي"

    assert client.delete(f"/api/salon/break/{brk.json()['id']}").status_code == 200
    assert client.delete(f"/api/salon/schedule/modification/{mod.json()['id']}").status_code == 200
    assert client.post(
        "/api/salon/schedule/modification/5", json={"mod_type": "recurring", "closure_type": "full_day"}
    ).status_code == 400


def test_breaks_and_closures_must_end_after_they_start(client) -> None:
    for start, end in (("13:00", "13:00"), ("14:00", "13:30")):
        assert client.post("/api/salon/break/5", json={"start_time": start, "end_time": end}).status_code == 422
        assert client.post(
            "/api/salon/schedule/modification/5",
            json={"mod_type": "recurring", "mod_day_index": 2, "start_time": start, "end_time": end},
        ).status_code == 422

    assert client.get("/api/salon/schedule/5").json()["breaks"] == []


def test_salon_status_route(client) -> None:
    response = client.get("/api/salon/5/status")

    assert response.json() == {
        "salon_id": 5,
        "status": "opening_soon",
        "is_available_today": False,
        "available_next_hour": True,
    }


def test_discovery_and_favorites(client) -> None:
    discovery = client.get("/api/discovery/رام الله/female")
    assert discovery.status_code == 200
    body = discovery.json()
    assert [service["id"] for service in body["services"]] == [10]
    assert [salon["id"] for salon in body["citySalons"]] == [5]
    assert client.get("/api/discovery/رام الله/female", params={"service_ids": "11"}).json()["allSalons"] == []

    toggled = client.post("/api/favorites/toggle", json={"salon_id": 5}, headers=USER)
    assert toggled.json()["is_favorite"] is True
    favorites = client.get("/api/favorites/1", headers=USER).json()
    assert favorites[0]["salonId"] == 5
    assert client.get("/api/favorites/1", headers={"X-User-Id": "2"}).status_code == 403
    assert client.post("/api/favorites/toggle", json={"salon_id": 5}, headers=USER).json()["is_favorite"] is False


def test_reviews_flow(client, session) -> None:
    submitted = client.post("/api/reviews/submit", json={"salon_id": 5, "rating": 5, "comment": "ممتاز"}, headers=USER)
    assert submitted.status_code == 201

    duplicate = client.post("/api/reviews/submit", json={"salon_id": 5, "rating": 4, "comment": "again"}, headers=USER)
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "You have already reviewed this salon."
    assert client.post("/api/reviews/submit", json={"salon_id": 5, "rating": 9, "comment": "x"}, headers={"X-User-Id": "2"}).status_code == 400

    salon_reviews = client.get("/api/reviews/salon/5").json()["reviews"]
    assert salon_reviews[0]["user_name"] == "ريم"
    assert client.get("/api/reviews/user/1").json()["reviews"][0]["salon_name"] == "صالون الياسمين"

    deleted = client.request("DELETE", "/api/reviews/delete", json={"salon_id": 5}, headers=USER)
    assert deleted.status_code == 200
    assert session.query(Review).count() == 0
    assert client.request("DELETE", "/api/reviews/delete", json={"salon_id": 5}, headers=USER).status_code == 404


def test_chat_routes(client) -> None:
    assert client.post("/api/ai-chat", json={"user_id": 1}).status_code == 400

    reply = client.post("/api/ai-chat", json={"message": "مرحبا", "user_id": 1, "context": {}})
    assert reply.status_code == 200
    assert reply.json()["response"] == "أهلاً وسهلاً"

    failed = client.post("/api/ai-chat", json={"message": "<script>x</script> مرحبا", "user_id": 1})
    assert failed.status_code == 500
    assert failed.json()["success"] is False
    assert failed.json()["fallback_response"] == FALLBACK_AR

    stats = client.get("/api/ai-chat/stats/1").json()
    assert stats["success"] is True
    assert stats["stats"]["total_messages"] == 1

    assert client.post("/api/ai-chat/clear", json={}).status_code == 400
    cleared = client.post("/api/ai-chat/clear", json={"user_id": 1})
    assert cleared.json() == {"success": True, "message": "تم مسح المحادثة بنجاح"}


def test_admin_routes_require_admin_role(client) -> None:
    assert client.get("/api/admin/salons").status_code == 401
    assert client.get("/api/admin/salons", headers={"X-User-Role": "user"}).status_code == 403
    assert client.post("/api/admin/subscriptions/5", headers=USER).status_code == 401


def test_admin_salon_review_controls_discovery(client, session) -> None:
    seed_salon(session, salon_id=6, name="صالون الورد", status="pending")

    listed = client.get("/api/admin/salons", headers=ADMIN).json()["salons"]
    assert {salon["id"]: salon["status"] for salon in listed} == {5: "accepted", 6: "pending"}
    assert [salon["id"] for salon in client.get("/api/discovery/رام الله/female").json()["allSalons"]] == [5]

    assert client.post("/api/admin/salon/status/6", json={"status": "accepted"}, headers=ADMIN).status_code == 200
    visible = client.get("/api/discovery/رام الله/female").json()["allSalons"]
    assert sorted(salon["id"] for salon in visible) == [5, 6]

    assert client.post("/api/admin/salon/status/6", json={"status": "closed"}, headers=ADMIN).status_code == 400
    assert client.post("/api/admin/salon/status/99", json={"status": "rejected"}, headers=ADMIN).status_code == 404


def test_subscription_renewal_accepts_salon_and_records_payment(client, session) -> None:
    seed_salon(session, salon_id=6, name="صالون الورد", status="pending")

    renewed = client.post("/api/admin/subscriptions/6", headers=ADMIN)
    assert renewed.status_code == 200
    subscription = renewed.json()["subscription"]
    assert subscription["package"] == "monthly_100"
    assert subscription["salon_name"] == "صالون الورد"
    assert (subscription["start_date"], subscription["end_date"]) == ("2025-06-02", "2025-07-02")

    assert client.get("/api/admin/subscriptions", headers=ADMIN).json()[0]["salon_id"] == 6
    assert client.get("/api/salon/subscriptions/6").json()["subscriptions"][0]["status"] == "active"
    assert client.get("/api/salon/subscriptions/5").json()["subscriptions"] == []

    payments = client.get("/api/salon/payments/6").json()["payments"]
    assert (payments[0]["amount"], payments[0]["currency"]) == (100, "ILS")
    assert len(client.get("/api/admin/payments", headers=ADMIN).json()["payments"]) == 1

    salons = {salon["id"]: salon for salon in client.get("/api/admin/salons", headers=ADMIN).json()["salons"]}
    assert salons[6]["status"] == "accepted"
    assert client.get("/api/salon/details/6").json()["salon"]["plan"] == "monthly_100"
    assert client.post("/api/admin/subscriptions/99", headers=ADMIN).status_code == 404


def test_salon_info_and_details(client) -> None:
    client.post("/api/reviews/submit", json={"salon_id": 5, "rating": 4, "comment": "حلو"}, headers=USER)
    client.post("/api/reviews/submit", json={"salon_id": 5, "rating": 5, "comment": "ممتاز"}, headers={"X-User-Id": "2"})

    info = client.get("/api/salon/info/5").json()["info"]
    assert info["email"] == "salon5@example.com"
    assert info["gender_focus"] == "women"

    details = client.get("/api/salon/details/5").json()["salon"]
    assert details["salonId"] == 5
    assert (details["avg_rating"], details["review_count"]) == (4.5, 2)
    assert details["plan"] is None

    assert client.get("/api/salon/info/99").status_code == 404
    assert client.get("/api/salon/details/99").status_code == 404
