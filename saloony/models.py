from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from saloony.db import Base

# Appointment statuses
SCHEDULED = "Scheduled"
COMPLETED = "Completed"
CANCELLED = "Cancelled"
ABSENT = "Absent"
TERMINAL_STATUSES = (COMPLETED, CANCELLED, ABSENT)

# Salon review statuses
PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
SALON_STATUSES = (PENDING, ACCEPTED, REJECTED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    phone = Column(String, nullable=False, default="")
    gender = Column(String, nullable=False, default="female")  # male | female
    city = Column(String, nullable=False, default="")
    strikes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=_utcnow)


class Salon(Base):
    __tablename__ = "salons"

    id = Column(Integer, primary_key=True)
    salon_name = Column(String, nullable=False)
    owner_name = Column(String, nullable=False, default="")
    email = Column(String, unique=True, nullable=False)
    phone = Column(String, nullable=False, default="")
    address = Column(String, nullable=False, default="")
    city = Column(String, nullable=False, index=True)
    gender_focus = Column(String, nullable=False)  # men | women
    image_url = Column(String, nullable=True)
    special = Column(Boolean, nullable=False, default=False)
    status = Column(String, nullable=False, default="pending")  # pending | accepted | rejected
    plan = Column(String, nullable=True)  # package of the latest subscription
    created_at = Column(DateTime, default=_utcnow)

    schedule = relationship("Schedule", uselist=False, cascade="all, delete-orphan")
    offerings = relationship("SalonService", cascade="all, delete-orphan")
    staff = relationship("Staff", cascade="all, delete-orphan", order_by="Staff.id")


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (UniqueConstraint("name_ar", "gender"),)

    id = Column(Integer, primary_key=True)
    name_ar = Column(String, nullable=False)
    name = Column(String, nullable=True)
    icon = Column(String, nullable=False, default="")
    gender = Column(String, nullable=False, default="both")  # men | women | both
    service_type = Column(String, nullable=False, default="main")  # main | addon
    created_at = Column(DateTime, default=_utcnow)


class SalonService(Base):
    __tablename__ = "salon_services"
    __table_args__ = (UniqueConstraint("salon_id", "service_id"),)

    id = Column(Integer, primary_key=True)
    salon_id = Column(Integer, ForeignKey("salons.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    price = Column(Float, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    created_at = Column(DateTime, default=_utcnow)

    service = relationship("Service")


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True)
    salon_id = Column(Integer, ForeignKey("salons.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_utcnow)


class Schedule(Base):
    __tablename__ = "schedules"

    salon_id = Column(Integer, ForeignKey("salons.id", ondelete="CASCADE"), primary_key=True)
    opening_time = Column(String, nullable=False)  # HH:MM
    closing_time = Column(String, nullable=False)  # HH:MM, may be earlier than opening
    closed_days = Column(JSON, nullable=False, default=list)  # 0=Sunday .. 6=Saturday
    created_at = Column(DateTime, default=_utcnow)


class Break(Base):
    __tablename__ = "breaks"

    id = Column(Integer, primary_key=True)
    salon_id = Column(Integer, ForeignKey("salons.id", ondelete="CASCADE"), nullable=False)
    staff_id = Column(Integer, ForeignKey("staff.id", ondelete="CASCADE"), nullable=True)  # NULL for all staff
    reason = Column(String, nullable=True)
    start_time = Column(String, nullable=False)  # HH:MM
    end_time = Column(String, nullable=False)
    break_date = Column(Date, nullable=True)  # NULL repeats every day
    created_at = Column(DateTime, default=_utcnow)


class ScheduleModification(Base):
    __tablename__ = "schedule_modifications"

    id = Column(Integer, primary_key=True)
    salon_id = Column(Integer, ForeignKey("salons.id", ondelete="CASCADE"), nullable=False)
    mod_type = Column(String, nullable=False)  # once | recurring
    mod_date = Column(Date, nullable=True)  # for "once"
    mod_day_index = Column(Integer, nullable=True)  # 0-6 for "recurring"
    start_time = Column(String, nullable=True)  # HH:MM for interval closures
    end_time = Column(String, nullable=True)
    closure_type = Column(String, nullable=False, default="full_day")  # full_day | interval
    reason = Column(String, nullable=False, default="حجب يدوي")
    staff_id = Column(Integer, ForeignKey("staff.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(DateTime, default=_utcnow)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    salon_id = Column(Integer, ForeignKey("salons.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    # naive timestamps in the salon's local time
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=SCHEDULED)
    date_booked = Column(DateTime, nullable=False, default=_utcnow)
    price = Column(Float, nullable=False, default=0.0)

    salon = relationship("Salon")
    user = relationship("User")
    staff = relationship("Staff")
    items = relationship("AppointmentItem", cascade="all, delete-orphan")


class AppointmentItem(Base):
    __tablename__ = "appointment_services"
    __table_args__ = (UniqueConstraint("appointment_id", "service_id"),)

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    price = Column(Float, nullable=False)

    service = relationship("Service")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("salon_id", "user_id"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating"),
    )

    id = Column(Integer, primary_key=True)
    salon_id = Column(Integer, ForeignKey("salons.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    date_posted = Column(DateTime, nullable=False, default=_utcnow)

    user = relationship("User")


class Favorite(Base):
    __tablename__ = "favorites"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    salon_id = Column(Integer, ForeignKey("salons.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime, default=_utcnow)


class ChatMessage(Base):
    __tablename__ = "ai_chat_messages"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    message = Column(Text, nullable=False)
    response = Column(Text, nullable=False)
    language = Column(String, nullable=False, default="ar")
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class CacheEntry(Base):
    __tablename__ = "cache_entries"

    key = Column(String, primary_key=True)
    payload = Column(Text, nullable=False)  # JSON {value, expiry, created}
    expiry = Column(Float, nullable=False, index=True)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True)
    salon_id = Column(Integer, ForeignKey("salons.id", ondelete="CASCADE"), nullable=False, index=True)
    package = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)  # NULL never expires
    status = Column(String, nullable=False, default="active")
    created_at = Column(DateTime, default=_utcnow)

    salon = relationship("Salon")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    salon_id = Column(Integer, ForeignKey("salons.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_type = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="ILS")
    payment_status = Column(String, nullable=False)
    payment_method = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    valid_from = Column(DateTime, nullable=True)
    valid_until = Column(DateTime, nullable=True)
    invoice_number = Column(String, unique=True, nullable=False)
    admin_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
