from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from saloony.clients.llm import ChatModel, build_chat_model
from saloony.config import Settings, get_settings
from saloony.db import SessionLocal, get_session
from saloony.services import (
    AdminService,
    AppointmentService,
    AvailabilityService,
    ChatAssistant,
    LayeredCache,
    ReviewService,
    SalonDiscoveryService,
    SalonManagementService,
    SubscriptionService,
)
from saloony.services.availability import salon_clock
from saloony.services.cache import DatabaseCacheStore, NamespaceConfig
from saloony.services.conversation_memory import ConversationMemoryStore


def get_clock(settings: Settings = Depends(get_settings)) -> Callable[[], datetime]:
    return salon_clock(settings.salon_timezone)


@lru_cache(maxsize=1)
def get_cache_cached() -> LayeredCache:
    settings = get_settings()
    namespaces = {
        "salons": NamespaceConfig(ttl=settings.cache_salons_ttl, max_size=settings.cache_max_size),
        "responses": NamespaceConfig(ttl=settings.cache_responses_ttl, max_size=settings.cache_max_size),
        "profiles": NamespaceConfig(ttl=settings.cache_profiles_ttl, max_size=settings.cache_max_size),
    }
    return LayeredCache(
        namespaces,
        store=DatabaseCacheStore(SessionLocal),
        persistent_ttl=settings.cache_persistent_ttl,
    )


@lru_cache(maxsize=1)
def get_memory_store_cached() -> ConversationMemoryStore:
    return ConversationMemoryStore(max_turns=get_settings().chat_history_turns)


@lru_cache(maxsize=1)
def get_chat_model_cached() -> ChatModel:
    return build_chat_model(get_settings())


@lru_cache(maxsize=1)
def get_chat_assistant_cached() -> ChatAssistant:
    settings = get_settings()
    return ChatAssistant(
        model=get_chat_model_cached(),
        memory=get_memory_store_cached(),
        cache=get_cache_cached(),
        session_factory=SessionLocal,
        clock=salon_clock(settings.salon_timezone),
    )


def get_chat_assistant() -> ChatAssistant:
    return get_chat_assistant_cached()


def get_availability_service(
    session: Session = Depends(get_session),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AvailabilityService:
    return AvailabilityService(session, clock=clock)


def get_appointment_service(
    session: Session = Depends(get_session),
    clock: Callable[[], datetime] = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> AppointmentService:
    return AppointmentService(
        session,
        clock=clock,
        lead_minutes=settings.booking_lead_minutes,
        cancellation_notice_hours=settings.cancellation_notice_hours,
    )


def get_salon_management_service(
    session: Session = Depends(get_session),
) -> SalonManagementService:
    return SalonManagementService(session)


def get_discovery_service(
    session: Session = Depends(get_session),
    availability: AvailabilityService = Depends(get_availability_service),
) -> SalonDiscoveryService:
    return SalonDiscoveryService(session, availability)


def get_review_service(
    session: Session = Depends(get_session),
) -> ReviewService:
    return ReviewService(session)


def get_admin_service(
    session: Session = Depends(get_session),
) -> AdminService:
    return AdminService(session)


def get_subscription_service(
    session: Session = Depends(get_session),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> SubscriptionService:
    return SubscriptionService(session, clock=clock)
