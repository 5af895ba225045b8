"""The chat assistant: intent routing, salon data lookups and the LLM call."""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from sqlalchemy import distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from saloony.clients.llm import ChatModel
from saloony.models import ChatMessage, User
from saloony.schemas.chat import ChatReply, ChatStats
from saloony.services.availability import AvailabilityService
from saloony.services.cache import LayeredCache, search_key
from saloony.services.conversation_memory import ConversationMemoryStore
from saloony.services.exceptions import InvalidRequestError, ServiceError
from saloony.services.intent import (
    COMPARE,
    DEEP_ANALYSIS,
    PER_LOCATION,
    classify,
    classify_query,
    detect_language,
    detect_urgency,
    extract_slots,
)
from saloony.services.prompt_builder import build_system_prompt
from saloony.services.salon_context import SalonContextProvider

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000

_SUSPICIOUS_PATTERNS = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"eval\s*\(", re.IGNORECASE),
    re.compile(r"document\.", re.IGNORECASE),
    re.compile(r"window\.", re.IGNORECASE),
)
_ARABIC_CHAR = re.compile(r"[\u0600-\u06FF]")

FALLBACK_AR = (
    "عذراً، صارت معي مشكلة بسيطة بالشبكة. ياريت تجرب تسألني كمان مرة، "
    "أو تحكيلي شو بدك بالضبط. أنا هون عشان أساعدك! 😊"
)
FALLBACK_EN = "Sorry, I'm experiencing a temporary technical issue. Please try again in a moment. 😊"

ANONYMOUS_PROFILE = {"name": "المستخدم", "gender": "unknown", "city": "غير محدد"}

# context key -> profile key
_CONTEXT_OVERRIDES = {"user_gender": "gender", "user_name": "name", "user_city": "city"}


def validate_input(message: Optional[str]) -> str:
    """Return the cleaned message or raise ``InvalidRequestError``."""

    text = (message or "").strip()
    if not text:
        raise InvalidRequestError("Message cannot be empty")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise InvalidRequestError("Message too long. Please keep it under 1000 characters.")
    if any(pattern.search(text) for pattern in _SUSPICIOUS_PATTERNS):
        raise InvalidRequestError("Invalid characters detected")
    return re.sub(r"\s+", " ", text)


def fallback_response(message: Optional[str]) -> str:
    if message and _ARABIC_CHAR.search(message):
        return FALLBACK_AR
    return FALLBACK_EN


def merge_context(profile: Mapping[str, Any], context: Mapping[str, Any] | None) -> Dict[str, Any]:
    merged = dict(profile)
    for source, target in _CONTEXT_OVERRIDES.items():
        value = (context or {}).get(source)
        if value:
            merged[target] = value
    return merged


def _as_user_id(user_id: Any) -> Optional[int]:
    try:
        return int(user_id)
    except (TypeError, ValueError):
        return None


class ChatAssistant:
    """Answers one chat message with the help of real salon data."""

    def __init__(
        self,
        *,
        model: ChatModel,
        memory: ConversationMemoryStore,
        cache: LayeredCache,
        session_factory: Callable[[], Session],
        clock: Callable[[], datetime],
    ) -> None:
        self._model = model
        self._memory = memory
        self._cache = cache
        self._session_factory = session_factory
        self._clock = clock

    async def process_chat(
        self,
        message: Optional[str],
        user_id: Any = None,
        context: Mapping[str, Any] | None = None,
    ) -> ChatReply:
        try:
            text = validate_input(message)
            if not self._model.configured:
                raise ServiceError("AI service is not configured", status_code=503)

            conversation_id = str(user_id) if user_id not in (None, "") else "anonymous"
            profile = await asyncio.to_thread(self.load_profile, user_id)
            profile = merge_context(profile, context)
            language = detect_language(text)

            intent = classify(text)
            query_type = classify_query(text)
            slots = extract_slots(text, profile)
            urgent = detect_urgency(text)
            logger.info(
                "Chat aim=%s confidence=%.2f query=%s slots=%s urgent=%s",
                intent.aim,
                intent.confidence,
                query_type,
                slots.as_dict(),
                urgent,
            )

            salon_context, real_data, urgent_data = await asyncio.to_thread(
                self._gather, intent.aim, query_type, slots, urgent
            )
            system_prompt = build_system_prompt(
                language=language,
                profile=profile,
                salon_context=salon_context,
                aim=intent.aim,
                slots=slots,
                urgent_data=urgent_data,
                real_data=real_data,
            )
            messages = [
                SystemMessage(content=system_prompt),
                *self._memory.as_messages(conversation_id),
                HumanMessage(content=text),
            ]
            reply = await self._model.complete(messages)

            self._memory.append(conversation_id, text, reply)
            await asyncio.to_thread(self._record, conversation_id, text, reply, language)
            return ChatReply(
                success=True,
                response=reply,
                language=language,
                conversation_id=conversation_id,
                timestamp=datetime.now(timezone.utc),
            )
        except (ServiceError, SQLAlchemyError) as exc:
            logger.exception("Chat processing failed: %s", exc)
            return ChatReply(
                success=False,
                error=str(exc),
                fallback_response=fallback_response(message),
            )

    def load_profile(self, user_id: Any) -> Dict[str, Any]:
        numeric_id = _as_user_id(user_id)
        if numeric_id is None:
            return dict(ANONYMOUS_PROFILE)
        key = str(numeric_id)
        cached = self._cache.get_enhanced("profiles", key)
        if cached is not None:
            return dict(cached)
        with self._session_factory() as session:
            user = session.get(User, numeric_id)
            if user is None:
                return dict(ANONYMOUS_PROFILE)
            profile = {
                "name": user.name or ANONYMOUS_PROFILE["name"],
                "gender": user.gender or ANONYMOUS_PROFILE["gender"],
                "city": user.city or ANONYMOUS_PROFILE["city"],
            }
        self._cache.set_enhanced("profiles", key, profile)
        return profile

    def _gather(self, aim: str, query_type: str, slots, urgent: bool):
        with self._session_factory() as session:
            provider = SalonContextProvider(session, AvailabilityService(session, clock=self._clock))

            context_key = search_key(slots.city, slots.gender, query_type, slots.service)
            salon_context = self._cache.get_enhanced("salons", context_key)
            if salon_context is None:
                salon_context = provider.focused(query_type, slots.city, slots.gender, slots.service)
                self._cache.set_enhanced("salons", context_key, salon_context)

            real_data = ""
            if aim == PER_LOCATION or (aim == COMPARE and slots.service) or aim == DEEP_ANALYSIS:
                data_key = search_key(slots.city, slots.gender, aim, slots.service)
                real_data = self._cache.get_enhanced("responses", data_key)
                if real_data is None:
                    if aim == PER_LOCATION:
                        real_data = provider.per_location(slots.city, slots.gender)
                    elif aim == COMPARE:
                        real_data = provider.comparison(slots.city, slots.gender, slots.service)
                    else:
                        real_data = provider.deep_analysis(slots.city, slots.gender)
                    self._cache.set_enhanced("responses", data_key, real_data)

            urgent_data = ""
            if urgent and aim in (PER_LOCATION, COMPARE):
                urgent_data = provider.urgent_availability(slots.city)
        return salon_context, real_data, urgent_data

    def _record(self, conversation_id: str, message: str, reply: str, language: str) -> None:
        with self._session_factory() as session:
            session.add(
                ChatMessage(
                    user_id=conversation_id,
                    message=message,
                    response=reply,
                    language=language,
                )
            )
            session.commit()

    def clear_conversation(self, user_id: Any) -> bool:
        return self._memory.reset(str(user_id))

    def stats(self, user_id: Any) -> ChatStats:
        conversation_id = str(user_id)
        with self._session_factory() as session:
            total, active_days, last_message = session.execute(
                select(
                    func.count(ChatMessage.id),
                    func.count(distinct(func.date(ChatMessage.created_at))),
                    func.max(ChatMessage.created_at),
                ).where(ChatMessage.user_id == conversation_id)
            ).one()
        return ChatStats(
            total_messages=total or 0,
            active_days=active_days or 0,
            last_message=last_message,
        )
