import asyncio

import httpx
import pytest
from conftest import offer, seed_salon, seed_service, seed_user
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from saloony.clients.llm import ChatCompletionClient
from saloony.models import ChatMessage
from saloony.services.cache import LayeredCache, NamespaceConfig
from saloony.services.chat import (
    FALLBACK_AR,
    FALLBACK_EN,
    ChatAssistant,
    fallback_response,
    merge_context,
    validate_input,
)
from saloony.services.conversation_memory import ConversationMemoryStore
from saloony.services.exceptions import DownstreamServiceError, InvalidRequestError


class FakeChatModel:
    def __init__(self, reply: str = "أهلين! 😊", *, configured: bool = True, error: Exception | None = None) -> None:
        self.reply = reply
        self.configured = configured
        self.error = error
        self.calls = []

    async def complete(self, messages):
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return self.reply

    async def close(self) -> None:
        return None


def _cache() -> LayeredCache:
    return LayeredCache(
        {
            "salons": NamespaceConfig(ttl=300),
            "responses": NamespaceConfig(ttl=600),
            "profiles": NamespaceConfig(ttl=1800),
        }
    )


@pytest.fixture
def seeded(session):
    seed_salon(session, salon_id=1, name="صالون الياسمين", special=True)
    seed_salon(session, salon_id=2, name="صالون الشام", city="نابلس")
    seed_service(session, service_id=10, name_ar="قص شعر")
    offer(session, 1, 10, price=70, duration=30)
    offer(session, 2, 10, price=50, duration=30)
    seed_user(session, user_id=3, name="ريم", city="نابلس")
    return session


def _assistant(session_factory, clock, model):
    return ChatAssistant(
        model=model,
        memory=ConversationMemoryStore(max_turns=6),
        cache=_cache(),
        session_factory=session_factory,
        clock=clock,
    )


def test_validate_input_rules() -> None:
    assert validate_input("  مرحبا    كيفك \n") == "مرحبا كيفك"
    with pytest.raises(InvalidRequestError, match="Message cannot be empty"):
        validate_input("   ")
    with pytest.raises(InvalidRequestError, match="Message too long"):
        validate_input("a" * 1001)
    for bad in ("<script>alert(1)</script>", "javascript:void(0)", "img onerror = x", "eval(code)", "window.location"):
        with pytest.raises(InvalidRequestError, match="Invalid characters detected"):
            validate_input(bad)


def test_fallback_language_and_context_merge() -> None:
    assert fallback_response("مرحبا") == FALLBACK_AR
    assert fallback_response("hello") == FALLBACK_EN
    assert fallback_response(None) == FALLBACK_EN

    merged = merge_context({"name": "ريم", "gender": "female", "city": "نابلس"}, {"user_city": "الخليل", "user_name": ""})
    assert merged == {"name": "ريم", "gender": "female", "city": "الخليل"}


def test_process_chat_builds_prompt_from_profile_and_history(seeded, session_factory, clock) -> None:
    model = FakeChatModel()
    assistant = _assistant(session_factory, clock, model)

    first = asyncio.run(assistant.process_chat("بدي أرخص قص شعر", 3, {}))
    second = asyncio.run(assistant.process_chat("شكراً", 3, {}))

    assert first.success and first.response == "أهلين! 😊"
    assert first.language == "ar"
    assert first.conversation_id == "3"
    assert second.success

    system, user = model.calls[0][0], model.calls[0][-1]
    assert isinstance(system, SystemMessage)
    assert "Aim=COMPARE" in system.content
    assert "[REAL_DATA]" in system.content
    assert "صالون الشام" in system.content  # profile city is Nablus
    assert "صالون الياسمين" not in system.content
    assert isinstance(user, HumanMessage) and user.content == "بدي أرخص قص شعر"

    history = model.calls[1][1:-1]
    assert [type(message) for message in history] == [HumanMessage, AIMessage]
    assert history[0].content == "بدي أرخص قص شعر"

    with session_factory() as session:
        assert session.query(ChatMessage).filter_by(user_id="3").count() == 2
    stats = assistant.stats(3)
    assert stats.total_messages == 2
    assert stats.active_days == 1
    assert stats.last_message is not None


def test_context_overrides_profile_city(seeded, session_factory, clock) -> None:
    model = FakeChatModel()
    assistant = _assistant(session_factory, clock, model)

    asyncio.run(assistant.process_chat("في صالون قريب؟", 3, {"user_city": "رام الله"}))

    system = model.calls[0][0].content
    assert "Aim=PER_LOCATION" in system
    assert "صالون الياسمين" in system


def test_urgent_block_only_for_location_or_compare(seeded, session_factory, clock) -> None:
    model = FakeChatModel()
    assistant = _assistant(session_factory, clock, model)

    asyncio.run(assistant.process_chat("بدي صالون قريب هسا", None, {"user_city": "رام الله"}))
    asyncio.run(assistant.process_chat("مين المؤسسين؟ هسا", None, {}))

    assert "[AVAILABILITY_NEXT_HOUR]" in model.calls[0][0].content
    assert "[AVAILABILITY_NEXT_HOUR]" not in model.calls[1][0].content


def test_failures_return_fallback(seeded, session_factory, clock) -> None:
    failing = _assistant(session_factory, clock, FakeChatModel(error=DownstreamServiceError("boom")))
    unconfigured = _assistant(session_factory, clock, FakeChatModel(configured=False))

    reply = asyncio.run(failing.process_chat("مرحبا", 3))
    english = asyncio.run(unconfigured.process_chat("hello", 3))
    empty = asyncio.run(failing.process_chat("", 3))

    assert not reply.success and reply.fallback_response == FALLBACK_AR
    assert reply.error == "boom"
    assert english.fallback_response == FALLBACK_EN
    assert empty.error == "Message cannot be empty"


def test_clear_conversation(seeded, session_factory, clock) -> None:
    model = FakeChatModel()
    assistant = _assistant(session_factory, clock, model)
    asyncio.run(assistant.process_chat("مرحبا", 3))

    assert assistant.clear_conversation(3) is True
    asyncio.run(assistant.process_chat("مرحبا", 3))
    assert len(model.calls[1]) == 2


def test_chat_completion_payload_roles() -> None:
    client = ChatCompletionClient("https://llm.example.com/v1/", api_key="key", model="deepseek-chat")

    payload = client.payload([SystemMessage(content="sys"), HumanMessage(content="hi"), AIMessage(content="hey")])

    assert payload["model"] == "deepseek-chat"
    assert payload["stream"] is False
    assert [message["role"] for message in payload["messages"]] == ["system", "user", "assistant"]
    assert payload["max_tokens"] == 800 and payload["temperature"] == 0.8


def _client_returning(response: httpx.Response) -> ChatCompletionClient:
    return ChatCompletionClient(
        "https://llm.example.com/v1",
        api_key="key",
        model="deepseek-chat",
        transport=httpx.MockTransport(lambda request: response),
    )


def test_chat_completion_reads_first_choice() -> None:
    client = _client_returning(httpx.Response(200, json={"choices": [{"message": {"content": " مرحبا "}}]}))

    assert asyncio.run(client.complete([HumanMessage(content="hi")])) == "مرحبا"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"choices": ["oops"]}),
        httpx.Response(503, json={"error": "overloaded"}),
    ],
)
def test_chat_completion_unreadable_replies_raise(response) -> None:
    client = _client_returning(response)

    with pytest.raises(DownstreamServiceError):
        asyncio.run(client.complete([HumanMessage(content="hi")]))


def test_html_reply_from_llm_falls_back(seeded, session_factory, clock) -> None:
    model = _client_returning(httpx.Response(200, text="<html>gateway</html>"))
    assistant = _assistant(session_factory, clock, model)

    reply = asyncio.run(assistant.process_chat("مرحبا", 3))

    assert reply.success is False
    assert reply.fallback_response == FALLBACK_AR
    assert reply.error == "LLM endpoint returned an unreadable response"
