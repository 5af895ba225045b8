from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from saloony.services.exceptions import DownstreamServiceError

logger = logging.getLogger(__name__)


class ChatModel(Protocol):
    @property
    def configured(self) -> bool:
        """Whether credentials are present."""

    async def complete(self, messages: Sequence[BaseMessage]) -> str:
        """Return the assistant reply for ``messages``."""

    async def close(self) -> None:
        """Release any held connections."""


def _role(message: BaseMessage) -> str:
    if isinstance(message, SystemMessage):
        return "system"
    if isinstance(message, AIMessage):
        return "assistant"
    if isinstance(message, HumanMessage):
        return "user"
    raise ValueError(f"Unsupported message type: {type(message).__name__}")


def message_text(message: BaseMessage) -> str:
    """Flatten string or list-of-parts message content to text."""

    content: Any = getattr(message, "content", "")
    if isinstance(content, str):
        return content
    parts: List[str] = []
    for item in content or []:
        if isinstance(item, dict) and "text" in item:
            parts.append(str(item["text"]))
        elif isinstance(item, str):
            parts.append(item)
    return "".join(parts)


class ChatCompletionClient:
    """Async client for an OpenAI compatible ``/chat/completions`` endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None,
        model: str,
        temperature: float = 0.8,
        max_tokens: int = 800,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def payload(self, messages: Sequence[BaseMessage]) -> Dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {"role": _role(message), "content": message_text(message)} for message in messages
            ],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            "stream": False,
        }

    async def complete(self, messages: Sequence[BaseMessage]) -> str:
        if not self.configured:
            raise DownstreamServiceError("LLM API key is not configured", status_code=503)
        if self._client is None:
            self._client = self._build_client()
        try:
            response = await self._client.post("/chat/completions", json=self.payload(messages))
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.exception("LLM endpoint returned error %s", exc.response.status_code)
            raise DownstreamServiceError(
                "LLM endpoint returned an error response",
                status_code=502,
                cause=exc,
            ) from exc
        except httpx.RequestError as exc:
            logger.exception("Unable to reach LLM endpoint: %s", exc)
            raise DownstreamServiceError("Unable to reach LLM endpoint", cause=exc) from exc
        except ValueError as exc:
            logger.exception("LLM endpoint returned a body that is not JSON")
            raise DownstreamServiceError("LLM endpoint returned an unreadable response", cause=exc) from exc

        if not isinstance(data, dict):
            raise DownstreamServiceError("LLM response was not a JSON object")
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise DownstreamServiceError("LLM response contained no choices")
        message = choices[0].get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not content:
            raise DownstreamServiceError("LLM response contained no content")
        return str(content).strip()


class GeminiChatModel:
    """Google Gemini through ``langchain_google_genai``."""

    def __init__(self, *, api_key: Optional[str], model: str, temperature: float = 0.8) -> None:
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._llm = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _ensure_configured(self):
        if self._llm is None:
            from langchain_google_genai import ChatGoogleGenerativeAI

            self._llm = ChatGoogleGenerativeAI(
                model=self._model,
                temperature=self._temperature,
                google_api_key=self._api_key,
            )
        return self._llm

    async def complete(self, messages: Sequence[BaseMessage]) -> str:
        if not self.configured:
            raise DownstreamServiceError("Gemini API key is not configured", status_code=503)
        llm = self._ensure_configured()
        try:
            reply = await llm.ainvoke(list(messages))
        except Exception as exc:
            logger.exception("Gemini completion failed: %s", exc)
            raise DownstreamServiceError("Gemini completion failed", cause=exc) from exc
        text = message_text(reply).strip()
        if not text:
            raise DownstreamServiceError("Gemini response did not contain text output")
        return text

    async def close(self) -> None:
        return None


def build_chat_model(settings) -> ChatModel:
    if settings.llm_provider == "gemini":
        return GeminiChatModel(
            api_key=settings.google_api_key,
            model=settings.gemini_model,
            temperature=settings.llm_temperature,
        )
    return ChatCompletionClient(
        settings.llm_base_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.llm_timeout,
    )
