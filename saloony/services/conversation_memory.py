"""In-memory chat history per user."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Deque, Dict, List

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage


@dataclass
class ConversationTurn:
    """One user message and the assistant's reply."""

    user: str
    assistant: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ConversationMemoryStore:
    """Thread-safe store that keeps the last N exchanges per user."""

    def __init__(self, max_turns: int = 6) -> None:
        self._max_turns = max_turns
        self._store: Dict[str, Deque[ConversationTurn]] = {}
        self._lock = Lock()

    @property
    def max_turns(self) -> int:
        return self._max_turns

    def get_history(self, conversation_id: str) -> List[ConversationTurn]:
        with self._lock:
            history = self._store.get(conversation_id)
            if not history:
                return []
            return list(history)

    def append(self, conversation_id: str, user_message: str, assistant_message: str) -> None:
        """Append a turn, dropping the oldest once the window is full."""

        with self._lock:
            history = self._store.setdefault(
                conversation_id, deque(maxlen=self._max_turns)
            )
            history.append(
                ConversationTurn(user=user_message.strip(), assistant=assistant_message.strip())
            )

    def as_messages(self, conversation_id: str) -> List[BaseMessage]:
        """History as alternating human/assistant chat messages, oldest first."""

        messages: List[BaseMessage] = []
        for turn in self.get_history(conversation_id):
            messages.append(HumanMessage(content=turn.user))
            messages.append(AIMessage(content=turn.assistant))
        return messages

    def reset(self, conversation_id: str) -> bool:
        """Forget one user's history; returns whether anything was stored."""

        with self._lock:
            return self._store.pop(conversation_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
