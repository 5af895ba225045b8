from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: Optional[str] = None
    user_id: Optional[Union[int, str]] = None
    context: Dict[str, Any] = Field(default_factory=dict)


class ChatReply(BaseModel):
    success: bool
    response: Optional[str] = None
    language: Optional[str] = None
    conversation_id: Optional[str] = None
    timestamp: Optional[datetime] = None
    error: Optional[str] = None
    fallback_response: Optional[str] = None


class ChatClearRequest(BaseModel):
    user_id: Optional[Union[int, str]] = None


class ChatStats(BaseModel):
    total_messages: int = 0
    active_days: int = 0
    last_message: Optional[datetime] = None


class ChatStatsResponse(BaseModel):
    success: bool = True
    stats: ChatStats
