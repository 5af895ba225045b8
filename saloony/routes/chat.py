from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from saloony.dependencies.services import get_chat_assistant
from saloony.schemas.chat import (
    ChatClearRequest,
    ChatReply,
    ChatRequest,
    ChatStatsResponse,
)
from saloony.schemas.salon import MessageResponse
from saloony.services import ChatAssistant

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ChatReply, response_model_exclude_none=True)
async def chat(
    req: ChatRequest,
    assistant: ChatAssistant = Depends(get_chat_assistant),
):
    if not req.message:
        raise HTTPException(status_code=400, detail="الرسالة مطلوبة")
    reply = await assistant.process_chat(req.message, req.user_id, req.context)
    if not reply.success:
        return JSONResponse(status_code=500, content=jsonable_encoder(reply, exclude_none=True))
    return reply


@router.post("/clear", response_model=MessageResponse)
def clear_conversation(
    req: ChatClearRequest,
    assistant: ChatAssistant = Depends(get_chat_assistant),
):
    if req.user_id in (None, ""):
        raise HTTPException(status_code=400, detail="معرف المستخدم مطلوب")
    assistant.clear_conversation(req.user_id)
    return MessageResponse(message="تم مسح المحادثة بنجاح")


@router.get("/stats/{user_id}", response_model=ChatStatsResponse)
def chat_stats(
    user_id: str,
    assistant: ChatAssistant = Depends(get_chat_assistant),
):
    try:
        return ChatStatsResponse(stats=assistant.stats(user_id))
    except SQLAlchemyError as exc:
        logger.exception("Failed to load chat stats for %s: %s", user_id, exc)
        raise HTTPException(status_code=500, detail="Database error.") from exc
