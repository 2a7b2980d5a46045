# shoppy/chat.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from .agents.orchestrator import ChatOrchestrator, get_owned_session
from .db import get_db
from .deps import get_current_user, get_orchestrator
from .models import User
from .rate_limit import chat_limiter, session_limiter
from .responses import success_response
from . import crud

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

class ChatIn(BaseModel):
    message: str = Field(min_length=1, max_length=4000)
    sessionId: Optional[str] = None
    isNewChat: Optional[bool] = False

class SessionIn(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)

@router.post("/send", dependencies=[Depends(chat_limiter)])
async def send_message(
    payload: ChatIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.handle_turn(
        db, user, payload.message, payload.sessionId, bool(payload.isNewChat)
    )
    return success_response(result)

@router.get("/history")
async def chat_history(
    limit: int = Query(50, ge=1, le=200),
    sessionId: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if sessionId:
        await get_owned_session(db, user.user_id, sessionId)
        rows = await crud.get_messages_for_session(db, sessionId, limit=limit)
    else:
        rows = await crud.get_history_for_user(db, user.user_id, limit=limit)
    return success_response({
        "history": [crud.serialize_message(r) for r in rows],
        "sessionId": sessionId,
    })

@router.get("/sessions", dependencies=[Depends(session_limiter)])
async def list_sessions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    sessions = await crud.list_sessions_for_user(db, user.user_id)
    return success_response({"sessions": sessions})

@router.post("/sessions", status_code=201, dependencies=[Depends(session_limiter)])
async def create_session(
    payload: Optional[SessionIn] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    title = (payload.title or "").strip() if payload else ""
    session = await crud.create_chat_session(db, user.user_id, title or "New Chat")
    await db.commit()
    logger.info("[CHAT] created session %s for user=%s", session.session_id, user.user_id)
    return success_response({"session": crud.serialize_session(session)}, "Chat session created")

@router.get("/sessions/{session_id}", dependencies=[Depends(session_limiter)])
async def get_session(
    session_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    session = await get_owned_session(db, user.user_id, session_id)
    messages = await crud.get_messages_for_session(db, session_id)
    return success_response({
        "session": crud.serialize_session(session),
        "messages": [crud.serialize_message(m) for m in messages],
    })

@router.delete("/sessions/{session_id}", dependencies=[Depends(session_limiter)])
async def delete_session(
    session_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_session(db, user.user_id, session_id)
    await crud.deactivate_session(db, session_id)
    logger.info("[CHAT] session %s deleted by user=%s", session_id, user.user_id)
    return success_response(None, "Chat session deleted")
