"""Tutoring session endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from socratic.auth.dependencies import get_current_user_id
from socratic.dependencies import get_session_service
from socratic.tutor.schemas import (
    CreateSessionRequest,
    SendMessageRequest,
    SendMessageResponse,
    SessionListResponse,
    SessionResponse,
    SessionScoreResponse,
    SessionSummary,
)
from socratic.tutor.session_service import ChatSessionService, session_score

router = APIRouter(prefix="/api/v1/sessions", tags=["Sessions"])


@router.post("", response_model=SessionResponse, status_code=201)
async def create_session(
    body: CreateSessionRequest,
    user_id: str = Depends(get_current_user_id),
    service: ChatSessionService = Depends(get_session_service),
):
    session, events = await service.create_session(user_id, body.topic)
    return SessionResponse(session=session, events=events)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    user_id: str = Depends(get_current_user_id),
    service: ChatSessionService = Depends(get_session_service),
):
    sessions = await service.list_sessions(user_id)
    return SessionListResponse(sessions=[
        SessionSummary(
            id=s.id,
            topic=s.topic,
            message_count=len(s.messages),
            created_at=s.created_at,
            updated_at=s.updated_at,
        )
        for s in sessions
    ])


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatSessionService = Depends(get_session_service),
):
    return SessionResponse(session=await service.get_session(user_id, session_id))


@router.delete("/{session_id}", status_code=204)
async def delete_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatSessionService = Depends(get_session_service),
) -> Response:
    await service.delete_session(user_id, session_id)
    return Response(status_code=204)


@router.post("/{session_id}/messages", response_model=SendMessageResponse)
async def send_message(
    session_id: str,
    body: SendMessageRequest,
    user_id: str = Depends(get_current_user_id),
    service: ChatSessionService = Depends(get_session_service),
):
    """Send a learner message; the reply, the fresh score and any unlocks come back together."""
    exchange = await service.send_message(user_id, session_id, body.content, body.model)
    return SendMessageResponse(
        session=exchange.session,
        reply=exchange.reply,
        score=session_score(exchange.session),
        events=exchange.events,
    )


@router.get("/{session_id}/score", response_model=SessionScoreResponse)
async def get_session_score(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatSessionService = Depends(get_session_service),
):
    return session_score(await service.get_session(user_id, session_id))
