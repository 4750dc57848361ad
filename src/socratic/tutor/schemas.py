"""Tutoring conversation models and the tutor endpoint's wire format."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from socratic.gamification.events import GameEvent

Role = Literal["user", "assistant", "system"]
Agent = Literal["socratic", "conversationalist", "explainer"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TutorState(BaseModel):
    attempt_number: int = Field(default=0, ge=0)
    hint_level: int = Field(default=0, ge=0)
    misconception: str = "none"


class Message(BaseModel):
    id: str = Field(default_factory=lambda: f"msg_{uuid4().hex}")
    role: Role
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    agent: Agent | None = None


class ChatSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    topic: str
    messages: list[Message] = []
    state: TutorState = TutorState()
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def to_record(self) -> dict[str, Any]:
        """Row form: nested JSON columns hold only JSON-native values."""
        record = self.model_dump(exclude={"messages", "state"})
        record["messages"] = [m.model_dump(mode="json") for m in self.messages]
        record["state"] = self.state.model_dump(mode="json")
        return record


# --- Tutor endpoint wire format ---


class TutorRequest(BaseModel):
    messages: list[dict[str, str]]
    topic: str
    state: TutorState
    model: str


class TutorResponse(BaseModel):
    active_agent: Agent
    combinedMessage: str  # noqa: N815
    next_state: TutorState


# --- API ---


class CreateSessionRequest(BaseModel):
    topic: str = Field(min_length=1, max_length=200)


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1)
    model: str | None = None


class ScoreBreakdown(BaseModel):
    engagement: int
    progress: int
    understanding: int
    total: int
    level: str


class SessionScoreResponse(BaseModel):
    breakdown: ScoreBreakdown
    quick_score: int


class SessionSummary(BaseModel):
    id: str
    topic: str
    message_count: int
    created_at: datetime
    updated_at: datetime


class SessionListResponse(BaseModel):
    sessions: list[SessionSummary]


class SessionResponse(BaseModel):
    session: ChatSession
    events: list[GameEvent] = []


class SendMessageResponse(BaseModel):
    session: ChatSession
    reply: Message
    score: SessionScoreResponse
    events: list[GameEvent]
