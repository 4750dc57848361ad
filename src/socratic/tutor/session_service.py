"""Tutoring sessions: conversation bookkeeping and engagement tracking."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import BaseModel

from socratic.exceptions import DomainValidationError, SessionNotFoundError
from socratic.gamification.achievements import AchievementEvaluator
from socratic.gamification.events import EventEmitter, GameEvent
from socratic.gamification.leaderboard import update_user_ranking
from socratic.gamification.schemas import AchievementContext
from socratic.gamification.scoring import learning_score, quick_score
from socratic.gamification.xp_service import get_or_create_stats, record_activity, update_stats
from socratic.storage.base import BaseStore
from socratic.tutor.client import TutorClient
from socratic.tutor.schemas import (
    ChatSession,
    Message,
    ScoreBreakdown,
    SessionScoreResponse,
)

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "chat_sessions"


class MessageExchange(BaseModel):
    session: ChatSession
    reply: Message
    events: list[GameEvent]


def session_score(session: ChatSession) -> SessionScoreResponse:
    """Both session scores: the full breakdown and the compact header figure."""
    return SessionScoreResponse(
        breakdown=ScoreBreakdown(**learning_score(session.messages, session.state)),
        quick_score=quick_score(session.messages, session.state),
    )


class ChatSessionService:
    """One learning conversation per session, owned by the user who created it."""

    def __init__(
        self,
        store: BaseStore,
        tutor: TutorClient,
        evaluator: AchievementEvaluator | None = None,
        emitter: EventEmitter | None = None,
        max_message_length: int = 4000,
    ) -> None:
        self.store = store
        self.tutor = tutor
        self.evaluator = evaluator or AchievementEvaluator(store)
        self.emitter = emitter or EventEmitter()
        self.max_message_length = max_message_length

    async def create_session(self, user_id: str, topic: str) -> tuple[ChatSession, list[GameEvent]]:
        """Open a session on ``topic`` and count it toward the user's sessions."""
        topic = topic.strip()
        if not topic:
            msg = "Topic must not be empty"
            raise DomainValidationError(msg)

        session = ChatSession(user_id=user_id, topic=topic)
        await self.store.insert_row(SESSIONS_TABLE, session.to_record())

        stats = await get_or_create_stats(self.store, user_id)
        await update_stats(self.store, user_id, total_sessions=stats.total_sessions + 1)
        await record_activity(self.store, user_id)

        events = await self._evaluate(user_id, AchievementContext())
        await self.store.commit()
        await self.emitter.publish(user_id, events)
        logger.info("User %s opened session %s on %r", user_id, session.id, topic)
        return session, events

    async def list_sessions(self, user_id: str) -> list[ChatSession]:
        """A user's sessions, most recently updated first."""
        rows = await self.store.query(SESSIONS_TABLE, {"user_id": user_id}, order=["-updated_at"])
        return [ChatSession.model_validate(r) for r in rows]

    async def get_session(self, user_id: str, session_id: str) -> ChatSession:
        """Fetch a session. Sessions of other users are reported as missing."""
        row = await self.store.get_row(SESSIONS_TABLE, {"id": session_id, "user_id": user_id})
        if row is None:
            raise SessionNotFoundError(session_id)
        return ChatSession.model_validate(row)

    async def delete_session(self, user_id: str, session_id: str) -> None:
        await self.get_session(user_id, session_id)
        await self.store.delete_row(SESSIONS_TABLE, {"id": session_id, "user_id": user_id})
        await self.store.commit()

    async def send_message(
        self,
        user_id: str,
        session_id: str,
        content: str,
        model: str | None = None,
    ) -> MessageExchange:
        """Send a learner message to the tutor and record the exchange.

        Nothing is written if the tutor call fails.
        """
        content = content.strip()
        if not content:
            msg = "Message must not be empty"
            raise DomainValidationError(msg)
        if len(content) > self.max_message_length:
            msg = f"Message exceeds {self.max_message_length} characters"
            raise DomainValidationError(msg)

        session = await self.get_session(user_id, session_id)
        user_message = Message(role="user", content=content)
        conversation = [*session.messages, user_message]

        reply = await self.tutor.send(conversation, session.topic, session.state, model)

        assistant_message = Message(
            role="assistant",
            content=reply.combinedMessage,
            agent=reply.active_agent,
        )
        session.messages = [*conversation, assistant_message]
        session.state = reply.next_state
        session.updated_at = datetime.now(timezone.utc)

        record = session.to_record()
        await self.store.update_row(
            SESSIONS_TABLE,
            {"id": session.id},
            {"messages": record["messages"], "state": record["state"], "updated_at": record["updated_at"]},
        )

        stats = await get_or_create_stats(self.store, user_id)
        await update_stats(self.store, user_id, total_messages=stats.total_messages + 1)
        await record_activity(self.store, user_id)

        events = await self._evaluate(
            user_id,
            AchievementContext(
                messages_in_session=sum(1 for m in session.messages if m.role == "user"),
                socratic_interactions=sum(
                    1 for m in session.messages if m.role == "assistant" and m.agent == "socratic"
                ),
            ),
        )
        await self.store.commit()
        await self.emitter.publish(user_id, events)
        return MessageExchange(session=session, reply=assistant_message, events=events)

    async def _evaluate(self, user_id: str, context: AchievementContext) -> list[GameEvent]:
        unlocks = await self.evaluator.evaluate(user_id, context)
        for unlock in unlocks:
            self.emitter.achievement_unlocked(unlock.achievement, unlock.award)
        if unlocks:
            await update_user_ranking(self.store, user_id)
        return self.emitter.drain()
