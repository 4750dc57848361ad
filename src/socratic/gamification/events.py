"""Game events: the ordered record of what a completion caused.

Events are built after the corresponding state is already written; the
optional Redis broadcast is for live UI overlays only.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from socratic.gamification.schemas import Achievement, XPAward

logger = logging.getLogger(__name__)

GAME_EVENTS_CHANNEL = "pubsub:game_events"

EventType = Literal["xp_gained", "achievement_unlocked", "level_up", "course_completed"]


class GameEvent(BaseModel):
    type: EventType
    data: dict[str, Any]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EventEmitter:
    """Accumulates events for one user action, in the order they happened."""

    def __init__(self, redis: object | None = None) -> None:
        self.redis = redis
        self.events: list[GameEvent] = []

    def _emit(self, type_: EventType, data: dict[str, Any]) -> GameEvent:
        event = GameEvent(type=type_, data=data)
        self.events.append(event)
        return event

    def _level_up(self, award: XPAward) -> None:
        if award.level_up:
            self._emit("level_up", {"old_level": award.old_level, "new_level": award.new_level})

    def xp_gained(self, award: XPAward, reason: str) -> None:
        self._emit("xp_gained", {"amount": award.amount, "reason": reason, "total_xp": award.total_xp})
        self._level_up(award)

    def course_completed(self, course_id: str, course_name: str, award: XPAward) -> None:
        self._emit("course_completed", {
            "course_id": course_id,
            "course_name": course_name,
            "bonus_xp": award.amount,
        })
        self._level_up(award)

    def achievement_unlocked(self, achievement: Achievement, award: XPAward) -> None:
        self._emit("achievement_unlocked", {
            "achievement_id": achievement.id,
            "name": achievement.name,
            "rarity": achievement.rarity,
            "reward_xp": achievement.reward_xp,
        })
        self._level_up(award)

    def drain(self) -> list[GameEvent]:
        """Return and clear the accumulated events."""
        events, self.events = self.events, []
        return events

    async def publish(self, user_id: str, events: list[GameEvent]) -> None:
        """Broadcast events for live overlays. Never raises."""
        if self.redis is None or not events:
            return
        try:
            await self.redis.publish(  # type: ignore[attr-defined]
                GAME_EVENTS_CHANNEL,
                json.dumps({
                    "user_id": user_id,
                    "events": [e.model_dump(mode="json") for e in events],
                }),
            )
        except Exception:
            logger.warning("Failed to publish game events for user %s", user_id, exc_info=True)
