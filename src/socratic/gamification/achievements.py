"""Achievement evaluation: criteria predicates, idempotent unlocks and XP rewards."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import BaseModel

from socratic.exceptions import DuplicateRecordError
from socratic.gamification.schemas import (
    Achievement,
    AchievementContext,
    UserAchievement,
    UserStats,
    XPAward,
)
from socratic.gamification.xp_service import award_xp, get_or_create_stats, update_stats
from socratic.storage.base import BaseStore

logger = logging.getLogger(__name__)

CATALOG_TABLE = "achievements"
EARNED_TABLE = "user_achievements"


class AchievementUnlock(BaseModel):
    achievement: Achievement
    award: XPAward


def is_satisfied(achievement: Achievement, stats: UserStats, context: AchievementContext) -> bool:
    """Whether ``achievement``'s criteria hold for this stats snapshot and event."""
    criteria = achievement.criteria

    if achievement.type == "score":
        return context.score is not None and context.score >= criteria.get("min_score", 0)

    if achievement.type == "completion":
        if criteria.get("courses_completed"):
            return stats.courses_completed >= criteria["courses_completed"]
        return context.course_completed

    if achievement.type == "engagement":
        if criteria.get("sessions_completed"):
            return stats.total_sessions >= criteria["sessions_completed"]
        if criteria.get("messages_in_session"):
            return context.messages_in_session >= criteria["messages_in_session"]
        return False

    if achievement.type == "streak":
        return stats.current_streak >= criteria.get("streak_days", 1)

    if achievement.type == "mastery":
        if criteria.get("socratic_interactions"):
            return context.socratic_interactions >= criteria["socratic_interactions"]
        return False

    return False


async def list_catalog(store: BaseStore) -> list[Achievement]:
    """All achievement definitions in catalog order."""
    rows = await store.query(CATALOG_TABLE, order=["sort_order", "id"])
    return [Achievement.model_validate(r) for r in rows]


async def list_earned(store: BaseStore, user_id: str) -> list[UserAchievement]:
    """A user's earned achievements, newest first."""
    rows = await store.query(EARNED_TABLE, {"user_id": user_id}, order=["-earned_at"])
    return [UserAchievement.model_validate(r) for r in rows]


async def award_achievement(store: BaseStore, user_id: str, achievement: Achievement) -> XPAward | None:
    """Record an unlock and grant its XP.

    Returns None if the user already holds the achievement.
    """
    earned = UserAchievement(
        user_id=user_id,
        achievement_id=achievement.id,
        earned_at=datetime.now(timezone.utc),
    )
    try:
        await store.insert_row(EARNED_TABLE, earned.model_dump())
    except DuplicateRecordError:
        return None

    award = await award_xp(
        store,
        user_id,
        achievement.reward_xp,
        source="achievement",
        description=f'Unlocked achievement: "{achievement.name}"',
    )

    stats = await get_or_create_stats(store, user_id)
    await update_stats(store, user_id, achievements_earned=stats.achievements_earned + 1)

    logger.info("User %s unlocked achievement %s", user_id, achievement.id)
    return award


class AchievementEvaluator:
    """Evaluates the catalog against a user's fresh stats and an event context."""

    def __init__(self, store: BaseStore) -> None:
        self.store = store
        self._catalog: list[Achievement] | None = None

    async def catalog(self) -> list[Achievement]:
        """Load and cache the achievement catalog."""
        if self._catalog is None:
            self._catalog = await list_catalog(self.store)
        return self._catalog

    async def evaluate(self, user_id: str, context: AchievementContext) -> list[AchievementUnlock]:
        """Unlock every not-yet-earned achievement whose criteria now hold.

        Returns unlocks in catalog order (may be empty).
        """
        catalog = await self.catalog()
        earned_ids = {ua.achievement_id for ua in await list_earned(self.store, user_id)}
        stats = await get_or_create_stats(self.store, user_id)

        unlocks: list[AchievementUnlock] = []
        for achievement in catalog:
            if achievement.id in earned_ids:
                continue
            if not is_satisfied(achievement, stats, context):
                continue
            award = await award_achievement(self.store, user_id, achievement)
            if award is not None:
                unlocks.append(AchievementUnlock(achievement=achievement, award=award))
        return unlocks


def achievement_progress(achievement: Achievement, stats: UserStats) -> float:
    """Percent progress toward an achievement from lifetime stats alone.

    Event-bound criteria (a single score, messages in one session, socratic
    turns) have no lifetime measure and report 0.
    """
    criteria = achievement.criteria

    def ratio(current: float, target: int | None) -> float:
        if not target:
            return 0.0
        return min(100.0, current / target * 100)

    if achievement.type == "score":
        return ratio(stats.average_score, criteria.get("min_score"))
    if achievement.type == "completion":
        return ratio(stats.courses_completed, criteria.get("courses_completed"))
    if achievement.type == "streak":
        return ratio(stats.best_streak, criteria.get("streak_days"))
    if achievement.type == "engagement":
        return ratio(stats.total_sessions, criteria.get("sessions_completed"))
    return 0.0
