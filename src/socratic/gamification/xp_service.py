"""XP awards, level recomputation and the per-user stats row."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from socratic.exceptions import DomainValidationError, DuplicateRecordError
from socratic.gamification.levels import level_for_xp
from socratic.gamification.schemas import UserStats, XPAward
from socratic.storage.base import BaseStore

logger = logging.getLogger(__name__)

STATS_TABLE = "user_stats"
LEDGER_TABLE = "xp_ledger"


async def get_or_create_stats(store: BaseStore, user_id: str) -> UserStats:
    """Get or create the stats row for a user."""
    row = await store.get_row(STATS_TABLE, {"user_id": user_id})
    if row is not None:
        return UserStats.model_validate(row)
    stats = UserStats(user_id=user_id)
    try:
        row = await store.insert_row(STATS_TABLE, stats.model_dump())
    except DuplicateRecordError:
        # Created concurrently by another request.
        row = await store.get_row(STATS_TABLE, {"user_id": user_id})
        if row is None:
            raise
    return UserStats.model_validate(row)


async def update_stats(store: BaseStore, user_id: str, **changes: object) -> UserStats:
    """Apply a partial update to a user's stats row."""
    changes["updated_at"] = datetime.now(timezone.utc)
    row = await store.update_row(STATS_TABLE, {"user_id": user_id}, changes)
    return UserStats.model_validate(row)


async def award_xp(
    store: BaseStore,
    user_id: str,
    amount: int,
    source: str,
    description: str = "",
) -> XPAward:
    """Add XP to a user and recompute their level.

    1. Append to xp_ledger
    2. Add to user_stats.total_xp
    3. Recompute level from total_xp
    """
    if amount < 0:
        msg = f"XP amount must be non-negative, got {amount}"
        raise DomainValidationError(msg)

    stats = await get_or_create_stats(store, user_id)
    old_level = stats.level
    total_xp = stats.total_xp + amount
    new_level = level_for_xp(total_xp)

    await store.insert_row(LEDGER_TABLE, {
        "user_id": user_id,
        "amount": amount,
        "source": source,
        "description": description,
        "created_at": datetime.now(timezone.utc),
    })
    await update_stats(store, user_id, total_xp=total_xp, level=new_level)

    if new_level > old_level:
        logger.info("User %s leveled up %d -> %d", user_id, old_level, new_level)

    return XPAward(amount=amount, total_xp=total_xp, old_level=old_level, new_level=new_level)


async def record_activity(store: BaseStore, user_id: str, today: date | None = None) -> UserStats:
    """Update the daily activity streak.

    Same day: unchanged. Day after the last activity: +1. Any gap: reset to 1.
    """
    if today is None:
        today = datetime.now(timezone.utc).date()

    stats = await get_or_create_stats(store, user_id)
    last = stats.last_active_on
    if last == today:
        return stats
    if last is not None and last == today - timedelta(days=1):
        streak = stats.current_streak + 1
    else:
        streak = 1

    return await update_stats(
        store,
        user_id,
        current_streak=streak,
        best_streak=max(stats.best_streak, streak),
        last_active_on=today,
    )


async def xp_history(store: BaseStore, user_id: str, page: int = 1, per_page: int = 20) -> tuple[list[dict], int]:
    """Return one page of a user's XP ledger, newest first, and the total entry count."""
    entries = await store.query(
        LEDGER_TABLE,
        {"user_id": user_id},
        order=["-created_at"],
        limit=per_page,
        offset=(page - 1) * per_page,
    )
    total = await store.count(LEDGER_TABLE, {"user_id": user_id})
    return entries, total
