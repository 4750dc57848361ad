"""Leaderboard ranking by total XP.

Ordering: total_xp DESC, then stats created_at ASC (earlier players first),
then user_id ASC. Rank is 1 + the number of users with strictly more XP, so
equal XP shares a rank ("1, 2, 2, 4").
"""

from __future__ import annotations

from typing import Any

from socratic.gamification.schemas import LeaderboardEntry
from socratic.gamification.xp_service import get_or_create_stats, update_stats
from socratic.storage.base import BaseStore

STATS_TABLE = "user_stats"
LEADERBOARD_ORDER = ["-total_xp", "created_at", "user_id"]


def assign_ranks(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Attach competition ranks to rows already sorted by total_xp DESC.

    Valid for any prefix of the full ordering, since every user with more XP
    sorts ahead of the row being ranked.
    """
    ranked = []
    previous_xp: int | None = None
    rank = 0
    for idx, row in enumerate(rows):
        if row["total_xp"] != previous_xp:
            rank = idx + 1
            previous_xp = row["total_xp"]
        ranked.append({**row, "rank": rank})
    return ranked


async def get_leaderboard(store: BaseStore, limit: int = 10) -> list[LeaderboardEntry]:
    """Top ``limit`` users by XP."""
    rows = await store.query(STATS_TABLE, order=LEADERBOARD_ORDER, limit=limit)
    return [
        LeaderboardEntry(
            rank=row["rank"],
            user_id=row["user_id"],
            level=row["level"],
            total_xp=row["total_xp"],
            achievements_earned=row["achievements_earned"],
            courses_completed=row["courses_completed"],
        )
        for row in assign_ranks(rows)
    ]


async def compute_rank(store: BaseStore, total_xp: int) -> int:
    """Rank a user with ``total_xp`` would hold right now."""
    return 1 + await store.count(STATS_TABLE, {"total_xp__gt": total_xp})


async def update_user_ranking(store: BaseStore, user_id: str) -> int:
    """Recompute and persist a user's rank_position. Returns the new rank."""
    stats = await get_or_create_stats(store, user_id)
    rank = await compute_rank(store, stats.total_xp)
    if rank != stats.rank_position:
        await update_stats(store, user_id, rank_position=rank)
    return rank
