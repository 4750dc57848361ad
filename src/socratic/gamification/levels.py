"""Level and XP computation.

level(total_xp) = floor(sqrt(total_xp / 100)) + 1, so level n starts at
(n - 1)^2 * 100 XP and the next level at n^2 * 100 XP.
"""

from __future__ import annotations

import math

from socratic.exceptions import DomainValidationError

XP_PER_LEVEL_UNIT = 100
LESSON_BASE_XP = 50

DIFFICULTY_MULTIPLIERS: dict[str, float] = {
    "beginner": 1.0,
    "intermediate": 1.5,
    "advanced": 2.0,
}


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (not banker's rounding)."""
    return math.floor(value + 0.5)


def _check_xp(total_xp: int) -> None:
    if total_xp < 0:
        msg = f"total_xp must be non-negative, got {total_xp}"
        raise DomainValidationError(msg)


def level_threshold(level: int) -> int:
    """Cumulative XP at which ``level`` starts."""
    return (level - 1) ** 2 * XP_PER_LEVEL_UNIT


def level_for_xp(total_xp: int) -> int:
    """Level for a total XP amount; always >= 1."""
    _check_xp(total_xp)
    # isqrt keeps exact squares exact (400 XP -> level 3, never 2.999...).
    return math.isqrt(total_xp // XP_PER_LEVEL_UNIT) + 1


def xp_to_next_level(total_xp: int, level: int) -> int:
    """XP still missing to reach ``level + 1``; 0 once the threshold is met."""
    return max(0, level_threshold(level + 1) - total_xp)


def progress_to_next_level(total_xp: int, level: int) -> float:
    """Percent progress through ``level``, clamped to [0, 100]."""
    start = level_threshold(level)
    span = level_threshold(level + 1) - start
    percent = (total_xp - start) / span * 100
    return max(0.0, min(100.0, percent))


def compute_level(total_xp: int) -> dict:
    """Compute level info from total XP."""
    level = level_for_xp(total_xp)
    start = level_threshold(level)
    return {
        "level": level,
        "xp_into_level": total_xp - start,
        "xp_for_level": level_threshold(level + 1) - start,
        "xp_to_next_level": xp_to_next_level(total_xp, level),
        "progress_percent": progress_to_next_level(total_xp, level),
        "next_level": level + 1,
    }


def lesson_xp(score: int, difficulty: str) -> int:
    """XP for a completed lesson: round(50 * score/100 * difficulty multiplier)."""
    try:
        multiplier = DIFFICULTY_MULTIPLIERS[difficulty]
    except KeyError:
        msg = f"Unknown difficulty: {difficulty!r}"
        raise DomainValidationError(msg) from None
    if not 0 <= score <= 100:
        msg = f"score must be within [0, 100], got {score}"
        raise DomainValidationError(msg)
    return round_half_up(LESSON_BASE_XP * (score / 100) * multiplier)
