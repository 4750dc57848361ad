"""Scoring formulas for tutoring sessions and lessons.

Two session scores exist and deliberately differ: ``learning_score`` is the
full breakdown (engagement + progress + understanding), ``quick_score`` is
the compact header figure that substitutes a flat 15 points for the
understanding component. Both are pure.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from socratic.exceptions import DomainValidationError
from socratic.gamification.levels import round_half_up

if TYPE_CHECKING:
    from socratic.tutor.schemas import Message, TutorState

QUICK_SCORE_BASE_UNDERSTANDING = 15

SCORE_LABELS: list[tuple[int, str]] = [
    (80, "Master"),
    (60, "Advanced"),
    (40, "Intermediate"),
    (20, "Developing"),
]


def score_label(total: int) -> str:
    """Label for a 0-100 learning score."""
    for threshold, label in SCORE_LABELS:
        if total >= threshold:
            return label
    return "Beginner"


def engagement_score(user_message_count: int) -> int:
    """0-40 points: 4 per user message."""
    return min(40, user_message_count * 4)


def progress_score(attempt_number: int, hint_level: int) -> int:
    """0-30 points, reduced by retries (up to 20) and hints (up to 10)."""
    if attempt_number < 0 or hint_level < 0:
        msg = "attempt_number and hint_level must be non-negative"
        raise DomainValidationError(msg)
    attempt_penalty = min(20, attempt_number * 2)
    hint_penalty = min(10, hint_level * 5)
    return max(0, 30 - attempt_penalty - hint_penalty)


def understanding_score(user_messages: int, assistant_messages: int, socratic_messages: int) -> int:
    """0-30 points: share of assistant turns taken by the socratic agent."""
    if user_messages == 0:
        return 0
    return round_half_up(30 * socratic_messages / max(1, assistant_messages))


def _count(messages: Iterable[Message]) -> tuple[int, int, int]:
    user = assistant = socratic = 0
    for message in messages:
        if message.role == "user":
            user += 1
        elif message.role == "assistant":
            assistant += 1
            if message.agent == "socratic":
                socratic += 1
    return user, assistant, socratic


def learning_score(messages: Iterable[Message], state: TutorState) -> dict:
    """Full score breakdown for a tutoring session."""
    user, assistant, socratic = _count(messages)
    engagement = engagement_score(user)
    progress = progress_score(state.attempt_number, state.hint_level)
    understanding = understanding_score(user, assistant, socratic)
    total = engagement + progress + understanding
    return {
        "engagement": engagement,
        "progress": progress,
        "understanding": understanding,
        "total": total,
        "level": score_label(total),
    }


def quick_score(messages: Iterable[Message], state: TutorState) -> int:
    """Compact session score with a flat understanding component, capped at 100."""
    user, _, _ = _count(messages)
    total = engagement_score(user) + progress_score(state.attempt_number, state.hint_level)
    return min(100, total + QUICK_SCORE_BASE_UNDERSTANDING)


def lesson_score(questions_asked: int, hints_used: int, attempt_number: int) -> int:
    """Lesson score in [10, 100]; the floor keeps every completion worth XP."""
    if questions_asked < 0 or hints_used < 0 or attempt_number < 0:
        msg = "questions_asked, hints_used and attempt_number must be non-negative"
        raise DomainValidationError(msg)
    message_penalty = max(0, (questions_asked - 5) * 2)
    hint_penalty = hints_used * 10
    attempt_penalty = attempt_number * 5
    return max(10, min(100, 100 - message_penalty - hint_penalty - attempt_penalty))
