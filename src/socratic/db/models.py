"""ORM models for the tables the progression engine and tutor sessions use.

Rows leave the ORM as plain dicts (see ``socratic.storage.sql_store``), so
column names here are the record keys every store implementation shares.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from socratic.db.base import Base


def _uuid() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Catalogs (read-only for the engine)
# ---------------------------------------------------------------------------


class Course(Base):
    """Maps to the 'courses' table."""

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    topics: Mapped[list[Any]] = mapped_column(JSON, default=list)
    lessons: Mapped[list[Any]] = mapped_column(JSON, default=list)
    requirements: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    rewards: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Achievement(Base):
    """Maps to the 'achievements' table."""

    __tablename__ = "achievements"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    icon: Mapped[str] = mapped_column(String(16), default="")
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    criteria: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    reward_xp: Mapped[int] = mapped_column(Integer, default=0)
    rarity: Mapped[str] = mapped_column(String(16), default="common")
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


# ---------------------------------------------------------------------------
# Per-user state
# ---------------------------------------------------------------------------


class UserStats(Base):
    """Maps to the 'user_stats' table. One row per user, created lazily."""

    __tablename__ = "user_stats"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1)
    total_xp: Mapped[int] = mapped_column(Integer, default=0, index=True)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    best_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_active_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_sessions: Mapped[int] = mapped_column(Integer, default=0)
    total_messages: Mapped[int] = mapped_column(Integer, default=0)
    lesson_completions: Mapped[int] = mapped_column(Integer, default=0)
    average_score: Mapped[float] = mapped_column(Float, default=0.0)
    courses_completed: Mapped[int] = mapped_column(Integer, default=0)
    achievements_earned: Mapped[int] = mapped_column(Integer, default=0)
    rank_position: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class UserProgress(Base):
    """Maps to the 'user_progress' table. One row per (user, course)."""

    __tablename__ = "user_progress"
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_user_progress_user_course"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String(64), ForeignKey("courses.id"), nullable=False)
    current_lesson: Mapped[int] = mapped_column(Integer, default=0)
    completed_lessons: Mapped[list[int]] = mapped_column(JSON, default=list)
    total_score: Mapped[int] = mapped_column(Integer, default=0)
    completion_percentage: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(16), default="not_started")
    best_session_score: Mapped[int] = mapped_column(Integer, default=0)
    total_time_spent: Mapped[int] = mapped_column(Integer, default=0)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_activity: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class UserAchievement(Base):
    """Maps to the 'user_achievements' table. Earned at most once per user."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievements_user_achievement"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    achievement_id: Mapped[str] = mapped_column(String(64), ForeignKey("achievements.id"), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    progress: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)


class XPLedger(Base):
    """Maps to the 'xp_ledger' table. Append-only XP history."""

    __tablename__ = "xp_ledger"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


# ---------------------------------------------------------------------------
# Tutoring conversations
# ---------------------------------------------------------------------------


class ChatSession(Base):
    """Maps to the 'chat_sessions' table."""

    __tablename__ = "chat_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    topic: Mapped[str] = mapped_column(String(200), nullable=False)
    messages: Mapped[list[Any]] = mapped_column(JSON, default=list)
    state: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


TABLE_MODELS: dict[str, type[Base]] = {
    model.__tablename__: model
    for model in (Course, Achievement, UserStats, UserProgress, UserAchievement, XPLedger, ChatSession)
}
