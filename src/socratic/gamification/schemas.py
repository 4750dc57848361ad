"""Pydantic models for gamification records and endpoints."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

Difficulty = Literal["beginner", "intermediate", "advanced"]
AchievementType = Literal["score", "streak", "completion", "engagement", "mastery"]
Rarity = Literal["common", "rare", "epic", "legendary"]
ProgressStatus = Literal["not_started", "in_progress", "completed", "mastered"]


def _uuid() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


# --- Catalog ---


class Lesson(_Record):
    id: int
    title: str
    description: str = ""
    objectives: list[str] = []
    estimated_minutes: int = 10


class CourseRewards(_Record):
    xp: int = 0
    badge: str | None = None


class Course(_Record):
    id: str
    title: str
    description: str = ""
    category: str
    difficulty: Difficulty
    topics: list[str] = []
    lessons: list[Lesson] = []
    requirements: dict[str, Any] = {}
    rewards: CourseRewards = CourseRewards()
    sort_order: int = 0


class Achievement(_Record):
    id: str
    name: str
    description: str = ""
    icon: str = ""
    type: AchievementType
    criteria: dict[str, int] = {}
    reward_xp: int = 0
    rarity: Rarity = "common"
    sort_order: int = 0


# --- Per-user state ---


class UserStats(_Record):
    id: str = Field(default_factory=_uuid)
    user_id: str
    level: int = 1
    total_xp: int = 0
    current_streak: int = 0
    best_streak: int = 0
    last_active_on: date | None = None
    total_sessions: int = 0
    total_messages: int = 0
    lesson_completions: int = 0
    average_score: float = 0.0
    courses_completed: int = 0
    achievements_earned: int = 0
    rank_position: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class UserProgress(_Record):
    id: str = Field(default_factory=_uuid)
    user_id: str
    course_id: str
    current_lesson: int = 0
    completed_lessons: list[int] = []
    total_score: int = 0
    completion_percentage: int = 0
    status: ProgressStatus = "not_started"
    best_session_score: int = 0
    total_time_spent: int = 0
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None
    last_activity: datetime = Field(default_factory=_utcnow)


class UserAchievement(_Record):
    id: str = Field(default_factory=_uuid)
    user_id: str
    achievement_id: str
    earned_at: datetime = Field(default_factory=_utcnow)
    progress: dict[str, int] = {"current": 1, "target": 1}


class XPAward(BaseModel):
    amount: int
    total_xp: int
    old_level: int
    new_level: int

    @property
    def level_up(self) -> bool:
        return self.new_level > self.old_level


class AchievementContext(BaseModel):
    """Transient facts about the event being evaluated."""

    score: int | None = None
    lesson_completed: bool = False
    course_completed: bool = False
    time_spent: int = 0
    messages_in_session: int = 0
    socratic_interactions: int = 0


# --- Requests / responses ---


class LessonCompletionRequest(BaseModel):
    questions_asked: int = Field(default=0, ge=0)
    hints_used: int = Field(default=0, ge=0)
    attempt_number: int = Field(default=0, ge=0)
    time_spent: int = Field(default=0, ge=0, description="Seconds spent on the lesson")


class GameEventResponse(BaseModel):
    type: str
    data: dict[str, Any]
    timestamp: datetime


class LessonCompletionResponse(BaseModel):
    progress: UserProgress
    score: int
    events: list[GameEventResponse]


class CoursesResponse(BaseModel):
    courses: list[Course]


class ProgressListResponse(BaseModel):
    progress: list[UserProgress]


class AchievementsResponse(BaseModel):
    achievements: list[Achievement]


class EarnedAchievementResponse(BaseModel):
    achievement: Achievement
    earned_at: datetime


class AchievementProgressEntry(BaseModel):
    achievement_id: str
    earned: bool
    percent: float


class UserAchievementsResponse(BaseModel):
    earned: list[EarnedAchievementResponse]
    progress: list[AchievementProgressEntry]
    total_available: int
    total_earned: int


class StatsResponse(BaseModel):
    user_id: str
    level: int
    total_xp: int
    xp_into_level: int
    xp_for_level: int
    xp_to_next_level: int
    progress_percent: float
    current_streak: int
    best_streak: int
    total_sessions: int
    total_messages: int
    average_score: float
    courses_completed: int
    achievements_earned: int
    rank_position: int


class XPHistoryEntry(BaseModel):
    amount: int
    source: str
    description: str | None = None
    created_at: datetime | None = None


class XPHistoryResponse(BaseModel):
    entries: list[XPHistoryEntry]
    total: int
    page: int
    per_page: int


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    level: int
    total_xp: int
    achievements_earned: int
    courses_completed: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
    my_rank: int | None = None


class DashboardResponse(BaseModel):
    stats: StatsResponse
    progress: list[UserProgress]
    recent_achievements: list[EarnedAchievementResponse]
