"""Course, progress, achievement and leaderboard endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from socratic.auth.dependencies import get_current_user_id
from socratic.config import Settings, get_settings
from socratic.dependencies import get_progress_tracker, get_store
from socratic.exceptions import StoreError
from socratic.gamification.achievements import achievement_progress, list_catalog, list_earned
from socratic.gamification.leaderboard import STATS_TABLE, compute_rank, get_leaderboard
from socratic.gamification.levels import compute_level
from socratic.gamification.progress import ProgressTracker
from socratic.gamification.schemas import (
    AchievementProgressEntry,
    AchievementsResponse,
    Course,
    CoursesResponse,
    DashboardResponse,
    EarnedAchievementResponse,
    LeaderboardResponse,
    LessonCompletionRequest,
    LessonCompletionResponse,
    ProgressListResponse,
    StatsResponse,
    UserAchievementsResponse,
    UserProgress,
    UserStats,
    XPHistoryEntry,
    XPHistoryResponse,
)
from socratic.gamification.xp_service import get_or_create_stats, xp_history
from socratic.storage.base import BaseStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Gamification"])

RECENT_ACHIEVEMENTS = 5


def _stats_response(stats: UserStats, rank: int) -> StatsResponse:
    level = compute_level(stats.total_xp)
    return StatsResponse(
        user_id=stats.user_id,
        level=level["level"],
        total_xp=stats.total_xp,
        xp_into_level=level["xp_into_level"],
        xp_for_level=level["xp_for_level"],
        xp_to_next_level=level["xp_to_next_level"],
        progress_percent=level["progress_percent"],
        current_streak=stats.current_streak,
        best_streak=stats.best_streak,
        total_sessions=stats.total_sessions,
        total_messages=stats.total_messages,
        average_score=round(stats.average_score, 2),
        courses_completed=stats.courses_completed,
        achievements_earned=stats.achievements_earned,
        rank_position=rank,
    )


async def _earned_achievements(store: BaseStore, user_id: str) -> list[EarnedAchievementResponse]:
    catalog = {a.id: a for a in await list_catalog(store)}
    return [
        EarnedAchievementResponse(achievement=catalog[ua.achievement_id], earned_at=ua.earned_at)
        for ua in await list_earned(store, user_id)
        if ua.achievement_id in catalog
    ]


# ── Courses ──


@router.get("/courses", response_model=CoursesResponse)
async def list_courses(
    category: str | None = Query(default=None),
    tracker: ProgressTracker = Depends(get_progress_tracker),
):
    """Course catalog in display order."""
    return CoursesResponse(courses=await tracker.list_courses(category))


@router.get("/courses/{course_id}", response_model=Course)
async def get_course(course_id: str, tracker: ProgressTracker = Depends(get_progress_tracker)):
    return await tracker.get_course(course_id)


@router.post("/courses/{course_id}/start", response_model=UserProgress)
async def start_course(
    course_id: str,
    user_id: str = Depends(get_current_user_id),
    tracker: ProgressTracker = Depends(get_progress_tracker),
):
    """Start a course. Starting an already-started course returns its progress unchanged."""
    return await tracker.start_course(user_id, course_id)


@router.post(
    "/courses/{course_id}/lessons/{lesson_id}/complete",
    response_model=LessonCompletionResponse,
)
async def complete_lesson(
    course_id: str,
    lesson_id: int,
    body: LessonCompletionRequest,
    user_id: str = Depends(get_current_user_id),
    tracker: ProgressTracker = Depends(get_progress_tracker),
):
    """Complete a lesson and return the updated progress with the events it caused."""
    result = await tracker.complete_lesson(
        user_id,
        course_id,
        lesson_id,
        questions_asked=body.questions_asked,
        hints_used=body.hints_used,
        attempt_number=body.attempt_number,
        time_spent=body.time_spent,
    )
    return LessonCompletionResponse(
        progress=result.progress,
        score=result.score,
        events=[e.model_dump() for e in result.events],
    )


# ── Progress ──


@router.get("/users/me/progress", response_model=ProgressListResponse)
async def my_progress(
    user_id: str = Depends(get_current_user_id),
    tracker: ProgressTracker = Depends(get_progress_tracker),
):
    return ProgressListResponse(progress=await tracker.list_progress(user_id))


@router.get("/users/me/progress/{course_id}", response_model=UserProgress)
async def my_course_progress(
    course_id: str,
    user_id: str = Depends(get_current_user_id),
    tracker: ProgressTracker = Depends(get_progress_tracker),
):
    """Progress on one course; a not-started placeholder when the user never started it."""
    await tracker.get_course(course_id)
    progress = await tracker.get_course_progress(user_id, course_id)
    return progress or UserProgress(user_id=user_id, course_id=course_id)


# ── Achievements ──


@router.get("/achievements", response_model=AchievementsResponse)
async def list_achievements(store: BaseStore = Depends(get_store)):
    return AchievementsResponse(achievements=await list_catalog(store))


@router.get("/users/me/achievements", response_model=UserAchievementsResponse)
async def my_achievements(
    user_id: str = Depends(get_current_user_id),
    store: BaseStore = Depends(get_store),
):
    """Earned achievements newest first, plus progress toward every catalog entry."""
    catalog = await list_catalog(store)
    earned = await _earned_achievements(store, user_id)
    earned_ids = {e.achievement.id for e in earned}
    stats = await get_or_create_stats(store, user_id)
    await store.commit()

    progress = [
        AchievementProgressEntry(
            achievement_id=a.id,
            earned=a.id in earned_ids,
            percent=100.0 if a.id in earned_ids else round(achievement_progress(a, stats), 1),
        )
        for a in catalog
    ]
    return UserAchievementsResponse(
        earned=earned,
        progress=progress,
        total_available=len(catalog),
        total_earned=len(earned),
    )


# ── Stats / XP ──


@router.get("/users/me/stats", response_model=StatsResponse)
async def my_stats(
    user_id: str = Depends(get_current_user_id),
    store: BaseStore = Depends(get_store),
):
    stats = await get_or_create_stats(store, user_id)
    await store.commit()
    return _stats_response(stats, await compute_rank(store, stats.total_xp))


@router.get("/users/me/xp/history", response_model=XPHistoryResponse)
async def my_xp_history(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    store: BaseStore = Depends(get_store),
):
    """Paginated XP ledger, newest first."""
    entries, total = await xp_history(store, user_id, page, per_page)
    return XPHistoryResponse(
        entries=[
            XPHistoryEntry(
                amount=e["amount"],
                source=e["source"],
                description=e.get("description"),
                created_at=e.get("created_at"),
            )
            for e in entries
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/users/me/dashboard", response_model=DashboardResponse)
async def my_dashboard(
    user_id: str = Depends(get_current_user_id),
    store: BaseStore = Depends(get_store),
    tracker: ProgressTracker = Depends(get_progress_tracker),
):
    """Stats plus progress and recent unlocks. The secondary panels degrade to empty."""
    stats = await get_or_create_stats(store, user_id)
    await store.commit()
    rank = await compute_rank(store, stats.total_xp)

    progress: list[UserProgress] = []
    try:
        progress = await tracker.list_progress(user_id)
    except StoreError:
        logger.warning("Dashboard progress unavailable for user %s", user_id, exc_info=True)

    recent: list[EarnedAchievementResponse] = []
    try:
        recent = (await _earned_achievements(store, user_id))[:RECENT_ACHIEVEMENTS]
    except StoreError:
        logger.warning("Dashboard achievements unavailable for user %s", user_id, exc_info=True)

    return DashboardResponse(stats=_stats_response(stats, rank), progress=progress, recent_achievements=recent)


# ── Leaderboard ──


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    limit: int | None = Query(default=None, ge=1),
    user_id: str = Depends(get_current_user_id),
    store: BaseStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Top users by XP. Ties share a rank."""
    limit = min(limit or settings.leaderboard_default_limit, settings.leaderboard_max_limit)
    entries = await get_leaderboard(store, limit)

    my_rank = None
    row = await store.get_row(STATS_TABLE, {"user_id": user_id})
    if row is not None:
        my_rank = await compute_rank(store, row["total_xp"])

    return LeaderboardResponse(entries=entries, my_rank=my_rank)
