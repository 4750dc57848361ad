"""Course progress: lesson completion, completion percentage and course rewards."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import BaseModel

from socratic.exceptions import (
    CourseNotFoundError,
    CourseNotStartedError,
    DuplicateRecordError,
    LessonNotFoundError,
)
from socratic.gamification.achievements import AchievementEvaluator
from socratic.gamification.events import EventEmitter, GameEvent
from socratic.gamification.leaderboard import update_user_ranking
from socratic.gamification.levels import lesson_xp, round_half_up
from socratic.gamification.schemas import (
    AchievementContext,
    Course,
    ProgressStatus,
    UserProgress,
)
from socratic.gamification.scoring import lesson_score
from socratic.gamification.xp_service import award_xp, get_or_create_stats, record_activity, update_stats
from socratic.storage.base import BaseStore

logger = logging.getLogger(__name__)

COURSES_TABLE = "courses"
PROGRESS_TABLE = "user_progress"

# Statuses a course can never leave once reached.
FINISHED_STATUSES: frozenset[ProgressStatus] = frozenset({"completed", "mastered"})


def completion_percentage(completed: int, total: int) -> int:
    """round(100 * completed / total); 0 for a course without lessons."""
    if total <= 0:
        return 0
    return round_half_up(completed / total * 100)


class LessonCompletion(BaseModel):
    progress: UserProgress
    score: int
    events: list[GameEvent]


class ProgressTracker:
    """Per-(user, course) progress state machine: not_started -> in_progress -> completed."""

    def __init__(
        self,
        store: BaseStore,
        evaluator: AchievementEvaluator | None = None,
        emitter: EventEmitter | None = None,
    ) -> None:
        self.store = store
        self.evaluator = evaluator or AchievementEvaluator(store)
        self.emitter = emitter or EventEmitter()

    # --- Catalog ---

    async def list_courses(self, category: str | None = None) -> list[Course]:
        """Courses ordered by catalog position, optionally for one category."""
        filter_ = {"category": category} if category else None
        rows = await self.store.query(COURSES_TABLE, filter_, order=["sort_order", "id"])
        return [Course.model_validate(r) for r in rows]

    async def get_course(self, course_id: str) -> Course:
        row = await self.store.get_row(COURSES_TABLE, {"id": course_id})
        if row is None:
            raise CourseNotFoundError(course_id)
        return Course.model_validate(row)

    # --- Progress ---

    async def get_course_progress(self, user_id: str, course_id: str) -> UserProgress | None:
        row = await self.store.get_row(PROGRESS_TABLE, {"user_id": user_id, "course_id": course_id})
        return UserProgress.model_validate(row) if row is not None else None

    async def list_progress(self, user_id: str) -> list[UserProgress]:
        """A user's progress rows, most recently active first."""
        rows = await self.store.query(PROGRESS_TABLE, {"user_id": user_id}, order=["-last_activity"])
        return [UserProgress.model_validate(r) for r in rows]

    async def start_course(self, user_id: str, course_id: str) -> UserProgress:
        """Create in_progress state for a course. Starting twice returns the existing row."""
        await self.get_course(course_id)
        existing = await self.get_course_progress(user_id, course_id)
        if existing is not None:
            return existing

        progress = UserProgress(user_id=user_id, course_id=course_id, status="in_progress")
        try:
            row = await self.store.insert_row(PROGRESS_TABLE, progress.model_dump())
        except DuplicateRecordError:
            existing = await self.get_course_progress(user_id, course_id)
            if existing is None:
                raise
            return existing
        await self.store.commit()
        logger.info("User %s started course %s", user_id, course_id)
        return UserProgress.model_validate(row)

    async def complete_lesson(
        self,
        user_id: str,
        course_id: str,
        lesson_id: int,
        questions_asked: int = 0,
        hints_used: int = 0,
        attempt_number: int = 0,
        time_spent: int = 0,
    ) -> LessonCompletion:
        """Score a finished lesson and apply every consequence.

        1. Update progress (completed set, percentage, status, totals)
        2. Award lesson XP
        3. On first reaching 100%: count the course, award its bonus XP
        4. Update stats (average score, streak)
        5. Evaluate achievements
        6. Recompute the user's rank
        All writes are committed before the events are returned.
        """
        score = lesson_score(questions_asked, hints_used, attempt_number)

        progress = await self.get_course_progress(user_id, course_id)
        if progress is None:
            raise CourseNotStartedError(course_id)
        course = await self.get_course(course_id)
        if not any(lesson.id == lesson_id for lesson in course.lessons):
            raise LessonNotFoundError(course_id, lesson_id)

        try:
            updated = await self._apply_completion(user_id, course, progress, lesson_id, score, time_spent)
            await self.store.commit()
        except Exception:
            # A failed completion leaves no partial writes.
            await self.store.rollback()
            self.emitter.drain()
            raise

        events = self.emitter.drain()
        await self.emitter.publish(user_id, events)
        return LessonCompletion(progress=updated, score=score, events=events)

    async def _apply_completion(
        self,
        user_id: str,
        course: Course,
        progress: UserProgress,
        lesson_id: int,
        score: int,
        time_spent: int,
    ) -> UserProgress:
        course_id = course.id
        completed = set(progress.completed_lessons)
        completed.add(lesson_id)
        percentage = completion_percentage(len(completed), len(course.lessons))

        just_completed = percentage == 100 and progress.status not in FINISHED_STATUSES
        if progress.status in FINISHED_STATUSES:
            status = progress.status
        else:
            status = "completed" if percentage == 100 else "in_progress"

        now = datetime.now(timezone.utc)
        changes: dict[str, object] = {
            "completed_lessons": sorted(completed),
            "current_lesson": max(progress.current_lesson, lesson_id + 1),
            "total_score": progress.total_score + score,
            "completion_percentage": percentage,
            "best_session_score": max(progress.best_session_score, score),
            "total_time_spent": progress.total_time_spent + time_spent,
            "status": status,
            "last_activity": now,
        }
        if just_completed:
            changes["completed_at"] = now
        row = await self.store.update_row(PROGRESS_TABLE, {"user_id": user_id, "course_id": course_id}, changes)
        updated = UserProgress.model_validate(row)

        award = await award_xp(
            self.store,
            user_id,
            lesson_xp(score, course.difficulty),
            source="lesson",
            description=f"Completed lesson {lesson_id} of {course.title}",
        )
        self.emitter.xp_gained(award, reason="lesson_completion")

        stats = await get_or_create_stats(self.store, user_id)
        completions = stats.lesson_completions + 1
        stat_changes: dict[str, object] = {
            "lesson_completions": completions,
            "average_score": stats.average_score + (score - stats.average_score) / completions,
        }
        if just_completed:
            stat_changes["courses_completed"] = stats.courses_completed + 1
        await update_stats(self.store, user_id, **stat_changes)

        if just_completed:
            bonus = await award_xp(
                self.store,
                user_id,
                course.rewards.xp,
                source="course",
                description=f"Completed course {course.title}",
            )
            self.emitter.course_completed(course.id, course.title, bonus)
            logger.info("User %s completed course %s", user_id, course_id)

        await record_activity(self.store, user_id)

        unlocks = await self.evaluator.evaluate(
            user_id,
            AchievementContext(
                score=score,
                lesson_completed=True,
                course_completed=just_completed,
                time_spent=time_spent,
            ),
        )
        for unlock in unlocks:
            self.emitter.achievement_unlocked(unlock.achievement, unlock.award)

        await update_user_ranking(self.store, user_id)
        return updated
