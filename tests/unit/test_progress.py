"""Course progress tests: completion, bonus XP and the event sequence."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from socratic.exceptions import (
    CourseNotFoundError,
    CourseNotStartedError,
    DomainValidationError,
    LessonNotFoundError,
    StoreError,
)
from socratic.gamification.events import EventEmitter
from socratic.gamification.progress import ProgressTracker, completion_percentage
from socratic.gamification.xp_service import get_or_create_stats

COURSE = "photosynthesis-basics"  # beginner, 4 lessons, 100 XP bonus


@pytest.fixture
def tracker(memory_store) -> ProgressTracker:
    return ProgressTracker(memory_store)


class TestCompletionPercentage:

    def test_values(self):
        assert completion_percentage(0, 4) == 0
        assert completion_percentage(2, 4) == 50
        assert completion_percentage(1, 3) == 33
        assert completion_percentage(2, 3) == 67
        assert completion_percentage(3, 3) == 100

    def test_empty_course(self):
        assert completion_percentage(0, 0) == 0


class TestCatalog:

    @pytest.mark.asyncio
    async def test_list_courses_in_order(self, tracker):
        courses = await tracker.list_courses()
        assert [c.id for c in courses][0] == COURSE
        assert len(courses) == 4

    @pytest.mark.asyncio
    async def test_filter_by_category(self, tracker):
        courses = await tracker.list_courses("History")
        assert [c.id for c in courses] == ["ww2-causes"]

    @pytest.mark.asyncio
    async def test_unknown_course(self, tracker):
        with pytest.raises(CourseNotFoundError):
            await tracker.get_course("underwater-basket-weaving")


class TestStartCourse:

    @pytest.mark.asyncio
    async def test_creates_in_progress(self, tracker):
        progress = await tracker.start_course("u1", COURSE)
        assert progress.status == "in_progress"
        assert progress.completion_percentage == 0
        assert progress.completed_lessons == []

    @pytest.mark.asyncio
    async def test_idempotent(self, tracker, memory_store):
        first = await tracker.start_course("u1", COURSE)
        second = await tracker.start_course("u1", COURSE)
        assert first.id == second.id
        assert await memory_store.count("user_progress", {"user_id": "u1"}) == 1

    @pytest.mark.asyncio
    async def test_unknown_course(self, tracker):
        with pytest.raises(CourseNotFoundError):
            await tracker.start_course("u1", "nope")


class TestCompleteLesson:

    @pytest.mark.asyncio
    async def test_requires_started_course(self, tracker):
        with pytest.raises(CourseNotStartedError):
            await tracker.complete_lesson("u1", COURSE, 0)

    @pytest.mark.asyncio
    async def test_unknown_lesson(self, tracker):
        await tracker.start_course("u1", COURSE)
        with pytest.raises(LessonNotFoundError):
            await tracker.complete_lesson("u1", COURSE, 9)

    @pytest.mark.asyncio
    async def test_negative_counters_rejected(self, tracker):
        await tracker.start_course("u1", COURSE)
        with pytest.raises(DomainValidationError):
            await tracker.complete_lesson("u1", COURSE, 0, hints_used=-1)

    @pytest.mark.asyncio
    async def test_half_way(self, tracker):
        await tracker.start_course("u1", COURSE)
        await tracker.complete_lesson("u1", COURSE, 0)
        result = await tracker.complete_lesson("u1", COURSE, 1)
        assert result.progress.completion_percentage == 50
        assert result.progress.status == "in_progress"
        assert result.progress.current_lesson == 2

    @pytest.mark.asyncio
    async def test_first_lesson_events(self, tracker, memory_store):
        await tracker.start_course("u1", COURSE)
        result = await tracker.complete_lesson("u1", COURSE, 0)

        assert result.score == 100
        # 50 lesson XP, then Sharp Mind (+75, crosses 100 XP) and Perfectionist (+150)
        assert [e.type for e in result.events] == [
            "xp_gained",
            "achievement_unlocked",
            "level_up",
            "achievement_unlocked",
        ]
        assert result.events[0].data == {"amount": 50, "reason": "lesson_completion", "total_xp": 50}
        assert result.events[2].data == {"old_level": 1, "new_level": 2}

        stats = await get_or_create_stats(memory_store, "u1")
        assert stats.total_xp == 275
        assert stats.level == 2
        assert stats.current_streak == 1
        assert stats.lesson_completions == 1
        assert stats.average_score == 100
        assert stats.rank_position == 1

    @pytest.mark.asyncio
    async def test_full_course(self, tracker, memory_store):
        """Four lessons: 50% after two, completed after four, bonus exactly once."""
        await tracker.start_course("u1", COURSE)
        for lesson_id in (0, 1):
            result = await tracker.complete_lesson("u1", COURSE, lesson_id)
        assert result.progress.completion_percentage == 50

        await tracker.complete_lesson("u1", COURSE, 2)
        result = await tracker.complete_lesson("u1", COURSE, 3)

        assert result.progress.completion_percentage == 100
        assert result.progress.status == "completed"
        assert result.progress.completed_at is not None
        assert [e.type for e in result.events] == [
            "xp_gained",
            "level_up",
            "course_completed",
            "achievement_unlocked",
            "achievement_unlocked",
        ]
        assert result.events[2].data["bonus_xp"] == 100
        assert [e.data["achievement_id"] for e in result.events[3:]] == ["first_steps", "course_finisher"]

        stats = await get_or_create_stats(memory_store, "u1")
        # 4 x 50 lessons + 100 bonus + 75 + 150 + 100 + 50 achievements
        assert stats.total_xp == 675
        assert stats.level == 3
        assert stats.courses_completed == 1
        assert stats.achievements_earned == 4

        bonus_rows = await memory_store.query("xp_ledger", {"user_id": "u1", "source": "course"})
        assert len(bonus_rows) == 1

    @pytest.mark.asyncio
    async def test_repeat_after_completion_keeps_status_and_bonus(self, tracker, memory_store):
        await tracker.start_course("u1", COURSE)
        for lesson_id in range(4):
            await tracker.complete_lesson("u1", COURSE, lesson_id)

        result = await tracker.complete_lesson("u1", COURSE, 0, hints_used=3)

        assert result.progress.status == "completed"
        assert result.progress.completion_percentage == 100
        assert [e.type for e in result.events] == ["xp_gained"]
        assert await memory_store.count("xp_ledger", {"user_id": "u1", "source": "course"}) == 1
        stats = await get_or_create_stats(memory_store, "u1")
        assert stats.courses_completed == 1

    @pytest.mark.asyncio
    async def test_duplicate_lesson_is_set_insert(self, tracker):
        await tracker.start_course("u1", COURSE)
        await tracker.complete_lesson("u1", COURSE, 1)
        result = await tracker.complete_lesson("u1", COURSE, 1)
        assert result.progress.completed_lessons == [1]
        assert result.progress.completion_percentage == 25

    @pytest.mark.asyncio
    async def test_current_lesson_never_regresses(self, tracker):
        await tracker.start_course("u1", COURSE)
        await tracker.complete_lesson("u1", COURSE, 3)
        result = await tracker.complete_lesson("u1", COURSE, 0)
        assert result.progress.current_lesson == 4

    @pytest.mark.asyncio
    async def test_running_average_score(self, tracker, memory_store):
        await tracker.start_course("u1", COURSE)
        await tracker.complete_lesson("u1", COURSE, 0)  # 100
        await tracker.complete_lesson("u1", COURSE, 1, hints_used=5)  # 50
        stats = await get_or_create_stats(memory_store, "u1")
        assert stats.average_score == pytest.approx(75.0)

    @pytest.mark.asyncio
    async def test_score_scales_lesson_xp(self, memory_store):
        tracker = ProgressTracker(memory_store)
        await tracker.start_course("u1", "ww2-causes")
        result = await tracker.complete_lesson("u1", "ww2-causes", 0, questions_asked=15, hints_used=2, attempt_number=2)
        # 100 - 20 - 20 - 10 = 50; advanced: round(50 * 0.5 * 2) = 50
        assert result.score == 50
        assert result.events[0].data["amount"] == 50

    @pytest.mark.asyncio
    async def test_events_published(self, memory_store):
        redis = AsyncMock()
        tracker = ProgressTracker(memory_store, emitter=EventEmitter(redis))
        await tracker.start_course("u1", COURSE)
        await tracker.complete_lesson("u1", COURSE, 0)
        redis.publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, memory_store, monkeypatch):
        tracker = ProgressTracker(memory_store)
        await tracker.start_course("u1", COURSE)

        async def broken(*args, **kwargs):
            raise StoreError("connection reset")

        monkeypatch.setattr(memory_store, "update_row", broken)
        with pytest.raises(StoreError):
            await tracker.complete_lesson("u1", COURSE, 0)

    @pytest.mark.asyncio
    async def test_failed_completion_leaves_no_partial_writes(self, memory_store, monkeypatch):
        tracker = ProgressTracker(memory_store)
        course = "javascript-closures"  # 3 lessons
        await tracker.start_course("u1", course)
        await tracker.complete_lesson("u1", course, 0)
        await tracker.complete_lesson("u1", course, 1)
        xp_before = (await get_or_create_stats(memory_store, "u1")).total_xp

        insert_row = memory_store.insert_row

        async def failing_ledger_insert(table, record):
            if table == "xp_ledger":
                raise StoreError("connection reset")
            return await insert_row(table, record)

        monkeypatch.setattr(memory_store, "insert_row", failing_ledger_insert)
        with pytest.raises(StoreError):
            await tracker.complete_lesson("u1", course, 2)
        monkeypatch.undo()

        progress = await tracker.get_course_progress("u1", course)
        assert progress.completed_lessons == [0, 1]
        assert progress.status == "in_progress"
        assert (await get_or_create_stats(memory_store, "u1")).total_xp == xp_before

        result = await tracker.complete_lesson("u1", course, 2)
        assert result.progress.status == "completed"
        assert "course_completed" in [e.type for e in result.events]
        stats = await get_or_create_stats(memory_store, "u1")
        assert stats.courses_completed == 1
        assert await memory_store.count("xp_ledger", {"user_id": "u1", "source": "course"}) == 1
