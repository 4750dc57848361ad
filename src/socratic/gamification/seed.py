"""Catalog seed data: courses and achievements."""

from __future__ import annotations

import logging

from socratic.gamification.schemas import Achievement, Course
from socratic.storage.base import BaseStore

logger = logging.getLogger(__name__)

COURSE_SEED_DATA: list[dict] = [
    {
        "id": "photosynthesis-basics",
        "title": "Photosynthesis Basics",
        "description": "How plants convert sunlight into energy",
        "category": "Biology",
        "difficulty": "beginner",
        "topics": ["light reactions", "Calvin cycle", "chlorophyll"],
        "lessons": [
            {"id": 0, "title": "What Plants Need", "objectives": ["Name the inputs of photosynthesis"]},
            {"id": 1, "title": "Capturing Light", "objectives": ["Explain the role of chlorophyll"]},
            {"id": 2, "title": "The Calvin Cycle", "objectives": ["Trace carbon fixation"]},
            {"id": 3, "title": "Why It Matters", "objectives": ["Connect photosynthesis to food webs"]},
        ],
        "rewards": {"xp": 100, "badge": "Green Thumb"},
        "sort_order": 1,
    },
    {
        "id": "quadratic-equations",
        "title": "Quadratic Equations",
        "description": "Solving ax² + bx + c = 0",
        "category": "Mathematics",
        "difficulty": "intermediate",
        "topics": ["factoring", "completing the square", "quadratic formula"],
        "lessons": [
            {"id": 0, "title": "Shapes of Parabolas", "objectives": ["Relate coefficients to graph shape"]},
            {"id": 1, "title": "Factoring", "objectives": ["Factor simple trinomials"]},
            {"id": 2, "title": "Completing the Square", "objectives": ["Rewrite in vertex form"]},
            {"id": 3, "title": "The Quadratic Formula", "objectives": ["Derive and apply the formula"]},
            {"id": 4, "title": "The Discriminant", "objectives": ["Predict the number of roots"]},
        ],
        "rewards": {"xp": 200, "badge": "Root Finder"},
        "sort_order": 2,
    },
    {
        "id": "javascript-closures",
        "title": "JavaScript Closures",
        "description": "Understanding scope and lexical environment",
        "category": "Programming",
        "difficulty": "intermediate",
        "topics": ["scope", "lexical environment", "closures"],
        "lessons": [
            {"id": 0, "title": "Scope Chains", "objectives": ["Trace variable lookup"]},
            {"id": 1, "title": "Functions as Values", "objectives": ["Return functions from functions"]},
            {"id": 2, "title": "Closures in Practice", "objectives": ["Build a counter with private state"]},
        ],
        "rewards": {"xp": 150, "badge": "Scope Keeper"},
        "sort_order": 3,
    },
    {
        "id": "ww2-causes",
        "title": "Causes of World War II",
        "description": "Complex factors leading to global conflict",
        "category": "History",
        "difficulty": "advanced",
        "topics": ["Treaty of Versailles", "appeasement", "economic crisis"],
        "lessons": [
            {"id": 0, "title": "The Versailles Settlement", "objectives": ["Assess the treaty's terms"]},
            {"id": 1, "title": "The Great Depression", "objectives": ["Link economics to extremism"]},
            {"id": 2, "title": "Appeasement", "objectives": ["Evaluate the policy's logic"]},
            {"id": 3, "title": "1939", "objectives": ["Explain the outbreak of war"]},
        ],
        "rewards": {"xp": 300, "badge": "Historian"},
        "sort_order": 4,
    },
]

ACHIEVEMENT_SEED_DATA: list[dict] = [
    {
        "id": "first_steps",
        "name": "First Steps",
        "description": "Complete your first course",
        "icon": "\U0001f393",
        "type": "completion",
        "criteria": {"courses_completed": 1},
        "reward_xp": 100,
        "rarity": "common",
        "sort_order": 1,
    },
    {
        "id": "course_finisher",
        "name": "Course Finisher",
        "description": "Finish the course you are working on",
        "icon": "\U0001f3c1",
        "type": "completion",
        "criteria": {},
        "reward_xp": 50,
        "rarity": "common",
        "sort_order": 2,
    },
    {
        "id": "scholar",
        "name": "Scholar",
        "description": "Complete three courses",
        "icon": "\U0001f4da",
        "type": "completion",
        "criteria": {"courses_completed": 3},
        "reward_xp": 300,
        "rarity": "epic",
        "sort_order": 3,
    },
    {
        "id": "sharp_mind",
        "name": "Sharp Mind",
        "description": "Score 90 or more on a lesson",
        "icon": "✨",
        "type": "score",
        "criteria": {"min_score": 90},
        "reward_xp": 75,
        "rarity": "rare",
        "sort_order": 4,
    },
    {
        "id": "perfectionist",
        "name": "Perfectionist",
        "description": "Score a perfect 100 on a lesson",
        "icon": "\U0001f4af",
        "type": "score",
        "criteria": {"min_score": 100},
        "reward_xp": 150,
        "rarity": "epic",
        "sort_order": 5,
    },
    {
        "id": "curious_learner",
        "name": "Curious Learner",
        "description": "Start five tutoring sessions",
        "icon": "\U0001f50d",
        "type": "engagement",
        "criteria": {"sessions_completed": 5},
        "reward_xp": 50,
        "rarity": "common",
        "sort_order": 6,
    },
    {
        "id": "deep_dive",
        "name": "Deep Dive",
        "description": "Send twenty messages in one session",
        "icon": "\U0001f30a",
        "type": "engagement",
        "criteria": {"messages_in_session": 20},
        "reward_xp": 75,
        "rarity": "rare",
        "sort_order": 7,
    },
    {
        "id": "on_a_roll",
        "name": "On a Roll",
        "description": "Learn three days in a row",
        "icon": "\U0001f525",
        "type": "streak",
        "criteria": {"streak_days": 3},
        "reward_xp": 50,
        "rarity": "common",
        "sort_order": 8,
    },
    {
        "id": "unstoppable",
        "name": "Unstoppable",
        "description": "Learn thirty days in a row",
        "icon": "⚡",
        "type": "streak",
        "criteria": {"streak_days": 30},
        "reward_xp": 500,
        "rarity": "legendary",
        "sort_order": 9,
    },
    {
        "id": "socratic_thinker",
        "name": "Socratic Thinker",
        "description": "Work through ten socratic questions in one session",
        "icon": "\U0001f914",
        "type": "mastery",
        "criteria": {"socratic_interactions": 10},
        "reward_xp": 100,
        "rarity": "rare",
        "sort_order": 10,
    },
]


async def _upsert(store: BaseStore, table: str, record: dict) -> None:
    key = {"id": record["id"]}
    if await store.get_row(table, key) is None:
        await store.insert_row(table, record)
    else:
        await store.update_row(table, key, {k: v for k, v in record.items() if k != "id"})


async def seed_catalog(store: BaseStore) -> int:
    """Upsert all course and achievement definitions. Returns number of rows seeded."""
    seeded = 0
    for course_data in COURSE_SEED_DATA:
        await _upsert(store, "courses", Course.model_validate(course_data).model_dump())
        seeded += 1
    for achievement_data in ACHIEVEMENT_SEED_DATA:
        await _upsert(store, "achievements", Achievement.model_validate(achievement_data).model_dump())
        seeded += 1

    await store.commit()
    logger.info("Seeded %d catalog rows", seeded)
    return seeded
