"""Session and lesson scoring tests."""

import pytest

from socratic.exceptions import DomainValidationError
from socratic.gamification.scoring import (
    engagement_score,
    learning_score,
    lesson_score,
    progress_score,
    quick_score,
    score_label,
    understanding_score,
)
from socratic.tutor.schemas import Message, TutorState


def _conversation(user_turns: int, agents: list[str]) -> list[Message]:
    messages = [Message(role="user", content=f"q{i}") for i in range(user_turns)]
    messages += [Message(role="assistant", content="a", agent=agent) for agent in agents]
    return messages


class TestLearningScore:

    def test_empty_session(self):
        """No messages: engagement 0, full progress, no understanding."""
        result = learning_score([], TutorState())
        assert result == {
            "engagement": 0,
            "progress": 30,
            "understanding": 0,
            "total": 30,
            "level": "Developing",
        }

    def test_engagement_caps_at_40(self):
        assert engagement_score(3) == 12
        assert engagement_score(10) == 40
        assert engagement_score(25) == 40

    def test_progress_penalties(self):
        assert progress_score(0, 0) == 30
        assert progress_score(3, 1) == 30 - 6 - 5
        assert progress_score(50, 50) == 0

    def test_progress_rejects_negative_state(self):
        with pytest.raises(DomainValidationError):
            progress_score(-1, 0)

    def test_understanding_share_of_socratic_turns(self):
        assert understanding_score(2, 3, 2) == 20
        assert understanding_score(1, 0, 0) == 0
        assert understanding_score(0, 4, 4) == 0

    def test_full_breakdown(self):
        messages = _conversation(5, ["socratic", "socratic", "explainer", "socratic"])
        result = learning_score(messages, TutorState(attempt_number=1, hint_level=1))
        # engagement 20, progress 30-2-5=23, understanding round(30*3/4)=23 (22.5 rounds up)
        assert result["engagement"] == 20
        assert result["progress"] == 23
        assert result["understanding"] == 23
        assert result["total"] == 66
        assert result["level"] == "Advanced"

    def test_system_messages_ignored(self):
        messages = [Message(role="system", content="intro"), *_conversation(1, ["socratic"])]
        assert learning_score(messages, TutorState())["engagement"] == 4

    @pytest.mark.parametrize(("total", "label"), [
        (0, "Beginner"), (19, "Beginner"), (20, "Developing"), (40, "Intermediate"),
        (60, "Advanced"), (79, "Advanced"), (80, "Master"), (100, "Master"),
    ])
    def test_labels(self, total, label):
        assert score_label(total) == label


class TestQuickScore:

    def test_adds_flat_base(self):
        assert quick_score([], TutorState()) == 45

    def test_differs_from_breakdown(self):
        messages = _conversation(2, ["explainer", "explainer"])
        assert learning_score(messages, TutorState())["total"] == 38
        assert quick_score(messages, TutorState()) == 53

    def test_saturates(self):
        assert quick_score(_conversation(12, []), TutorState()) == 85


class TestLessonScore:

    def test_perfect(self):
        assert lesson_score(0, 0, 0) == 100

    def test_five_questions_free(self):
        assert lesson_score(5, 0, 0) == 100
        assert lesson_score(8, 0, 0) == 94

    def test_hints_and_attempts(self):
        assert lesson_score(0, 2, 1) == 75

    def test_floor_of_ten(self):
        assert lesson_score(100, 10, 10) == 10

    def test_negative_counters_rejected(self):
        with pytest.raises(DomainValidationError):
            lesson_score(0, -1, 0)
