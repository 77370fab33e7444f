"""
XP scoring and display lookups for relationship quizzes.
"""

import math
from typing import Dict, Union

from learning_entities import DifficultyLevel, QuestionType


# XP rewards by difficulty
XP_REWARDS: Dict[DifficultyLevel, int] = {
    DifficultyLevel.EASY: 10,
    DifficultyLevel.MEDIUM: 20,
    DifficultyLevel.HARD: 30,
}

# Time limits by difficulty (seconds per question); enforced by the UI, not here
TIME_LIMITS: Dict[DifficultyLevel, int] = {
    DifficultyLevel.EASY: 30,
    DifficultyLevel.MEDIUM: 20,
    DifficultyLevel.HARD: 15,
}

PERFECT_SCORE_BONUS = 0.25
TIMER_BONUS = 0.15

QUESTION_TYPE_LABELS: Dict[QuestionType, str] = {
    QuestionType.PARENT: "Parent",
    QuestionType.CHILD: "Child",
    QuestionType.SIBLING: "Sibling",
    QuestionType.SPOUSE: "Spouse/Consort",
    QuestionType.DOMAIN: "Domain",
}

QUESTION_TYPE_ICONS: Dict[QuestionType, str] = {
    QuestionType.PARENT: "crown",
    QuestionType.CHILD: "baby",
    QuestionType.SIBLING: "users",
    QuestionType.SPOUSE: "heart",
    QuestionType.DOMAIN: "sparkles",
}


def calculate_quiz_xp(correct: int,
                      total: int,
                      difficulty: Union[DifficultyLevel, str],
                      timer_enabled: bool) -> int:
    """Turn a graded quiz into XP.

    Each bonus is floored on its own before being added to the base, so
    ``base + floor(base * 0.25) + floor(base * 0.15)`` rather than
    ``floor(base * 1.4)``.

    Args:
        correct: Number of correct answers
        total: Number of questions in the quiz
        difficulty: Quiz difficulty
        timer_enabled: Whether the learner played against the clock

    Returns:
        Integer XP, 0 when nothing was answered correctly
    """
    if correct < 0 or total < 0:
        raise ValueError(f"Quiz counts cannot be negative (correct={correct}, total={total})")
    if correct > total:
        raise ValueError(f"Correct answers ({correct}) exceed total questions ({total})")

    base = correct * XP_REWARDS[DifficultyLevel(difficulty)]
    perfect_bonus = math.floor(base * PERFECT_SCORE_BONUS) if total > 0 and correct == total else 0
    timer_bonus = math.floor(base * TIMER_BONUS) if timer_enabled else 0
    return base + perfect_bonus + timer_bonus


def score_percentage(correct: int, total: int) -> int:
    """Rounded percentage score, 0 for an empty quiz."""
    if total <= 0:
        return 0
    return math.floor(correct * 100 / total + 0.5)


def get_question_type_label(question_type: Union[QuestionType, str]) -> str:
    """Human-readable label for a question type."""
    return QUESTION_TYPE_LABELS[QuestionType(question_type)]


def get_question_type_icon(question_type: Union[QuestionType, str]) -> str:
    """Icon identifier for a question type."""
    return QUESTION_TYPE_ICONS[QuestionType(question_type)]
