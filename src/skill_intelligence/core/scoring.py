"""Challenge scoring and skill-confidence engine.

Turns test results into a 0-100 score, the score into feedback and a
confidence adjustment, and a validation history into a confidence estimate.
All functions are pure.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence, Union

from .models import Difficulty, TestCaseResult, ValidationRecord, utcnow

logger = logging.getLogger(__name__)

TEST_SCORE_WEIGHT = 70.0
TIME_BONUS_WEIGHT = 30.0

DIFFICULTY_MULTIPLIER = {
    Difficulty.BEGINNER: 0.5,
    Difficulty.INTERMEDIATE: 1.0,
    Difficulty.ADVANCED: 1.5,
}

# (minimum score, level delta), checked top-down
LEVEL_DELTA_BANDS = ((90, 5), (70, 2), (50, 0), (30, -3))
LOWEST_LEVEL_DELTA = -5

UNVALIDATED_CONFIDENCE = 0.3
STALE_CONFIDENCE = 0.4
RECENT_WINDOW_DAYS = 90
RECENCY_DECAY = 0.8
VALIDATION_BOOST_PER_RECORD = 0.1
MAX_VALIDATION_BOOST = 0.3


def calculate_score(
    results: Sequence[TestCaseResult],
    completion_time: float,
    time_limit_minutes: float,
) -> float:
    """Weighted test score (70%) plus a time bonus (30%), capped at 100."""
    total_weight = sum(r.weight for r in results)
    passed_weight = sum(r.weight for r in results if r.passed)
    test_score = (passed_weight / total_weight) * TEST_SCORE_WEIGHT if total_weight else 0.0

    time_ratio = min(max(completion_time / (time_limit_minutes * 60), 0.0), 1.0)
    time_bonus = (1 - time_ratio) * TIME_BONUS_WEIGHT

    return min(test_score + time_bonus, 100.0)


def generate_feedback(
    passed: int,
    total: int,
    score: float,
    difficulty: Union[Difficulty, str],
) -> str:
    difficulty = Difficulty(difficulty)
    pass_rate = (passed / total) * 100 if total else 0.0

    feedback = f"You passed {passed} out of {total} test cases ({pass_rate:.1f}%). "

    if score >= 90:
        feedback += "Excellent work! Your solution demonstrates strong understanding of the concept."
    elif score >= 70:
        feedback += "Good job! Your solution works well with room for minor improvements."
    elif score >= 50:
        feedback += "Your solution shows basic understanding but needs improvement in edge cases or efficiency."
    else:
        feedback += "Your solution needs significant improvement. Consider reviewing the fundamentals."

    if difficulty is Difficulty.ADVANCED and score >= 60:
        feedback += " Tackling advanced challenges shows strong problem-solving skills."
    elif difficulty is Difficulty.BEGINNER and score < 70:
        feedback += " Focus on understanding the basic concepts before moving to more complex problems."

    return feedback


def confidence_adjustment(score: float, difficulty: Union[Difficulty, str]) -> float:
    """Signed adjustment, positive above a score of 70, scaled by difficulty."""
    return ((score - 70) / 100) * DIFFICULTY_MULTIPLIER[Difficulty(difficulty)]


def adjusted_level(original_level: float, score: float, adjustment: float) -> float:
    """Nudge a self-assessed level (0-100) by the score band and confidence adjustment."""
    delta = next((d for threshold, d in LEVEL_DELTA_BANDS if score >= threshold), LOWEST_LEVEL_DELTA)
    delta += adjustment * 10
    return max(0.0, min(100.0, original_level + delta))


def updated_confidence(previous_confidence: float, score: float) -> float:
    """70% new performance, 30% prior confidence, clamped to [0.1, 1]."""
    confidence = (score / 100) * 0.7 + previous_confidence * 0.3
    return max(0.1, min(1.0, confidence))


def recommendations(score: float, new_level: float, original_level: float) -> list[str]:
    recs: list[str] = []

    if score < 50:
        recs.append("Review fundamental concepts for this skill area")
        recs.append("Practice with easier challenges before attempting this difficulty level")
    elif score < 70:
        recs.append("Focus on edge cases and error handling in your solutions")
        recs.append("Practice similar problems to reinforce your understanding")
    elif score >= 90:
        recs.append("Consider attempting more advanced challenges")
        recs.append("Your skills in this area are strong - consider mentoring others")

    if new_level < original_level:
        recs.append("Your self-assessment may be higher than your current skill level")
        recs.append("Focus on building stronger foundations before advancing")
    elif new_level > original_level:
        recs.append("You may be underestimating your abilities in this area")
        recs.append("Consider taking on more challenging projects")

    return recs


def skill_confidence(
    history: Iterable[ValidationRecord],
    now: Optional[datetime] = None,
) -> float:
    """Confidence (0-1) in a skill level from its validation history.

    Only the last 90 days count. Newer validations weigh more (0.8^index),
    and every recent validation adds 0.1, up to 0.3.
    """
    history = list(history)
    if not history:
        return UNVALIDATED_CONFIDENCE

    now = now or utcnow()
    cutoff = now - timedelta(days=RECENT_WINDOW_DAYS)
    recent = sorted(
        (r for r in history if _aware(r.date, now) >= cutoff),
        key=lambda r: _aware(r.date, now),
        reverse=True,
    )
    if not recent:
        return STALE_CONFIDENCE

    weighted_score = 0.0
    total_weight = 0.0
    for index, record in enumerate(recent):
        weight = RECENCY_DECAY ** index
        weighted_score += record.score * weight
        total_weight += weight

    base_confidence = min((weighted_score / total_weight) / 100, 1.0)
    boost = min(len(recent) * VALIDATION_BOOST_PER_RECORD, MAX_VALIDATION_BOOST)
    return min(base_confidence + boost, 1.0)


def _aware(value: datetime, reference: datetime) -> datetime:
    """Give naive datetimes the reference's timezone so they compare."""
    if value.tzinfo is None and reference.tzinfo is not None:
        return value.replace(tzinfo=reference.tzinfo)
    if value.tzinfo is not None and reference.tzinfo is None:
        return value.replace(tzinfo=None)
    return value
