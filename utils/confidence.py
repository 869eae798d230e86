"""Per-answer confidence scoring and point awards.

Confidence blends four factors into a 0-100 score:

- correctness (0.40): 1 for a correct answer, 0 otherwise
- time (0.35): 1 up to the expected time, then a gaussian decay on the
  overtime ratio
- hints (0.15): 1 without hints, down to 0.75 when every hint was used
- difficulty (0.10): harder questions answered correctly score higher

Each factor is monotonic, so the score never rises with slower answers or
more hints, and never falls when an answer becomes correct.
"""
from __future__ import annotations

import math
from typing import Any, Dict, Optional

CORRECTNESS_WEIGHT = 0.40
TIME_WEIGHT = 0.35
HINTS_WEIGHT = 0.15
DIFFICULTY_WEIGHT = 0.10

TIME_DECAY_SIGMA = 0.5
MAX_HINT_PENALTY = 0.25
DEFAULT_MAX_HINTS = 2
DIFFICULTY_BONUS_PER_LEVEL = 0.05

HIGH_CONFIDENCE = 80.0
MEDIUM_CONFIDENCE = 50.0

DIFFICULTY_POINT_STEP = 0.25


def time_factor(time_spent_seconds: float, expected_time_seconds: float) -> float:
    if expected_time_seconds <= 0:
        return 1.0
    ratio = max(0.0, float(time_spent_seconds)) / float(expected_time_seconds)
    if ratio <= 1.0:
        return 1.0
    return math.exp(-((ratio - 1.0) ** 2) / (2 * TIME_DECAY_SIGMA ** 2))


def hints_factor(hints_used: int, max_hints: int = DEFAULT_MAX_HINTS) -> float:
    if hints_used <= 0:
        return 1.0
    max_hints = max(1, max_hints)
    ratio = min(1.0, hints_used / max_hints)
    return 1.0 - MAX_HINT_PENALTY * ratio


def difficulty_factor(is_correct: bool, difficulty: int) -> float:
    if not is_correct:
        return 0.5
    return min(1.0, 0.5 + DIFFICULTY_BONUS_PER_LEVEL * difficulty)


def confidence_score(
    is_correct: bool,
    time_spent_seconds: float,
    expected_time_seconds: float,
    hints_used: int = 0,
    difficulty: int = 1,
    max_hints: Optional[int] = None,
) -> float:
    """Confidence in the learner's answer on a 0-100 scale."""
    score = (
        CORRECTNESS_WEIGHT * (1.0 if is_correct else 0.0)
        + TIME_WEIGHT * time_factor(time_spent_seconds, expected_time_seconds)
        + HINTS_WEIGHT * hints_factor(hints_used, max_hints or DEFAULT_MAX_HINTS)
        + DIFFICULTY_WEIGHT * difficulty_factor(is_correct, difficulty)
    )
    return round(max(0.0, min(1.0, score)) * 100, 1)


def confidence_bucket(score: float) -> str:
    if score > HIGH_CONFIDENCE:
        return "high"
    if score >= MEDIUM_CONFIDENCE:
        return "medium"
    return "low"


def interpret_confidence(score: float, is_correct: bool) -> str:
    bucket = confidence_bucket(score)
    if is_correct:
        if bucket == "high":
            return "Quick and confident. This skill looks solid."
        if bucket == "medium":
            return "Correct, with some hesitation. A little more practice will make it automatic."
        return "Correct, but slow or hint-assisted. Review the method to build speed."
    if bucket == "medium":
        return "Not quite. You answered promptly, so check the solution steps for the slip."
    return "Not quite. Work through the solution steps before trying a similar question."


def points_for_answer(
    is_correct: bool,
    base_points: int,
    difficulty: int,
    hints_used: int = 0,
    overtime: bool = False,
    config: Dict[str, Any] = None,
) -> int:
    """Points earned: difficulty-scaled base points minus hint and overtime penalties."""
    if not is_correct:
        return 0
    scoring = (config or {}).get("scoring", {})
    hint_penalty = int(scoring.get("hint_penalty", 2))
    overtime_penalty = int(scoring.get("overtime_penalty", 1))
    earned = round(base_points * (1 + DIFFICULTY_POINT_STEP * (difficulty - 1)))
    earned -= hint_penalty * max(0, hints_used)
    if overtime:
        earned -= overtime_penalty
    return max(0, int(earned))
