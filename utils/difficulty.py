from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 10


@dataclass(frozen=True)
class AdaptationThresholds:
    high_accuracy: float = 0.8
    low_accuracy: float = 0.4
    min_samples: int = 3
    window_size: int = 10

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "AdaptationThresholds":
        section = config.get("adaptation", {})
        thresholds = cls(
            high_accuracy=float(section.get("high_accuracy", cls.high_accuracy)),
            low_accuracy=float(section.get("low_accuracy", cls.low_accuracy)),
            min_samples=int(section.get("min_samples", cls.min_samples)),
            window_size=int(section.get("window_size", cls.window_size)),
        )
        if not 0.0 <= thresholds.low_accuracy < thresholds.high_accuracy <= 1.0:
            raise ValueError("adaptation thresholds must satisfy 0 <= low < high <= 1")
        if thresholds.min_samples <= 0 or thresholds.window_size < thresholds.min_samples:
            raise ValueError("adaptation window_size must be >= min_samples > 0")
        return thresholds


DEFAULT_THRESHOLDS = AdaptationThresholds()


def clamp_difficulty(level: int) -> int:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, int(level)))


def next_difficulty(
    current: int,
    recent_accuracy: Optional[float],
    sample_size: int,
    thresholds: AdaptationThresholds = DEFAULT_THRESHOLDS,
) -> int:
    """Return the difficulty to use after observing ``recent_accuracy`` over ``sample_size`` attempts.

    Moves at most one level per call. Raising needs at least
    ``thresholds.min_samples`` attempts; lowering does not.
    """
    current = clamp_difficulty(current)
    if recent_accuracy is None:
        return current
    if recent_accuracy >= thresholds.high_accuracy and sample_size >= thresholds.min_samples:
        return clamp_difficulty(current + 1)
    if recent_accuracy <= thresholds.low_accuracy:
        return clamp_difficulty(current - 1)
    return current


def describe_adjustment(previous: int, new: int) -> str:
    if new > previous:
        return f"increased from {previous} to {new}"
    if new < previous:
        return f"decreased from {previous} to {new}"
    return f"unchanged at {new}"
