from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from models.mastery import MasteryRecord
from utils.difficulty import (
    DEFAULT_THRESHOLDS,
    AdaptationThresholds,
    clamp_difficulty,
    next_difficulty,
)

logger = logging.getLogger(__name__)

DECAY_RATE_PER_DAY = 0.05
MIN_DECAY_FACTOR = 0.1

# (upper accuracy bound, label)
MASTERY_LABELS = (
    (0.5, "weak"),
    (0.75, "moderate"),
)


def mastery_label(accuracy: Optional[float]) -> str:
    if accuracy is None:
        return "new"
    for upper, label in MASTERY_LABELS:
        if accuracy < upper:
            return label
    return "strong"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def decay_factor(last_practiced_at: Optional[str], now: Optional[datetime] = None) -> float:
    """Share of mastery retained since the skill was last practiced (1.0 = fresh)."""
    if not last_practiced_at:
        return 1.0
    try:
        practiced = datetime.fromisoformat(last_practiced_at)
    except ValueError:
        return 1.0
    if practiced.tzinfo is None:
        practiced = practiced.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    days = max(0, (now - practiced).days)
    return max(MIN_DECAY_FACTOR, math.exp(-DECAY_RATE_PER_DAY * days))


def effective_accuracy(record: MasteryRecord, now: Optional[datetime] = None) -> Optional[float]:
    if record.rolling_accuracy is None:
        return None
    return record.rolling_accuracy * decay_factor(record.last_practiced_at, now)


def default_mastery(user_id: str, micro_skill_id: int, module_id: Optional[int] = None) -> MasteryRecord:
    return MasteryRecord(user_id=user_id, micro_skill_id=micro_skill_id, module_id=module_id)


def _row_to_record(row) -> MasteryRecord:
    return MasteryRecord(
        user_id=row["user_id"],
        micro_skill_id=row["micro_skill_id"],
        module_id=row["module_id"],
        current_difficulty=clamp_difficulty(row["current_difficulty"]),
        recent_results=json.loads(row["recent_results"] or "[]"),
        rolling_accuracy=row["rolling_accuracy"],
        total_attempts=row["total_attempts"],
        correct_attempts=row["correct_attempts"],
        avg_time_seconds=row["avg_time_seconds"],
        last_practiced_at=row["last_practiced_at"],
        updated_at=row["updated_at"],
    )


def _fetch_record(conn, user_id: str, micro_skill_id: int) -> Optional[MasteryRecord]:
    row = conn.execute(
        "SELECT * FROM mastery_records WHERE user_id = ? AND micro_skill_id = ?",
        (user_id, micro_skill_id),
    ).fetchone()
    return _row_to_record(row) if row else None


def get_mastery(conn, user_id: str, micro_skill_id: int) -> MasteryRecord:
    """Current mastery snapshot; a default (difficulty 1, no accuracy) when the skill was never attempted."""
    return _fetch_record(conn, user_id, micro_skill_id) or default_mastery(user_id, micro_skill_id)


def get_masteries(conn, user_id: str, micro_skill_ids: Iterable[int]) -> Dict[int, MasteryRecord]:
    return {skill_id: get_mastery(conn, user_id, skill_id) for skill_id in micro_skill_ids}


def upsert_mastery(conn, record: MasteryRecord) -> None:
    conn.execute(
        """
        INSERT INTO mastery_records (
            user_id,
            micro_skill_id,
            module_id,
            current_difficulty,
            recent_results,
            rolling_accuracy,
            total_attempts,
            correct_attempts,
            avg_time_seconds,
            last_practiced_at,
            updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(user_id, micro_skill_id) DO UPDATE SET
            module_id = COALESCE(excluded.module_id, mastery_records.module_id),
            current_difficulty = excluded.current_difficulty,
            recent_results = excluded.recent_results,
            rolling_accuracy = excluded.rolling_accuracy,
            total_attempts = excluded.total_attempts,
            correct_attempts = excluded.correct_attempts,
            avg_time_seconds = excluded.avg_time_seconds,
            last_practiced_at = excluded.last_practiced_at,
            updated_at = excluded.updated_at
        """,
        (
            record.user_id,
            record.micro_skill_id,
            record.module_id,
            record.current_difficulty,
            json.dumps(record.recent_results),
            record.rolling_accuracy,
            record.total_attempts,
            record.correct_attempts,
            record.avg_time_seconds,
            record.last_practiced_at,
            record.updated_at,
        ),
    )


def record_attempt(
    conn,
    user_id: str,
    micro_skill_id: int,
    is_correct: bool,
    difficulty: int,
    time_spent_seconds: float = 0.0,
    module_id: Optional[int] = None,
    thresholds: AdaptationThresholds = DEFAULT_THRESHOLDS,
) -> MasteryRecord:
    """Fold one graded answer into the user's mastery of a skill and adapt its difficulty.

    Runs inside the caller's transaction; the caller commits.
    """
    existing = _fetch_record(conn, user_id, micro_skill_id)
    if existing is None:
        # first attempt anchors the record at the difficulty actually served
        existing = default_mastery(user_id, micro_skill_id, module_id)
        existing.current_difficulty = clamp_difficulty(difficulty)

    window = (existing.recent_results + [1 if is_correct else 0])[-thresholds.window_size:]
    rolling_accuracy = sum(window) / len(window)
    total_attempts = existing.total_attempts + 1
    new_difficulty = next_difficulty(existing.current_difficulty, rolling_accuracy, len(window), thresholds)
    avg_time = (existing.avg_time_seconds * existing.total_attempts + float(time_spent_seconds)) / total_attempts
    now = utc_now()

    record = MasteryRecord(
        user_id=user_id,
        micro_skill_id=micro_skill_id,
        module_id=module_id if module_id is not None else existing.module_id,
        current_difficulty=new_difficulty,
        recent_results=window,
        rolling_accuracy=round(rolling_accuracy, 4),
        total_attempts=total_attempts,
        correct_attempts=existing.correct_attempts + (1 if is_correct else 0),
        avg_time_seconds=round(avg_time, 3),
        last_practiced_at=now,
        updated_at=now,
    )
    upsert_mastery(conn, record)
    if new_difficulty != existing.current_difficulty:
        logger.debug(
            "User %s skill %s: difficulty %s -> %s (accuracy %.2f over %s)",
            user_id,
            micro_skill_id,
            existing.current_difficulty,
            new_difficulty,
            rolling_accuracy,
            len(window),
        )
    return record
