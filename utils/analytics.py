"""End-of-session summaries.

Besides plain counts, a summary carries time insights: fatigue (the last
quarter of the session clearly worse or slower than the first), a
per-difficulty time breakdown, and Pearson correlations of time against
difficulty and against correctness.
"""
from __future__ import annotations

import logging
import math
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Sequence

from config import load_config
from models.session import (
    AnswerTrailEntry,
    ConfidenceMetrics,
    DifficultyTimeStat,
    QuartileStats,
    SessionSummary,
    SkillBreakdown,
    TimeInsights,
)
from utils.confidence import confidence_bucket
from utils.drills import complete_drill
from utils.errors import SessionAlreadyCompletedError, SessionIncompleteError
from utils.mastery import utc_now
from utils.progress import get_session, get_trail, mark_completed, parse_ts, stored_summary

logger = logging.getLogger(__name__)


def pearson(xs: Sequence[float], ys: Sequence[float]) -> Optional[float]:
    """Pearson correlation, or None with fewer than two points or zero variance."""
    n = len(xs)
    if n < 2 or n != len(ys):
        return None
    mean_x = sum(xs) / n
    mean_y = sum(ys) / n
    cov = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))
    var_x = sum((x - mean_x) ** 2 for x in xs)
    var_y = sum((y - mean_y) ** 2 for y in ys)
    if var_x == 0 or var_y == 0:
        return None
    return round(cov / math.sqrt(var_x * var_y), 3)


def _quartile(entries: Sequence[AnswerTrailEntry]) -> QuartileStats:
    correct = sum(1 for e in entries if e.is_correct)
    return QuartileStats(
        questions=len(entries),
        accuracy=round(correct / len(entries) * 100, 1),
        avg_time_seconds=round(sum(e.time_spent_seconds for e in entries) / len(entries), 2),
    )


def time_insights(entries: Sequence[AnswerTrailEntry], config: Dict[str, Any]) -> TimeInsights:
    analytics = config.get("analytics", {})
    min_answers = int(analytics.get("fatigue_min_answers", 8))
    accuracy_drop_threshold = float(analytics.get("fatigue_accuracy_drop", 15.0))
    time_increase_threshold = float(analytics.get("fatigue_time_increase", 0.2))

    by_difficulty: "OrderedDict[int, List[AnswerTrailEntry]]" = OrderedDict()
    for entry in sorted(entries, key=lambda e: e.difficulty):
        by_difficulty.setdefault(entry.difficulty, []).append(entry)
    breakdown = []
    for difficulty, group in by_difficulty.items():
        avg_time = sum(e.time_spent_seconds for e in group) / len(group)
        expected = sum(e.expected_time_seconds for e in group) / len(group)
        breakdown.append(
            DifficultyTimeStat(
                difficulty=difficulty,
                questions_count=len(group),
                avg_time_seconds=round(avg_time, 2),
                expected_time_seconds=round(expected, 2),
                time_ratio=round(avg_time / expected, 3) if expected else 0.0,
            )
        )

    times = [e.time_spent_seconds for e in entries]
    insights = TimeInsights(
        fatigue_detected=False,
        time_difficulty_correlation=pearson(times, [float(e.difficulty) for e in entries]),
        time_accuracy_correlation=pearson(times, [1.0 if e.is_correct else 0.0 for e in entries]),
        difficulty_breakdown=breakdown,
    )
    if len(entries) < min_answers:
        return insights

    size = max(1, len(entries) // 4)
    early = _quartile(entries[:size])
    late = _quartile(entries[-size:])
    accuracy_drop = round(early.accuracy - late.accuracy, 1)
    if early.avg_time_seconds > 0:
        time_increase = round((late.avg_time_seconds - early.avg_time_seconds) / early.avg_time_seconds, 3)
    else:
        time_increase = 0.0
    insights.early_quartile = early
    insights.late_quartile = late
    insights.accuracy_drop = accuracy_drop
    insights.time_increase = time_increase
    insights.fatigue_detected = accuracy_drop >= accuracy_drop_threshold or time_increase >= time_increase_threshold
    return insights


def confidence_metrics(entries: Sequence[AnswerTrailEntry]) -> ConfidenceMetrics:
    buckets = {"high": 0, "medium": 0, "low": 0}
    for entry in entries:
        buckets[confidence_bucket(entry.confidence_score)] += 1
    avg = sum(e.confidence_score for e in entries) / len(entries) if entries else 0.0
    return ConfidenceMetrics(
        avg_confidence=round(avg, 1),
        high_confidence_count=buckets["high"],
        medium_confidence_count=buckets["medium"],
        low_confidence_count=buckets["low"],
    )


def skill_breakdown(entries: Sequence[AnswerTrailEntry]) -> List[SkillBreakdown]:
    grouped: "OrderedDict[int, List[AnswerTrailEntry]]" = OrderedDict()
    for entry in entries:
        grouped.setdefault(entry.micro_skill_id, []).append(entry)
    result = []
    for skill_id, group in grouped.items():
        correct = sum(1 for e in group if e.is_correct)
        result.append(
            SkillBreakdown(
                micro_skill_id=skill_id,
                attempted=len(group),
                correct=correct,
                accuracy=round(correct / len(group) * 100, 1),
            )
        )
    return result


def summarize(session, entries: List[AnswerTrailEntry], completed_at: str, config: Dict[str, Any]) -> SessionSummary:
    attempted = len(entries)
    correct = sum(1 for e in entries if e.is_correct)
    started = parse_ts(session.started_at)
    finished = parse_ts(completed_at)
    duration = max(0, int((finished - started).total_seconds())) if started and finished else 0
    return SessionSummary(
        session_id=session.id,
        session_type=session.session_type,
        module_id=session.module_id,
        drill_number=session.drill_number,
        started_at=session.started_at,
        completed_at=completed_at,
        duration_seconds=duration,
        duration_minutes=duration // 60,
        total_questions=session.total_questions,
        questions_attempted=attempted,
        questions_correct=correct,
        accuracy=round(correct / attempted * 100, 1) if attempted else 0.0,
        points_earned=sum(e.points_earned for e in entries),
        avg_time_per_question=round(sum(e.time_spent_seconds for e in entries) / attempted, 2) if attempted else 0.0,
        confidence_metrics=confidence_metrics(entries),
        time_insights=time_insights(entries, config),
        skill_breakdown=skill_breakdown(entries),
    )


def end_session(conn, user_id: str, session_id: str, config: Dict[str, Any] = None) -> SessionSummary:
    """Close a fully answered session and return its summary.

    Ending an already completed session returns the stored summary. A
    session with unanswered questions cannot be ended; abandon it instead.
    """
    if not config:
        config = load_config()
    while True:
        session = get_session(conn, user_id, session_id)
        if session.status == "abandoned":
            raise SessionAlreadyCompletedError(session_id, session.status)
        if session.status == "completed":
            return stored_summary(session)

        entries = get_trail(conn, session_id)
        if len(entries) < session.total_questions:
            raise SessionIncompleteError(session_id, len(entries), session.total_questions)

        completed_at = utc_now()
        summary = summarize(session, entries, completed_at, config)
        if session.session_type == "drill":
            summary.next_drill_unlocked = complete_drill(
                conn,
                user_id,
                session.module_id,
                session.drill_number,
                session_id,
                summary.accuracy,
                config,
            )
        if mark_completed(conn, session_id, len(entries), completed_at, summary):
            break
        # the session changed after the trail was read; drop our drill update and look again
        conn.rollback()
        logger.warning("Session %s changed while ending, re-reading it", session_id)

    conn.commit()
    logger.info(
        "User %s completed session %s: %s/%s correct (%.1f%%), %s points",
        user_id,
        session_id,
        summary.questions_correct,
        summary.questions_attempted,
        summary.accuracy,
        summary.points_earned,
    )
    return summary
