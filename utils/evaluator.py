from __future__ import annotations

import logging
from typing import Any, Dict

from config import load_config
from models.session import (
    AnswerFeedback,
    AnswerTrailEntry,
    Feedback,
    PerformanceUpdate,
    SessionProgress,
)
from utils.confidence import confidence_score, interpret_confidence, points_for_answer
from utils.difficulty import AdaptationThresholds, describe_adjustment
from utils.errors import QuestionMismatchError, SessionAlreadyCompletedError
from utils.grading import grade_answer
from utils.mastery import get_mastery, mastery_label, record_attempt, utc_now
from utils.progress import append_trail, claim_position, get_session, planned_question_id_at
from utils.question_bank import get_question, to_public

logger = logging.getLogger(__name__)


def _session_totals(conn, session_id: str) -> Dict[str, int]:
    row = conn.execute(
        """
        SELECT COUNT(*) AS answered,
            COALESCE(SUM(is_correct), 0) AS correct,
            COALESCE(SUM(points_earned), 0) AS points
        FROM answer_trail WHERE session_id = ?
        """,
        (session_id,),
    ).fetchone()
    return {"answered": int(row["answered"]), "correct": int(row["correct"]), "points": int(row["points"])}


def submit_answer(
    conn,
    user_id: str,
    session_id: str,
    question_id: str,
    user_answer: Any,
    time_spent_seconds: float,
    hints_used: int = 0,
    config: Dict[str, Any] = None,
) -> AnswerFeedback:
    """Grade the answer to the session's current question and advance the session.

    The position claim, trail entry and mastery update commit together; a
    rejected submission leaves the session untouched.
    """
    if not config:
        config = load_config()
    session = get_session(conn, user_id, session_id)
    if not session.is_active:
        raise SessionAlreadyCompletedError(session_id, session.status)

    position = session.current_position
    expected_id = planned_question_id_at(conn, session_id, position)
    if expected_id is None or expected_id != question_id:
        raise QuestionMismatchError(question_id, expected_id)
    question = get_question(conn, question_id)
    if question is None:
        raise QuestionMismatchError(question_id, expected_id)

    is_correct, near_miss = grade_answer(question.type, question.correct_answer, user_answer, config)
    difficulty = question.difficulty_level
    time_spent = float(time_spent_seconds)
    score = confidence_score(
        is_correct,
        time_spent,
        question.expected_time_seconds,
        hints_used=hints_used,
        difficulty=difficulty,
        max_hints=len(question.hints) or None,
    )
    points = points_for_answer(
        is_correct,
        question.points,
        difficulty,
        hints_used=hints_used,
        overtime=time_spent > question.expected_time_seconds,
        config=config,
    )

    if not claim_position(conn, session_id, position):
        conn.rollback()
        current = get_session(conn, user_id, session_id)
        if not current.is_active:
            raise SessionAlreadyCompletedError(session_id, current.status)
        logger.warning("Session %s: lost the claim on position %s", session_id, position)
        raise QuestionMismatchError(question_id, planned_question_id_at(conn, session_id, current.current_position))

    append_trail(
        conn,
        session_id,
        AnswerTrailEntry(
            position=position,
            question_id=question.id,
            micro_skill_id=question.micro_skill_id,
            difficulty=difficulty,
            user_answer=user_answer,
            is_correct=is_correct,
            time_spent_seconds=time_spent,
            expected_time_seconds=question.expected_time_seconds,
            confidence_score=score,
            hints_used=hints_used,
            points_earned=points,
            answered_at=utc_now(),
        ),
    )
    previous = get_mastery(conn, user_id, question.micro_skill_id)
    previous_difficulty = previous.current_difficulty if previous.total_attempts else difficulty
    mastery = record_attempt(
        conn,
        user_id,
        question.micro_skill_id,
        is_correct,
        difficulty,
        time_spent_seconds=time_spent,
        module_id=question.module_id,
        thresholds=AdaptationThresholds.from_config(config),
    )
    conn.commit()

    totals = _session_totals(conn, session_id)
    next_position = position + 1
    next_question = None
    if next_position < session.total_questions:
        next_id = planned_question_id_at(conn, session_id, next_position)
        upcoming = get_question(conn, next_id) if next_id else None
        next_question = to_public(conn, upcoming) if upcoming else None

    logger.debug(
        "Session %s position %s: %s (confidence %.1f, %s points)",
        session_id,
        position,
        "correct" if is_correct else "incorrect",
        score,
        points,
    )
    return AnswerFeedback(
        is_correct=is_correct,
        points_earned=points,
        confidence_score=score,
        feedback=Feedback(
            correct_answer=question.correct_answer,
            solution_steps=question.solution_steps,
            explanation=question.explanation,
            near_miss=near_miss,
            confidence_interpretation=interpret_confidence(score, is_correct),
        ),
        performance_update=PerformanceUpdate(
            micro_skill_id=question.micro_skill_id,
            current_mastery=mastery_label(mastery.rolling_accuracy),
            mastery_accuracy=mastery.rolling_accuracy,
            current_difficulty=mastery.current_difficulty,
            difficulty_adjustment=describe_adjustment(previous_difficulty, mastery.current_difficulty),
            accuracy_so_far=round(totals["correct"] / totals["answered"] * 100, 1),
        ),
        session_progress=SessionProgress(
            questions_answered=totals["answered"],
            questions_remaining=session.total_questions - totals["answered"],
            current_score=totals["points"],
        ),
        next_question=next_question,
        session_complete=next_question is None,
    )
