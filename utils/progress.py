from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from models.question import Question
from models.session import (
    AnswerTrailEntry,
    HistoryEntry,
    HistoryStats,
    ModuleHistoryStats,
    PracticeHistory,
    SessionDetails,
    SessionStatus,
    SessionSummary,
)
from utils.catalog import get_module_name
from utils.drills import release_drill
from utils.errors import ActiveSessionExistsError, SessionAlreadyCompletedError, SessionNotFoundError
from utils.mastery import utc_now

logger = logging.getLogger(__name__)

HISTORY_SESSION_LIMIT = 50
HISTORY_LIST_SIZE = 10


@dataclass(frozen=True)
class SessionState:
    id: str
    user_id: str
    session_type: str
    module_id: Optional[int]
    drill_number: Optional[int]
    total_questions: int
    current_position: int
    status: str
    started_at: str
    completed_at: Optional[str] = None
    summary: Optional[str] = None
    archived: bool = False

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE.value


def new_session_id() -> str:
    return f"sess_{uuid.uuid4().hex}"


def parse_ts(ts_value: Optional[str]) -> Optional[datetime]:
    if not ts_value:
        return None
    try:
        return datetime.fromisoformat(ts_value)
    except ValueError:
        return None


def _row_to_state(row) -> SessionState:
    return SessionState(
        id=row["id"],
        user_id=row["user_id"],
        session_type=row["session_type"],
        module_id=row["module_id"],
        drill_number=row["drill_number"],
        total_questions=int(row["total_questions"]),
        current_position=int(row["current_position"]),
        status=row["status"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        summary=row["summary"],
        archived=bool(row["archived"]),
    )


def get_session(conn, user_id: str, session_id: str) -> SessionState:
    """Load a session owned by ``user_id``; other users' sessions are reported as missing."""
    row = conn.execute(
        "SELECT * FROM sessions WHERE id = ? AND user_id = ?",
        (session_id, user_id),
    ).fetchone()
    if not row:
        raise SessionNotFoundError(session_id)
    return _row_to_state(row)


def get_active_session_id(conn, user_id: str) -> Optional[str]:
    row = conn.execute(
        "SELECT id FROM sessions WHERE user_id = ? AND status = 'active'",
        (user_id,),
    ).fetchone()
    return row["id"] if row else None


def insert_session(
    conn,
    *,
    session_id: str,
    user_id: str,
    session_type: str,
    module_id: Optional[int],
    drill_number: Optional[int],
    plan: Sequence[Question],
    started_at: str,
) -> None:
    """Persist a new active session with its ordered plan. Runs in the caller's transaction."""
    try:
        conn.execute(
            """
            INSERT INTO sessions (id, user_id, session_type, module_id, drill_number, total_questions, started_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (session_id, user_id, session_type, module_id, drill_number, len(plan), started_at),
        )
    except sqlite3.IntegrityError:
        # another request opened a session between our check and this insert
        conn.rollback()
        active_id = get_active_session_id(conn, user_id)
        if active_id is None:
            raise
        raise ActiveSessionExistsError(active_id)
    conn.executemany(
        "INSERT INTO session_questions (session_id, position, question_id, micro_skill_id) VALUES (?, ?, ?, ?)",
        [(session_id, position, q.id, q.micro_skill_id) for position, q in enumerate(plan)],
    )


def planned_question_ids(conn, session_id: str) -> List[str]:
    rows = conn.execute(
        "SELECT question_id FROM session_questions WHERE session_id = ? ORDER BY position",
        (session_id,),
    ).fetchall()
    return [row[0] for row in rows]


def planned_question_id_at(conn, session_id: str, position: int) -> Optional[str]:
    row = conn.execute(
        "SELECT question_id FROM session_questions WHERE session_id = ? AND position = ?",
        (session_id, position),
    ).fetchone()
    return row[0] if row else None


def claim_position(conn, session_id: str, position: int) -> bool:
    """Advance ``current_position`` past ``position`` if nobody else did. False when the claim is lost."""
    cursor = conn.execute(
        """
        UPDATE sessions SET current_position = ?
        WHERE id = ? AND current_position = ? AND status = 'active'
        """,
        (position + 1, session_id, position),
    )
    return cursor.rowcount == 1


def append_trail(conn, session_id: str, entry: AnswerTrailEntry) -> None:
    conn.execute(
        """
        INSERT INTO answer_trail (
            session_id, position, question_id, micro_skill_id, difficulty, user_answer, is_correct,
            time_spent_seconds, expected_time_seconds, confidence_score, hints_used, points_earned, answered_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            session_id,
            entry.position,
            entry.question_id,
            entry.micro_skill_id,
            entry.difficulty,
            json.dumps(entry.user_answer),
            1 if entry.is_correct else 0,
            entry.time_spent_seconds,
            entry.expected_time_seconds,
            entry.confidence_score,
            entry.hints_used,
            entry.points_earned,
            entry.answered_at,
        ),
    )


def get_trail(conn, session_id: str) -> List[AnswerTrailEntry]:
    rows = conn.execute(
        "SELECT * FROM answer_trail WHERE session_id = ? ORDER BY position",
        (session_id,),
    ).fetchall()
    entries = []
    for row in rows:
        entries.append(
            AnswerTrailEntry(
                position=row["position"],
                question_id=row["question_id"],
                micro_skill_id=row["micro_skill_id"],
                difficulty=row["difficulty"],
                user_answer=json.loads(row["user_answer"]) if row["user_answer"] is not None else None,
                is_correct=bool(row["is_correct"]),
                time_spent_seconds=row["time_spent_seconds"],
                expected_time_seconds=row["expected_time_seconds"],
                confidence_score=row["confidence_score"],
                hints_used=row["hints_used"],
                points_earned=row["points_earned"],
                answered_at=row["answered_at"],
            )
        )
    return entries


def mark_completed(conn, session_id: str, expected_position: int, completed_at: str, summary: SessionSummary) -> bool:
    """Close an active session with its summary.

    ``expected_position`` is the position seen when the summary's trail was
    read. False when another request closed the session or recorded an
    answer in the meantime.
    """
    cursor = conn.execute(
        """
        UPDATE sessions SET status = 'completed', completed_at = ?, summary = ?
        WHERE id = ? AND status = 'active' AND current_position = ?
        """,
        (completed_at, summary.model_dump_json(), session_id, expected_position),
    )
    return cursor.rowcount == 1


def stored_summary(session: SessionState) -> Optional[SessionSummary]:
    if not session.summary:
        return None
    return SessionSummary.model_validate_json(session.summary)


def abandon_session(conn, user_id: str, session_id: str) -> SessionDetails:
    """Give up on an active session. Answers already given stay in the trail and in mastery."""
    session = get_session(conn, user_id, session_id)
    if not session.is_active:
        raise SessionAlreadyCompletedError(session_id, session.status)
    cursor = conn.execute(
        "UPDATE sessions SET status = 'abandoned', completed_at = ? WHERE id = ? AND status = 'active'",
        (utc_now(), session_id),
    )
    if cursor.rowcount == 0:
        conn.rollback()
        current = get_session(conn, user_id, session_id)
        raise SessionAlreadyCompletedError(session_id, current.status)
    if session.session_type == "drill" and session.module_id is not None and session.drill_number is not None:
        release_drill(conn, user_id, session.module_id, session.drill_number)
    conn.commit()
    logger.info("User %s abandoned session %s at position %s", user_id, session_id, session.current_position)
    return session_details(conn, user_id, session_id)


def session_details(conn, user_id: str, session_id: str) -> SessionDetails:
    session = get_session(conn, user_id, session_id)
    return SessionDetails(
        session_id=session.id,
        user_id=session.user_id,
        session_type=session.session_type,
        module_id=session.module_id,
        drill_number=session.drill_number,
        status=session.status,
        total_questions=session.total_questions,
        current_position=session.current_position,
        started_at=session.started_at,
        completed_at=session.completed_at,
        planned_question_ids=planned_question_ids(conn, session.id),
        answers=get_trail(conn, session.id),
        summary=stored_summary(session),
    )


def practice_history(conn, user_id: str) -> PracticeHistory:
    """Totals over the user's recent completed sessions, with a per-module breakdown."""
    rows = conn.execute(
        """
        SELECT s.*,
            (SELECT COUNT(*) FROM answer_trail t WHERE t.session_id = s.id AND t.is_correct = 1) AS correct,
            (SELECT COALESCE(SUM(t.points_earned), 0) FROM answer_trail t WHERE t.session_id = s.id) AS points
        FROM sessions s
        WHERE s.user_id = ? AND s.status = 'completed'
        ORDER BY s.completed_at DESC
        LIMIT ?
        """,
        (user_id, HISTORY_SESSION_LIMIT),
    ).fetchall()

    entries: List[HistoryEntry] = []
    modules: Dict[Any, Dict[str, Any]] = {}
    total_questions = total_correct = 0
    for row in rows:
        total = int(row["total_questions"])
        correct = int(row["correct"])
        total_questions += total
        total_correct += correct
        name = get_module_name(conn, row["module_id"])
        entries.append(
            HistoryEntry(
                session_id=row["id"],
                session_type=row["session_type"],
                module_id=row["module_id"],
                module_name=name,
                drill_number=row["drill_number"],
                started_at=row["started_at"],
                completed_at=row["completed_at"],
                total_questions=total,
                questions_correct=correct,
                accuracy=round(correct / total * 100, 1) if total else 0.0,
                points_earned=int(row["points"]),
            )
        )
        stat = modules.setdefault(
            row["module_id"],
            {"module_id": row["module_id"], "name": name, "sets_attempted": 0, "correct": 0, "wrong": 0},
        )
        stat["sets_attempted"] += 1
        stat["correct"] += correct
        stat["wrong"] += total - correct

    breakdown = []
    for stat in modules.values():
        answered = stat["correct"] + stat["wrong"]
        breakdown.append(
            ModuleHistoryStats(accuracy=round(stat["correct"] / answered * 100, 1) if answered else 0.0, **stat)
        )
    breakdown.sort(key=lambda s: (s.module_id is None, s.module_id if s.module_id is not None else 0))
    return PracticeHistory(
        stats=HistoryStats(
            total_questions=total_questions,
            total_correct=total_correct,
            total_wrong=total_questions - total_correct,
            total_sets=len(rows),
            module_breakdown=breakdown,
        ),
        history=entries[:HISTORY_LIST_SIZE],
    )
