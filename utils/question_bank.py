"""Read access to the question bank.

Only ``active`` and ``published`` questions are ever served. Lookups take an
explicit set of excluded ids so callers decide what counts as "seen".
"""
from __future__ import annotations

import json
import logging
from typing import Any, Collection, List, Optional, Set

from models.question import SERVABLE_STATUSES, Question, QuestionPublic
from utils.catalog import get_micro_skill_name, get_module_name

logger = logging.getLogger(__name__)

_SERVABLE_SQL = "status IN ({})".format(",".join("?" for _ in SERVABLE_STATUSES))


def _decode(value: Optional[str], default: Any) -> Any:
    if value is None:
        return default
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return value


def row_to_question(row) -> Question:
    return Question(
        id=row["id"],
        module_id=row["module_id"],
        micro_skill_id=row["micro_skill_id"],
        difficulty_level=row["difficulty_level"],
        expected_time_seconds=row["expected_time_seconds"],
        points=row["points"],
        text=row["text"],
        type=row["type"],
        options=_decode(row["options"], []),
        correct_answer=_decode(row["correct_answer"], None),
        solution_steps=_decode(row["solution_steps"], []),
        hints=_decode(row["hints"], []),
        explanation=row["explanation"],
        status=row["status"],
    )


def upsert_question(conn, question: Question) -> None:
    """Insert or replace a question. Used by seeding scripts and tests; the engine never writes questions."""
    conn.execute(
        """
        INSERT INTO questions (
            id, module_id, micro_skill_id, difficulty_level, expected_time_seconds, points,
            text, type, options, correct_answer, solution_steps, hints, explanation, status
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            module_id = excluded.module_id,
            micro_skill_id = excluded.micro_skill_id,
            difficulty_level = excluded.difficulty_level,
            expected_time_seconds = excluded.expected_time_seconds,
            points = excluded.points,
            text = excluded.text,
            type = excluded.type,
            options = excluded.options,
            correct_answer = excluded.correct_answer,
            solution_steps = excluded.solution_steps,
            hints = excluded.hints,
            explanation = excluded.explanation,
            status = excluded.status
        """,
        (
            question.id,
            question.module_id,
            question.micro_skill_id,
            question.difficulty_level,
            question.expected_time_seconds,
            question.points,
            question.text,
            question.type.value,
            json.dumps(question.options),
            json.dumps(question.correct_answer),
            json.dumps(question.solution_steps),
            json.dumps(question.hints),
            question.explanation,
            question.status.value,
        ),
    )


def get_question(conn, question_id: str) -> Optional[Question]:
    """Fetch a question by id regardless of status (planned questions stay gradable if archived later)."""
    row = conn.execute("SELECT * FROM questions WHERE id = ?", (question_id,)).fetchone()
    return row_to_question(row) if row else None


def _exclusion(exclude_ids: Collection[str]):
    ids = list(exclude_ids)
    if not ids:
        return "", []
    return " AND id NOT IN ({})".format(",".join("?" for _ in ids)), ids


def find_questions(
    conn,
    module_id: int,
    micro_skill_id: int,
    difficulty: int,
    exclude_ids: Collection[str] = (),
    limit: Optional[int] = None,
) -> List[Question]:
    """Servable questions of one skill at exactly ``difficulty``, minus ``exclude_ids``."""
    exclusion_sql, exclusion_params = _exclusion(exclude_ids)
    sql = (
        f"SELECT * FROM questions WHERE module_id = ? AND micro_skill_id = ? AND difficulty_level = ? "
        f"AND {_SERVABLE_SQL}{exclusion_sql} ORDER BY id"
    )
    params: List[Any] = [module_id, micro_skill_id, difficulty, *SERVABLE_STATUSES, *exclusion_params]
    if limit is not None:
        sql += " LIMIT ?"
        params.append(int(limit))
    return [row_to_question(row) for row in conn.execute(sql, params).fetchall()]


def count_available(conn, module_id: int, micro_skill_id: int, exclude_ids: Collection[str] = ()) -> int:
    exclusion_sql, exclusion_params = _exclusion(exclude_ids)
    row = conn.execute(
        f"SELECT COUNT(*) FROM questions WHERE module_id = ? AND micro_skill_id = ? "
        f"AND {_SERVABLE_SQL}{exclusion_sql}",
        [module_id, micro_skill_id, *SERVABLE_STATUSES, *exclusion_params],
    ).fetchone()
    return int(row[0] or 0)


def draw_questions(
    conn,
    module_id: int,
    micro_skill_id: int,
    target_difficulty: int,
    count: int,
    exclude_ids: Collection[str] = (),
) -> List[Question]:
    """Draw ``count`` unseen questions at or nearest to ``target_difficulty``.

    Exact matches come first, then the closest levels; on equal distance the
    easier level wins.
    """
    if count <= 0:
        return []
    exact = find_questions(conn, module_id, micro_skill_id, target_difficulty, exclude_ids, limit=count)
    if len(exact) >= count:
        return exact
    exclusion_sql, exclusion_params = _exclusion([*exclude_ids, *(q.id for q in exact)])
    rows = conn.execute(
        f"""
        SELECT * FROM questions
        WHERE module_id = ? AND micro_skill_id = ? AND {_SERVABLE_SQL}{exclusion_sql}
        ORDER BY ABS(difficulty_level - ?) ASC, difficulty_level ASC, id ASC
        LIMIT ?
        """,
        [module_id, micro_skill_id, *SERVABLE_STATUSES, *exclusion_params, target_difficulty, count - len(exact)],
    ).fetchall()
    fallback = [row_to_question(row) for row in rows]
    if fallback:
        logger.warning(
            "Skill %s: only %s question(s) at difficulty %s, using levels %s",
            micro_skill_id,
            len(exact),
            target_difficulty,
            sorted({q.difficulty_level for q in fallback}),
        )
    return exact + fallback


def completed_drill_question_ids(conn, user_id: str, module_id: int) -> Set[str]:
    """Question ids planned in the user's completed, non-archived drills of a module."""
    rows = conn.execute(
        """
        SELECT sq.question_id
        FROM session_questions sq
        JOIN sessions s ON s.id = sq.session_id
        WHERE s.user_id = ? AND s.module_id = ? AND s.session_type = 'drill'
        AND s.status = 'completed' AND s.archived = 0
        """,
        (user_id, module_id),
    ).fetchall()
    return {row[0] for row in rows}


def recent_practice_question_ids(conn, user_id: str, session_limit: int) -> Set[str]:
    """Question ids answered in the user's last ``session_limit`` completed practice sessions."""
    if session_limit <= 0:
        return set()
    rows = conn.execute(
        """
        SELECT t.question_id
        FROM answer_trail t
        WHERE t.session_id IN (
            SELECT id FROM sessions
            WHERE user_id = ? AND session_type = 'practice' AND status = 'completed'
            ORDER BY completed_at DESC
            LIMIT ?
        )
        """,
        (user_id, session_limit),
    ).fetchall()
    return {row[0] for row in rows}


def to_public(conn, question: Question) -> QuestionPublic:
    return QuestionPublic(
        question_id=question.id,
        module_id=question.module_id,
        module_name=get_module_name(conn, question.module_id),
        micro_skill_id=question.micro_skill_id,
        micro_skill_name=get_micro_skill_name(conn, question.micro_skill_id),
        difficulty_level=question.difficulty_level,
        expected_time_seconds=question.expected_time_seconds,
        points=question.points,
        text=question.text,
        type=question.type,
        options=question.options,
        hints=question.hints,
    )
