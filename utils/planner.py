"""Build and persist session plans for free practice and adaptive drills.

A plan is built in four steps: pick the eligible micro-skills, weight them
by (decayed) mastery, allocate the session's questions across them, then
draw each skill's questions at its current difficulty and interleave the
skills round-robin so the same skill is not served back to back.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Collection, Dict, List, Optional, Sequence, Tuple

from config import load_config
from models.question import Question
from models.session import ProgressInfo, SessionPlan, SessionType
from utils.allocation import allocate, weight_for_accuracy
from utils.catalog import get_module_skills, module_exists
from utils.drills import is_drill_unlocked, mark_drill_in_progress, max_drills
from utils.errors import (
    ActiveSessionExistsError,
    DrillLockedError,
    InsufficientQuestionsError,
    InvalidSessionSizeError,
    NoEligibleSkillsError,
)
from utils.mastery import effective_accuracy, get_masteries, utc_now
from utils.progress import get_active_session_id, insert_session, new_session_id
from utils.question_bank import (
    completed_drill_question_ids,
    count_available,
    draw_questions,
    recent_practice_question_ids,
    to_public,
)

logger = logging.getLogger(__name__)


def _ensure_no_active_session(conn, user_id: str) -> None:
    active_id = get_active_session_id(conn, user_id)
    if active_id:
        raise ActiveSessionExistsError(active_id)


def _interleave(per_skill: Sequence[List[Question]]) -> List[Question]:
    plan: List[Question] = []
    depth = max((len(questions) for questions in per_skill), default=0)
    for i in range(depth):
        for questions in per_skill:
            if i < len(questions):
                plan.append(questions[i])
    return plan


def build_plan(
    conn,
    user_id: str,
    module_ids: Sequence[int],
    session_size: int,
    exclude_ids: Collection[str],
    config: Dict[str, Any],
) -> Tuple[List[Question], Dict[int, int]]:
    """Return the ordered questions for a session and the per-skill allocation."""
    prerequisite_accuracy = float(config.get("planner", {}).get("prerequisite_accuracy", 0.6))

    skills = [skill for module_id in module_ids for skill in get_module_skills(conn, module_id)]
    skill_ids = {skill["id"] for skill in skills}
    prerequisite_ids = {p for skill in skills for p in skill["prerequisite_ids"]}
    masteries = get_masteries(conn, user_id, skill_ids | prerequisite_ids)

    eligible: List[Dict[str, Any]] = []
    capacities: Dict[int, int] = {}
    for skill in skills:
        unmet = [
            p
            for p in skill["prerequisite_ids"]
            if (masteries[p].rolling_accuracy or 0.0) < prerequisite_accuracy
        ]
        if unmet:
            logger.debug("Skill %s skipped, prerequisites %s not mastered", skill["id"], unmet)
            continue
        available = count_available(conn, skill["module_id"], skill["id"], exclude_ids)
        if available == 0:
            continue
        eligible.append(skill)
        capacities[skill["id"]] = available

    if not eligible:
        raise NoEligibleSkillsError(data={"module_ids": list(module_ids)})

    weights = {skill["id"]: weight_for_accuracy(effective_accuracy(masteries[skill["id"]])) for skill in eligible}
    counts = allocate(session_size, [skill["id"] for skill in eligible], weights, capacities)

    per_skill: List[List[Question]] = []
    for skill in eligible:
        count = counts.get(skill["id"], 0)
        if count == 0:
            continue
        target = masteries[skill["id"]].current_difficulty
        per_skill.append(draw_questions(conn, skill["module_id"], skill["id"], target, count, exclude_ids))

    plan = _interleave(per_skill)
    if len(plan) < session_size:
        raise InsufficientQuestionsError(session_size, len(plan))
    return plan, {skill_id: count for skill_id, count in counts.items() if count > 0}


def _persist_plan(
    conn,
    user_id: str,
    session_type: SessionType,
    module_id: Optional[int],
    drill_number: Optional[int],
    plan: List[Question],
    allocation: Dict[int, int],
) -> SessionPlan:
    session_id = new_session_id()
    started_at = utc_now()
    insert_session(
        conn,
        session_id=session_id,
        user_id=user_id,
        session_type=session_type.value,
        module_id=module_id,
        drill_number=drill_number,
        plan=plan,
        started_at=started_at,
    )
    if session_type == SessionType.DRILL:
        mark_drill_in_progress(conn, user_id, module_id, drill_number, session_id)
    conn.commit()

    logger.info(
        "User %s started %s session %s (%s questions, module %s%s)",
        user_id,
        session_type.value,
        session_id,
        len(plan),
        module_id if module_id is not None else "mixed",
        f", drill {drill_number}" if drill_number is not None else "",
    )
    return SessionPlan(
        session_id=session_id,
        session_type=session_type,
        module_id=module_id,
        drill_number=drill_number,
        total_questions=len(plan),
        current_question_index=0,
        started_at=started_at,
        first_question=to_public(conn, plan[0]),
        progress_info=ProgressInfo(
            questions_remaining=len(plan) - 1,
            estimated_time_minutes=math.ceil(sum(q.expected_time_seconds for q in plan) / 60),
        ),
        allocation=allocation,
    )


def start_practice_session(
    conn,
    user_id: str,
    session_size: Optional[int] = None,
    module_id: Optional[int] = None,
    focus_modules: Sequence[int] = (),
    config: Dict[str, Any] = None,
) -> SessionPlan:
    """Plan a free practice session over one module, a set of focus modules, or everything."""
    if not config:
        config = load_config()
    session_config = config.get("session", {})
    if session_size is None:
        session_size = int(session_config.get("default_size", 10))
    max_size = int(session_config.get("max_size", 20))
    if not 1 <= session_size <= max_size:
        raise InvalidSessionSizeError(session_size, max_size)

    _ensure_no_active_session(conn, user_id)

    if focus_modules:
        module_ids = list(dict.fromkeys(focus_modules))
    elif module_id is not None:
        module_ids = [module_id]
    else:
        module_ids = [row[0] for row in conn.execute("SELECT id FROM modules ORDER BY id").fetchall()]
    unknown = [m for m in module_ids if not module_exists(conn, m)]
    if unknown:
        raise NoEligibleSkillsError(f"Unknown module(s): {unknown}", {"module_ids": unknown})

    recent_sessions = int(config.get("planner", {}).get("recent_practice_sessions", 3))
    recently_seen = recent_practice_question_ids(conn, user_id, recent_sessions)
    try:
        plan, allocation = build_plan(conn, user_id, module_ids, session_size, recently_seen, config)
    except (InsufficientQuestionsError, NoEligibleSkillsError):
        if not recently_seen:
            raise
        logger.warning(
            "User %s: not enough fresh questions, allowing %s recently seen ones",
            user_id,
            len(recently_seen),
        )
        plan, allocation = build_plan(conn, user_id, module_ids, session_size, (), config)

    session_module = module_ids[0] if len(module_ids) == 1 else None
    return _persist_plan(conn, user_id, SessionType.PRACTICE, session_module, None, plan, allocation)


def start_drill(conn, user_id: str, module_id: int, drill_number: int, config: Dict[str, Any] = None) -> SessionPlan:
    """Plan adaptive drill ``drill_number`` of a module.

    Drills never repeat a question from the user's earlier completed drills
    of the module (archived drills excepted).
    """
    if not config:
        config = load_config()
    _ensure_no_active_session(conn, user_id)

    if not module_exists(conn, module_id):
        raise NoEligibleSkillsError(f"Unknown module: {module_id}", {"module_ids": [module_id]})
    if drill_number < 1 or drill_number > max_drills(config):
        raise DrillLockedError(module_id, drill_number)
    if not is_drill_unlocked(conn, user_id, module_id, drill_number):
        raise DrillLockedError(module_id, drill_number)

    drill_size = int(config.get("session", {}).get("drill_size", 10))
    seen = completed_drill_question_ids(conn, user_id, module_id)
    plan, allocation = build_plan(conn, user_id, [module_id], drill_size, seen, config)
    return _persist_plan(conn, user_id, SessionType.DRILL, module_id, drill_number, plan, allocation)
