"""Drill progress per (user, module, drill number).

Drill 1 is always open. Drill N opens when drill N-1 is completed with at
least ``drills.unlock_accuracy`` percent; an opened drill gets an
``available`` row. A module without rows has only drill 1 open.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from models.drill import DrillState, DrillStatus, ModuleDrillStatus
from utils.mastery import utc_now

logger = logging.getLogger(__name__)

# (lower accuracy bound in percent, label)
PERFORMANCE_LABELS = (
    (80.0, "excellent"),
    (50.0, "needs_improvement"),
)


def performance_label(accuracy: Optional[float]) -> str:
    if accuracy is None:
        return "not_started"
    for lower, label in PERFORMANCE_LABELS:
        if accuracy >= lower:
            return label
    return "poor"


def max_drills(config: Dict[str, Any]) -> int:
    return int(config.get("drills", {}).get("max_drills", 5))


def _progress_rows(conn, user_id: str, module_id: int) -> Dict[int, Any]:
    rows = conn.execute(
        "SELECT * FROM drill_progress WHERE user_id = ? AND module_id = ?",
        (user_id, module_id),
    ).fetchall()
    return {row["drill_number"]: row for row in rows}


def is_drill_unlocked(conn, user_id: str, module_id: int, drill_number: int) -> bool:
    if drill_number == 1:
        return True
    row = conn.execute(
        "SELECT status FROM drill_progress WHERE user_id = ? AND module_id = ? AND drill_number = ?",
        (user_id, module_id, drill_number),
    ).fetchone()
    return row is not None and row["status"] != DrillState.LOCKED.value


def drill_status(conn, user_id: str, module_id: int, config: Dict[str, Any]) -> ModuleDrillStatus:
    rows = _progress_rows(conn, user_id, module_id)
    drills = []
    for number in range(1, max_drills(config) + 1):
        row = rows.get(number)
        if row is not None:
            state = DrillState(row["status"])
        else:
            state = DrillState.AVAILABLE if number == 1 else DrillState.LOCKED
        accuracy = row["accuracy"] if row is not None else None
        completed = state == DrillState.COMPLETED
        if completed:
            performance = performance_label(accuracy)
        elif state == DrillState.IN_PROGRESS:
            performance = "in_progress"
        else:
            performance = "not_started"
        drills.append(
            DrillStatus(
                drill_number=number,
                status=state,
                locked=state == DrillState.LOCKED,
                completed=completed,
                accuracy=accuracy if completed else None,
                performance=performance,
                last_session_id=row["session_id"] if row is not None else None,
                completed_at=row["completed_at"] if row is not None else None,
            )
        )
    return ModuleDrillStatus(module_id=module_id, drills=drills)


def mark_drill_in_progress(conn, user_id: str, module_id: int, drill_number: int, session_id: str) -> None:
    """Record a started drill. A completed drill keeps its completed status when replayed."""
    conn.execute(
        """
        INSERT INTO drill_progress (user_id, module_id, drill_number, status, session_id)
        VALUES (?, ?, ?, 'in_progress', ?)
        ON CONFLICT(user_id, module_id, drill_number) DO UPDATE SET
            status = CASE WHEN drill_progress.status = 'completed' THEN 'completed' ELSE 'in_progress' END,
            session_id = excluded.session_id
        """,
        (user_id, module_id, drill_number, session_id),
    )


def release_drill(conn, user_id: str, module_id: int, drill_number: int) -> None:
    """Return an in-progress drill to available (its session was abandoned)."""
    conn.execute(
        """
        UPDATE drill_progress SET status = 'available'
        WHERE user_id = ? AND module_id = ? AND drill_number = ? AND status = 'in_progress'
        """,
        (user_id, module_id, drill_number),
    )


def complete_drill(
    conn,
    user_id: str,
    module_id: int,
    drill_number: int,
    session_id: str,
    accuracy: float,
    config: Dict[str, Any],
) -> bool:
    """Mark a drill completed and open the next one. Returns whether the next drill is open."""
    completed_at = utc_now()
    conn.execute(
        """
        INSERT INTO drill_progress (user_id, module_id, drill_number, status, accuracy, completed_at, session_id)
        VALUES (?, ?, ?, 'completed', ?, ?, ?)
        ON CONFLICT(user_id, module_id, drill_number) DO UPDATE SET
            status = 'completed',
            accuracy = excluded.accuracy,
            completed_at = excluded.completed_at,
            session_id = excluded.session_id
        """,
        (user_id, module_id, drill_number, accuracy, completed_at, session_id),
    )
    unlock_accuracy = float(config.get("drills", {}).get("unlock_accuracy", 0.0))
    if drill_number >= max_drills(config) or accuracy < unlock_accuracy:
        return False
    conn.execute(
        """
        INSERT INTO drill_progress (user_id, module_id, drill_number, status)
        VALUES (?, ?, ?, 'available')
        ON CONFLICT(user_id, module_id, drill_number) DO UPDATE SET
            status = CASE WHEN drill_progress.status = 'locked' THEN 'available' ELSE drill_progress.status END
        """,
        (user_id, module_id, drill_number + 1),
    )
    logger.info("User %s unlocked drill %s of module %s", user_id, drill_number + 1, module_id)
    return True


def reset_drills(conn, user_id: str, module_id: int) -> Dict[str, Any]:
    """Clear a module's drill progress.

    Drill sessions are archived (kept for history, no longer excluded from
    new drills) and an active drill of the module is abandoned.
    """
    active = conn.execute(
        """
        SELECT id FROM sessions
        WHERE user_id = ? AND module_id = ? AND session_type = 'drill' AND status = 'active'
        """,
        (user_id, module_id),
    ).fetchone()
    abandoned_session_id = active["id"] if active else None
    if abandoned_session_id:
        conn.execute(
            "UPDATE sessions SET status = 'abandoned', completed_at = ? WHERE id = ? AND status = 'active'",
            (utc_now(), abandoned_session_id),
        )
    archived = conn.execute(
        """
        UPDATE sessions SET archived = 1
        WHERE user_id = ? AND module_id = ? AND session_type = 'drill' AND archived = 0
        """,
        (user_id, module_id),
    ).rowcount
    cleared = conn.execute(
        "DELETE FROM drill_progress WHERE user_id = ? AND module_id = ?",
        (user_id, module_id),
    ).rowcount
    conn.commit()
    logger.info(
        "User %s reset drills of module %s (%s progress rows, %s sessions archived)",
        user_id,
        module_id,
        cleared,
        archived,
    )
    return {
        "module_id": module_id,
        "progress_cleared": cleared,
        "sessions_archived": archived,
        "abandoned_session_id": abandoned_session_id,
    }
