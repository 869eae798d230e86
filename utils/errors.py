"""Errors raised by the practice engine.

Each error carries a stable ``code`` and the HTTP status the API layer
should answer with. ``data`` holds structured context for the client
(for example the id of the session it should resume).
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class PracticeError(Exception):
    code = "PRACTICE_ERROR"
    status_code = 400

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.code,
            "message": self.message,
            "data": self.data,
        }


class ActiveSessionExistsError(PracticeError):
    code = "ACTIVE_SESSION_EXISTS"
    status_code = 409

    def __init__(self, active_session_id: str) -> None:
        super().__init__(
            "You have an active session. Please complete or abandon it first.",
            {"active_session_id": active_session_id},
        )
        self.active_session_id = active_session_id


class DrillLockedError(PracticeError):
    code = "DRILL_LOCKED"
    status_code = 403

    def __init__(self, module_id: int, drill_number: int) -> None:
        super().__init__(
            f"Drill {drill_number} is locked. Please complete Drill {drill_number - 1} first.",
            {"module_id": module_id, "drill_number": drill_number},
        )


class QuestionMismatchError(PracticeError):
    code = "QUESTION_MISMATCH"
    status_code = 409

    def __init__(self, question_id: str, expected_question_id: Optional[str]) -> None:
        if expected_question_id is None:
            message = "This session has no question left to answer."
        else:
            message = "Answer submitted for a question that is not the current one."
        super().__init__(
            message,
            {"question_id": question_id, "expected_question_id": expected_question_id},
        )
        self.expected_question_id = expected_question_id


class SessionNotFoundError(PracticeError):
    code = "SESSION_NOT_FOUND"
    status_code = 404

    def __init__(self, session_id: str) -> None:
        super().__init__("Session not found.", {"session_id": session_id})


class SessionAlreadyCompletedError(PracticeError):
    code = "SESSION_ALREADY_COMPLETED"
    status_code = 409

    def __init__(self, session_id: str, status: str = "completed") -> None:
        super().__init__(
            f"This session is already {status}.",
            {"session_id": session_id, "status": status},
        )


class NoEligibleSkillsError(PracticeError):
    code = "NO_ELIGIBLE_SKILLS"
    status_code = 422

    def __init__(self, message: str = "No micro-skills with usable questions are available.", data=None) -> None:
        super().__init__(message, data)


class InsufficientQuestionsError(PracticeError):
    code = "INSUFFICIENT_QUESTIONS"
    status_code = 422

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            f"Only {available} unseen questions are available, {requested} were requested.",
            {"requested": requested, "available": available},
        )


class SessionIncompleteError(PracticeError):
    code = "SESSION_INCOMPLETE"
    status_code = 409

    def __init__(self, session_id: str, answered: int, total: int) -> None:
        super().__init__(
            f"{total - answered} question(s) are still unanswered. Answer them or abandon the session.",
            {"session_id": session_id, "answered": answered, "total_questions": total, "remaining": total - answered},
        )


class InvalidSessionSizeError(PracticeError):
    code = "INVALID_SESSION_SIZE"
    status_code = 422

    def __init__(self, session_size: int, max_size: int) -> None:
        super().__init__(
            f"Session size must be between 1 and {max_size}.",
            {"session_size": session_size, "max_size": max_size},
        )
