from fastapi import APIRouter, Depends
from db.database import get_db
from models.session import StartPracticeRequest, SubmitAnswerRequest
from utils.analytics import end_session
from utils.auth import require_user
from utils.evaluator import submit_answer
from utils.planner import start_practice_session
from utils.progress import abandon_session, practice_history, session_details

router = APIRouter()

@router.post("/sessions")
async def start_session(payload: StartPracticeRequest, user_id: str = Depends(require_user), conn = Depends(get_db)):
    """Plan a practice session and return its first question."""
    plan = start_practice_session(
        conn,
        user_id,
        session_size=payload.session_size,
        module_id=payload.module_id,
        focus_modules=payload.focus_modules,
    )
    return {"success": True, "data": plan.model_dump(mode="json")}

@router.get("/history")
async def history(user_id: str = Depends(require_user), conn = Depends(get_db)):
    return {"success": True, "data": practice_history(conn, user_id).model_dump(mode="json")}

@router.get("/sessions/{session_id}")
async def get_session_details(session_id: str, user_id: str = Depends(require_user), conn = Depends(get_db)):
    return {"success": True, "data": session_details(conn, user_id, session_id).model_dump(mode="json")}

@router.post("/sessions/{session_id}/answers")
async def answer(
    session_id: str,
    payload: SubmitAnswerRequest,
    user_id: str = Depends(require_user),
    conn = Depends(get_db),
):
    """Grade the current question's answer and return feedback plus the next question."""
    feedback = submit_answer(
        conn,
        user_id,
        session_id,
        payload.question_id,
        payload.user_answer,
        payload.time_spent_seconds,
        hints_used=payload.hints_used,
    )
    return {"success": True, "data": feedback.model_dump(mode="json")}

@router.post("/sessions/{session_id}/end")
async def end(session_id: str, user_id: str = Depends(require_user), conn = Depends(get_db)):
    summary = end_session(conn, user_id, session_id)
    return {"success": True, "data": summary.model_dump(mode="json")}

@router.post("/sessions/{session_id}/abandon")
async def abandon(session_id: str, user_id: str = Depends(require_user), conn = Depends(get_db)):
    details = abandon_session(conn, user_id, session_id)
    return {"success": True, "data": details.model_dump(mode="json")}
