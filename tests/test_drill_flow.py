from conftest import USER, headers, run_session, seed_module

from db import database
from utils import analytics, evaluator
from utils.mastery import utc_now
from utils.progress import claim_position, get_session, get_trail, mark_completed

MODULE = 1
SKILLS = [1, 2, 3]


def _start_drill(client, drill_number, module_id=MODULE, user_id=USER):
    return client.post(
        "/drills/start",
        json={"module_id": module_id, "drill_number": drill_number},
        headers=headers(user_id),
    )


def _end(client, session_id, user_id=USER):
    return client.post(f"/practice/sessions/{session_id}/end", headers=headers(user_id))


def test_seven_of_ten_drill_completes_and_unlocks_next(client, conn):
    seed_module(conn, MODULE, SKILLS)

    response = _start_drill(client, 1)
    assert response.status_code == 200, response.text
    plan = response.json()["data"]
    assert plan["total_questions"] == 10
    assert plan["progress_info"]["questions_remaining"] == 9
    assert plan["progress_info"]["estimated_time_minutes"] == 5
    assert sum(plan["allocation"].values()) == 10
    assert "correct_answer" not in plan["first_question"]

    run_session(client, conn, plan, correct_positions=set(range(7)))

    response = _end(client, plan["session_id"])
    assert response.status_code == 200, response.text
    summary = response.json()["data"]
    assert summary["questions_attempted"] == 10
    assert summary["questions_correct"] == 7
    assert summary["accuracy"] == 70.0
    assert summary["next_drill_unlocked"] is True

    status = client.get(f"/drills/{MODULE}/status", headers=headers()).json()["data"]
    drills = {d["drill_number"]: d for d in status["drills"]}
    assert drills[1]["status"] == "completed"
    assert drills[1]["accuracy"] == 70.0
    assert drills[1]["performance"] == "needs_improvement"
    assert drills[2]["status"] == "available"
    assert drills[3]["locked"] is True

    details = client.get(f"/practice/sessions/{plan['session_id']}", headers=headers()).json()["data"]
    assert len(details["answers"]) == details["total_questions"] == 10
    assert details["status"] == "completed"


def test_drill_two_is_locked_until_drill_one_completes(client, conn):
    seed_module(conn, MODULE, SKILLS)

    response = _start_drill(client, 2)
    assert response.status_code == 403
    assert response.json()["error"] == "DRILL_LOCKED"


def test_three_drills_never_repeat_questions(client, conn):
    seed_module(conn, MODULE, SKILLS)
    seen = []
    for number in (1, 2, 3):
        response = _start_drill(client, number)
        assert response.status_code == 200, response.text
        plan = response.json()["data"]
        answered = run_session(client, conn, plan)
        assert len(set(answered)) == len(answered) == 10
        seen.append(set(answered))
        assert _end(client, plan["session_id"]).status_code == 200

    assert not seen[0] & seen[1]
    assert not seen[0] & seen[2]
    assert not seen[1] & seen[2]

    # 36 seeded, 30 used: drill 4 cannot be filled without repeats
    response = _start_drill(client, 4)
    assert response.status_code == 422
    assert response.json()["error"] == "INSUFFICIENT_QUESTIONS"


def test_end_session_is_idempotent(client, conn):
    seed_module(conn, MODULE, SKILLS)
    plan = _start_drill(client, 1).json()["data"]
    run_session(client, conn, plan)

    first = _end(client, plan["session_id"]).json()["data"]
    with database.get_conn() as check:
        completed_at = check.execute(
            "SELECT completed_at FROM drill_progress WHERE user_id = ? AND module_id = ? AND drill_number = 1",
            (USER, MODULE),
        ).fetchone()[0]
    second = _end(client, plan["session_id"]).json()["data"]

    assert first == second
    with database.get_conn() as check:
        again = check.execute(
            "SELECT completed_at FROM drill_progress WHERE user_id = ? AND module_id = ? AND drill_number = 1",
            (USER, MODULE),
        ).fetchone()[0]
    assert again == completed_at


def test_active_session_blocks_new_session(client, conn):
    seed_module(conn, MODULE, SKILLS)
    first = client.post("/practice/sessions", json={"session_size": 5, "module_id": MODULE}, headers=headers())
    assert first.status_code == 200, first.text
    session_id = first.json()["data"]["session_id"]

    response = _start_drill(client, 1)
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "ACTIVE_SESSION_EXISTS"
    assert body["data"]["active_session_id"] == session_id

    # another user is unaffected
    assert _start_drill(client, 1, user_id="user-bob").status_code == 200


def test_mismatched_question_leaves_session_unchanged(client, conn):
    seed_module(conn, MODULE, SKILLS)
    plan = _start_drill(client, 1).json()["data"]
    session_id = plan["session_id"]
    wrong_id = next(q for q in ("q-1-1-11", "q-1-2-11", "q-1-3-11") if q != plan["first_question"]["question_id"])

    response = client.post(
        f"/practice/sessions/{session_id}/answers",
        json={"question_id": wrong_id, "user_answer": "1", "time_spent_seconds": 5},
        headers=headers(),
    )
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "QUESTION_MISMATCH"
    assert body["data"]["expected_question_id"] == plan["first_question"]["question_id"]

    assert get_session(conn, USER, session_id).current_position == 0
    assert conn.execute("SELECT COUNT(*) FROM answer_trail WHERE session_id = ?", (session_id,)).fetchone()[0] == 0
    assert conn.execute("SELECT COUNT(*) FROM mastery_records WHERE user_id = ?", (USER,)).fetchone()[0] == 0


def test_losing_position_claim_raises_mismatch(client, conn, monkeypatch):
    seed_module(conn, MODULE, SKILLS)
    plan = _start_drill(client, 1).json()["data"]
    session_id = plan["session_id"]
    real_claim = evaluator.claim_position

    def racing_claim(claim_conn, claimed_session_id, position):
        # a concurrent request answers the same question first
        with database.get_conn() as other:
            assert claim_position(other, claimed_session_id, position)
            other.commit()
        return real_claim(claim_conn, claimed_session_id, position)

    monkeypatch.setattr(evaluator, "claim_position", racing_claim)
    response = client.post(
        f"/practice/sessions/{session_id}/answers",
        json={"question_id": plan["first_question"]["question_id"], "user_answer": "1", "time_spent_seconds": 5},
        headers=headers(),
    )
    assert response.status_code == 409
    assert response.json()["error"] == "QUESTION_MISMATCH"
    assert conn.execute("SELECT COUNT(*) FROM answer_trail WHERE session_id = ?", (session_id,)).fetchone()[0] == 0


def test_reset_relocks_drills_and_releases_questions(client, conn):
    seed_module(conn, MODULE, SKILLS, per_skill=4)
    plan = _start_drill(client, 1).json()["data"]
    first_ids = set(run_session(client, conn, plan))
    _end(client, plan["session_id"])

    response = client.post(f"/drills/{MODULE}/reset", headers=headers())
    assert response.status_code == 200
    assert response.json()["data"]["sessions_archived"] == 1

    status = client.get(f"/drills/{MODULE}/status", headers=headers()).json()["data"]
    assert [d["status"] for d in status["drills"][:2]] == ["available", "locked"]

    # only 12 questions exist, so drill 1 can only be planned again if the archived drill no longer counts
    again = _start_drill(client, 1)
    assert again.status_code == 200, again.text
    second_ids = set(run_session(client, conn, again.json()["data"]))
    assert first_ids & second_ids


def test_abandon_frees_the_user_for_a_new_session(client, conn):
    seed_module(conn, MODULE, SKILLS)
    plan = _start_drill(client, 1).json()["data"]

    response = client.post(f"/practice/sessions/{plan['session_id']}/abandon", headers=headers())
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "abandoned"

    end = _end(client, plan["session_id"])
    assert end.status_code == 409
    assert end.json()["error"] == "SESSION_ALREADY_COMPLETED"

    assert _start_drill(client, 1).status_code == 200


def test_missing_user_header_is_rejected(client):
    response = client.post("/drills/start", json={"module_id": MODULE, "drill_number": 1})
    assert response.status_code == 401


def test_other_users_session_is_not_found(client, conn):
    seed_module(conn, MODULE, SKILLS)
    plan = _start_drill(client, 1).json()["data"]
    response = client.get(f"/practice/sessions/{plan['session_id']}", headers=headers("user-eve"))
    assert response.status_code == 404
    assert response.json()["error"] == "SESSION_NOT_FOUND"


def _answer(client, session_id, question_id, answer="1"):
    return client.post(
        f"/practice/sessions/{session_id}/answers",
        json={"question_id": question_id, "user_answer": answer, "time_spent_seconds": 5},
        headers=headers(),
    )


def test_unfinished_drill_cannot_be_ended(client, conn):
    seed_module(conn, MODULE, SKILLS)
    plan = _start_drill(client, 1).json()["data"]
    session_id = plan["session_id"]

    response = _end(client, session_id)
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "SESSION_INCOMPLETE"
    assert body["data"]["answered"] == 0
    assert body["data"]["remaining"] == 10

    assert _answer(client, session_id, plan["first_question"]["question_id"]).status_code == 200
    response = _end(client, session_id)
    assert response.status_code == 409
    assert response.json()["data"]["remaining"] == 9

    assert get_session(conn, USER, session_id).status == "active"
    status = client.get(f"/drills/{MODULE}/status", headers=headers()).json()["data"]
    drills = {d["drill_number"]: d for d in status["drills"]}
    assert drills[1]["status"] == "in_progress"
    assert drills[2]["locked"] is True
    assert _start_drill(client, 2).status_code == 409


def test_answers_after_end_are_rejected(client, conn):
    seed_module(conn, MODULE, SKILLS)
    plan = _start_drill(client, 1).json()["data"]
    session_id = plan["session_id"]
    run_session(client, conn, plan)
    assert _end(client, session_id).status_code == 200

    response = _answer(client, session_id, plan["first_question"]["question_id"])
    assert response.status_code == 409
    assert response.json()["error"] == "SESSION_ALREADY_COMPLETED"

    session = get_session(conn, USER, session_id)
    assert session.status == "completed"
    assert session.current_position == 10
    assert conn.execute("SELECT COUNT(*) FROM answer_trail WHERE session_id = ?", (session_id,)).fetchone()[0] == 10


def test_mark_completed_refuses_a_stale_position(client, conn):
    seed_module(conn, MODULE, SKILLS)
    plan = client.post("/practice/sessions", json={"session_size": 2, "module_id": MODULE}, headers=headers()).json()["data"]
    session_id = plan["session_id"]
    _answer(client, session_id, plan["first_question"]["question_id"])

    session = get_session(conn, USER, session_id)
    assert session.current_position == 1
    summary = analytics.summarize(session, get_trail(conn, session_id), utc_now(), {})

    assert not mark_completed(conn, session_id, 0, summary.completed_at, summary)
    assert get_session(conn, USER, session_id).status == "active"
    assert mark_completed(conn, session_id, 1, summary.completed_at, summary)
    conn.rollback()


def test_concurrent_end_returns_the_stored_summary(client, conn, monkeypatch):
    seed_module(conn, MODULE, SKILLS)
    plan = _start_drill(client, 1).json()["data"]
    session_id = plan["session_id"]
    run_session(client, conn, plan, correct_positions=set(range(6)))
    real_get_trail = analytics.get_trail
    raced = []

    def racing_get_trail(trail_conn, trail_session_id):
        if not raced:
            # another request ends the session after this one has read it
            raced.append(True)
            with database.get_conn() as other:
                analytics.end_session(other, USER, trail_session_id)
        return real_get_trail(trail_conn, trail_session_id)

    monkeypatch.setattr(analytics, "get_trail", racing_get_trail)
    response = _end(client, session_id)
    assert response.status_code == 200, response.text
    summary = response.json()["data"]
    assert summary["questions_attempted"] == 10
    assert summary["accuracy"] == 60.0

    monkeypatch.setattr(analytics, "get_trail", real_get_trail)
    assert _end(client, session_id).json()["data"] == summary
    rows = conn.execute(
        "SELECT status, session_id FROM drill_progress WHERE user_id = ? AND module_id = ? AND drill_number = 1",
        (USER, MODULE),
    ).fetchall()
    assert [tuple(r) for r in rows] == [("completed", session_id)]
