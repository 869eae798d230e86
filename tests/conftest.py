from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import config
from db import database
from main import app
from models.question import Question
from utils.question_bank import get_question, upsert_question

USER = "user-ada"


def _write_test_config(config_path: Path) -> None:
    config_path.write_text(
        "\n".join(
            [
                "[adaptation]",
                "high_accuracy = 0.8",
                "low_accuracy = 0.4",
                "min_samples = 3",
                "window_size = 10",
                "",
                "[session]",
                "default_size = 10",
                "max_size = 20",
                "drill_size = 10",
                "",
                "[drills]",
                "max_drills = 5",
                "unlock_accuracy = 0",
                "",
                "[logging]",
                "level = \"DEBUG\"",
            ]
        ),
        encoding="utf-8",
    )


@pytest.fixture
def app_env(tmp_path, monkeypatch):
    """Point config and the database at a fresh temp directory and initialize it."""
    config_dir = tmp_path / ".mathdrill"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    _write_test_config(config_path)

    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "mathdrill.db")
    for name in ("MATHDRILL_LOG_LEVEL", "DRILL_SIZE", "MAX_DRILLS", "UNLOCK_ACCURACY"):
        monkeypatch.delenv(name, raising=False)

    database.init_db()
    return config_dir


@pytest.fixture
def conn(app_env):
    with database.get_conn() as connection:
        yield connection


@pytest.fixture
def client(app_env):
    return TestClient(app)


def make_question(question_id, module_id, skill_id, difficulty=1, answer="1", **overrides):
    fields = dict(
        id=question_id,
        module_id=module_id,
        micro_skill_id=skill_id,
        difficulty_level=difficulty,
        expected_time_seconds=30,
        points=10,
        text=f"Question {question_id}",
        type="numeric",
        correct_answer=answer,
        solution_steps=["Add the digits"],
        hints=["Think in tens", "Carry the one"],
    )
    fields.update(overrides)
    return Question(**fields)


def seed_module(conn, module_id, skill_ids, per_skill=12, difficulty=1):
    """Seed ``per_skill`` numeric questions for each skill; the answer is the question's ordinal."""
    ids = []
    for skill_id in skill_ids:
        for i in range(per_skill):
            question_id = f"q-{module_id}-{skill_id}-{i:02d}"
            upsert_question(conn, make_question(question_id, module_id, skill_id, difficulty, answer=str(skill_id * 100 + i)))
            ids.append(question_id)
    conn.commit()
    return ids


def correct_answer_for(conn, question_id):
    return get_question(conn, question_id).correct_answer


def headers(user_id=USER):
    return {"X-User-Id": user_id}


def run_session(client, conn, plan, correct_positions=None, user_id=USER, time_spent=20):
    """Answer every question of a started session; positions in ``correct_positions`` are answered right.

    Returns the list of answered question ids in order.
    """
    session_id = plan["session_id"]
    question = plan["first_question"]
    answered = []
    position = 0
    while question is not None:
        right = correct_positions is None or position in correct_positions
        answer = correct_answer_for(conn, question["question_id"]) if right else "-1"
        response = client.post(
            f"/practice/sessions/{session_id}/answers",
            json={"question_id": question["question_id"], "user_answer": answer, "time_spent_seconds": time_spent},
            headers=headers(user_id),
        )
        assert response.status_code == 200, response.text
        answered.append(question["question_id"])
        question = response.json()["data"]["next_question"]
        position += 1
    return answered
