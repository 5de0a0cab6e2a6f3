"""Tests for the SQLite migration and write helpers."""
from __future__ import annotations

import os
import sqlite3

import pytest

from config.settings import settings
from storage import sessions as session_store
from storage.memory import asked_question_ids, insert_answer, list_answers
from storage.migrate import migrate
from storage.questions import QuestionCatalog
from storage.sessions import SessionNotFound


def test_migrate_is_idempotent(tmp_path):
    db_path = str(tmp_path / "fresh.db")
    migrate(db_path)
    migrate(db_path)
    assert os.path.exists(db_path)

    with sqlite3.connect(db_path) as conn:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"questions", "sessions", "memory"} <= tables


def test_catalog_roundtrip_and_inactive_questions(catalog: QuestionCatalog):
    catalog.add(
        question_id="q_1",
        domain="general",
        difficulty=2,
        career_target=["student"],
        prompts={"fr": "Présentez-vous."},
    )
    catalog.add(question_id="q_2", domain="general", difficulty=2, career_target=["student"], is_active=False)

    stored = catalog.get("q_1")
    assert stored.prompts == {"fr": "Présentez-vous."}
    assert catalog.get("q_2") is None
    assert [q.question_id for q in catalog.fetch(
        domain="general", difficulty=2, career_targets=["student"], exclude=[], limit=10
    )] == ["q_1"]


def test_fetch_requires_career_target_overlap(catalog: QuestionCatalog):
    catalog.add(question_id="exec_only", domain="general", difficulty=1, career_target=["exec"])
    catalog.add(question_id="shared", domain="general", difficulty=1, career_target=["exec", "student"])

    found = catalog.fetch(domain="general", difficulty=1, career_targets=["student"], exclude=[], limit=5)

    assert [q.question_id for q in found] == ["shared"]


def test_session_lifecycle():
    record = session_store.create_session(user_id="u1", career_stage="graduate", domain="tech")
    assert record.status == "pending"

    started = session_store.mark_started(record.id)
    assert started.status == "started"
    assert started.started_at is not None

    completed = session_store.mark_completed(record.id)
    again = session_store.mark_completed(record.id)
    assert again.status == "completed"
    assert again.ended_at == completed.ended_at

    # A completed session is never restarted.
    assert session_store.mark_started(record.id).status == "completed"


def test_unknown_session_raises():
    with pytest.raises(SessionNotFound):
        session_store.load_session("missing")
    with pytest.raises(SessionNotFound):
        session_store.assign_questions("missing", [], 1200)


def test_answers_are_written_once_per_question():
    session = session_store.create_session(user_id="u1")
    first = insert_answer(user_id="u1", session_id=session.id, question_id="q_1", transcript="First take")
    duplicate = insert_answer(user_id="u1", session_id=session.id, question_id="q_1", transcript="Second take")
    insert_answer(user_id="u1", session_id=session.id, question_id="q_2", transcript="Other")

    assert isinstance(first, int)
    assert duplicate is None
    assert asked_question_ids(session.id) == ["q_1", "q_2"]
    rows = list_answers(session.id)
    assert [row["question_id"] for row in rows] == ["q_2", "q_1"]
    assert rows[1]["transcript"] == "First take"


def test_settings_db_path_is_used_by_default():
    assert settings.DB_PATH.endswith("test.db")
