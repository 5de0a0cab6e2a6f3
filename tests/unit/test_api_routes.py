from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.routes import router
from config.settings import settings
from storage.questions import QuestionCatalog


def _client() -> TestClient:
    app = FastAPI()
    app.include_router(router)
    return TestClient(app)


def _seed_catalog() -> None:
    catalog = QuestionCatalog()
    catalog.add(
        question_id=settings.OPENER_QUESTION_ID,
        domain="general",
        difficulty=1,
        career_target=["student"],
        prompts={"en": "Introduce yourself."},
        media={"en": "https://media.test/opener_en.mp4"},
    )
    for index in range(6):
        catalog.add(
            question_id=f"gen_{index}",
            domain="general",
            difficulty=1 + index % 3,
            career_target=["student"],
            probability=index / 10,
        )


def test_create_and_read_session():
    client = _client()
    resp = client.post("/api/sessions", json={"user_id": "u1", "career_stage": "graduate", "lang": "de"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["lang"] == settings.DEFAULT_LANG
    assert body["duration_target"] == settings.DURATION_TARGET_S

    fetched = client.get(f"/api/sessions/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["career_stage"] == "graduate"
    assert client.get("/api/sessions/nope").status_code == 404


def test_orchestrate_opener_then_sequence():
    _seed_catalog()
    client = _client()
    session_id = client.post("/api/sessions", json={"user_id": "u1"}).json()["id"]

    first = client.post("/api/engine/orchestrate", json={"session_id": session_id})
    assert first.status_code == 200
    assert first.json()["action"] == "INIT_Q1"
    assert first.json()["question"]["question_id"] == settings.OPENER_QUESTION_ID

    second = client.post("/api/engine/orchestrate", json={"session_id": session_id}).json()
    assert second["action"] == "INIT_SEQUENCE"
    assert second["total_questions"] == len(second["questions"]) == 6
    assert settings.OPENER_QUESTION_ID not in [q["question_id"] for q in second["questions"]]


def test_orchestrate_rejects_missing_and_unknown_sessions():
    client = _client()
    assert client.post("/api/engine/orchestrate", json={}).status_code == 400
    assert client.post("/api/engine/orchestrate", json={"session_id": "  "}).status_code == 400
    assert client.post("/api/engine/orchestrate", json={"session_id": "ghost"}).status_code == 404


def test_session_start_and_end():
    client = _client()
    session_id = client.post("/api/sessions", json={"user_id": "u1"}).json()["id"]

    started = client.post("/api/session/start", json={"session_id": session_id})
    assert started.json() == {"ok": True, "session_id": session_id, "status": "started"}
    ended = client.post("/api/session/end", json={"session_id": session_id})
    assert ended.json()["status"] == "completed"
    assert client.post("/api/session/end", json={"session_id": "ghost"}).status_code == 404
    assert client.post("/api/session/start", json={}).status_code == 400


def test_memory_write_is_idempotent_per_question():
    client = _client()
    session_id = client.post("/api/sessions", json={"user_id": "u1"}).json()["id"]
    payload = {
        "user_id": "u1",
        "session_id": session_id,
        "question_id": "gen_1",
        "transcript": "uh I would start with the customer",
        "duration_ms": 4000,
    }

    first = client.post("/api/memory", json=payload)
    second = client.post("/api/memory", json=payload)

    assert first.json()["created"] is True
    assert second.json() == {"ok": True, "created": False, "id": None}
    assert client.post("/api/memory", json={**payload, "session_id": "ghost"}).status_code == 404
