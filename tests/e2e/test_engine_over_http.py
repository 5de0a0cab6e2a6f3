from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi import FastAPI

from api.routes import router
from config.settings import settings
from engine import EngineDeps, EnginePhase, InvalidSessionError, RetryPolicy, SessionEngine
from gateway import EngineGateway
from storage import sessions as session_store
from storage.memory import list_answers
from storage.questions import QuestionCatalog


def _app() -> FastAPI:
    app = FastAPI()
    app.include_router(router)

    # Collaborators owned by other services.
    @app.post("/api/session/feedback")
    def feedback(payload: dict) -> dict:
        return {"ok": True, "final_text": f"Feedback for {payload['session_id']}", "audio_base64": "UklGRg=="}

    @app.post("/api/speech")
    def speech(payload: dict) -> dict:
        return {"audio_base64": "UklGRg=="}

    @app.post("/api/followup")
    def followup(payload: dict) -> dict:
        return {"text": ""}

    return app


def _seed() -> None:
    catalog = QuestionCatalog()
    catalog.add(
        question_id=settings.OPENER_QUESTION_ID,
        domain="general",
        difficulty=1,
        career_target=["student"],
        prompts={"en": "Introduce yourself."},
    )
    catalog.add(
        question_id="gen_1",
        domain="general",
        difficulty=1,
        career_target=["graduate"],
        prompts={"en": "What motivates you?"},
        media={"fr": "https://media.test/gen_1_fr.mp4"},
    )


async def _silent_answer(engine: SessionEngine) -> None:
    await engine.on_media_end()
    engine.on_user_speaking()
    engine.on_transcript("I like hard problems")
    await engine.on_speech_silence(duration_ms=1500)
    await engine.on_speech_silence()


def test_engine_runs_a_session_against_the_api():
    _seed()
    record = session_store.create_session(user_id="u1", career_stage="graduate")

    async def scenario():
        transport = httpx.ASGITransport(app=_app())
        async with httpx.AsyncClient(transport=transport) as client:
            gateway = EngineGateway("http://engine.test", client=client)
            engine = SessionEngine(
                record.id,
                EngineDeps(backend=gateway, silence_seconds=60, retry=RetryPolicy(max_attempts=2, delay_s=0)),
            )
            assert await engine.load()
            assert engine.opener.question_id == settings.OPENER_QUESTION_ID

            await engine.begin()
            await engine.on_media_end()
            await engine.on_media_end()
            await _silent_answer(engine)

            assert engine.current_question.question_id == "gen_1"
            # No English media: the French clip is used.
            assert engine.now_playing.url == "https://media.test/gen_1_fr.mp4"

            await _silent_answer(engine)
            assert engine.phase == EnginePhase.COMPLETED
            assert engine.feedback_text == f"Feedback for {record.id}"
            await engine.close()

    asyncio.run(scenario())

    stored = session_store.load_session(record.id)
    assert stored.status == "completed"
    assert stored.started_at is not None
    answers = list_answers(record.id)
    assert {row["question_id"] for row in answers} == {settings.OPENER_QUESTION_ID, "gen_1"}
    assert all(row["transcript"] == "I like hard problems" for row in answers)


def test_unknown_session_over_http_is_invalid():
    async def scenario():
        transport = httpx.ASGITransport(app=_app())
        async with httpx.AsyncClient(transport=transport) as client:
            engine = SessionEngine("ghost", EngineDeps(backend=EngineGateway("http://engine.test", client=client)))
            with pytest.raises(InvalidSessionError):
                await engine.load()
            assert engine.phase == EnginePhase.INVALID

    asyncio.run(scenario())
