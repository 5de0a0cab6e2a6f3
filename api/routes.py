"""FastAPI routes for session bootstrap, sequencing and answer memory."""
from __future__ import annotations

import logging
import sqlite3
from typing import Optional, Union

from fastapi import APIRouter, HTTPException

from api.schemas import (
    CreateSessionReq,
    InitQ1Resp,
    InitSequenceResp,
    MemoryWriteReq,
    MemoryWriteResp,
    OrchestrateReq,
    SessionStatusReq,
    SessionStatusResp,
    SessionView,
)
from observability.logger import log_event
from sequencer import QuestionSequencer
from services.sessions import end_session, load_session, new_session, start_session
from storage.memory import insert_answer
from storage.sessions import SessionNotFound

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _require_session_id(session_id: Optional[str]) -> str:
    value = (session_id or "").strip()
    if not value:
        raise HTTPException(status_code=400, detail="Missing session_id")
    return value


def _view(session_id: str) -> SessionView:
    record = load_session(session_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return SessionView(**record.model_dump(include=set(SessionView.model_fields)))


@router.post("/sessions", response_model=SessionView, status_code=201)
def create_session(req: CreateSessionReq) -> SessionView:
    profile = req.model_dump(exclude={"user_id"}, exclude_none=True)
    record = new_session(req.user_id, **profile)
    return _view(record.id)


@router.get("/sessions/{session_id}", response_model=SessionView)
def get_session(session_id: str) -> SessionView:
    return _view(session_id)


@router.post("/engine/orchestrate", response_model=Union[InitQ1Resp, InitSequenceResp])
def orchestrate(req: OrchestrateReq) -> Union[InitQ1Resp, InitSequenceResp]:
    session_id = _require_session_id(req.session_id)
    try:
        result = QuestionSequencer().sequence(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc
    except sqlite3.Error as exc:
        logger.exception("Sequencing failed session=%s", session_id)
        raise HTTPException(status_code=500, detail="Unable to build question sequence") from exc

    if result.action == "INIT_Q1":
        return InitQ1Resp(session_id=result.session_id, question=result.question)
    return InitSequenceResp(
        session_id=result.session_id,
        total_questions=result.total_questions,
        questions=result.questions,
    )


@router.post("/session/start", response_model=SessionStatusResp)
def session_start(req: SessionStatusReq) -> SessionStatusResp:
    session_id = _require_session_id(req.session_id)
    try:
        record = start_session(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc
    return SessionStatusResp(session_id=record.id, status=record.status)


@router.post("/session/end", response_model=SessionStatusResp)
def session_end(req: SessionStatusReq) -> SessionStatusResp:
    session_id = _require_session_id(req.session_id)
    try:
        record = end_session(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc
    return SessionStatusResp(session_id=record.id, status=record.status)


@router.post("/memory", response_model=MemoryWriteResp)
def write_memory(req: MemoryWriteReq) -> MemoryWriteResp:
    if load_session(req.session_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")
    row_id = insert_answer(**req.model_dump())
    log_event(
        "memory.write",
        req.session_id,
        question_id=req.question_id,
        outcome="created" if row_id is not None else "duplicate",
    )
    return MemoryWriteResp(created=row_id is not None, id=row_id)
