"""Pydantic schemas for the session and sequencing API."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from sequencer.models import QuestionOut
from storage.memory import AnswerPayload
from storage.sessions import NewSession, Segment, SessionStatus


class CreateSessionReq(NewSession):
    duration_target: Optional[int] = Field(default=None, gt=0)
    lang: Optional[str] = None


class SessionView(BaseModel):
    id: str
    user_id: str
    lang: str
    segment: Segment
    career_stage: Optional[str] = None
    domain: Optional[str] = None
    status: SessionStatus
    total_questions: int = 0
    duration_target: int


class OrchestrateReq(BaseModel):
    session_id: Optional[str] = None


class InitQ1Resp(BaseModel):
    action: Literal["INIT_Q1"] = "INIT_Q1"
    session_id: str
    question: Optional[QuestionOut] = None


class InitSequenceResp(BaseModel):
    action: Literal["INIT_SEQUENCE"] = "INIT_SEQUENCE"
    session_id: str
    total_questions: int
    questions: List[QuestionOut] = Field(default_factory=list)


class SessionStatusReq(BaseModel):
    session_id: Optional[str] = None


class SessionStatusResp(BaseModel):
    ok: bool = True
    session_id: str
    status: SessionStatus


class MemoryWriteReq(AnswerPayload):
    pass


class MemoryWriteResp(BaseModel):
    ok: bool = True
    created: bool
    id: Optional[int] = None
