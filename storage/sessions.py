"""Persistence helpers for interview sessions."""
from __future__ import annotations

import datetime as dt
import json
import sqlite3
import uuid
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn

SessionStatus = Literal["pending", "started", "completed"]
Segment = Literal["elite", "operational"]


class SessionNotFound(KeyError):
    """Raised when a session identifier does not resolve to a stored session."""


class NewSession(BaseModel):
    user_id: str
    segment: Segment = "elite"
    career_stage: Optional[str] = None
    domain: Optional[str] = None
    sub_domain: Optional[str] = None
    lang: str = "en"
    duration_target: int = Field(default=20 * 60, gt=0)


class SessionRecord(BaseModel):  # Stored session with candidate profile
    id: str
    user_id: str
    lang: str
    segment: Segment
    career_stage: Optional[str] = None
    domain: Optional[str] = None
    sub_domain: Optional[str] = None
    status: SessionStatus
    detail: Dict[str, Any] = Field(default_factory=dict)
    questions: List[Dict[str, Any]] = Field(default_factory=list)
    total_questions: int = 0
    duration_target: int
    created_at: str
    started_at: Optional[str] = None
    ended_at: Optional[str] = None

    @property
    def question_ids(self) -> List[str]:
        return [q["question_id"] for q in self.questions if q.get("question_id")]


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _record(row: sqlite3.Row) -> SessionRecord:
    return SessionRecord(
        id=row["id"],
        user_id=row["user_id"],
        lang=row["lang"],
        segment=row["segment"],
        career_stage=row["career_stage"],
        domain=row["domain"],
        sub_domain=row["sub_domain"],
        status=row["status"],
        detail=json.loads(row["detail_json"] or "{}"),
        questions=json.loads(row["questions_json"] or "[]"),
        total_questions=row["total_questions"],
        duration_target=row["duration_target"],
        created_at=row["created_at"],
        started_at=row["started_at"],
        ended_at=row["ended_at"],
    )


def create_session(**data: Any) -> SessionRecord:
    """Insert a pending session and return it."""

    payload = NewSession(**data)
    session_id = str(uuid.uuid4())
    created_at = _now()
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO sessions
               (id, user_id, lang, segment, career_stage, domain, sub_domain, status,
                detail_json, questions_json, total_questions, duration_target, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, 'pending', '{}', '[]', 0, ?, ?)""",
            (
                session_id,
                payload.user_id,
                payload.lang,
                payload.segment,
                payload.career_stage,
                payload.domain,
                payload.sub_domain,
                payload.duration_target,
                created_at,
            ),
        )
    return SessionRecord(
        id=session_id,
        status="pending",
        created_at=created_at,
        **payload.model_dump(),
    )


def get_session(session_id: str) -> Optional[SessionRecord]:
    with get_conn() as conn:
        row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
    return _record(row) if row else None


def load_session(session_id: str) -> SessionRecord:
    """Return the stored session or raise :class:`SessionNotFound`."""

    record = get_session(session_id)
    if record is None:
        raise SessionNotFound(session_id)
    return record


def update_detail(session_id: str, **fields: Any) -> Dict[str, Any]:
    """Merge ``fields`` into the session detail blob and return the new blob."""

    record = load_session(session_id)
    detail = {**record.detail, **fields}
    with get_conn() as conn:
        conn.execute(
            "UPDATE sessions SET detail_json = ? WHERE id = ?",
            (json.dumps(detail), session_id),
        )
    return detail


def assign_questions(session_id: str, questions: List[Dict[str, Any]], duration_target: int) -> None:
    """Persist the ordered question list produced by the sequencer."""

    with get_conn() as conn:
        cur = conn.execute(
            """UPDATE sessions
               SET questions_json = ?, total_questions = ?, duration_target = ?
               WHERE id = ?""",
            (json.dumps(questions, ensure_ascii=False), len(questions), duration_target, session_id),
        )
        if cur.rowcount == 0:
            raise SessionNotFound(session_id)


def mark_started(session_id: str) -> SessionRecord:
    """Move a pending session to ``started``; later states are left untouched."""

    with get_conn() as conn:
        conn.execute(
            "UPDATE sessions SET status = 'started', started_at = ? WHERE id = ? AND status = 'pending'",
            (_now(), session_id),
        )
    return load_session(session_id)


def mark_completed(session_id: str) -> SessionRecord:
    """Close the session; repeated calls keep the first ``ended_at``."""

    with get_conn() as conn:
        conn.execute(
            """UPDATE sessions SET status = 'completed', ended_at = COALESCE(ended_at, ?)
               WHERE id = ?""",
            (_now(), session_id),
        )
    return load_session(session_id)


__all__ = [
    "NewSession",
    "SessionNotFound",
    "SessionRecord",
    "assign_questions",
    "create_session",
    "get_session",
    "load_session",
    "mark_completed",
    "mark_started",
    "update_detail",
]
