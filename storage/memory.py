"""Persistence helpers for answer records (one row per answered question)."""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn


class AnswerPayload(BaseModel):
    user_id: str
    session_id: str
    question_id: str
    transcript: str = ""
    lang: Optional[str] = None
    duration_ms: int = Field(default=0, ge=0)
    pauses_count: int = Field(default=0, ge=0)
    speaking_speed_wpm: int = Field(default=0, ge=0)
    hesitations_count: int = Field(default=0, ge=0)
    stress_score: Optional[float] = None
    confidence_score: Optional[float] = None
    eye_contact_score: Optional[float] = None
    posture_score: Optional[float] = None
    score: Optional[float] = None
    score_auto: Optional[float] = None


def insert_answer(**data: Any) -> Optional[int]:
    """Insert an answer row and return its primary key.

    Rows are append-only per (session, question): a second write for the same
    pair is ignored and ``None`` is returned.
    """

    payload = AnswerPayload(**data)
    timestamp = dt.datetime.now(dt.timezone.utc).isoformat()
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """INSERT OR IGNORE INTO memory
               (created_at, user_id, session_id, question_id, transcript, lang,
                duration_ms, pauses_count, speaking_speed_wpm, hesitations_count,
                stress_score, confidence_score, eye_contact_score, posture_score,
                score, score_auto)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                timestamp,
                payload.user_id,
                payload.session_id,
                payload.question_id,
                payload.transcript,
                payload.lang,
                payload.duration_ms,
                payload.pauses_count,
                payload.speaking_speed_wpm,
                payload.hesitations_count,
                payload.stress_score,
                payload.confidence_score,
                payload.eye_contact_score,
                payload.posture_score,
                payload.score,
                payload.score_auto,
            ),
        )
        if cur.rowcount == 0:
            return None
        return int(cur.lastrowid)


def asked_question_ids(session_id: str) -> List[str]:
    """Business keys already answered in ``session_id``, in answer order."""

    with get_conn() as conn:
        rows = conn.execute(
            "SELECT question_id FROM memory WHERE session_id = ? ORDER BY id ASC",
            (session_id,),
        ).fetchall()
    return [row["question_id"] for row in rows]


def list_answers(session_id: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
    """Latest answer rows, newest first."""

    query = "SELECT * FROM memory"
    params: List[Any] = []
    if session_id:
        query += " WHERE session_id = ?"
        params.append(session_id)
    query += " ORDER BY id DESC LIMIT ?"
    params.append(limit)
    with get_conn() as conn:
        return [dict(row) for row in conn.execute(query, params).fetchall()]


__all__ = ["AnswerPayload", "asked_question_ids", "insert_answer", "list_answers"]
