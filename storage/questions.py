"""Question catalog persistence and eligibility queries."""
from __future__ import annotations

import datetime as dt
import json
import sqlite3
from typing import Any, Collection, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn


class QuestionRecord(BaseModel):  # Stored catalog entry
    id: int
    question_id: str
    domain: str
    sub_domain: Optional[str] = None
    difficulty: int = Field(ge=1, le=3)
    career_target: List[str] = Field(default_factory=list)
    probability: float = 0.0
    is_active: bool = True
    prompts: Dict[str, str] = Field(default_factory=dict)
    media: Dict[str, str] = Field(default_factory=dict)
    expected_keywords: List[str] = Field(default_factory=list)
    expected_answer: Optional[str] = None
    last_used_at: Optional[str] = None


class NewQuestion(BaseModel):  # Insert payload
    question_id: str
    domain: str
    sub_domain: Optional[str] = None
    difficulty: int = Field(ge=1, le=3)
    career_target: List[str]
    probability: float = 0.0
    is_active: bool = True
    prompts: Dict[str, str] = Field(default_factory=dict)
    media: Dict[str, str] = Field(default_factory=dict)
    expected_keywords: List[str] = Field(default_factory=list)
    expected_answer: Optional[str] = None


_COLUMNS = """id, question_id, domain, sub_domain, difficulty, career_target, probability,
              is_active, prompts_json, media_json, expected_keywords, expected_answer, last_used_at"""


def _record(row: sqlite3.Row) -> QuestionRecord:
    return QuestionRecord(
        id=row["id"],
        question_id=row["question_id"],
        domain=row["domain"],
        sub_domain=row["sub_domain"],
        difficulty=row["difficulty"],
        career_target=json.loads(row["career_target"]),
        probability=row["probability"],
        is_active=bool(row["is_active"]),
        prompts=json.loads(row["prompts_json"]),
        media=json.loads(row["media_json"]),
        expected_keywords=json.loads(row["expected_keywords"]),
        expected_answer=row["expected_answer"],
        last_used_at=row["last_used_at"],
    )


class QuestionCatalog:  # SQLite-backed question catalog
    def __init__(self, db_path: Optional[str] = None) -> None:
        self._db_path = db_path

    def add(self, **data: Any) -> QuestionRecord:  # Insert one catalog entry
        payload = NewQuestion(**data)
        with get_conn(self._db_path) as conn:
            cur = conn.cursor()
            cur.execute(
                """INSERT INTO questions
                   (question_id, domain, sub_domain, difficulty, career_target, probability,
                    is_active, prompts_json, media_json, expected_keywords, expected_answer)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    payload.question_id,
                    payload.domain,
                    payload.sub_domain,
                    payload.difficulty,
                    json.dumps(payload.career_target),
                    payload.probability,
                    int(payload.is_active),
                    json.dumps(payload.prompts, ensure_ascii=False),
                    json.dumps(payload.media),
                    json.dumps(payload.expected_keywords, ensure_ascii=False),
                    payload.expected_answer,
                ),
            )
            row_id = int(cur.lastrowid)
        return QuestionRecord(id=row_id, **payload.model_dump())

    def add_many(self, items: Iterable[Dict[str, Any]]) -> List[QuestionRecord]:
        return [self.add(**item) for item in items]

    def get(self, question_id: str) -> Optional[QuestionRecord]:  # Active entry by business key
        with get_conn(self._db_path) as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM questions WHERE question_id = ? AND is_active = 1",
                (question_id,),
            ).fetchone()
        return _record(row) if row else None

    def fetch(
        self,
        *,
        domain: str,
        difficulty: int,
        career_targets: Collection[str],
        exclude: Collection[str],
        limit: int,
        sub_domain: Optional[str] = None,
    ) -> List[QuestionRecord]:
        """Return up to ``limit`` eligible questions ranked by descending probability.

        Ties keep catalog insertion order. A question is eligible when it is active,
        matches the domain, the exact difficulty and the sub-domain (when given),
        shares at least one career target with ``career_targets`` and is not excluded.
        """

        if limit <= 0:
            return []
        query = f"SELECT {_COLUMNS} FROM questions WHERE is_active = 1 AND domain = ? AND difficulty = ?"
        params: list[Any] = [domain, difficulty]
        if sub_domain:
            query += " AND sub_domain = ?"
            params.append(sub_domain)
        query += " ORDER BY probability DESC, id ASC"

        targets = set(career_targets)
        excluded = set(exclude)
        selected: List[QuestionRecord] = []
        with get_conn(self._db_path) as conn:
            for row in conn.execute(query, params):
                record = _record(row)
                if record.question_id in excluded:
                    continue
                if targets and not targets.intersection(record.career_target):
                    continue
                selected.append(record)
                if len(selected) >= limit:
                    break
        return selected

    def mark_used(self, question_ids: Collection[str]) -> int:
        """Stamp ``last_used_at`` on the given questions and return the row count."""

        if not question_ids:
            return 0
        timestamp = dt.datetime.now(dt.timezone.utc).isoformat()
        placeholders = ", ".join("?" for _ in question_ids)
        with get_conn(self._db_path) as conn:
            cur = conn.execute(
                f"UPDATE questions SET last_used_at = ? WHERE question_id IN ({placeholders})",
                (timestamp, *question_ids),
            )
            return int(cur.rowcount)


__all__ = ["NewQuestion", "QuestionCatalog", "QuestionRecord"]
