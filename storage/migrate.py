"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS questions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  question_id TEXT NOT NULL UNIQUE,
  domain TEXT NOT NULL,
  sub_domain TEXT,
  difficulty INTEGER NOT NULL,
  career_target TEXT NOT NULL,
  probability REAL NOT NULL DEFAULT 0,
  is_active INTEGER NOT NULL DEFAULT 1,
  prompts_json TEXT NOT NULL,
  media_json TEXT NOT NULL,
  expected_keywords TEXT NOT NULL DEFAULT '[]',
  expected_answer TEXT,
  last_used_at TEXT
);
""",
    """
CREATE TABLE IF NOT EXISTS sessions (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  lang TEXT NOT NULL,
  segment TEXT NOT NULL,
  career_stage TEXT,
  domain TEXT,
  sub_domain TEXT,
  status TEXT NOT NULL,
  detail_json TEXT NOT NULL DEFAULT '{}',
  questions_json TEXT NOT NULL DEFAULT '[]',
  total_questions INTEGER NOT NULL DEFAULT 0,
  duration_target INTEGER NOT NULL,
  created_at TEXT NOT NULL,
  started_at TEXT,
  ended_at TEXT
);
""",
    """
CREATE TABLE IF NOT EXISTS memory (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  created_at TEXT NOT NULL,
  user_id TEXT NOT NULL,
  session_id TEXT NOT NULL,
  question_id TEXT NOT NULL,
  transcript TEXT NOT NULL,
  lang TEXT,
  duration_ms INTEGER NOT NULL DEFAULT 0,
  pauses_count INTEGER NOT NULL DEFAULT 0,
  speaking_speed_wpm INTEGER NOT NULL DEFAULT 0,
  hesitations_count INTEGER NOT NULL DEFAULT 0,
  stress_score REAL,
  confidence_score REAL,
  eye_contact_score REAL,
  posture_score REAL,
  score REAL,
  score_auto REAL,
  UNIQUE(session_id, question_id)
);
""",
]


def migrate(db_path: str = "data/interview.db") -> None:
    """Apply schema migrations to the SQLite database."""

    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    from config.settings import settings

    migrate(settings.DB_PATH)
