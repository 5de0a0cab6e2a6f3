"""Lightweight CLI helpers for inspecting sessions and answer memory."""
from __future__ import annotations

import argparse
import sqlite3
from typing import List, Optional

from config.settings import settings


def tail_memory(limit: int = 20, session_id: Optional[str] = None) -> List[str]:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        query = """
            SELECT created_at, session_id, question_id, speaking_speed_wpm, hesitations_count, transcript
            FROM memory
            """
        params: List[object] = []
        if session_id:
            query += " WHERE session_id = ?"
            params.append(session_id)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        cursor.execute(query, params)
        lines = []
        for row in cursor.fetchall():
            ts, sid, question_id, wpm, hesitations, transcript = row
            preview = (transcript or "")[:60]
            lines.append(f"[{ts}] {sid} {question_id} wpm={wpm} hesitations={hesitations} :: {preview}")
        return lines
    finally:
        conn.close()


def show_session(session_id: str) -> List[str]:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT id, user_id, lang, segment, career_stage, domain, status, total_questions,
                   duration_target, created_at, started_at, ended_at
            FROM sessions
            WHERE id = ?
            """,
            (session_id,),
        )
        row = cursor.fetchone()
        if row is None:
            return [f"session {session_id} not found"]
        sid, user_id, lang, segment, stage, domain, status, total, duration, created, started, ended = row
        return [
            f"{sid} user={user_id} lang={lang} {segment}/{stage} domain={domain or 'general'}",
            f"status={status} questions={total} duration={duration}s",
            f"created={created} started={started or '-'} ended={ended or '-'}",
        ]
    finally:
        conn.close()


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-memory", type=int, help="Show the latest answer rows")
    parser.add_argument("--session", help="Restrict --tail-memory to one session")
    parser.add_argument("--show-session", help="Show one session summary")
    args = parser.parse_args(argv)

    if args.tail_memory:
        for line in tail_memory(args.tail_memory, args.session):
            print(line)
    if args.show_session:
        for line in show_session(args.show_session):
            print(line)


if __name__ == "__main__":
    main()
