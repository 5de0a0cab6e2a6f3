"""Helpers for bootstrapping and closing interview sessions."""
from __future__ import annotations

from typing import Any, Optional

from config.settings import settings
from observability.logger import log_event
from storage import sessions as session_store
from storage.sessions import SessionRecord


def new_session(user_id: str, **profile: Any) -> SessionRecord:
    """Create a pending session, filling the language and duration from settings."""

    profile.setdefault("lang", settings.DEFAULT_LANG)
    profile.setdefault("duration_target", settings.DURATION_TARGET_S)
    if profile["lang"] not in settings.SUPPORTED_LANGS:
        profile["lang"] = settings.DEFAULT_LANG
    record = session_store.create_session(user_id=user_id, **profile)
    log_event("session.created", record.id, state=record.status)
    return record


def load_session(session_id: str) -> Optional[SessionRecord]:
    """Load the stored session for ``session_id`` if present."""

    return session_store.get_session(session_id)


def start_session(session_id: str) -> SessionRecord:
    record = session_store.mark_started(session_id)
    log_event("session.started", session_id, state=record.status)
    return record


def end_session(session_id: str) -> SessionRecord:
    record = session_store.mark_completed(session_id)
    log_event("session.completed", session_id, state=record.status)
    return record
