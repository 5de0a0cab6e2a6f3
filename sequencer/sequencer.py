"""Adaptive question sequencer: builds the ordered, non-repeating question list of a session."""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set, Tuple

from config.settings import settings
from observability.logger import log_event
from observability.tracing import span
from storage import memory as memory_store
from storage import sessions as session_store
from storage.questions import QuestionCatalog, QuestionRecord
from storage.sessions import SessionRecord

from .models import QuestionOut, SequenceResult
from .policy import GENERAL_DOMAIN, SequencingPlan, cascade_for, fallback_chain
from .pyramid import resolve_pyramid

logger = logging.getLogger(__name__)

OPENER_SENT_FLAG = "init_q1_sent"

_SESSION_LOCKS: Dict[str, Tuple[threading.Lock, int]] = {}
_SESSION_LOCKS_GUARD = threading.Lock()


@contextmanager
def _session_lock(session_id: str) -> Iterator[None]:
    """Serialize work on ``session_id``; the entry lives only while callers hold or await it."""

    with _SESSION_LOCKS_GUARD:
        lock, users = _SESSION_LOCKS.get(session_id, (None, 0))
        if lock is None:
            lock = threading.Lock()
        _SESSION_LOCKS[session_id] = (lock, users + 1)
    try:
        with lock:
            yield
    finally:
        with _SESSION_LOCKS_GUARD:
            lock, users = _SESSION_LOCKS[session_id]
            if users <= 1:
                del _SESSION_LOCKS[session_id]
            else:
                _SESSION_LOCKS[session_id] = (lock, users - 1)


class QuestionSequencer:
    """Select the questions of a session.

    The result is deterministic for a given catalog and answer history: every
    fetch ranks eligible questions by descending probability, ties keeping
    catalog order. Calls for the same session are serialized.
    """

    def __init__(
        self,
        catalog: Optional[QuestionCatalog] = None,
        *,
        plan: Optional[SequencingPlan] = None,
        opener_question_id: Optional[str] = None,
    ) -> None:
        self.catalog = catalog or QuestionCatalog()
        self.plan = plan or SequencingPlan()
        self.opener_question_id = opener_question_id or settings.OPENER_QUESTION_ID

    def sequence(self, session_id: str) -> SequenceResult:
        """Return the forced opener or the full ordered question list for ``session_id``.

        Raises:
            SessionNotFound: If ``session_id`` does not resolve to a session.
        """

        with _session_lock(session_id):
            session = session_store.load_session(session_id)
            asked = memory_store.asked_question_ids(session_id)

            if not asked and not session.detail.get(OPENER_SENT_FLAG):
                return self._opener(session)

            return self._build_sequence(session, asked)

    def _opener(self, session: SessionRecord) -> SequenceResult:
        opener = self._safe_get(session.id, self.opener_question_id)
        session_store.update_detail(session.id, **{OPENER_SENT_FLAG: True})
        if opener is None:
            logger.warning("Opener question %s missing from catalog", self.opener_question_id)
        log_event(
            "sequencer.opener",
            session.id,
            question_id=self.opener_question_id,
            outcome="sent" if opener else "missing",
        )
        return SequenceResult(
            action="INIT_Q1",
            session_id=session.id,
            question=QuestionOut.from_record(opener) if opener else None,
            total_questions=1 if opener else 0,
        )

    def _build_sequence(self, session: SessionRecord, asked: List[str]) -> SequenceResult:
        result = SequenceResult(action="INIT_SEQUENCE", session_id=session.id)
        pyramid = resolve_pyramid(session.segment, session.career_stage)
        domain = (session.domain or "").strip() or GENERAL_DOMAIN
        sub_domain = (session.sub_domain or "").strip() or None

        used: Set[str] = set(asked)
        if session.detail.get(OPENER_SENT_FLAG):
            used.add(self.opener_question_id)

        selected: List[QuestionRecord] = []

        for level, count in self.plan.general_block:
            with span(result, f"general.L{level}", domain=GENERAL_DOMAIN) as event:
                batch = self._fetch(session.id, GENERAL_DOMAIN, None, level, pyramid, used, count)
                event["count"] = len(batch)
            self._take(batch, selected, used)

        for level, quota in self.plan.domain_block:
            left = quota
            with span(result, f"domain.L{level}", domain=domain) as event:
                batch = self._fetch(session.id, domain, sub_domain, level, pyramid, used, left)
                event["count"] = len(batch)
            self._take(batch, selected, used)
            left -= len(batch)

            for fallback in fallback_chain(domain):
                if left <= 0:
                    break
                with span(result, f"fallback.L{level}", domain=fallback) as event:
                    extra = self._fetch(session.id, fallback, None, level, pyramid, used, left)
                    event["count"] = len(extra)
                self._take(extra, selected, used)
                left -= len(extra)

        if selected:
            self._mark_used(session.id, [q.question_id for q in selected])

        questions = [QuestionOut.from_record(q) for q in selected]
        session_store.assign_questions(
            session.id,
            [q.model_dump() for q in questions],
            session.duration_target,
        )
        result.questions = questions
        result.total_questions = len(questions)
        log_event(
            "sequencer.sequence",
            session.id,
            count=len(questions),
            outcome="ok" if questions else "empty",
        )
        return result

    def _fetch(
        self,
        session_id: str,
        domain: str,
        sub_domain: Optional[str],
        level: int,
        pyramid: List[str],
        used: Set[str],
        limit: int,
    ) -> List[QuestionRecord]:
        """Fill ``limit`` slots walking the difficulty cascade of ``level`` in preference order."""

        picked: List[QuestionRecord] = []
        excluded = set(used)
        for difficulty in cascade_for(level):
            remaining = limit - len(picked)
            if remaining <= 0:
                break
            try:
                batch = self.catalog.fetch(
                    domain=domain,
                    sub_domain=sub_domain,
                    difficulty=difficulty,
                    career_targets=pyramid,
                    exclude=excluded,
                    limit=remaining,
                )
            except sqlite3.Error as exc:
                logger.warning(
                    "Catalog fetch failed session=%s domain=%s difficulty=%s: %s",
                    session_id,
                    domain,
                    difficulty,
                    exc,
                )
                continue
            picked.extend(batch)
            excluded.update(q.question_id for q in batch)
        return picked

    @staticmethod
    def _take(batch: List[QuestionRecord], selected: List[QuestionRecord], used: Set[str]) -> None:
        for question in batch:
            if question.question_id in used:
                continue
            selected.append(question)
            used.add(question.question_id)

    def _safe_get(self, session_id: str, question_id: str) -> Optional[QuestionRecord]:
        try:
            return self.catalog.get(question_id)
        except sqlite3.Error as exc:
            logger.warning("Opener lookup failed session=%s: %s", session_id, exc)
            return None

    def _mark_used(self, session_id: str, question_ids: List[str]) -> None:
        # last_used_at is telemetry only; nothing in sequencing reads it back.
        try:
            self.catalog.mark_used(question_ids)
        except sqlite3.Error as exc:
            logger.warning("Failed to stamp last_used_at session=%s: %s", session_id, exc)


__all__ = ["OPENER_SENT_FLAG", "QuestionSequencer"]
