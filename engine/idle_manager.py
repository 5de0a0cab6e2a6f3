"""Engagement state machine: idle loop, one relance on silence, then advance."""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Set

from config.media import SystemMediaCatalog
from config.settings import settings
from observability.logger import log_event

from .media import system_clip
from .playlist import PlaylistQueue

logger = logging.getLogger(__name__)

FollowupSource = Callable[[], Awaitable[Optional[str]]]
Speaker = Callable[[str], Awaitable[None]]
AdvanceCallback = Callable[[], Awaitable[None]]


class EngagementState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    CLARIFYING = "clarifying"
    ADVANCING = "advancing"
    STOPPED = "stopped"


class IdleManager:
    """Watch the candidate's engagement on the current question.

    At most one silence timer is armed at any time. The first silence after the
    candidate spoke triggers one clarification (relance); the next one advances
    to the following question. Silence before any speech only re-arms the timer.
    Speech always resets the relance count.
    """

    def __init__(
        self,
        playlist: PlaylistQueue,
        *,
        on_next_question: AdvanceCallback,
        lang: Optional[str] = None,
        followup_text: Optional[FollowupSource] = None,
        speak: Optional[Speaker] = None,
        media: Optional[SystemMediaCatalog] = None,
        silence_seconds: Optional[float] = None,
        listen_clips: Optional[int] = None,
        session_id: str = "-",
    ) -> None:
        self.playlist = playlist
        self.lang = lang or settings.DEFAULT_LANG
        self.session_id = session_id
        self.silence_seconds = settings.SILENCE_SECONDS if silence_seconds is None else silence_seconds
        self.listen_clips = settings.IDLE_LISTEN_CLIPS if listen_clips is None else listen_clips
        self._on_next_question = on_next_question
        self._followup_text = followup_text
        self._speak = speak
        self._media = media

        self.state = EngagementState.IDLE
        self.has_spoken = False
        self.relance_count = 0
        self._enabled = True
        self._epoch = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enqueue_idle_cycle(self) -> None:
        clips = [system_clip("idle_listen", self.lang, self._media) for _ in range(self.listen_clips)]
        clips.append(system_clip("idle_smile", self.lang, self._media))
        self.playlist.add(*clips)

    def start_loop(self) -> None:
        """Queue one idle cycle and arm the silence timer; requires a running loop."""

        if not self._enabled:
            return
        self.enqueue_idle_cycle()
        self.state = EngagementState.LISTENING
        self._arm()
        log_event("idle.start", self.session_id, state=self.state.value)

    def on_user_speaking(self) -> None:
        if not self._enabled:
            return
        self._epoch += 1
        self.has_spoken = True
        self.relance_count = 0
        self.state = EngagementState.LISTENING
        self._arm()

    def reset_context(self) -> None:
        """Forget the current question's engagement history."""

        self._epoch += 1
        self._cancel_timer()
        self.has_spoken = False
        self.relance_count = 0
        if self._enabled:
            self.state = EngagementState.IDLE

    def stop(self) -> None:
        self._epoch += 1
        self._enabled = False
        self._cancel_timer()
        self.state = EngagementState.STOPPED

    async def handle_silence(self) -> None:
        """React to a silence window: re-arm, clarify once, or advance."""

        if not self._enabled:
            return
        self._cancel_timer()

        if not self.has_spoken:
            self.state = EngagementState.LISTENING
            self._arm()
            log_event("idle.silence", self.session_id, outcome="waiting")
            return

        if self.relance_count >= 1:
            self.relance_count = 0
            await self._advance("two_silences")
            return

        self.relance_count += 1
        await self._clarify(self._epoch)

    async def drain(self) -> None:
        """Wait for silence handlers scheduled by the timer."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _clarify(self, epoch: int) -> None:
        self.state = EngagementState.CLARIFYING
        log_event("idle.clarify", self.session_id, state=self.state.value)
        try:
            self.playlist.add(system_clip("clarify_end_alt", self.lang, self._media))
            text = await self._resolve_followup()
            if epoch != self._epoch or not self._enabled:
                logger.info("Clarification superseded session=%s", self.session_id)
                return
            if self._speak is not None:
                try:
                    await self._speak(text)
                except Exception as exc:
                    logger.warning("Relance speech failed session=%s: %s", self.session_id, exc)
            if epoch != self._epoch or not self._enabled:
                return
            self.playlist.add(system_clip("clarify_end", self.lang, self._media))
        except Exception:
            logger.exception("Clarification failed session=%s; advancing", self.session_id)
            await self._advance("clarify_error")
            return

        self.enqueue_idle_cycle()
        self.state = EngagementState.LISTENING
        self._arm()

    async def _resolve_followup(self) -> str:
        text: Optional[str] = None
        if self._followup_text is not None:
            try:
                text = await self._followup_text()
            except Exception as exc:
                logger.warning("Follow-up lookup failed session=%s: %s", self.session_id, exc)
        return (text or "").strip() or settings.DEFAULT_FOLLOWUP_TEXT

    async def _advance(self, reason: str) -> None:
        self._epoch += 1
        self.state = EngagementState.ADVANCING
        log_event("idle.advance", self.session_id, state=self.state.value, outcome=reason)
        await self._on_next_question()

    def _arm(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.silence_seconds, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self.handle_silence())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Silence handler failed session=%s", self.session_id, exc_info=exc)


__all__ = ["EngagementState", "IdleManager"]
