"""Session runtime: plays intros, questions and idle loops, then closes the session."""
from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from pydantic import BaseModel, ConfigDict, Field

from config.media import SystemMediaCatalog
from config.settings import settings
from gateway import GatewayError, UnknownSessionError
from observability.logger import log_event
from sequencer.models import QuestionOut, SequenceResult
from services.answer_metrics import answer_record

from .capabilities import SessionCapabilities
from .idle_manager import IdleManager
from .media import LISTENING_KINDS, MediaKind, MediaRef, question_clip, question_prompt, system_clip
from .playlist import PlaylistQueue
from .retry import RetryExhausted, RetryPolicy
from .session_timer import CLOSE, FINAL, SessionTimer

logger = logging.getLogger(__name__)

ANNOUNCEMENTS: Dict[str, Dict[str, str]] = {
    CLOSE: {"en": "You have two minutes remaining.", "fr": "Il vous reste deux minutes."},
    FINAL: {"en": "Thirty seconds remaining.", "fr": "Il vous reste trente secondes."},
}

PREPARING_FEEDBACK: Dict[str, str] = {
    "en": "Give me a moment to prepare your final feedback.",
    "fr": "Un instant, je prépare votre feedback final.",
}


class InvalidSessionError(ValueError):
    """The session identifier is missing or unknown; playback must not start."""


class EnginePhase(str, Enum):
    CREATED = "created"
    READY = "ready"
    PLAYING = "playing"
    FINISHING = "finishing"
    COMPLETED = "completed"
    REDIRECTED = "redirected"
    INVALID = "invalid"


TERMINAL_PHASES = frozenset({EnginePhase.COMPLETED, EnginePhase.REDIRECTED, EnginePhase.INVALID})


class MediaSink(Protocol):
    """Presentation surface driven by the engine."""

    def play(self, ref: MediaRef) -> None: ...

    def show_text(self, text: str) -> None: ...

    def announce(self, text: str) -> None: ...

    def play_audio(self, audio: Any) -> None: ...

    def capability_changed(self, name: str, enabled: bool) -> None: ...

    def terminal(self, phase: str, message: Optional[str]) -> None: ...


class Backend(Protocol):
    """Calls the engine makes to the backend; :class:`gateway.EngineGateway` implements it."""

    async def get_session(self, session_id: str) -> Any: ...

    async def orchestrate(self, session_id: str) -> SequenceResult: ...

    async def start_session(self, session_id: str) -> None: ...

    async def end_session(self, session_id: str) -> None: ...

    async def write_answer(self, payload: Dict[str, Any]) -> bool: ...

    async def generate_feedback(self, session_id: str) -> Any: ...

    async def synthesize(self, text: str, lang: str) -> bytes: ...

    async def contextual_followup(self, question: str, lang: str) -> Optional[str]: ...


class NullSink:  # Sink that drops every presentation call
    def play(self, ref: MediaRef) -> None:
        pass

    def show_text(self, text: str) -> None:
        pass

    def announce(self, text: str) -> None:
        pass

    def play_audio(self, audio: Any) -> None:
        pass

    def capability_changed(self, name: str, enabled: bool) -> None:
        pass

    def terminal(self, phase: str, message: Optional[str]) -> None:
        pass


class EngineDeps(BaseModel):
    """Collaborators and tunables of one :class:`SessionEngine`."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    backend: Any
    sink: Any = Field(default_factory=NullSink)
    media: Optional[SystemMediaCatalog] = None
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    silence_seconds: Optional[float] = None
    listen_clips: Optional[int] = None
    timer_tick_s: Optional[float] = None
    clock: Optional[Callable[[], float]] = None


class AnswerDraft(BaseModel):  # Signals gathered while the candidate answers
    transcript: List[str] = Field(default_factory=list)
    duration_ms: int = 0
    pauses_count: int = 0
    scores: Dict[str, float] = Field(default_factory=dict)


class SessionEngine:
    """Drive one interview session from intro to closing clips.

    Call :meth:`load`, then :meth:`begin`; afterwards the host reports media
    ends and speech signals. Termination (normal end or hard stop) runs once.
    """

    def __init__(self, session_id: str, deps: EngineDeps) -> None:
        self.session_id = (session_id or "").strip()
        self.deps = deps
        self.backend = deps.backend
        self.sink = deps.sink
        self.phase = EnginePhase.CREATED
        self.lang = settings.DEFAULT_LANG
        self.user_id = ""
        self.duration_target = settings.DURATION_TARGET_S

        self.opener: Optional[QuestionOut] = None
        self.questions: List[QuestionOut] = []
        self.index = -1
        self.on_opener = False
        self.current_question: Optional[QuestionOut] = None
        self.now_playing: Optional[MediaRef] = None
        self.last_followup_text: Optional[str] = None
        self.feedback_text: Optional[str] = None

        self.playlist = PlaylistQueue()
        self.playlist.subscribe(self._on_playlist_change)
        self.capabilities = SessionCapabilities(on_change=self.sink.capability_changed)
        self.idle = IdleManager(
            self.playlist,
            on_next_question=self.advance,
            followup_text=self._followup_text,
            speak=self._speak,
            media=deps.media,
            silence_seconds=deps.silence_seconds,
            listen_clips=deps.listen_clips,
            session_id=self.session_id or "-",
        )
        self.timer: Optional[SessionTimer] = None

        self._draft = AnswerDraft()
        self._answer_started: Optional[float] = None
        self._answered: Set[str] = set()
        self._sequence_lock = asyncio.Lock()
        self._advance_lock = asyncio.Lock()
        self._terminating = False

    @property
    def show_dashboard(self) -> bool:
        return self.phase in TERMINAL_PHASES

    # Loading

    async def load(self) -> bool:
        """Resolve the session and its first questions.

        Returns False when the question list never became ready; the engine is
        then REDIRECTED and playback must not start.

        Raises:
            InvalidSessionError: If the session id is missing or unknown.
        """

        if not self.session_id:
            self._fail(EnginePhase.INVALID, "Missing session id")
            raise InvalidSessionError("Missing session id")
        try:
            info = await self.backend.get_session(self.session_id)
        except UnknownSessionError as exc:
            self._fail(EnginePhase.INVALID, "Unknown session")
            raise InvalidSessionError(self.session_id) from exc

        self.user_id = info.user_id
        self.lang = info.lang if info.lang in settings.SUPPORTED_LANGS else settings.DEFAULT_LANG
        self.duration_target = info.duration_target
        self.idle.lang = self.lang

        try:
            result = await self._poll_sequence()
            if result.action == "INIT_Q1" and result.question is None:
                result = await self._poll_sequence()
        except UnknownSessionError as exc:
            self._fail(EnginePhase.INVALID, "Unknown session")
            raise InvalidSessionError(self.session_id) from exc
        except RetryExhausted as exc:
            logger.warning("Question list never became ready session=%s: %s", self.session_id, exc)
            self._fail(EnginePhase.REDIRECTED, "Questions unavailable")
            return False

        self._apply_sequence(result)
        self.phase = EnginePhase.READY
        log_event("engine.loaded", self.session_id, phase=self.phase.value, count=len(self.questions))
        return True

    async def _poll_sequence(self) -> SequenceResult:
        return await self.deps.retry.run(
            self._request_sequence,
            ready=lambda result: result.is_ready(),
            label="sequence",
            session_id=self.session_id,
            fatal=(UnknownSessionError,),
        )

    async def _request_sequence(self) -> SequenceResult:
        async with self._sequence_lock:
            return await self.backend.orchestrate(self.session_id)

    def _apply_sequence(self, result: SequenceResult) -> None:
        if result.action == "INIT_Q1" and result.question is not None:
            self.opener = result.question
        else:
            self.questions = list(result.questions)

    # Playback

    async def begin(self) -> None:
        """Start playback with the intro clips; requires a successful :meth:`load`."""

        if self.phase != EnginePhase.READY:
            raise RuntimeError(f"Cannot begin from phase {self.phase.value}")
        self.playlist.reset()
        self.capabilities.acquire()
        try:
            await self.backend.start_session(self.session_id)
        except GatewayError as exc:
            logger.warning("Session start not recorded session=%s: %s", self.session_id, exc)

        self.phase = EnginePhase.PLAYING
        self.playlist.add(
            system_clip("intro_1", self.lang, self.deps.media),
            system_clip("intro_2", self.lang, self.deps.media),
        )
        self.playlist.next()

        self.timer = SessionTimer(
            self.duration_target,
            on_hard_stop=self.hard_stop,
            on_threshold=self._on_threshold,
            tick_s=self.deps.timer_tick_s,
            clock=self.deps.clock,
            session_id=self.session_id,
        )
        self.timer.start()
        log_event("engine.begin", self.session_id, phase=self.phase.value)

    async def on_media_end(self) -> None:
        """The current clip finished playing."""

        finished = self.playlist.current
        if finished is None:
            return
        if self._terminating or self.phase in TERMINAL_PHASES:
            # Closing clips keep playing through termination.
            if finished.kind == MediaKind.CLOSING:
                self.playlist.next()
            return
        log_event("engine.media_end", self.session_id, media=finished.key or finished.question_id)

        if finished.kind == MediaKind.INTRO and finished.key == "intro_2":
            await self._play_first_question()
            return
        if finished.kind == MediaKind.QUESTION:
            self._start_listening()
        elif finished.kind in LISTENING_KINDS or finished.kind == MediaKind.CLARIFY:
            if self.playlist.size() == 0 and self.idle.enabled:
                self.idle.enqueue_idle_cycle()
        self.playlist.next()

    async def _play_first_question(self) -> None:
        if self.opener is not None:
            self.on_opener = True
            self._play_question(self.opener)
            return
        if self.questions:
            self.index = 0
            self._play_question(self.questions[0])
            return
        await self.finish()

    def _play_question(self, question: QuestionOut) -> None:
        if self._terminating:
            return
        self.current_question = question
        self._draft = AnswerDraft()
        self._answer_started = None
        self.playlist.reset()
        self.playlist.add(question_clip(question, self.lang))
        self.playlist.next()
        log_event("engine.question", self.session_id, question_id=question.question_id, index=self.index)

    def _start_listening(self) -> None:
        self.idle.reset_context()
        self.idle.start_loop()

    def _on_playlist_change(self, ref: Optional[MediaRef]) -> None:
        self.now_playing = ref
        self.capabilities.allow_transcription(ref is not None and ref.kind in LISTENING_KINDS)
        if ref is None:
            return
        self.sink.play(ref)
        if ref.kind == MediaKind.QUESTION and self.current_question is not None:
            prompt = question_prompt(self.current_question, self.lang)
            if prompt:
                self.sink.show_text(prompt)

    # Candidate signals

    def on_user_speaking(self) -> None:
        if self._terminating or self.phase in TERMINAL_PHASES:
            return
        if self._answer_started is None:
            self._answer_started = time.monotonic()
        self.idle.on_user_speaking()

    def on_transcript(self, text: str) -> None:
        if self._terminating or not self.capabilities.transcription.enabled:
            return
        cleaned = (text or "").strip()
        if cleaned:
            self._draft.transcript.append(cleaned)

    async def on_speech_silence(self, *, duration_ms: int = 0, pauses_count: int = 0, **scores: float) -> None:
        """The voice detector reported the end of an utterance followed by silence."""

        if self._terminating:
            return
        self._draft.duration_ms += max(0, int(duration_ms))
        self._draft.pauses_count += max(0, int(pauses_count))
        self._draft.scores.update({key: float(value) for key, value in scores.items() if value is not None})
        await self.idle.handle_silence()

    # Progression

    async def advance(self) -> None:
        """Record the current answer and play the next question, or finish."""

        async with self._advance_lock:
            if self._halted():
                return
            await self._write_answer()
            if self._halted():
                return
            self.idle.reset_context()

            if self.on_opener:
                self.on_opener = False
                await self._load_remaining_questions()
                if self._halted():
                    return
                next_index = 0
            else:
                next_index = self.index + 1

            if next_index < len(self.questions):
                self.index = next_index
                self._play_question(self.questions[next_index])
                return

        await self.finish()

    def _halted(self) -> bool:
        # A hard stop may land while advance awaits a collaborator.
        return self._terminating or self.phase != EnginePhase.PLAYING

    async def _load_remaining_questions(self) -> None:
        try:
            result = await self._poll_sequence()
        except (RetryExhausted, GatewayError) as exc:
            logger.warning("No questions after opener session=%s: %s", self.session_id, exc)
            self.questions = []
            return
        self.questions = list(result.questions)
        log_event("engine.sequence", self.session_id, count=len(self.questions))

    async def _write_answer(self) -> None:

        question = self.current_question
        if question is None or question.question_id in self._answered:
            return
        self._answered.add(question.question_id)
        duration_ms = self._draft.duration_ms
        if not duration_ms and self._answer_started is not None:
            duration_ms = int((time.monotonic() - self._answer_started) * 1000)
        payload = answer_record(
            user_id=self.user_id,
            session_id=self.session_id,
            question_id=question.question_id,
            transcript=" ".join(self._draft.transcript),
            lang=self.lang,
            duration_ms=duration_ms,
            pauses_count=self._draft.pauses_count,
            **self._draft.scores,
        )
        try:
            await self.backend.write_answer(payload)
        except GatewayError as exc:
            logger.warning("Answer not saved session=%s question=%s: %s", self.session_id, question.question_id, exc)

    # Termination

    async def finish(self) -> None:
        """Normal end: closing clips, feedback, then the dashboard."""

        if self._terminating:
            return
        self._terminating = True
        self.phase = EnginePhase.FINISHING
        self.idle.stop()
        self.playlist.reset()
        self.playlist.add(
            system_clip("end_simulation", self.lang, self.deps.media),
            system_clip("prepare_feedback", self.lang, self.deps.media),
        )
        self.playlist.next()
        await self._terminate("completed")

    async def hard_stop(self) -> None:
        """Time is up: stop playback and engagement, then terminate."""

        if self._terminating:
            return
        self._terminating = True
        self.phase = EnginePhase.FINISHING
        self.idle.stop()
        self.playlist.reset()
        self.sink.show_text(PREPARING_FEEDBACK.get(self.lang, PREPARING_FEEDBACK["en"]))
        await self._terminate("hard_stop")

    async def _terminate(self, reason: str) -> None:

        if self.timer is not None:
            self.timer.cancel()
        await self._write_answer()
        try:
            await self.backend.end_session(self.session_id)
        except GatewayError as exc:
            logger.warning("Session end not recorded session=%s: %s", self.session_id, exc)

        self.feedback_text = await self._request_feedback()
        self.capabilities.release()
        self.phase = EnginePhase.COMPLETED
        log_event("engine.completed", self.session_id, phase=self.phase.value, outcome=reason)
        self.sink.terminal(self.phase.value, self.feedback_text)

    async def _request_feedback(self) -> Optional[str]:

        try:
            result = await self.backend.generate_feedback(self.session_id)
        except GatewayError as exc:
            logger.warning("Feedback generation failed session=%s: %s", self.session_id, exc)
            return None
        if not result.ok:
            logger.warning("Feedback generation refused session=%s: %s", self.session_id, result.error)
            return None
        if result.final_text:
            self.sink.show_text(result.final_text)
        if result.audio_reference:
            self.sink.play_audio(result.audio_reference)
        return result.final_text

    async def close(self) -> None:
        """Release timers and devices without running termination."""

        self.idle.stop()
        if self.timer is not None:
            self.timer.cancel()
        self.capabilities.release()
        await self.idle.drain()

    def _fail(self, phase: EnginePhase, message: str) -> None:
        self.phase = phase
        self.idle.stop()
        log_event("engine.failed", self.session_id or "-", phase=phase.value, outcome=message, level=logging.WARNING)
        self.sink.terminal(phase.value, message)

    # Idle manager collaborators

    async def _followup_text(self) -> Optional[str]:

        if self.last_followup_text:
            return self.last_followup_text
        if self.current_question is None:
            return None
        prompt = question_prompt(self.current_question, self.lang)
        if not prompt:
            return None
        try:
            return await self.backend.contextual_followup(prompt, self.lang)
        except GatewayError as exc:
            logger.warning("Contextual follow-up failed session=%s: %s", self.session_id, exc)
            return None

    async def _speak(self, text: str) -> None:
        self.sink.show_text(text)
        audio = await self.backend.synthesize(text, self.lang)
        self.sink.play_audio(audio)

    async def _on_threshold(self, name: str, remaining: float) -> None:
        message = ANNOUNCEMENTS.get(name, {})
        text = message.get(self.lang) or message.get("en")
        if text:
            self.sink.announce(text)


__all__ = [
    "ANNOUNCEMENTS",
    "AnswerDraft",
    "Backend",
    "EngineDeps",
    "EnginePhase",
    "InvalidSessionError",
    "MediaSink",
    "NullSink",
    "SessionEngine",
    "TERMINAL_PHASES",
]
