"""Client-side session engine: playlist, engagement loop, timer and runtime."""
from .capabilities import Capability, SessionCapabilities
from .idle_manager import EngagementState, IdleManager
from .media import MediaKind, MediaRef, question_clip, system_clip
from .playlist import PlaylistQueue
from .retry import RetryExhausted, RetryPolicy
from .runtime import EngineDeps, EnginePhase, InvalidSessionError, MediaSink, NullSink, SessionEngine
from .session_timer import SessionTimer

__all__ = [
    "Capability",
    "EngagementState",
    "EngineDeps",
    "EnginePhase",
    "IdleManager",
    "InvalidSessionError",
    "MediaKind",
    "MediaRef",
    "MediaSink",
    "NullSink",
    "PlaylistQueue",
    "RetryExhausted",
    "RetryPolicy",
    "SessionCapabilities",
    "SessionEngine",
    "SessionTimer",
    "question_clip",
    "system_clip",
]
