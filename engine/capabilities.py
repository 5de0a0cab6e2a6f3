"""Device capabilities (transcription, camera) held for the lifetime of a session."""
from __future__ import annotations

import logging
from contextlib import ExitStack, contextmanager
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str, bool], None]


class Capability:
    """A switchable device capability that reports every state change."""

    def __init__(self, name: str, *, on_change: Optional[ChangeCallback] = None) -> None:
        self.name = name
        self.enabled = False
        self._on_change = on_change

    def set(self, enabled: bool) -> None:
        if enabled == self.enabled:
            return
        self.enabled = enabled
        logger.debug("Capability %s -> %s", self.name, "on" if enabled else "off")
        if self._on_change is not None:
            self._on_change(self.name, enabled)

    @contextmanager
    def held(self, enabled: bool = True) -> Iterator["Capability"]:
        self.set(enabled)
        try:
            yield self
        finally:
            self.set(False)


class SessionCapabilities:
    """Transcription and camera, released together whenever the session terminates."""

    def __init__(self, *, on_change: Optional[ChangeCallback] = None) -> None:
        self.transcription = Capability("transcription", on_change=on_change)
        self.camera = Capability("camera", on_change=on_change)
        self._stack: Optional[ExitStack] = None

    @property
    def active(self) -> bool:
        return self._stack is not None

    def acquire(self) -> None:
        """Turn the camera on and reserve transcription (off until a listening clip plays)."""

        if self._stack is not None:
            return
        with ExitStack() as stack:
            stack.enter_context(self.camera.held())
            stack.enter_context(self.transcription.held(enabled=False))
            self._stack = stack.pop_all()

    def allow_transcription(self, enabled: bool) -> None:
        if self._stack is None:
            return
        self.transcription.set(enabled)

    def release(self) -> None:
        stack, self._stack = self._stack, None
        if stack is not None:
            stack.close()


__all__ = ["Capability", "SessionCapabilities"]
