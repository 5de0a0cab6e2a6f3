"""FIFO playlist with a single "currently playing" slot and one change subscriber."""
from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from .media import MediaRef

logger = logging.getLogger(__name__)

Subscriber = Callable[[Optional[MediaRef]], None]


class PlaylistQueue:
    """Ordered queue of pending clips plus the clip currently playing.

    ``add`` only appends and never interrupts the current clip; ``next`` moves the
    head of the queue into the current slot and is a no-op on an empty queue.
    The subscriber is notified once per pointer change.
    """

    def __init__(self) -> None:
        self._pending: Deque[MediaRef] = deque()
        self._current: Optional[MediaRef] = None
        self._subscriber: Optional[Subscriber] = None

    @property
    def current(self) -> Optional[MediaRef]:
        return self._current

    def pending(self) -> List[MediaRef]:
        return list(self._pending)

    def size(self) -> int:
        return len(self._pending)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Install ``callback`` as the single subscriber and return an unsubscribe function."""

        self._subscriber = callback

        def _unsubscribe() -> None:
            if self._subscriber is callback:
                self._subscriber = None

        return _unsubscribe

    def add(self, *refs: MediaRef) -> None:
        self._pending.extend(refs)

    def next(self) -> Optional[MediaRef]:
        if not self._pending:
            logger.debug("Playlist empty; keeping current clip %s", self._current)
            return self._current
        self._current = self._pending.popleft()
        self._notify(self._current)
        return self._current

    def reset(self) -> None:
        """Drop every pending clip and clear the current slot."""

        had_current = self._current is not None
        self._pending.clear()
        self._current = None
        if had_current:
            self._notify(None)

    def _notify(self, ref: Optional[MediaRef]) -> None:
        if self._subscriber is not None:
            self._subscriber(ref)


__all__ = ["PlaylistQueue", "Subscriber"]
