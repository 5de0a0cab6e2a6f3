"""Countdown for a session's target duration with one-shot threshold callbacks."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Set, Tuple, Union

from config.settings import settings
from observability.logger import log_event

logger = logging.getLogger(__name__)

PRECLOSE = "preclose"
CLOSE = "close"
FINAL = "final"

DEFAULT_THRESHOLDS: Tuple[Tuple[str, int], ...] = ((PRECLOSE, 180), (CLOSE, 120), (FINAL, 30))

MaybeAwaitable = Union[None, Awaitable[Any]]
ThresholdCallback = Callable[[str, float], MaybeAwaitable]
HardStopCallback = Callable[[], MaybeAwaitable]


async def _call(callback: Callable[..., MaybeAwaitable], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class SessionTimer:
    """Fire each threshold once when remaining time crosses it, then hard-stop at zero.

    Thresholds whose boundary is not below the session duration never fire: a
    twenty second session gets no "thirty seconds left" announcement.
    """

    def __init__(
        self,
        duration_s: float,
        *,
        on_hard_stop: HardStopCallback,
        on_threshold: Optional[ThresholdCallback] = None,
        thresholds: Sequence[Tuple[str, int]] = DEFAULT_THRESHOLDS,
        tick_s: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
        session_id: str = "-",
    ) -> None:
        self.duration_s = float(duration_s)
        self.tick_s = settings.TIMER_TICK_S if tick_s is None else tick_s
        self.session_id = session_id
        self._on_hard_stop = on_hard_stop
        self._on_threshold = on_threshold
        self._thresholds = sorted(thresholds, key=lambda item: item[1], reverse=True)
        self._clock = clock
        self._started_at: Optional[float] = None
        self._task: Optional[asyncio.Task] = None
        self.fired: Set[str] = {name for name, boundary in self._thresholds if boundary >= self.duration_s}
        self.hard_stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def remaining(self) -> float:
        if self._started_at is None:
            return self.duration_s
        return max(0.0, self.duration_s - (self._now() - self._started_at))

    async def check(self, remaining: float) -> List[str]:
        """Fire every threshold crossed by ``remaining`` that has not fired yet."""

        fired_now: List[str] = []
        if self.hard_stopped:
            return fired_now
        for name, boundary in self._thresholds:
            if name in self.fired or remaining > boundary:
                continue
            self.fired.add(name)
            fired_now.append(name)
            log_event("timer.threshold", self.session_id, outcome=name, remaining_s=round(remaining, 1))
            if self._on_threshold is not None:
                await _call(self._on_threshold, name, remaining)

        if remaining <= 0:
            self.hard_stopped = True
            fired_now.append("hard_stop")
            log_event("timer.hard_stop", self.session_id, remaining_s=0)
            await _call(self._on_hard_stop)
        return fired_now

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._started_at = self._now()
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def run(self) -> None:
        if self._started_at is None:
            self._started_at = self._now()
        while not self.hard_stopped:
            await self.check(self.remaining())
            if self.hard_stopped:
                break
            await asyncio.sleep(self.tick_s)

    def cancel(self) -> None:
        """Stop ticking without firing the hard stop."""

        if self._task is not None and not self._task.done() and self._task is not _current_task():
            self._task.cancel()
        self._task = None

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


__all__ = ["CLOSE", "DEFAULT_THRESHOLDS", "FINAL", "PRECLOSE", "SessionTimer"]
