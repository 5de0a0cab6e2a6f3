"""Bounded retry with a fixed delay, used while waiting for the question list."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, Field

from config.settings import settings
from observability.logger import log_event

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhausted(RuntimeError):
    """Raised when no attempt produced a usable result."""

    def __init__(self, label: str, attempts: int, last_error: Optional[BaseException] = None) -> None:
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"{label} not ready after {attempts} attempts{detail}")
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


class RetryPolicy(BaseModel):
    max_attempts: int = Field(default_factory=lambda: settings.SEQUENCER_MAX_ATTEMPTS, ge=1)
    delay_s: float = Field(default_factory=lambda: settings.SEQUENCER_RETRY_DELAY_S, ge=0)

    async def run(
        self,
        op: Callable[[], Awaitable[T]],
        *,
        ready: Callable[[T], bool],
        label: str = "operation",
        session_id: str = "-",
        fatal: Tuple[Type[BaseException], ...] = (),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        """Call ``op`` until ``ready`` accepts its result.

        Exceptions listed in ``fatal`` propagate immediately; any other failure
        counts as a not-ready attempt.

        Raises:
            RetryExhausted: When every attempt failed or returned a not-ready result.
        """

        last_error: Optional[BaseException] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await op()
            except fatal:
                raise
            except Exception as exc:
                last_error = exc
                logger.warning("%s attempt %s/%s failed: %s", label, attempt, self.max_attempts, exc)
                outcome = "error"
            else:
                if ready(result):
                    log_event("retry.ready", session_id, action=label, attempt=attempt)
                    return result
                outcome = "not_ready"
            log_event("retry.attempt", session_id, action=label, attempt=attempt, outcome=outcome)
            if attempt < self.max_attempts:
                await sleep(self.delay_s)
        raise RetryExhausted(label, self.max_attempts, last_error)


__all__ = ["RetryExhausted", "RetryPolicy"]
