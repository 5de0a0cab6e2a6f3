"""Simple span helper for recording step timings on a report object."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator


@contextmanager
def span(report: Any, name: str, **fields: Any) -> Iterator[dict]:
    """Time the block and append ``{"span", "ms", **fields}`` to ``report.events``.

    The yielded dict is the event itself so callers can attach results (e.g. a count).
    """

    start = time.perf_counter()
    event: dict = {"span": name, **fields}
    try:
        yield event
    finally:
        event["ms"] = int((time.perf_counter() - start) * 1000)
        report.events.append(event)


__all__ = ["span"]
