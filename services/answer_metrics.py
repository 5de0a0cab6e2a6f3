"""Speech metrics derived from an answer transcript."""
from __future__ import annotations

import re
from typing import Any, Dict, Optional

HESITATION_RE = re.compile(r"\b(?:euh|uh|erm|hum)\b", re.IGNORECASE)


def word_count(transcript: str) -> int:
    return len(transcript.split())


def speaking_speed_wpm(transcript: str, duration_ms: int) -> int:
    """Words per minute over ``duration_ms``; zero when no duration was measured."""

    if duration_ms <= 0:
        return 0
    return round(word_count(transcript) / (duration_ms / 60_000))


def hesitations_count(transcript: str) -> int:
    return len(HESITATION_RE.findall(transcript))


def answer_record(
    *,
    user_id: str,
    session_id: str,
    question_id: str,
    transcript: str,
    lang: Optional[str],
    duration_ms: int = 0,
    pauses_count: int = 0,
    **scores: Optional[float],
) -> Dict[str, Any]:
    """Build the memory payload for one answered question."""

    text = transcript.strip()
    record: Dict[str, Any] = {
        "user_id": user_id,
        "session_id": session_id,
        "question_id": question_id,
        "transcript": text,
        "lang": lang,
        "duration_ms": max(0, int(duration_ms)),
        "pauses_count": max(0, int(pauses_count)),
        "speaking_speed_wpm": speaking_speed_wpm(text, duration_ms),
        "hesitations_count": hesitations_count(text),
    }
    record.update({key: value for key, value in scores.items() if value is not None})
    return record


__all__ = ["HESITATION_RE", "answer_record", "hesitations_count", "speaking_speed_wpm", "word_count"]
