"""Media references played by the engine and their localized resolution."""
from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from config.media import SystemMediaCatalog, get_catalog
from config.settings import settings
from sequencer.models import QuestionOut


class MediaKind(str, Enum):
    INTRO = "intro"
    QUESTION = "question"
    IDLE_LISTEN = "idle_listen"
    IDLE_SMILE = "idle_smile"
    CLARIFY = "clarify"
    CLOSING = "closing"


LISTENING_KINDS = frozenset({MediaKind.IDLE_LISTEN, MediaKind.IDLE_SMILE})

_SYSTEM_KINDS: Dict[str, MediaKind] = {
    "intro_1": MediaKind.INTRO,
    "intro_2": MediaKind.INTRO,
    "idle_listen": MediaKind.IDLE_LISTEN,
    "idle_smile": MediaKind.IDLE_SMILE,
    "clarify_end_alt": MediaKind.CLARIFY,
    "clarify_end": MediaKind.CLARIFY,
    "end_simulation": MediaKind.CLOSING,
    "prepare_feedback": MediaKind.CLOSING,
}


class MediaRef(BaseModel):
    """One playable clip; identity drives the engine's media-end transitions."""

    model_config = ConfigDict(frozen=True)

    url: str
    kind: MediaKind
    key: Optional[str] = None
    question_id: Optional[str] = None


def language_chain(lang: Optional[str], supported: Optional[Iterable[str]] = None) -> List[str]:
    """``lang`` first, then every other supported language in configured order."""

    langs = list(supported or settings.SUPPORTED_LANGS)
    first = lang or settings.DEFAULT_LANG
    return [first] + [other for other in langs if other != first]


def localized(values: Dict[str, str], lang: Optional[str]) -> Optional[str]:
    for candidate in language_chain(lang):
        value = values.get(candidate)
        if value:
            return value
    return None


def question_media_url(question: QuestionOut, lang: Optional[str]) -> str:
    """Media for ``lang``, else the other supported language, else the generic placeholder."""

    return localized(question.media, lang) or settings.PLACEHOLDER_MEDIA_URL


def question_prompt(question: QuestionOut, lang: Optional[str]) -> str:
    return localized(question.prompts, lang) or ""


def question_clip(question: QuestionOut, lang: Optional[str]) -> MediaRef:
    return MediaRef(
        url=question_media_url(question, lang),
        kind=MediaKind.QUESTION,
        question_id=question.question_id,
    )


def system_clip(key: str, lang: Optional[str], catalog: Optional[SystemMediaCatalog] = None) -> MediaRef:
    if key not in _SYSTEM_KINDS:
        raise KeyError(f"Unknown system clip: {key}")
    source = catalog or get_catalog()
    return MediaRef(url=source.url(key, lang or settings.DEFAULT_LANG), kind=_SYSTEM_KINDS[key], key=key)


__all__ = [
    "LISTENING_KINDS",
    "MediaKind",
    "MediaRef",
    "language_chain",
    "localized",
    "question_clip",
    "question_media_url",
    "question_prompt",
    "system_clip",
]
