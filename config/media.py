"""YAML-driven catalog of system media clips (intros, idle loop, relances, closing)."""
from __future__ import annotations

import os
from typing import Dict, List, Optional

from config.settings import settings

_BASE = "https://media.example.com/videos/system"

DEFAULT_MEDIA: Dict[str, Dict[str, str]] = {
    "intro_1": {"en": f"{_BASE}/intro_en_1.mp4"},
    "intro_2": {"en": f"{_BASE}/intro_en_2.mp4"},
    "idle_listen": {"en": f"{_BASE}/idle_listen_en.mp4", "fr": f"{_BASE}/idle_listen_fr.mp4"},
    "idle_smile": {"en": f"{_BASE}/idle_smile_en.mp4", "fr": f"{_BASE}/idle_smile_fr.mp4"},
    "clarify_end_alt": {"en": f"{_BASE}/clarify_end_alt_en.mp4", "fr": f"{_BASE}/clarify_end_alt_fr.mp4"},
    "clarify_end": {"en": f"{_BASE}/clarify_end_en.mp4", "fr": f"{_BASE}/clarify_end_fr.mp4"},
    "end_simulation": {"en": f"{_BASE}/end_simulation_en.mp4", "fr": f"{_BASE}/end_simulation_fr.mp4"},
    "prepare_feedback": {"en": f"{_BASE}/prepare_feedback_en.mp4", "fr": f"{_BASE}/prepare_feedback_fr.mp4"},
}


def _load_yaml(path: str) -> dict:
    import yaml  # local import to avoid mandatory dependency until used

    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


class SystemMediaCatalog:
    """Resolve system clip keys to URLs with a language fallback chain."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.SYSTEM_MEDIA_CONFIG
        self._mtime = 0.0
        self._media: Dict[str, Dict[str, str]] = {}
        self.reload_if_changed(force=True)

    def reload_if_changed(self, force: bool = False) -> None:
        """Reload the YAML catalog when the file timestamp changes."""

        try:
            stat = os.stat(self.path)
            if not force and stat.st_mtime <= self._mtime:
                return
            cfg = _load_yaml(self.path)
            self._mtime = stat.st_mtime
        except FileNotFoundError:
            cfg = {}

        media = {key: dict(urls) for key, urls in DEFAULT_MEDIA.items()}
        for key, urls in (cfg.get("media") or {}).items():
            media.setdefault(key, {}).update({str(lang): str(url) for lang, url in (urls or {}).items()})
        self._media = media

    def keys(self) -> List[str]:
        return list(self._media)

    def url(self, key: str, lang: str) -> str:
        """Return the clip URL for ``lang``, falling back to the default language then the placeholder."""

        urls = self._media.get(key, {})
        for candidate in (lang, settings.DEFAULT_LANG):
            if urls.get(candidate):
                return urls[candidate]
        return settings.PLACEHOLDER_MEDIA_URL


_catalog: Optional[SystemMediaCatalog] = None


def get_catalog() -> SystemMediaCatalog:
    global _catalog
    if _catalog is None:
        _catalog = SystemMediaCatalog()
    return _catalog


__all__ = ["DEFAULT_MEDIA", "SystemMediaCatalog", "get_catalog"]
