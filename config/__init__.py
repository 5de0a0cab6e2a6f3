"""Configuration package for the interview engine."""
from .media import SystemMediaCatalog, get_catalog
from .settings import Settings, settings

__all__ = [
    "SystemMediaCatalog",
    "get_catalog",
    "Settings",
    "settings",
]
