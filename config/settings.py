"""Application settings and configuration management."""
from __future__ import annotations

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")

    OPENER_QUESTION_ID: str = "q_0001"
    SUPPORTED_LANGS: List[str] = Field(default_factory=lambda: ["en", "fr"])
    DEFAULT_LANG: str = "en"
    PLACEHOLDER_MEDIA_URL: str = "https://media.example.com/videos/system/question_missing.mp4"
    SYSTEM_MEDIA_CONFIG: str = "config/system_media.yaml"

    SILENCE_SECONDS: float = 5.0
    IDLE_LISTEN_CLIPS: int = 5
    DEFAULT_FOLLOWUP_TEXT: str = "Do you want me to repeat the question?"

    SEQUENCER_MAX_ATTEMPTS: int = 6
    SEQUENCER_RETRY_DELAY_S: float = 2.0

    DURATION_TARGET_S: int = 20 * 60
    TIMER_TICK_S: float = 1.0

    ENGINE_BASE_URL: str = "http://localhost:8000"
    HTTP_TIMEOUT_S: float = 30.0

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True)


settings = Settings()
