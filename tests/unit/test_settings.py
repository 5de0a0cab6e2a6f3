from __future__ import annotations

from config.settings import Settings


def test_defaults():
    cfg = Settings(_env_file=None)
    assert cfg.SILENCE_SECONDS == 5.0
    assert cfg.IDLE_LISTEN_CLIPS == 5
    assert cfg.SEQUENCER_MAX_ATTEMPTS == 6
    assert cfg.DURATION_TARGET_S == 1200
    assert cfg.SUPPORTED_LANGS == ["en", "fr"]


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SILENCE_SECONDS", "3.5")
    monkeypatch.setenv("SUPPORTED_LANGS", '["fr", "en", "de"]')
    monkeypatch.setenv("OPENER_QUESTION_ID", "q_9999")

    cfg = Settings(_env_file=None)

    assert cfg.SILENCE_SECONDS == 3.5
    assert cfg.SUPPORTED_LANGS == ["fr", "en", "de"]
    assert cfg.OPENER_QUESTION_ID == "q_9999"
