from __future__ import annotations

from config.settings import Settings


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("WS_PATH", "conversation")
    monkeypatch.setenv("WEBHOOK_VALIDATE", "true")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("CR_LANGUAGE", "en-US")
    monkeypatch.setenv("PORT", "9000")

    settings = Settings(_env_file=None)

    assert settings.ws_path == "/conversation"
    assert settings.webhook_validate is True
    assert settings.llm_api_key == "sk-env"
    assert settings.cr_language == "en-US"
    assert settings.port == 9000


def test_settings_defaults(monkeypatch):
    for name in ("WS_PATH", "OPENAI_API_KEY", "LLM_API_KEY", "KEEPALIVE_INTERVAL_SECONDS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.ws_path == "/relay"
    assert settings.keepalive_interval_seconds == 25
    assert settings.history_max_turns == 20
    assert settings.history_keep_recent == 10
    assert settings.llm_model == "gpt-4o-mini"
