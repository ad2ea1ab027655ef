"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_WELCOME = "もしもし。こんにちは。こちらはAIオペレーターです。なんでもご相談ください。"
DEFAULT_SYSTEM_PROMPT = (
    "あなたは親切で丁寧な日本語の電話オペレーターです。"
    "簡潔で自然な会話を心がけてください。"
)


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    ws_path: str = Field(default="/relay", description="Path of the ConversationRelay WebSocket.")
    wss_url: str | None = Field(
        default=None,
        description="Externally reachable relay URL. Derived from the request host when unset.",
    )
    keepalive_interval_seconds: float = Field(default=25.0, gt=0)

    # ConversationRelay (TwiML attributes)
    cr_language: str = Field(default="ja-JP")
    cr_tts_provider: str = Field(default="Google")
    cr_voice: str = Field(default="ja-JP-Standard-B")
    cr_transcription_provider: str = Field(default="Google")
    cr_speech_model: str = Field(default="telephony")
    cr_welcome: str = Field(default=DEFAULT_WELCOME)

    # Twilio webhook authenticity
    webhook_validate: bool = Field(default=False)
    twilio_auth_token: str | None = Field(default=None)

    # LLM connectivity
    llm_provider: Literal["openai", "self_hosted_vllm"] = Field(default="openai")
    llm_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("llm_api_key", "openai_api_key"),
    )
    llm_endpoint: str | None = Field(
        default=None,
        description="Base URL of an OpenAI-compatible inference server.",
    )
    llm_model: str = Field(default="gpt-4o-mini")
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    llm_max_tokens: int = Field(default=500, gt=0)
    llm_timeout_seconds: float = Field(default=60.0, gt=0)

    # Conversation
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)
    history_max_turns: int = Field(default=20, ge=2)
    history_keep_recent: int = Field(default=10, ge=1)

    @field_validator("ws_path")
    @classmethod
    def ensure_leading_slash(cls, value: str) -> str:
        return value if value.startswith("/") else f"/{value}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
