from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="Saloony API")
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )
    database_url: str = Field(
        default="sqlite:///./saloony.db"
    )
    db_read_retries: int = Field(
        default=2
    )
    salon_timezone: str = Field(
        default="Asia/Jerusalem"
    )

    # Booking rules
    booking_lead_minutes: int = Field(
        default=30
    )
    cancellation_notice_hours: int = Field(
        default=3
    )

    # LLM provider for the chat assistant: "deepseek" (OpenAI compatible) or "gemini"
    llm_provider: str = Field(
        default="deepseek"
    )
    llm_api_key: str | None = Field(
        default=None
    )
    llm_base_url: str = Field(
        default="https://api.deepseek.com/v1"
    )
    llm_model: str = Field(
        default="deepseek-chat"
    )
    llm_temperature: float = Field(
        default=0.8
    )
    llm_max_tokens: int = Field(
        default=800
    )
    llm_timeout: float = Field(
        default=30.0
    )
    google_api_key: str | None = Field(
        default=None
    )
    gemini_model: str = Field(
        default="gemini-1.5-flash"
    )
    chat_history_turns: int = Field(
        default=6
    )

    # Cache
    cache_max_size: int = Field(
        default=1000
    )
    cache_salons_ttl: int = Field(
        default=300
    )
    cache_responses_ttl: int = Field(
        default=600
    )
    cache_profiles_ttl: int = Field(
        default=1800
    )
    cache_persistent_ttl: int = Field(
        default=600
    )
    cache_sweep_interval: int = Field(
        default=300
    )
    enable_cache_sweeper: bool = Field(
        default=True
    )

    model_config = SettingsConfigDict(env_prefix="SALOONY_", case_sensitive=False)

    @field_validator("cors_origins", mode="before")
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("llm_provider", mode="before")
    def _normalise_provider(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
