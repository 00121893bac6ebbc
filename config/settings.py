"""Pydantic Settings — typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from config.llm_config import LLMConfig


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 5000
    cors_origins: list[str] = ["*"]
    debug: bool = False

    # ── LLM ──────────────────────────────────────────────────
    default_model: str = "gemini/gemini-2.0-flash"
    analysis_model: str = ""  # Empty = default_model
    guidance_model: str = ""  # Empty = default_model
    max_tokens: int = 1000
    temperature: float | None = 0.7
    llm_timeout: float = 30.0  # seconds before a turn falls back to local scoring

    # Provider API keys
    gemini_api_key: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # ── Illustration (Volcengine Ark / Seedream) ─────────────
    ark_api_key: str = ""
    ark_base_url: str = "https://ark.cn-beijing.volces.com/api/v3"
    ark_image_model: str = "doubao-seedream-3-0-t2i-250415"
    image_size: str = "1024x1024"

    # ── Sessions ─────────────────────────────────────────────
    session_ttl: int = 7200  # seconds of inactivity before eviction
    session_max: int = 1000  # oldest sessions evicted beyond this
    session_cleanup_interval: int = 300

    # ── Story Archive ────────────────────────────────────────
    archive_store_type: str = "memory"  # "memory" or "http"
    archive_url: str = ""  # PostgREST / Supabase base URL
    archive_api_key: str = ""
    archive_table: str = "stories"
    archive_timeout: int = 10  # seconds

    # ── Helpers ───────────────────────────────────────────────

    def get_default_llm_config(self) -> LLMConfig:
        """Build an :class:`LLMConfig` from global .env defaults."""
        return LLMConfig(
            model=self.default_model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
