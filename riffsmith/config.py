"""
Riffsmith Configuration

Environment-based configuration for the generation session engine.
"""
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _app_version_from_package() -> str:
    """Read the installed distribution version."""
    try:
        from importlib.metadata import version
        return version("riffsmith")
    except Exception:
        pass
    return "0.0.0-unknown"


# Starting code for fresh sessions.  Also the new-vs-edit discriminator: an
# engine still holding exactly this text is treated as empty.
DEFAULT_CODE: str = """// describe the music you want and press enter
setcps(0.5)
note("c3 eb3 g3 bb3").sound("sawtooth").lpf(800).slow(2)
"""

# Placeholder content of the assistant message while a turn is in flight.
GENERATING_PLACEHOLDER: str = "generating..."

# Quick action presets: label -> prompt text.
QUICK_ACTIONS: dict[str, str] = {
    "darker": "make it darker and moodier",
    "+drums": "add more interesting drums",
    "faster": "increase the tempo and energy",
    "slower": "slow it down, more ambient",
    "+bass": "add a heavier bassline",
    "minimal": "strip it down to essentials",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "Riffsmith"
    app_version: str = _app_version_from_package()
    debug: bool = False

    # Generation endpoint
    generation_url: str = "http://localhost:3000/api/claude"
    request_timeout: float = 120.0  # seconds; covers the whole streamed response
    llm_model: Optional[str] = None  # forwarded as ``model``; server default when unset
    api_key: Optional[str] = None  # forwarded as ``apiKey``; NEVER logged

    # Number of prior chat messages sent as context with each turn
    chat_context_messages: int = 10

    # Transient UI state
    status_clear_seconds: float = 1.5
    raw_response_ttl_seconds: float = 15.0

    # Session persistence (CLI); None keeps sessions in memory only
    sessions_dir: Optional[Path] = None

    # File handed to a file-watching live-coding engine
    engine_file: Path = Path("riffsmith-live.js")

    @model_validator(mode="after")
    def _check_context_window(self) -> "Settings":
        """Clamp a negative context size to zero."""
        if self.chat_context_messages < 0:
            logging.getLogger(__name__).warning(
                "RIFFSMITH_CHAT_CONTEXT_MESSAGES is negative; sending no chat history."
            )
            self.chat_context_messages = 0
        return self

    model_config = SettingsConfigDict(
        env_prefix="RIFFSMITH_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience access
settings = get_settings()
