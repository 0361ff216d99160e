"""Configuration settings loaded from .env file."""

from pathlib import Path
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings, loaded from .env file.

    Text generation goes through the Claude Agent SDK, which authenticates via
    the Claude Code CLI unless an explicit API key is configured. Cover images
    go through any OpenAI-compatible images endpoint.
    """

    # Models
    default_chapter_model: str = "claude-sonnet-4-6"
    bibliography_model: str = "claude-haiku-4-5"
    # Speed presets, used only when the request names no model explicitly
    speed_models: dict[str, str] = {
        "quality": "claude-opus-4-6",
        "balanced": "claude-sonnet-4-6",
        "fast": "claude-haiku-4-5",
    }

    # Provider credentials
    anthropic_api_key: Optional[str] = None
    allow_cli_auth: bool = True

    # Cover images
    image_api_base_url: str = "https://api.openai.com/v1"
    image_api_key: Optional[str] = None
    image_model: str = "dall-e-3"
    image_size: str = "1024x1792"
    image_timeout_seconds: float = 180.0
    cover_output_dir: Path = Path("./data/covers")
    front_cover_style: str = "vivid"
    back_cover_style: str = "photographic"

    # Database
    sqlite_db_path: Path = Path("./data/books.db")

    # Scheduling
    chapters_per_batch: int = 4
    heartbeat_interval_seconds: float = 25.0

    # Context passed to the next generation call
    context_max_chars: int = 12000
    context_recent_chapters: int = 2
    context_excerpt_chars: int = 1500
    context_summary_chars: int = 300

    # Metadata
    words_per_page: int = 250

    # HTTP server
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # Logging
    log_dir: Path = Path("./data/logs")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("chapters_per_batch")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("chapters_per_batch must be >= 1")
        return v

    @field_validator("heartbeat_interval_seconds", "image_timeout_seconds")
    @classmethod
    def validate_positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Interval must be positive")
        return v

    @field_validator(
        "context_max_chars", "context_excerpt_chars", "context_summary_chars", "words_per_page",
    )
    @classmethod
    def validate_char_counts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Character count must be positive")
        return v

    @field_validator("context_recent_chapters")
    @classmethod
    def validate_recent_chapters(cls, v: int) -> int:
        if v < 0:
            raise ValueError("context_recent_chapters must be non-negative")
        return v

    @field_validator("sqlite_db_path", "log_dir", "cover_output_dir")
    @classmethod
    def ensure_parent_dirs(cls, v: Path) -> Path:
        v.parent.mkdir(parents=True, exist_ok=True)
        return v

    @model_validator(mode="after")
    def validate_context_budget(self) -> "Settings":
        if self.context_excerpt_chars > self.context_max_chars:
            raise ValueError(
                f"context_excerpt_chars ({self.context_excerpt_chars}) must not exceed "
                f"context_max_chars ({self.context_max_chars})"
            )
        return self

    def model_for_speed(self, speed: Optional[str]) -> str:
        """Return the preset model for a speed name, or the default chapter model."""
        if speed and speed in self.speed_models:
            return self.speed_models[speed]
        return self.default_chapter_model


_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
