"""
Configuration settings for the flashcards service.

Uses Pydantic Settings for environment variable management with .env file support.
Every setting can be overridden with a FLASHCARDS_-prefixed environment variable,
e.g. FLASHCARDS_DATA_FILE=~/cards.json.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLASHCARDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    data_file: Path = Field(
        default=Path("./flashcards.json"),
        description="Path to the flashcard JSON data file",
    )

    # ========================================
    # Scheduling (FSRS)
    # ========================================
    request_retention: float = Field(
        default=0.9,
        gt=0.0,
        lt=1.0,
        description="Target probability of recall at the scheduled review",
    )
    maximum_interval: int = Field(
        default=36500,
        ge=1,
        description="Longest interval (days) the scheduler may assign",
    )

    # ========================================
    # API Server
    # ========================================
    api_host: str = Field(default="127.0.0.1", description="Tool API bind host")
    api_port: int = Field(default=8100, description="Tool API port")

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum level written to stderr",
    )

    def resolved_data_file(self) -> Path:
        """Data file path with ~ expanded."""
        return self.data_file.expanduser()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
