"""
Configuration settings for quizdrill.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are read with the QUIZDRILL_ prefix (e.g. QUIZDRILL_DATA_DIR).
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
        env_prefix="QUIZDRILL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".quizdrill",
        description="Directory backing the JSON key-value store",
    )

    # ========================================
    # Exam Defaults
    # ========================================
    default_exam_minutes: int = Field(
        default=120,
        ge=0,
        description="Exam duration used when the caller does not pick one",
    )
    default_single_score: float = Field(
        default=1.0,
        gt=0,
        description="Points per single-choice question",
    )
    default_multiple_score: float = Field(
        default=2.0,
        gt=0,
        description="Points per multiple-choice question",
    )
    default_judge_score: float = Field(
        default=1.0,
        gt=0,
        description="Points per true/false question",
    )

    # ========================================
    # History
    # ========================================
    history_limit: int = Field(
        default=10,
        ge=1,
        description="Number of exam records kept (newest first)",
    )

    # ========================================
    # Countdown
    # ========================================
    timer_warning_minutes: int = Field(
        default=30,
        description="Remaining time below which the countdown turns to warning",
    )
    timer_critical_minutes: int = Field(
        default=5,
        description="Remaining time below which the countdown turns critical",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
