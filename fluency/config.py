"""
Configuration settings for fluency-drill.

Uses Pydantic Settings for environment variable management with .env file support.
Every field can be set as FLUENCY_<FIELD_NAME>.
"""
from __future__ import annotations

from dataclasses import replace
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fluency.adaptive.config import (
    DEFAULT_CONFIG,
    DEFAULT_DEADLINE_CONFIG,
    AdaptiveConfig,
    DeadlineConfig,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLUENCY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    state_db_path: Path | None = Field(
        default=None,
        description="SQLite file for learner state (default ~/.fluency/state.db)",
    )
    namespace: str = Field(
        default="default",
        description="Quiz mode namespace; each mode keeps separate item state",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum level written to stderr",
    )

    # ========================================
    # Session timing
    # ========================================
    round_duration_ms: int = Field(default=60000, gt=0, description="Length of one drill round")
    auto_advance_ms: int = Field(default=1000, ge=0, description="Delay before the next question")
    calibration_trials: int = Field(default=10, ge=3, description="Taps per calibration run")
    calibration_warmup_trials: int = Field(default=2, ge=0, description="Leading taps excluded from the median")

    # ========================================
    # Forgetting model overrides (None = built-in default)
    # ========================================
    initial_stability: float | None = Field(default=None, gt=0, description="Half-life after first correct (h)")
    max_stability: float | None = Field(default=None, gt=0, description="Half-life cap (h)")
    stability_growth_base: float | None = Field(default=None, gt=0)
    stability_decay_on_wrong: float | None = Field(default=None, gt=0, le=1)
    recall_threshold: float | None = Field(default=None, gt=0, lt=1)
    expansion_threshold: float | None = Field(default=None, ge=0, le=1)
    automaticity_threshold: float | None = Field(default=None, gt=0, lt=1)

    # ========================================
    # Deadline staircase overrides
    # ========================================
    deadline_decrease_factor: float | None = Field(default=None, gt=0, lt=1)
    deadline_increase_factor: float | None = Field(default=None, gt=1)

    def adaptive_config(self) -> AdaptiveConfig:
        """Build the adaptive config with any overrides applied."""
        overrides = {
            name: value
            for name in (
                "initial_stability",
                "max_stability",
                "stability_growth_base",
                "stability_decay_on_wrong",
                "recall_threshold",
                "expansion_threshold",
                "automaticity_threshold",
            )
            if (value := getattr(self, name)) is not None
        }
        return replace(DEFAULT_CONFIG, **overrides)

    def deadline_config(self) -> DeadlineConfig:
        """Build the deadline config with any overrides applied."""
        overrides = {}
        if self.deadline_decrease_factor is not None:
            overrides["decrease_factor"] = self.deadline_decrease_factor
        if self.deadline_increase_factor is not None:
            overrides["increase_factor"] = self.deadline_increase_factor
        return replace(DEFAULT_DEADLINE_CONFIG, **overrides)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
