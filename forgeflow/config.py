"""
Runtime configuration for ForgeFlow.

Defaults mirror the settings screen (25/5/15 minute Pomodoro, long break every
4th block, auto-start breaks on). Any of them can be overridden with
FORGEFLOW_* environment variables, e.g. FORGEFLOW_FOCUS_MINUTES=50.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from forgeflow.data.database import DEFAULT_DB_PATH
from forgeflow.engine.focus import MAX_FOCUS_MINUTES, MIN_FOCUS_MINUTES, FocusConfig
from forgeflow.engine.progression import BurnoutPolicy

DEFAULT_TICK_INTERVAL_MS = 1000
DEFAULT_AUTO_START_DELAY_MS = 1500
ENV_PREFIX = "FORGEFLOW_"


class EngineSettings(BaseSettings):
    """Engine settings loaded from FORGEFLOW_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="none",
    )

    # Pomodoro
    focus_minutes: int = Field(
        default=25, ge=MIN_FOCUS_MINUTES, le=MAX_FOCUS_MINUTES, description="Focus block length"
    )
    short_break_minutes: int = Field(default=5, ge=1, description="Short break length")
    long_break_minutes: int = Field(default=15, ge=1, description="Long break length")
    sessions_per_cycle: int = Field(default=4, ge=1, description="Focus blocks before a long break")
    auto_start_break: bool = Field(default=True, description="Chain phases without a manual start")

    # Burnout / XP policy
    burnout_threshold: float = Field(default=0.75, ge=0.0, le=1.0, description="XP is halved above this")
    burnout_base_increase: float = Field(default=0.02, ge=0.0, description="Burnout added per award")
    burnout_difficulty_increase: float = Field(
        default=0.02, ge=0.0, description="Extra burnout per unit of difficulty"
    )
    max_level_ups_per_award: Optional[int] = Field(
        default=1, ge=1, description="Level-ups one award may trigger; 'none' for unlimited"
    )

    # Storage and tick source
    db_path: Path = Field(default=DEFAULT_DB_PATH, description="SQLite database file")
    tick_interval_ms: int = Field(default=DEFAULT_TICK_INTERVAL_MS, gt=0, description="Timer tick period")
    auto_start_delay_ms: int = Field(
        default=DEFAULT_AUTO_START_DELAY_MS, ge=0, description="Pause before an auto-started phase counts"
    )

    @property
    def focus(self) -> FocusConfig:
        return FocusConfig(
            focus_minutes=self.focus_minutes,
            short_break_minutes=self.short_break_minutes,
            long_break_minutes=self.long_break_minutes,
            sessions_per_cycle=self.sessions_per_cycle,
            auto_start_break=self.auto_start_break,
        )

    @property
    def policy(self) -> BurnoutPolicy:
        return BurnoutPolicy(
            penalty_threshold=self.burnout_threshold,
            base_increase=self.burnout_base_increase,
            per_difficulty_increase=self.burnout_difficulty_increase,
            max_level_ups_per_award=self.max_level_ups_per_award,
        )


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   One typed settings object for everything a user might tune without
#   touching code. pydantic-settings reads FORGEFLOW_FOCUS_MINUTES and friends,
#   coerces them ("no" → False, "50" → 50) and rejects out-of-range values.
#
# Key pieces:
#   - Field(ge=..., le=...) bounds: a zero-length break or a 500-minute focus
#     block fails at startup with a ValidationError naming the variable.
#   - focus / policy properties hand the engine its own plain dataclasses, so
#     nothing below this file depends on pydantic.
