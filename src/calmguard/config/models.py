"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, calmguard.toml only contains
overrides. An empty (or missing) file is a valid configuration.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

# --- calmguard.toml sections ---


class ClockConfig(BaseModel):
    """[clock] section."""

    model_config = {"frozen": True}

    safety_poll_seconds: float = Field(default=60.0, gt=0)
    wake_buffer_ms: int = Field(default=100, ge=0, lt=1000)


class RulesConfig(BaseModel):
    """[rules] section."""

    model_config = {"frozen": True}

    gesture_trust_ms: int = Field(default=100, ge=0)
    feed_threshold_multiplier: float = Field(default=2.5, gt=1)
    recap_delay_ms: int = Field(default=100, ge=0)


class TransportConfig(BaseModel):
    """[transport] section."""

    model_config = {"frozen": True}

    fetch_retries: int = Field(default=3, ge=0)
    retry_delay_seconds: float = Field(default=1.0, ge=0)


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    path: Path = Field(default_factory=lambda: Path.home() / ".calmguard" / "settings.json")
