"""JSON-file persistence for :class:`~calmguard.domain.preferences.UserSettings`.

A missing or unreadable file loads as ``None``; callers fall back to
defaults. Writes go to a sibling temp file first and are moved into place,
so a crash never leaves a half-written settings file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from calmguard.domain.preferences import UserSettings

logger = logging.getLogger(__name__)


class SettingsStore:
    """Load and save user settings at *path*."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> UserSettings | None:
        """Return stored settings, or None when absent or invalid."""
        if not self.path.is_file():
            return None
        raw = self.path.read_text(encoding="utf-8")
        try:
            return UserSettings.model_validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring invalid settings file %s", self.path, exc_info=True)
            return None

    def load_or_default(self) -> UserSettings:
        return self.load() or UserSettings()

    def save(self, settings: UserSettings) -> None:
        """Persist *settings*, creating parent directories if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(settings.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, self.path)
        logger.debug("Saved settings to %s", self.path)
