"""Locate ``calmguard.toml``.

An explicit ``CALMGUARD_CONFIG`` path wins; otherwise the nearest
``calmguard.toml`` in the start directory or any of its parents is used.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

CONFIG_FILENAME = "calmguard.toml"
CONFIG_ENV_VAR = "CALMGUARD_CONFIG"


def _walk_up(start: Path) -> Iterator[Path]:
    current = start.resolve()
    yield current
    yield from current.parents


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file to use, or None to run on code defaults.

    A ``CALMGUARD_CONFIG`` that points at a missing file disables the
    walk-up search rather than silently falling back to another file.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        path = Path(explicit)
        return path if path.is_file() else None

    for directory in _walk_up(start or Path.cwd()):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
