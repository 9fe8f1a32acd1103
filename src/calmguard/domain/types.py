"""Identifiers shared across the rule engine and hosts."""

from __future__ import annotations

from enum import StrEnum

RuleId = str


class BuiltinRule(StrEnum):
    """Stable ids of the rules shipped with calmguard."""

    AUTOPLAY_BLOCK = "autoplay-block"
    INFINITE_SCROLL_BLOCK = "infinite-scroll-block"
    THUMBNAIL_DIMMING = "thumbnail-dimming"
    AUDIO_SURPRISE_BLOCK = "audio-surprise-block"
