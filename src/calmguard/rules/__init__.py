"""Page-adaptation rules and the services they are constructed with."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from calmguard.rules.audio_mute import AudioSurpriseBlockRule
from calmguard.rules.autoplay import AutoplayBlockRule
from calmguard.rules.base import BaseRule, Rule, UndoLedger
from calmguard.rules.feed_freeze import InfiniteScrollBlockRule
from calmguard.rules.thumbnail_dimming import ThumbnailDimmingRule

if TYPE_CHECKING:
    from calmguard.infrastructure.gestures import GestureTracker
    from calmguard.infrastructure.timers import Scheduler


@dataclass(frozen=True)
class RuleServices:
    """Per-page-context collaborators handed to rule factories."""

    gestures: GestureTracker
    scheduler: Scheduler
    feed_threshold_multiplier: float = 2.5
    recap_delay_ms: int = 100


def builtin_rules(services: RuleServices) -> list[Rule]:
    """Instantiate the four built-in rules in their application order."""
    return [
        AutoplayBlockRule(services.gestures),
        InfiniteScrollBlockRule(
            services.scheduler,
            threshold_multiplier=services.feed_threshold_multiplier,
            recap_delay_ms=services.recap_delay_ms,
        ),
        ThumbnailDimmingRule(),
        AudioSurpriseBlockRule(services.gestures),
    ]


__all__ = [
    "AudioSurpriseBlockRule",
    "AutoplayBlockRule",
    "BaseRule",
    "InfiniteScrollBlockRule",
    "Rule",
    "RuleServices",
    "ThumbnailDimmingRule",
    "UndoLedger",
    "builtin_rules",
]
