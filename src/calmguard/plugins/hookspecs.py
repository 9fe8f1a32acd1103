"""Pluggy hook specifications for calmguard.

``calmguard_rules`` is called once per page context to collect the rules it
will manage. ``calmguard_state_changed`` fires on the clock side whenever
calm mode flips.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from calmguard.rules import Rule, RuleServices

hookspec = pluggy.HookspecMarker("calmguard")


class CalmguardHookSpec:
    """Hook specifications for the calmguard plugin system."""

    @hookspec
    def calmguard_rules(self, services: RuleServices) -> list[Rule] | None:
        """Return fresh rule instances for one page context."""

    @hookspec
    def calmguard_state_changed(
        self,
        calm_active: bool,
        next_transition_at: datetime | None,
    ) -> None:
        """Called after calm mode turns on or off."""
