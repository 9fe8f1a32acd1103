"""Built-in plugin contributing the four standard page rules."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

from calmguard.rules import builtin_rules

if TYPE_CHECKING:
    from calmguard.rules import Rule, RuleServices

hookimpl = pluggy.HookimplMarker("calmguard")


class BuiltinRulesPlugin:
    """Autoplay block, feed freeze, thumbnail dimming and audio mute."""

    @hookimpl
    def calmguard_rules(self, services: RuleServices) -> list[Rule]:
        return builtin_rules(services)
