"""RuleRegistry — owns rules and drives their apply/revert lifecycle.

Precedence, strongest first:
  1. Domain disabled (``override.enabled is False``)
  2. Domain allow-list (``override.allowed_rule_ids``)
  3. The rule's own ``applies(context)``

Overrides only ever narrow: they can stop a rule from applying, never
force one on.

INVARIANT: a rule id is in :attr:`RuleRegistry.applied_rule_ids` iff its
``apply`` succeeded more recently than its ``revert`` was called, and every
applied id is registered.

INVARIANT: Rule failures are logged and isolated, never propagated.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from calmguard.domain.context import RuleContext
    from calmguard.domain.types import RuleId
    from calmguard.rules.base import Rule

logger = logging.getLogger(__name__)


class RuleRegistry:
    """Per-page-context rule collection."""

    def __init__(self) -> None:
        self._rules: dict[RuleId, Rule] = {}
        # dict for insertion order; values unused
        self._applied: dict[RuleId, None] = {}

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def register(self, rule: Rule) -> None:
        """Insert *rule*, replacing any rule with the same id."""
        if rule.id in self._rules:
            logger.warning("Rule %s is already registered. Overwriting.", rule.id)
            if rule.id in self._applied and self._rules[rule.id] is not rule:
                self._revert(self._rules[rule.id])
        self._rules[rule.id] = rule

    def unregister(self, rule_id: RuleId) -> None:
        """Remove a rule, reverting it first if it is applied."""
        rule = self._rules.get(rule_id)
        if rule is None:
            return
        if rule_id in self._applied:
            self._revert(rule)
        del self._rules[rule_id]

    def get_rule(self, rule_id: RuleId) -> Rule | None:
        return self._rules.get(rule_id)

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules.values())

    @property
    def applied_rule_ids(self) -> frozenset[RuleId]:
        return frozenset(self._applied)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def apply_rules(self, context: RuleContext) -> None:
        """Bring every rule in line with *context*, in registration order."""
        override = context.override
        for rule in list(self._rules.values()):
            if not self._permits(rule, context):
                if rule.id in self._applied:
                    self._revert(rule)
                continue

            if override is not None and override.enabled is False:
                if rule.id in self._applied:
                    self._revert(rule)
                continue

            if override is not None and override.allowed_rule_ids is not None:
                if rule.id not in override.allowed_rule_ids:
                    if rule.id in self._applied:
                        self._revert(rule)
                    continue

            if rule.id in self._applied:
                continue

            try:
                rule.apply(context)
            except Exception:
                logger.warning("Error applying rule %s", rule.id, exc_info=True)
                continue
            self._applied[rule.id] = None
            logger.debug("Applied rule %s on %s", rule.id, context.domain or context.url)

    def revert_all(self) -> None:
        """Revert every applied rule, newest first, and clear the applied set."""
        for rule_id in reversed(list(self._applied)):
            rule = self._rules.get(rule_id)
            if rule is not None:
                self._revert(rule)
        self._applied.clear()

    def reapply(self, context: RuleContext) -> None:
        """Revert everything, then apply against *context* from scratch."""
        self.revert_all()
        self.apply_rules(context)

    def teardown(self) -> None:
        """Revert everything and forget all rules. Used once per page context."""
        self.revert_all()
        self._rules.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _permits(rule: Rule, context: RuleContext) -> bool:
        try:
            return bool(rule.applies(context))
        except Exception:
            logger.warning("Error evaluating rule %s", rule.id, exc_info=True)
            return False

    def _revert(self, rule: Rule) -> None:
        self._applied.pop(rule.id, None)
        try:
            rule.revert()
        except Exception:
            logger.warning("Error reverting rule %s", rule.id, exc_info=True)
        else:
            logger.debug("Reverted rule %s", rule.id)
