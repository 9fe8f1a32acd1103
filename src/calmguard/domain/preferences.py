"""User preferences: per-domain overrides and the persisted settings shape."""

from __future__ import annotations

from pydantic import BaseModel, Field

from calmguard.domain.schedule import DEFAULT_SCHEDULE, ScheduleConfig


class DomainOverride(BaseModel):
    """Per-domain narrowing of rule application.

    ``enabled=False`` disables every rule on the domain. A present
    ``allowed_rule_ids`` restricts rules to that set. Neither set means
    "use global defaults".
    """

    model_config = {"frozen": True}

    enabled: bool | None = None
    allowed_rule_ids: frozenset[str] | None = None

    @property
    def is_default(self) -> bool:
        return self.enabled is None and self.allowed_rule_ids is None


class UserSettings(BaseModel):
    """Everything the settings store persists.

    ``enabled_rule_ids`` empty means every rule is enabled.
    """

    model_config = {"frozen": True}

    schedule: ScheduleConfig = Field(default_factory=lambda: DEFAULT_SCHEDULE)
    domain_overrides: dict[str, DomainOverride] = Field(default_factory=dict)
    enabled_rule_ids: list[str] = Field(default_factory=list)
    extension_enabled: bool = True


def resolve_override(
    domain: str,
    overrides: dict[str, DomainOverride],
    enabled_rule_ids: list[str] | frozenset[str] | None = None,
) -> DomainOverride | None:
    """Return the effective override for *domain*.

    The global ``enabled_rule_ids`` list (empty = all rules) is folded into
    the allow-list: a domain allow-list is intersected with it, and a domain
    without one inherits it. Returns None when nothing narrows the defaults.

    Examples:
        >>> resolve_override("a.com", {}) is None
        True
        >>> sorted(resolve_override("a.com", {}, ["x"]).allowed_rule_ids)
        ['x']
    """
    override = overrides.get(domain)
    global_allowed = frozenset(enabled_rule_ids) if enabled_rule_ids else None

    if override is None:
        if global_allowed is None:
            return None
        return DomainOverride(allowed_rule_ids=global_allowed)

    if global_allowed is None:
        return override

    allowed = (
        global_allowed
        if override.allowed_rule_ids is None
        else override.allowed_rule_ids & global_allowed
    )
    return DomainOverride(enabled=override.enabled, allowed_rule_ids=allowed)
