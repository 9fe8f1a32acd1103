"""RuleContext — the immutable input to every rule evaluation pass."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from calmguard.domain.preferences import DomainOverride
    from calmguard.infrastructure.document import Document


@dataclass(frozen=True)
class RuleContext:
    """Snapshot of everything a rule may consult.

    Built fresh for every (re)application and never mutated. ``document``
    is a live handle: the only non-value member.
    """

    url: str
    domain: str
    current_time: datetime
    calm_active: bool
    document: Document
    override: DomainOverride | None = None


def build_rule_context(
    document: Document,
    *,
    calm_active: bool,
    override: DomainOverride | None = None,
    current_time: datetime | None = None,
) -> RuleContext:
    """Build a context from calm state and the document's current location.

    *current_time* is normally the clock host's timestamp; when absent the
    local UTC time is used.
    """
    return RuleContext(
        url=document.url,
        domain=document.domain,
        current_time=current_time or datetime.now(UTC),
        calm_active=calm_active,
        document=document,
        override=override,
    )
