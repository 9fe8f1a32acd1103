"""Message shapes exchanged between the clock host and page hosts.

Every message is a frozen pydantic model tagged by ``type``. Requests flow
page → clock and get exactly one response; :class:`CalmStateChanged` is
pushed clock → page without a reply.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from calmguard.domain.preferences import DomainOverride
from calmguard.domain.schedule import ScheduleConfig

# --- Requests (page → clock) ---


class GetCalmState(BaseModel):
    """Ask for the current calm state as seen from *domain*."""

    model_config = {"frozen": True}

    type: Literal["get_calm_state"] = "get_calm_state"
    domain: str = ""


class UpdateSchedule(BaseModel):
    """Replace the active schedule."""

    model_config = {"frozen": True}

    type: Literal["update_schedule"] = "update_schedule"
    schedule: ScheduleConfig


class SetDomainOverride(BaseModel):
    """Set (or, with ``override=None``, remove) the override for *domain*."""

    model_config = {"frozen": True}

    type: Literal["set_domain_override"] = "set_domain_override"
    domain: str
    override: DomainOverride | None = None


class SetEnabledRules(BaseModel):
    """Replace the global enabled-rule list (empty = all rules)."""

    model_config = {"frozen": True}

    type: Literal["set_enabled_rules"] = "set_enabled_rules"
    rule_ids: list[str] = Field(default_factory=list)


class SetExtensionEnabled(BaseModel):
    """Master switch; when disabled calm mode is reported inactive everywhere."""

    model_config = {"frozen": True}

    type: Literal["set_extension_enabled"] = "set_extension_enabled"
    enabled: bool


Request = Annotated[
    GetCalmState | UpdateSchedule | SetDomainOverride | SetEnabledRules | SetExtensionEnabled,
    Field(discriminator="type"),
]

# --- Responses (clock → page) ---


class CalmStateResponse(BaseModel):
    model_config = {"frozen": True}

    type: Literal["calm_state"] = "calm_state"
    calm_active: bool
    current_time: datetime
    override: DomainOverride | None = None
    next_transition_at: datetime | None = None
    extension_enabled: bool = True


class Ack(BaseModel):
    model_config = {"frozen": True}

    type: Literal["ack"] = "ack"
    ok: bool
    error: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


Response = Annotated[CalmStateResponse | Ack, Field(discriminator="type")]

# --- Push (clock → every page) ---


class CalmStateChanged(BaseModel):
    model_config = {"frozen": True}

    type: Literal["calm_state_changed"] = "calm_state_changed"
    calm_active: bool
    overrides_by_domain: dict[str, DomainOverride] = Field(default_factory=dict)
    enabled_rule_ids: list[str] = Field(default_factory=list)
    current_time: datetime | None = None


REQUEST_ADAPTER: TypeAdapter[Any] = TypeAdapter(Request)
RESPONSE_ADAPTER: TypeAdapter[Any] = TypeAdapter(Response)
