"""Schedule configuration and clock state models.

A schedule is a tagged union: exactly one of :class:`FixedSchedule` or
:class:`AstronomicalSchedule` is active at a time. Switching kinds is a full
replacement, never a merge.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class FixedSchedule(BaseModel):
    """Calm window between two wall-clock times, possibly crossing midnight."""

    model_config = {"frozen": True}

    kind: Literal["fixed"] = "fixed"
    sleep_start: str = "22:00"
    sleep_end: str = "07:00"
    timezone: str | None = None

    @field_validator("sleep_start", "sleep_end")
    @classmethod
    def _check_hhmm(cls, value: str) -> str:
        if not HHMM_RE.match(value):
            msg = f"expected HH:mm, got {value!r}"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _check_not_degenerate(self) -> FixedSchedule:
        if self.sleep_start == self.sleep_end:
            msg = "sleep_start and sleep_end must differ"
            raise ValueError(msg)
        return self


class AstronomicalSchedule(BaseModel):
    """Calm window from (sunset - offset) until (sunrise + offset)."""

    model_config = {"frozen": True}

    kind: Literal["astronomical"] = "astronomical"
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    offset_before_sunset_minutes: int = 0
    offset_after_sunrise_minutes: int = 0


ScheduleConfig = Annotated[
    FixedSchedule | AstronomicalSchedule,
    Field(discriminator="kind"),
]

DEFAULT_SCHEDULE = FixedSchedule(sleep_start="22:00", sleep_end="07:00")


class ClockState(BaseModel):
    """Read-only snapshot of the schedule clock.

    A fresh instance is produced on every recomputation, so holding on to
    one never observes later changes.
    """

    model_config = {"frozen": True}

    current_time: datetime
    calm_active: bool = False
    next_transition_at: datetime | None = None
    schedule: ScheduleConfig = Field(default_factory=lambda: DEFAULT_SCHEDULE)
