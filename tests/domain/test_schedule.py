"""Tests for schedule configuration models."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from calmguard.domain.schedule import (
    DEFAULT_SCHEDULE,
    AstronomicalSchedule,
    ClockState,
    FixedSchedule,
    ScheduleConfig,
)
from tests.conftest import at


class TestFixedSchedule:
    def test_defaults(self) -> None:
        assert DEFAULT_SCHEDULE.sleep_start == "22:00"
        assert DEFAULT_SCHEDULE.sleep_end == "07:00"
        assert DEFAULT_SCHEDULE.timezone is None

    @pytest.mark.parametrize("value", ["24:00", "7:00", "07:60", "0700", ""])
    def test_rejects_bad_hhmm(self, value: str) -> None:
        with pytest.raises(ValidationError):
            FixedSchedule(sleep_start=value, sleep_end="07:00")

    def test_rejects_equal_start_end(self) -> None:
        with pytest.raises(ValidationError, match="must differ"):
            FixedSchedule(sleep_start="09:00", sleep_end="09:00")

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            DEFAULT_SCHEDULE.sleep_start = "21:00"  # type: ignore[misc]


class TestAstronomicalSchedule:
    @pytest.mark.parametrize(("lat", "lon"), [(91, 0), (-91, 0), (0, 181), (0, -181)])
    def test_rejects_out_of_range(self, lat: float, lon: float) -> None:
        with pytest.raises(ValidationError):
            AstronomicalSchedule(latitude=lat, longitude=lon)

    def test_offsets_default_to_zero(self) -> None:
        schedule = AstronomicalSchedule(latitude=10, longitude=20)
        assert schedule.offset_before_sunset_minutes == 0
        assert schedule.offset_after_sunrise_minutes == 0


class TestScheduleUnion:
    def test_discriminates_on_kind(self) -> None:
        adapter = TypeAdapter(ScheduleConfig)
        parsed = adapter.validate_python({"kind": "astronomical", "latitude": 1, "longitude": 2})
        assert isinstance(parsed, AstronomicalSchedule)
        parsed = adapter.validate_python({"kind": "fixed", "sleep_start": "23:00"})
        assert isinstance(parsed, FixedSchedule)

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TypeAdapter(ScheduleConfig).validate_python({"kind": "lunar"})


class TestClockState:
    def test_defaults(self) -> None:
        state = ClockState(current_time=at("12:00"))
        assert state.calm_active is False
        assert state.next_transition_at is None
        assert state.schedule == DEFAULT_SCHEDULE

    def test_copy_is_independent(self) -> None:
        state = ClockState(current_time=at("12:00"))
        copy = state.model_copy()
        assert copy == state
        assert copy is not state
