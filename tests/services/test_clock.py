"""Tests for ScheduleClock — state, wake-ups, and change notification."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from calmguard.domain.schedule import AstronomicalSchedule, ClockState, FixedSchedule
from calmguard.services.clock import ScheduleClock
from tests.conftest import FakeSolarCalculator, ManualScheduler, at

NIGHT = FixedSchedule(sleep_start="22:00", sleep_end="07:00")


def make_clock(scheduler: ManualScheduler, schedule=NIGHT, **kwargs) -> ScheduleClock:
    return ScheduleClock(schedule, scheduler=scheduler, now=scheduler.now, **kwargs)


class TestInitialState:
    def test_outside_window(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler)
        state = clock.get_state()
        assert state.calm_active is False
        assert state.current_time == at("12:00")
        assert state.next_transition_at == at("22:00")
        assert state.schedule == NIGHT

    def test_inside_window(self) -> None:
        scheduler = ManualScheduler(at("23:30"))
        state = make_clock(scheduler).get_state()
        assert state.calm_active is True
        assert state.next_transition_at == at("07:00", day=16)

    def test_not_running_until_started(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler)
        assert clock.running is False
        assert scheduler.pending == []

    def test_get_state_returns_snapshot(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler)
        first = clock.get_state()
        clock.update_schedule(FixedSchedule(sleep_start="11:00", sleep_end="13:00"))
        assert first.calm_active is False
        assert clock.get_state().calm_active is True


class TestLifecycle:
    def test_start_is_idempotent(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler)
        clock.start()
        clock.start()
        assert clock.running
        assert len(scheduler.pending) == 1

    def test_stop_cancels_wakeup(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler)
        clock.start()
        clock.stop()
        clock.stop()
        assert clock.running is False
        assert scheduler.pending == []

    def test_restart_after_stop(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler)
        clock.start()
        clock.stop()
        clock.start()
        assert len(scheduler.pending) == 1


class TestWakeups:
    def test_wakes_buffer_before_transition(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler, wake_buffer_ms=100)
        clock.start()
        assert scheduler.next_delay() == pytest.approx(10 * 3600 - 0.1)

    def test_flips_exactly_at_transition(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler)
        seen: list[ClockState] = []
        clock.on_state_change(seen.append)
        clock.start()

        scheduler.advance(10 * 3600 - 0.1)
        assert clock.get_state().calm_active is False
        assert seen == []

        scheduler.advance(0.1)
        assert clock.get_state().calm_active is True
        assert len(seen) == 1
        assert seen[0].calm_active is True
        assert seen[0].next_transition_at == at("07:00", day=16)

    def test_notifies_only_on_flips(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler, safety_poll_seconds=60)
        seen: list[bool] = []
        clock.on_state_change(lambda state: seen.append(state.calm_active))
        clock.start()
        scheduler.advance(48 * 3600)
        assert seen == [True, False, True, False]

    def test_degenerate_schedule_uses_safety_poll(self, scheduler: ManualScheduler) -> None:
        broken = FixedSchedule.model_construct(
            kind="fixed", sleep_start="09:00", sleep_end="09:00", timezone=None
        )
        clock = make_clock(scheduler, broken, safety_poll_seconds=60)
        clock.start()
        assert clock.get_state().calm_active is False
        assert clock.get_state().next_transition_at is None
        assert scheduler.next_delay() == pytest.approx(60)
        scheduler.advance(60)
        assert scheduler.next_delay() == pytest.approx(60)

    def test_polar_astronomical_uses_safety_poll(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(
            scheduler,
            AstronomicalSchedule(latitude=80, longitude=0),
            calculator=FakeSolarCalculator(unavailable=True),
            safety_poll_seconds=30,
        )
        clock.start()
        assert clock.get_state().calm_active is False
        assert scheduler.next_delay() == pytest.approx(30)

    def test_missed_transition_is_caught_up(self) -> None:
        scheduler = ManualScheduler(at("21:00"))
        drift = {"seconds": 0.0}

        def now():
            return scheduler.now() + timedelta(seconds=drift["seconds"])

        clock = ScheduleClock(NIGHT, scheduler=scheduler, now=now)
        clock.start()
        # host slept through the start of the window
        drift["seconds"] = 2 * 3600
        scheduler.advance(3600 - 0.1)
        assert clock.get_state().calm_active is True


class TestUpdatesAndListeners:
    def test_update_schedule_recomputes_immediately(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler)
        seen: list[ClockState] = []
        clock.on_state_change(seen.append)
        clock.start()
        clock.update_schedule(FixedSchedule(sleep_start="11:00", sleep_end="13:00"))
        assert clock.get_state().calm_active is True
        assert clock.get_state().next_transition_at == at("13:00")
        assert len(seen) == 1
        assert len(scheduler.pending) == 1

    def test_update_without_flip_is_silent(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler)
        seen: list[ClockState] = []
        clock.on_state_change(seen.append)
        clock.update_schedule(FixedSchedule(sleep_start="23:00", sleep_end="06:00"))
        assert seen == []
        assert clock.get_state().next_transition_at == at("23:00")

    def test_failing_listener_is_isolated(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler)
        seen: list[ClockState] = []

        def broken(_state: ClockState) -> None:
            raise RuntimeError("listener bug")

        clock.on_state_change(broken)
        clock.on_state_change(seen.append)
        clock.update_schedule(FixedSchedule(sleep_start="11:00", sleep_end="13:00"))
        assert len(seen) == 1

    def test_unsubscribe(self, scheduler: ManualScheduler) -> None:
        clock = make_clock(scheduler)
        seen: list[ClockState] = []
        unsubscribe = clock.on_state_change(seen.append)
        unsubscribe()
        unsubscribe()
        clock.update_schedule(FixedSchedule(sleep_start="11:00", sleep_end="13:00"))
        assert seen == []


@pytest.mark.usefixtures("berlin_host")
class TestHostZoneDst:
    def test_flips_at_local_end_on_spring_forward_night(self) -> None:
        scheduler = ManualScheduler(datetime(2026, 3, 28, 23, 0).astimezone())
        clock = ScheduleClock(
            NIGHT,
            scheduler=scheduler,
            now=lambda: scheduler.now().astimezone(),
        )
        clock.start()
        assert clock.get_state().calm_active is True

        scheduler.advance_to(datetime(2026, 3, 29, 4, 59, tzinfo=UTC))
        assert clock.get_state().calm_active is True
        scheduler.advance_to(datetime(2026, 3, 29, 5, 0, tzinfo=UTC))
        assert clock.get_state().calm_active is False
        assert clock.get_state().current_time.hour == 7
