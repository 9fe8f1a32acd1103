"""ScheduleClock — calm-state computation with self-scheduled wake-ups.

The clock never polls while a transition time is known. After each
recomputation it asks its scheduler to wake it a little before the next
flip (``wake_buffer_ms``), and again exactly at the flip if it woke early.
Only when no transition can be computed does it fall back to a safety poll.

INVARIANT: listeners run only when ``calm_active`` changes value, and a
failing listener never prevents the others from being notified.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from calmguard.domain.schedule import ClockState, ScheduleConfig
from calmguard.domain.windows import ScheduleEvaluator, SolarCalculator

if TYPE_CHECKING:
    from calmguard.infrastructure.timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

StateListener = Callable[[ClockState], None]


def local_now() -> datetime:
    """Current time as an aware datetime in the host's local zone."""
    return datetime.now().astimezone()


class ScheduleClock:
    """Owns the active schedule and the derived :class:`ClockState`.

    Parameters:
        schedule: Initial schedule configuration.
        scheduler: Timer source used for wake-ups.
        calculator: Sunrise/sunset provider for astronomical schedules.
        now: Time source returning aware datetimes.
        safety_poll_seconds: Wake-up interval when no transition is known.
        wake_buffer_ms: How far ahead of a transition to wake up.
    """

    def __init__(
        self,
        schedule: ScheduleConfig,
        *,
        scheduler: Scheduler,
        calculator: SolarCalculator | None = None,
        now: Callable[[], datetime] = local_now,
        safety_poll_seconds: float = 60.0,
        wake_buffer_ms: int = 100,
    ) -> None:
        self._scheduler = scheduler
        self._calculator = calculator
        self._now = now
        self._safety_poll = safety_poll_seconds
        self._buffer = wake_buffer_ms / 1000.0
        self._evaluator = ScheduleEvaluator(schedule, calculator)
        self._listeners: list[StateListener] = []
        self._timer: TimerHandle | None = None
        self._running = False
        self._state = ClockState(current_time=now(), schedule=schedule)
        self._recompute()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Begin the wake-up loop. No-op if already running."""
        if self._running:
            return
        self._running = True
        logger.debug("Schedule clock started")
        self._recompute()

    def stop(self) -> None:
        """Cancel any pending wake-up. No-op if already stopped."""
        self._cancel_timer()
        if self._running:
            self._running = False
            logger.debug("Schedule clock stopped")

    def update_schedule(self, schedule: ScheduleConfig) -> None:
        """Replace the schedule and recompute immediately."""
        self._evaluator = ScheduleEvaluator(schedule, self._calculator)
        logger.info("Schedule replaced with %s schedule", schedule.kind)
        self._recompute()

    def get_state(self) -> ClockState:
        """Return an independent snapshot of the current state."""
        return self._state.model_copy()

    def on_state_change(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener* for calm-state flips. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _recompute(self) -> None:
        now = self._now()
        calm_active = self._evaluator.in_window(now)
        previous = self._state.calm_active
        self._state = ClockState(
            current_time=now,
            calm_active=calm_active,
            next_transition_at=self._evaluator.next_transition(now),
            schedule=self._evaluator.schedule,
        )

        if calm_active != previous:
            logger.info(
                "Calm mode %s at %s",
                "activated" if calm_active else "deactivated",
                now.isoformat(),
            )
            self._emit(self._state.model_copy())

        if self._running:
            self._schedule_wakeup()

    def _emit(self, state: ClockState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.warning("Clock state listener failed", exc_info=True)

    def _schedule_wakeup(self) -> None:
        self._cancel_timer()
        next_at = self._state.next_transition_at

        if next_at is None:
            delay = self._safety_poll
        else:
            remaining = (next_at - self._now()).total_seconds()
            if remaining <= 0:
                # Missed the transition (drift or a late timer): catch up now.
                self._recompute()
                return
            delay = remaining - self._buffer if remaining > self._buffer else remaining

        self._timer = self._scheduler.call_later(delay, self._on_wakeup)
        logger.debug("Next clock wake-up in %.3fs", delay)

    def _on_wakeup(self) -> None:
        self._timer = None
        self._recompute()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
