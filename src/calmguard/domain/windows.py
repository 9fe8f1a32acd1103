"""Calm-window math for fixed and astronomical schedules.

Everything here is pure: given a schedule, a solar calculator and an
instant, decide whether the instant is inside the calm window and when the
answer next flips. Bad input never raises; a window that cannot be built is
treated as "never active" with no known transition.

Astronomical sign convention, used uniformly:
    start = sunset  - offset_before_sunset_minutes
    end   = sunrise + offset_after_sunrise_minutes
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import NamedTuple, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from calmguard.domain.schedule import (
    HHMM_RE,
    AstronomicalSchedule,
    FixedSchedule,
    ScheduleConfig,
)

logger = logging.getLogger(__name__)


class SolarUnavailableError(Exception):
    """The sun does not rise or set on the requested day and location."""


class SolarTimes(NamedTuple):
    sunrise: datetime
    sunset: datetime


class SolarCalculator(Protocol):
    """Provides sunrise and sunset for a calendar day and location.

    Implementations must be deterministic per (day, location) and raise
    :class:`SolarUnavailableError` when there is no sunrise or sunset.
    """

    def times(self, day: date, latitude: float, longitude: float, tz: tzinfo) -> SolarTimes: ...


@dataclass(frozen=True)
class Window:
    """One day's calm window. ``start > end`` means it crosses midnight."""

    start: datetime
    end: datetime

    @property
    def overnight(self) -> bool:
        return self.start > self.end

    @property
    def degenerate(self) -> bool:
        return self.start == self.end

    def contains(self, moment: datetime) -> bool:
        """Start is inclusive, end is exclusive. Degenerate windows contain nothing."""
        if self.degenerate:
            return False
        if self.overnight:
            return moment >= self.start or moment < self.end
        return self.start <= moment < self.end


def parse_hhmm(value: str) -> time:
    """Parse ``HH:mm`` into a :class:`datetime.time`.

    Examples:
        >>> parse_hhmm("07:30")
        datetime.time(7, 30)
    """
    match = HHMM_RE.match(value)
    if match is None:
        msg = f"expected HH:mm, got {value!r}"
        raise ValueError(msg)
    return time(int(match.group(1)), int(match.group(2)))


class ScheduleEvaluator:
    """Answers window questions for one schedule.

    Parameters:
        schedule: The active schedule configuration.
        calculator: Sunrise/sunset source, required for astronomical schedules.
    """

    def __init__(self, schedule: ScheduleConfig, calculator: SolarCalculator | None = None) -> None:
        self.schedule = schedule
        self._calculator = calculator

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def in_window(self, now: datetime) -> bool:
        """Whether *now* falls inside today's calm window."""
        now = _aware(now)
        window = self.window_on(self._local_day(now), now)
        if window is None:
            return False
        return window.contains(now)

    def next_transition(self, now: datetime) -> datetime | None:
        """The soonest instant strictly after *now* at which :meth:`in_window` flips.

        Returns None when no window can be computed (invalid or degenerate
        schedule, missing solar data).
        """
        now = _aware(now)
        day = self._local_day(now)
        if day is None:
            return None
        today = self.window_on(day, now)
        if today is None or today.degenerate:
            return None

        candidate: datetime | None
        if today.overnight:
            if now < today.end:
                # inside, after midnight
                candidate = today.end
            elif now >= today.start:
                # inside, before midnight: ends on tomorrow's morning
                tomorrow = self.window_on(day + timedelta(days=1), now)
                candidate = tomorrow.end if tomorrow is not None else None
            else:
                candidate = today.start
        elif today.start <= now < today.end:
            candidate = today.end
        elif now < today.start:
            candidate = today.start
        else:
            tomorrow = self.window_on(day + timedelta(days=1), now)
            candidate = tomorrow.start if tomorrow is not None else None

        if candidate is None or candidate <= now:
            return None
        return candidate

    def window_on(self, day: date | None, now: datetime) -> Window | None:
        """Build the calm window for local calendar *day*, or None if impossible."""
        if day is None:
            return None
        tz = self._zone(now)
        if tz is None:
            return None
        host_local = self._follows_host(now)
        schedule = self.schedule
        try:
            if isinstance(schedule, FixedSchedule):
                start = _wall_time(day, schedule.sleep_start, tz, host_local=host_local)
                end = _wall_time(day, schedule.sleep_end, tz, host_local=host_local)
            elif isinstance(schedule, AstronomicalSchedule):
                if self._calculator is None:
                    logger.warning("No solar calculator; astronomical window unavailable")
                    return None
                if host_local:
                    tz = datetime.combine(day, time(12)).astimezone().tzinfo or tz
                solar = self._calculator.times(day, schedule.latitude, schedule.longitude, tz)
                start = solar.sunset - timedelta(minutes=schedule.offset_before_sunset_minutes)
                end = solar.sunrise + timedelta(minutes=schedule.offset_after_sunrise_minutes)
            else:
                logger.warning("Unknown schedule type %r", type(schedule).__name__)
                return None
        except (SolarUnavailableError, ValueError, TypeError, AttributeError) as exc:
            logger.warning("Cannot compute calm window for %s: %s", day, exc)
            return None
        return Window(start=start, end=end)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _zone(self, now: datetime) -> tzinfo | None:
        """Fixed schedules may name a zone; otherwise use the zone of *now*."""
        name = getattr(self.schedule, "timezone", None)
        if name:
            try:
                return ZoneInfo(name)
            except (ZoneInfoNotFoundError, ValueError):
                logger.warning("Unknown timezone %r; calm window unavailable", name)
                return None
        return now.tzinfo

    def _follows_host(self, now: datetime) -> bool:
        """Whether bounds should follow the host zone's offset on each date.

        True when the schedule names no zone and *now* carries the host's
        current offset (as produced by ``datetime.now().astimezone()``). A
        fixed offset only describes today, so later days are localized on
        their own date.
        """
        if getattr(self.schedule, "timezone", None):
            return False
        if not isinstance(now.tzinfo, timezone):
            return False
        return now.utcoffset() == now.astimezone().utcoffset()

    def _local_day(self, now: datetime) -> date | None:
        tz = self._zone(now)
        if tz is None:
            return None
        return now.astimezone(tz).date()


def _aware(moment: datetime) -> datetime:
    """Interpret naive datetimes in the local zone."""
    if moment.tzinfo is None:
        return moment.astimezone()
    return moment


def _wall_time(day: date, hhmm: str, tz: tzinfo, *, host_local: bool) -> datetime:
    """*hhmm* on *day*; host-local times take that date's own UTC offset."""
    moment = datetime.combine(day, parse_hhmm(hhmm))
    if host_local:
        return moment.astimezone()
    return moment.replace(tzinfo=tz)
