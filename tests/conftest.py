"""Shared pytest fixtures and test helpers for calmguard tests."""

from __future__ import annotations

import time as _time
from collections.abc import Callable, Iterator
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from calmguard.domain.context import RuleContext, build_rule_context
from calmguard.domain.windows import SolarTimes, SolarUnavailableError
from calmguard.infrastructure.document import Document, Element, MediaElement
from calmguard.infrastructure.gestures import INPUT_EVENTS, GestureTracker

START = datetime(2024, 3, 15, 12, 0, tzinfo=UTC)
# POSIX rule for Europe/Berlin; needs no tz database.
BERLIN_RULES = "CET-1CEST,M3.5.0,M10.5.0/3"


def at(hhmm: str, day: int = 15) -> datetime:
    """Aware UTC datetime on 2024-03-*day* at *hhmm*."""
    hour, minute = (int(part) for part in hhmm.split(":"))
    return datetime(2024, 3, day, hour, minute, tzinfo=UTC)


class ManualTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic stand-in for the asyncio scheduler.

    Time only moves when a test calls :meth:`advance`; :meth:`now` is the
    matching wall clock, usable as a clock ``now`` source.
    """

    def __init__(self, start: datetime = START) -> None:
        self.start = start
        self.elapsed = 0.0
        self.timers: list[ManualTimer] = []

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.elapsed + max(0.0, delay), callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return sorted(
            (t for t in self.timers if not t.cancelled and not t.fired),
            key=lambda t: t.due,
        )

    def next_delay(self) -> float | None:
        pending = self.pending
        return pending[0].due - self.elapsed if pending else None

    def advance(self, seconds: float) -> None:
        """Move time forward, firing every timer that falls due on the way."""
        target = self.elapsed + seconds
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = due[0]
            self.elapsed = timer.due
            timer.fired = True
            timer.callback()
        self.elapsed = target

    def advance_to(self, moment: datetime) -> None:
        self.advance((moment - self.now()).total_seconds())


class FakeSolarCalculator:
    """Fixed sunrise/sunset every day; optionally reports polar conditions."""

    def __init__(
        self,
        sunrise: time = time(6, 0),
        sunset: time = time(20, 0),
        *,
        unavailable: bool = False,
    ) -> None:
        self.sunrise = sunrise
        self.sunset = sunset
        self.unavailable = unavailable
        self.calls: list[date] = []

    def times(self, day: date, latitude: float, longitude: float, tz: tzinfo) -> SolarTimes:
        self.calls.append(day)
        if self.unavailable:
            msg = f"no sunrise on {day}"
            raise SolarUnavailableError(msg)
        return SolarTimes(
            sunrise=datetime.combine(day, self.sunrise, tzinfo=tz),
            sunset=datetime.combine(day, self.sunset, tzinfo=tz),
        )


class FakeClock:
    """Monotonic seconds for gesture tracking, moved by hand."""

    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def tick(self, ms: float) -> None:
        self.value += ms / 1000.0


# ---------------------------------------------------------------------------
# Page helpers (used across rule and host test modules)
# ---------------------------------------------------------------------------


def snapshot(document: Document) -> list[Any]:
    """Everything a page visitor could observe, as a comparable value."""
    nodes = []
    for element in document.iter_elements():
        entry: dict[str, Any] = {
            "tag": element.tag,
            "attributes": dict(element.attributes),
            "style": dict(element.style),
            "text": element.text,
            "children": [id(child) for child in element.children],
            "scroll_top": element.scroll_top,
        }
        if isinstance(element, MediaElement):
            entry["muted"] = element.muted
            entry["paused"] = element.paused
        nodes.append(entry)
    hooks = {
        "gate": document.playback_gate,
        "observers": document.observer_count,
        "listeners": {t: document.listener_count(t) for t in ("play", *INPUT_EVENTS)},
    }
    return [nodes, hooks]


def busy_page(url: str = "https://video.example.com/home") -> Document:
    """A page with autoplaying media, a long feed and some thumbnails."""
    document = Document(url, viewport_height=800)
    body = document.body
    body.append(MediaElement("video", {"autoplay": "", "src": "a.mp4"}))
    body.append(MediaElement("audio", {"autoplay": "autoplay"}, muted=False))
    body.append(MediaElement("video", {"src": "quiet.mp4"}, muted=True))
    feed = body.append(
        Element(
            "div",
            {"role": "feed", "class": "timeline"},
            style={"overflow": "auto"},
            scroll_height=10_000,
            client_height=700,
        )
    )
    feed.append(Element("article", text="post"))
    body.append(Element("img", {"src": "/thumb/1.jpg", "width": "120", "height": "90"}))
    return document


def calm(document: Document, **kwargs: Any) -> RuleContext:
    return build_rule_context(document, calm_active=True, **kwargs)


def not_calm(document: Document, **kwargs: Any) -> RuleContext:
    return build_rule_context(document, calm_active=False, **kwargs)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def solar() -> FakeSolarCalculator:
    return FakeSolarCalculator()


@pytest.fixture
def gesture_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def document() -> Document:
    return Document("https://www.example.com/watch?v=1")


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "settings.json"


@pytest.fixture
def _isolated_env(
    tmp_path: Path,
    settings_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Point the CLI at a temp settings file with no config file in reach.

    Use via ``@pytest.mark.usefixtures("_isolated_env")`` on command test
    classes.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CALMGUARD_CONFIG", raising=False)
    monkeypatch.setenv("CALMGUARD_STORE__PATH", str(settings_path))


@pytest.fixture
def berlin_host(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run with the host zone set to Central European time (DST on 29 March 2026)."""
    if not hasattr(_time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", BERLIN_RULES)
    _time.tzset()
    yield
    monkeypatch.undo()
    _time.tzset()


@pytest.fixture
def page() -> Document:
    return busy_page()


@pytest.fixture
def gestures(page: Document, gesture_clock: FakeClock) -> GestureTracker:
    return GestureTracker(page, trust_window_ms=100, clock=gesture_clock)
