"""Tests for ClockHost — request handling, persistence, and broadcasts."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pluggy
import pytest

from calmguard.domain.preferences import DomainOverride, UserSettings
from calmguard.domain.schedule import FixedSchedule
from calmguard.infrastructure.store import SettingsStore
from calmguard.messaging.protocol import (
    Ack,
    CalmStateChanged,
    CalmStateResponse,
    GetCalmState,
    SetDomainOverride,
    SetEnabledRules,
    SetExtensionEnabled,
    UpdateSchedule,
)
from calmguard.messaging.transport import LocalTransport, TransportError
from calmguard.plugins.manager import PluginManager
from calmguard.services.clock_host import ClockHost
from tests.conftest import FakeSolarCalculator, ManualScheduler, at

hookimpl = pluggy.HookimplMarker("calmguard")


class _Page:
    def __init__(self) -> None:
        self.received: list[CalmStateChanged] = []

    def receive(self, message: CalmStateChanged) -> None:
        self.received.append(message)


class _StateSpy:
    def __init__(self) -> None:
        self.calls: list[tuple[bool, datetime | None]] = []

    @hookimpl
    def calmguard_state_changed(
        self, calm_active: bool, next_transition_at: datetime | None
    ) -> None:
        self.calls.append((calm_active, next_transition_at))


@pytest.fixture
def transport() -> LocalTransport:
    return LocalTransport()


@pytest.fixture
def page(transport: LocalTransport) -> _Page:
    page = _Page()
    transport.connect_page(page)
    return page


@pytest.fixture
def spy() -> _StateSpy:
    return _StateSpy()


@pytest.fixture
def host(
    settings_path: Path,
    transport: LocalTransport,
    scheduler: ManualScheduler,
    solar: FakeSolarCalculator,
    spy: _StateSpy,
) -> ClockHost:
    plugins = PluginManager(builtins=False)
    plugins.register_plugin(spy, name="spy")
    return ClockHost(
        SettingsStore(settings_path),
        transport,
        scheduler=scheduler,
        calculator=solar,
        plugins=plugins,
        now=scheduler.now,
    )


class TestLifecycle:
    def test_start_broadcasts_initial_state(self, host: ClockHost, page: _Page) -> None:
        host.start()
        host.start()
        assert host.started
        assert host.settings == UserSettings()
        assert len(page.received) == 1
        assert page.received[0].calm_active is False
        assert page.received[0].current_time == at("12:00")

    def test_loads_stored_settings(
        self, host: ClockHost, settings_path: Path, page: _Page
    ) -> None:
        SettingsStore(settings_path).save(
            UserSettings(schedule=FixedSchedule(sleep_start="11:00", sleep_end="13:00"))
        )
        host.start()
        assert host.calm_active is True
        assert page.received[-1].calm_active is True

    def test_stop_unbinds(self, host: ClockHost, transport: LocalTransport) -> None:
        host.start()
        host.stop()
        host.stop()
        assert not host.started
        with pytest.raises(TransportError):
            transport.request(GetCalmState())

    def test_requests_before_start(self, host: ClockHost) -> None:
        response = host.handle(GetCalmState(domain="a.com"))
        assert isinstance(response, CalmStateResponse)
        assert response.calm_active is False
        ack = host.handle(SetExtensionEnabled(enabled=False))
        assert ack == Ack(ok=False, error="clock host is not running")


class TestTransitions:
    def test_scheduled_flip_broadcasts_and_notifies_plugins(
        self, host: ClockHost, page: _Page, scheduler: ManualScheduler, spy: _StateSpy
    ) -> None:
        host.start()
        scheduler.advance_to(at("22:00"))
        assert page.received[-1].calm_active is True
        assert spy.calls == [(True, at("07:00", day=16))]
        scheduler.advance_to(at("07:00", day=16))
        assert page.received[-1].calm_active is False
        assert [c[0] for c in spy.calls] == [True, False]


class TestRequests:
    def test_get_state_resolves_override(self, host: ClockHost, transport: LocalTransport) -> None:
        host.start()
        transport.request(
            SetDomainOverride(domain="a.com", override=DomainOverride(enabled=False))
        )
        transport.request(SetEnabledRules(rule_ids=["autoplay-block"]))
        response = transport.request(GetCalmState(domain="a.com"))
        assert response.override == DomainOverride(
            enabled=False, allowed_rule_ids=frozenset({"autoplay-block"})
        )
        other = transport.request(GetCalmState(domain="b.com"))
        assert other.override == DomainOverride(allowed_rule_ids=frozenset({"autoplay-block"}))

    def test_update_schedule_persists_and_broadcasts(
        self,
        host: ClockHost,
        transport: LocalTransport,
        page: _Page,
        settings_path: Path,
        spy: _StateSpy,
    ) -> None:
        host.start()
        schedule = FixedSchedule(sleep_start="11:00", sleep_end="13:00")
        ack = transport.request(UpdateSchedule(schedule=schedule))
        assert ack.ok
        assert ack.data == {"calm_active": True}
        assert page.received[-1].calm_active is True
        assert SettingsStore(settings_path).load().schedule == schedule
        assert spy.calls[-1][0] is True

    def test_disable_extension_reports_inactive(
        self, host: ClockHost, transport: LocalTransport, page: _Page, scheduler: ManualScheduler
    ) -> None:
        host.start()
        scheduler.advance_to(at("23:00"))
        assert host.calm_active is True
        transport.request(SetExtensionEnabled(enabled=False))
        assert page.received[-1].calm_active is False
        assert transport.request(GetCalmState()).calm_active is False
        assert transport.request(GetCalmState()).extension_enabled is False

        transport.request(SetExtensionEnabled(enabled=True))
        assert page.received[-1].calm_active is True

    def test_disabled_extension_suppresses_transition_broadcast(
        self, host: ClockHost, transport: LocalTransport, page: _Page, scheduler: ManualScheduler
    ) -> None:
        host.start()
        transport.request(SetExtensionEnabled(enabled=False))
        count = len(page.received)
        scheduler.advance_to(at("22:00"))
        assert len(page.received) == count

    def test_override_set_and_clear(
        self, host: ClockHost, transport: LocalTransport, page: _Page
    ) -> None:
        host.start()
        override = DomainOverride(allowed_rule_ids=frozenset({"thumbnail-dimming"}))
        transport.request(SetDomainOverride(domain="a.com", override=override))
        assert page.received[-1].overrides_by_domain == {"a.com": override}
        transport.request(SetDomainOverride(domain="a.com", override=DomainOverride()))
        assert page.received[-1].overrides_by_domain == {}
        transport.request(SetDomainOverride(domain="b.com", override=override))
        transport.request(SetDomainOverride(domain="b.com"))
        assert host.settings.domain_overrides == {}

    def test_enabled_rules_broadcast(
        self, host: ClockHost, transport: LocalTransport, page: _Page
    ) -> None:
        host.start()
        transport.request(SetEnabledRules(rule_ids=["audio-surprise-block"]))
        assert page.received[-1].enabled_rule_ids == ["audio-surprise-block"]

    def test_save_failure_is_reported(
        self,
        tmp_path: Path,
        transport: LocalTransport,
        scheduler: ManualScheduler,
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        host = ClockHost(
            SettingsStore(blocker / "settings.json"),
            transport,
            scheduler=scheduler,
            now=scheduler.now,
        )
        host.start()
        ack = transport.request(SetExtensionEnabled(enabled=False))
        assert ack.ok is False
        assert "could not save settings" in (ack.error or "")

    def test_update_that_flips_broadcasts_once(
        self, host: ClockHost, transport: LocalTransport, page: _Page, spy: _StateSpy
    ) -> None:
        host.start()
        count = len(page.received)
        schedule = FixedSchedule(sleep_start="11:00", sleep_end="13:00")
        transport.request(UpdateSchedule(schedule=schedule))
        assert len(page.received) == count + 1
        assert page.received[-1].calm_active is True
        assert [c[0] for c in spy.calls] == [True]


class TestSaveFailure:
    @pytest.fixture
    def broken_host(
        self, tmp_path: Path, transport: LocalTransport, scheduler: ManualScheduler
    ) -> ClockHost:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        host = ClockHost(
            SettingsStore(blocker / "settings.json"),
            transport,
            scheduler=scheduler,
            now=scheduler.now,
        )
        host.start()
        return host

    def test_schedule_change_is_not_applied(
        self, broken_host: ClockHost, transport: LocalTransport, page: _Page
    ) -> None:
        count = len(page.received)
        schedule = FixedSchedule(sleep_start="11:00", sleep_end="13:00")
        ack = transport.request(UpdateSchedule(schedule=schedule))
        assert ack.ok is False
        assert broken_host.settings == UserSettings()
        assert broken_host.clock_state().schedule == UserSettings().schedule
        assert transport.request(GetCalmState()).calm_active is False
        assert len(page.received) == count

    def test_override_change_is_not_applied(
        self, broken_host: ClockHost, transport: LocalTransport
    ) -> None:
        ack = transport.request(
            SetDomainOverride(domain="a.com", override=DomainOverride(enabled=False))
        )
        assert ack.ok is False
        assert transport.request(GetCalmState(domain="a.com")).override is None
