"""ClockHost — the single long-lived owner of the schedule clock.

Loads user settings, runs the :class:`ScheduleClock`, answers page
requests, persists preference changes, and pushes
:class:`CalmStateChanged` to every page whenever the effective state moves.

While the extension is disabled calm mode is reported as inactive
everywhere, whatever the schedule says.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from calmguard.config.models import ClockConfig
from calmguard.domain.preferences import UserSettings, resolve_override
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
from calmguard.services.clock import ScheduleClock, local_now

if TYPE_CHECKING:
    from calmguard.domain.schedule import ClockState
    from calmguard.domain.windows import SolarCalculator
    from calmguard.infrastructure.store import SettingsStore
    from calmguard.infrastructure.timers import Scheduler
    from calmguard.messaging.transport import LocalTransport
    from calmguard.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class ClockHost:
    """Clock-side endpoint of the :class:`LocalTransport`."""

    def __init__(
        self,
        store: SettingsStore,
        transport: LocalTransport,
        *,
        scheduler: Scheduler,
        calculator: SolarCalculator | None = None,
        plugins: PluginManager | None = None,
        now: Callable[[], datetime] = local_now,
        config: ClockConfig | None = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._scheduler = scheduler
        self._calculator = calculator
        self._plugins = plugins
        self._now = now
        self._config = config or ClockConfig()
        self._settings: UserSettings = UserSettings()
        self._clock: ScheduleClock | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._handling = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def started(self) -> bool:
        return self._clock is not None

    @property
    def settings(self) -> UserSettings:
        return self._settings

    def start(self) -> None:
        """Load settings, start the clock, and announce the initial state."""
        if self._clock is not None:
            return
        self._settings = self._store.load_or_default()
        self._clock = ScheduleClock(
            self._settings.schedule,
            scheduler=self._scheduler,
            calculator=self._calculator,
            now=self._now,
            safety_poll_seconds=self._config.safety_poll_seconds,
            wake_buffer_ms=self._config.wake_buffer_ms,
        )
        self._unsubscribe = self._clock.on_state_change(self._on_clock_change)
        self._transport.bind_clock(self)
        self._clock.start()
        logger.info("Clock host started with %s schedule", self._settings.schedule.kind)
        self.broadcast()

    def stop(self) -> None:
        if self._clock is None:
            return
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._clock.stop()
        self._clock = None
        self._transport.unbind_clock()
        logger.info("Clock host stopped")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def clock_state(self) -> ClockState | None:
        return self._clock.get_state() if self._clock is not None else None

    @property
    def calm_active(self) -> bool:
        """Effective calm state: the schedule's verdict gated by the master switch."""
        state = self.clock_state()
        return bool(state and state.calm_active and self._settings.extension_enabled)

    def state_for(self, domain: str) -> CalmStateResponse:
        state = self.clock_state()
        return CalmStateResponse(
            calm_active=self.calm_active,
            current_time=state.current_time if state is not None else self._now(),
            override=resolve_override(
                domain,
                self._settings.domain_overrides,
                self._settings.enabled_rule_ids,
            ),
            next_transition_at=state.next_transition_at if state is not None else None,
            extension_enabled=self._settings.extension_enabled,
        )

    def broadcast(self) -> int:
        """Push the current state to every connected page."""
        state = self.clock_state()
        message = CalmStateChanged(
            calm_active=self.calm_active,
            overrides_by_domain=dict(self._settings.domain_overrides),
            enabled_rule_ids=list(self._settings.enabled_rule_ids),
            current_time=state.current_time if state is not None else None,
        )
        delivered = self._transport.broadcast(message)
        logger.debug("Broadcast calm_active=%s to %d page(s)", message.calm_active, delivered)
        return delivered

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def handle(self, request: Any) -> CalmStateResponse | Ack:
        """Answer one page request. Never raises.

        Changes are saved before they take effect; a failed save leaves the
        running state untouched.
        """
        if isinstance(request, GetCalmState):
            return self.state_for(request.domain)
        if self._clock is None:
            return Ack(ok=False, error="clock host is not running")

        settings = self._settings
        if isinstance(request, UpdateSchedule):
            updated = settings.model_copy(update={"schedule": request.schedule})
        elif isinstance(request, SetDomainOverride):
            overrides = dict(settings.domain_overrides)
            if request.override is None or request.override.is_default:
                overrides.pop(request.domain, None)
            else:
                overrides[request.domain] = request.override
            updated = settings.model_copy(update={"domain_overrides": overrides})
        elif isinstance(request, SetEnabledRules):
            updated = settings.model_copy(update={"enabled_rule_ids": list(request.rule_ids)})
        elif isinstance(request, SetExtensionEnabled):
            updated = settings.model_copy(update={"extension_enabled": request.enabled})
        else:
            return Ack(ok=False, error=f"unsupported request: {type(request).__name__}")

        try:
            self._store.save(updated)
        except OSError as exc:
            logger.warning("Failed to persist settings", exc_info=True)
            return Ack(ok=False, error=f"could not save settings: {exc}")

        self._settings = updated
        if isinstance(request, UpdateSchedule):
            # A flip here is broadcast once below, not from the listener.
            self._handling = True
            try:
                self._clock.update_schedule(request.schedule)
            finally:
                self._handling = False

        self.broadcast()
        return Ack(ok=True, data={"calm_active": self.calm_active})

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on_clock_change(self, state: ClockState) -> None:
        if not self._settings.extension_enabled:
            return
        if not self._handling:
            self.broadcast()
        if self._plugins is not None:
            self._plugins.notify_state_changed(
                calm_active=state.calm_active,
                next_transition_at=state.next_transition_at,
            )
