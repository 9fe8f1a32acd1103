"""PageHost — one per page context, keeps the document in line with calm state.

On start it collects rules from plugins, asks the clock host for the
current state and applies rules. It reapplies on every
:class:`CalmStateChanged`, on navigation, and when the page becomes
visible again.

If the clock host cannot be reached the page runs with calm mode inactive
and retries a bounded number of times.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from calmguard.config.models import RulesConfig, TransportConfig
from calmguard.domain.context import build_rule_context
from calmguard.domain.preferences import resolve_override
from calmguard.infrastructure.gestures import GestureTracker
from calmguard.messaging.protocol import CalmStateResponse, GetCalmState
from calmguard.messaging.transport import TransportError
from calmguard.rules import RuleServices
from calmguard.services.registry import RuleRegistry

if TYPE_CHECKING:
    from datetime import datetime

    from calmguard.domain.context import RuleContext
    from calmguard.domain.preferences import DomainOverride
    from calmguard.infrastructure.document import Document, MutationBatch, Subscription
    from calmguard.infrastructure.timers import Scheduler, TimerHandle
    from calmguard.messaging.protocol import CalmStateChanged
    from calmguard.messaging.transport import LocalTransport
    from calmguard.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class PageHost:
    """Page-side endpoint of the :class:`LocalTransport`."""

    def __init__(
        self,
        document: Document,
        transport: LocalTransport,
        *,
        scheduler: Scheduler,
        plugins: PluginManager,
        rules_config: RulesConfig | None = None,
        transport_config: TransportConfig | None = None,
        gesture_clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.document = document
        self.registry = RuleRegistry()
        self._transport = transport
        self._scheduler = scheduler
        self._plugins = plugins
        self._rules_config = rules_config or RulesConfig()
        self._transport_config = transport_config or TransportConfig()
        self._gesture_clock = gesture_clock
        self._gestures: GestureTracker | None = None
        self._page_id: int | None = None
        self._subscriptions: list[Subscription] = []
        self._retry: TimerHandle | None = None
        self._attempts = 0
        self._last_url = document.url
        self._closed = False
        self._context: RuleContext | None = None

    @property
    def context(self) -> RuleContext | None:
        """The context rules were last applied against."""
        return self._context

    @property
    def gestures(self) -> GestureTracker | None:
        return self._gestures

    @property
    def connected(self) -> bool:
        return self._page_id is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Collect rules, connect to the transport, and apply the first state."""
        if self._gestures is not None or self._closed:
            return
        self._gestures = GestureTracker(
            self.document,
            trust_window_ms=self._rules_config.gesture_trust_ms,
            clock=self._gesture_clock,
        )
        services = RuleServices(
            gestures=self._gestures,
            scheduler=self._scheduler,
            feed_threshold_multiplier=self._rules_config.feed_threshold_multiplier,
            recap_delay_ms=self._rules_config.recap_delay_ms,
        )
        for rule in self._plugins.collect_rules(services):
            self.registry.register(rule)
        self._subscriptions.append(self.document.observe(self._on_mutation))
        self._page_id = self._transport.connect_page(self)
        logger.debug(
            "Page host ready for %s with %d rule(s)",
            self.document.url,
            len(self.registry.rules),
        )
        self.refresh()

    def teardown(self) -> None:
        """Detach from the page: stop observing, then revert every rule."""
        if self._closed:
            return
        self._closed = True
        self._cancel_retry()
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
        if self._page_id is not None:
            self._transport.disconnect_page(self._page_id)
            self._page_id = None
        self.registry.teardown()
        if self._gestures is not None:
            self._gestures.close()
        self._context = None
        logger.debug("Page host torn down for %s", self.document.url)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def receive(self, message: CalmStateChanged) -> None:
        """Handle a pushed state change from the clock host."""
        if self._closed:
            return
        self._cancel_retry()
        override = resolve_override(
            self.document.domain,
            message.overrides_by_domain,
            message.enabled_rule_ids,
        )
        self._apply(message.calm_active, override, message.current_time)

    def refresh(self) -> None:
        """Fetch state from the clock host and reapply rules."""
        if self._closed:
            return
        self._attempts = 0
        self._cancel_retry()
        self._fetch()

    def navigate(self, url: str) -> None:
        """Move the page to *url* and reapply for its domain."""
        self.document.url = url
        self._last_url = url
        self.refresh()

    def set_visible(self, visible: bool) -> None:
        self.document.visible = visible
        if visible:
            self.refresh()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _fetch(self) -> None:
        try:
            response = self._transport.request(GetCalmState(domain=self.document.domain))
        except TransportError:
            self._on_fetch_failed()
            return
        if not isinstance(response, CalmStateResponse):
            logger.warning("Unexpected response to state request: %r", response)
            self._on_fetch_failed()
            return
        self._attempts = 0
        self._apply(response.calm_active, response.override, response.current_time)

    def _on_fetch_failed(self) -> None:
        # Run with calm mode off until the clock host answers.
        if self._context is None or self._context.calm_active:
            self._apply(False, None, None)
        if self._attempts >= self._transport_config.fetch_retries:
            logger.warning(
                "Clock host unreachable after %d retries; calm mode stays inactive",
                self._attempts,
            )
            return
        self._attempts += 1
        logger.debug("Clock host unreachable; retry %d scheduled", self._attempts)
        self._retry = self._scheduler.call_later(
            self._transport_config.retry_delay_seconds, self._on_retry
        )

    def _on_retry(self) -> None:
        self._retry = None
        if not self._closed:
            self._fetch()

    def _cancel_retry(self) -> None:
        if self._retry is not None:
            self._retry.cancel()
            self._retry = None

    def _apply(
        self,
        calm_active: bool,
        override: DomainOverride | None,
        current_time: datetime | None,
    ) -> None:
        self._context = build_rule_context(
            self.document,
            calm_active=calm_active,
            override=override,
            current_time=current_time,
        )
        self.registry.reapply(self._context)

    def _on_mutation(self, _batch: MutationBatch) -> None:
        # Client-side routing changes the URL without a navigation event.
        if self.document.url != self._last_url:
            self._last_url = self.document.url
            logger.debug("URL changed to %s", self._last_url)
            self.refresh()
