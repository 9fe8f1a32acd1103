"""Gesture-trust tracking for a single page context.

A playback request is treated as user-initiated when it happens within a
short window (default 100 ms) after a genuine input event. One tracker is
created per page context and closed with it; rules receive it explicitly.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from calmguard.infrastructure.document import Document, Event, Subscription

logger = logging.getLogger(__name__)

INPUT_EVENTS = ("click", "touchstart", "keydown", "mousedown")


class GestureTracker:
    """Remembers the last trusted input event on a document.

    Parameters:
        document: Document whose input events are observed.
        trust_window_ms: How long after an input event actions count as
            user-initiated.
        clock: Monotonic time source in seconds (injectable for tests).
    """

    def __init__(
        self,
        document: Document,
        *,
        trust_window_ms: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window = trust_window_ms / 1000.0
        self._clock = clock
        self._last_input: float | None = None
        self._subscriptions: list[Subscription] = [
            document.add_event_listener(event_type, self._on_input) for event_type in INPUT_EVENTS
        ]

    def _on_input(self, event: Event) -> None:
        if event.trusted:
            self._last_input = self._clock()

    def mark_user_interaction(self) -> None:
        """Record an input that arrived outside the document's event stream."""
        self._last_input = self._clock()

    def was_user_initiated(self) -> bool:
        """Whether the most recent trusted input is within the trust window."""
        if self._last_input is None:
            return False
        return self._clock() - self._last_input <= self._window

    @property
    def closed(self) -> bool:
        return not self._subscriptions

    def close(self) -> None:
        """Stop listening for input. Safe to call more than once."""
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
        self._last_input = None
        logger.debug("Gesture tracker closed")
