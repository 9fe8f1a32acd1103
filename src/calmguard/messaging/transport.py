"""In-process transport between one clock host and many page hosts.

Hosts never share objects: every message is serialized to JSON and
validated again on the receiving side, the same way it would be across a
process boundary.

INVARIANT: the sender never retries an unreachable page.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import TypeAdapter

from calmguard.messaging.protocol import (
    REQUEST_ADAPTER,
    RESPONSE_ADAPTER,
    CalmStateChanged,
)

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The counterpart host is not reachable."""


class ClockEndpoint(Protocol):
    def handle(self, request: Any) -> Any: ...


class PageEndpoint(Protocol):
    def receive(self, message: CalmStateChanged) -> None: ...


def _copy(message: Any, adapter: TypeAdapter[Any]) -> Any:
    return adapter.validate_json(adapter.dump_json(message))


class LocalTransport:
    """Routes requests to the bound clock host and broadcasts to pages."""

    def __init__(self) -> None:
        self._clock: ClockEndpoint | None = None
        self._pages: dict[int, PageEndpoint] = {}
        self._next_page_id = 1

    # --- clock side ---

    def bind_clock(self, endpoint: ClockEndpoint) -> None:
        self._clock = endpoint

    def unbind_clock(self) -> None:
        self._clock = None

    def broadcast(self, message: CalmStateChanged) -> int:
        """Push *message* to every connected page. Returns the delivery count."""
        delivered = 0
        for page_id, page in list(self._pages.items()):
            try:
                page.receive(CalmStateChanged.model_validate_json(message.model_dump_json()))
            except TransportError:
                logger.debug("Page %d unreachable; not retrying", page_id)
            except Exception:
                logger.warning("Page %d failed to handle state update", page_id, exc_info=True)
            else:
                delivered += 1
        return delivered

    # --- page side ---

    def connect_page(self, endpoint: PageEndpoint) -> int:
        page_id = self._next_page_id
        self._next_page_id += 1
        self._pages[page_id] = endpoint
        return page_id

    def disconnect_page(self, page_id: int) -> None:
        self._pages.pop(page_id, None)

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def request(self, message: Any) -> Any:
        """Send a request to the clock host and return its (copied) response."""
        if self._clock is None:
            msg = "No clock host is bound to this transport"
            raise TransportError(msg)
        response = self._clock.handle(_copy(message, REQUEST_ADAPTER))
        return _copy(response, RESPONSE_ADAPTER)
