"""Timer scheduling for cooperative, single-threaded hosts.

Hosts never block or poll; they ask a :class:`Scheduler` to call them back
later. The production scheduler delegates to the running asyncio loop, so
callbacks run to completion one at a time on the loop's thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run *callback* after *delay* seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by ``loop.call_later``.

    Parameters:
        loop: Explicit event loop; defaults to the loop running at call time.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay), callback)
