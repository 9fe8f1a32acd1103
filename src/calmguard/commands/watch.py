"""Command: run the clock host and report calm-mode transitions as they happen."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import TYPE_CHECKING

import click
import pluggy

from calmguard.commands._base import CalmCommand
from calmguard.services.result import ServiceResult

if TYPE_CHECKING:
    from calmguard.commands._context import AppContext

hookimpl = pluggy.HookimplMarker("calmguard")


def _describe(calm_active: bool, next_transition_at: datetime | None) -> str:
    text = "calm mode active" if calm_active else "calm mode inactive"
    if next_transition_at is not None:
        text += f"; next change at {next_transition_at.isoformat()}"
    return text


class TransitionPrinter:
    """Prints every calm-state flip reported by the clock host."""

    def __init__(self, *, json_output: bool = False) -> None:
        self.json_output = json_output
        self.transitions = 0

    def report(self, calm_active: bool, next_transition_at: datetime | None) -> None:
        if self.json_output:
            click.echo(
                json.dumps(
                    {
                        "calm_active": calm_active,
                        "next_transition_at": (
                            next_transition_at.isoformat() if next_transition_at else None
                        ),
                    }
                )
            )
        else:
            click.echo(_describe(calm_active, next_transition_at))

    @hookimpl
    def calmguard_state_changed(
        self,
        calm_active: bool,
        next_transition_at: datetime | None,
    ) -> None:
        self.transitions += 1
        self.report(calm_active, next_transition_at)


@click.command(
    cls=CalmCommand,
    examples="""\
  calmguard watch
  calmguard -v watch --for 3600
  calmguard --json watch""",
)
@click.option(
    "--for",
    "duration",
    type=click.FloatRange(min=0),
    default=None,
    help="Stop after this many seconds (default: run until interrupted).",
)
@click.pass_obj
def watch(app: AppContext, duration: float | None) -> None:
    """Keep the schedule clock running and print each transition."""
    printer = TransitionPrinter(json_output=app.settings.json_output)
    app.plugins.register_plugin(printer, name="watch-printer")
    try:
        asyncio.run(_watch(app, printer, duration))
    except KeyboardInterrupt:
        pass
    finally:
        app.plugins.unregister(printer)
    if not app.settings.json_output:
        app.emit(ServiceResult.success("watch", {"transitions": printer.transitions}))


async def _watch(app: AppContext, printer: TransitionPrinter, duration: float | None) -> None:
    from calmguard.infrastructure.timers import AsyncioScheduler
    from calmguard.messaging.transport import LocalTransport

    host = app.clock_host(LocalTransport(), AsyncioScheduler())
    host.start()
    try:
        state = host.clock_state()
        printer.report(host.calm_active, state.next_transition_at if state else None)
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)
    finally:
        host.stop()
