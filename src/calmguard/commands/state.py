"""Command: show the current calm state."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from calmguard.commands._base import CalmCommand
from calmguard.services.result import ServiceResult

if TYPE_CHECKING:
    from calmguard.commands._context import AppContext


@click.command(
    cls=CalmCommand,
    examples="""\
  calmguard state
  calmguard state --domain youtube.com
  calmguard --json state""",
)
@click.option("--domain", default="", help="Resolve overrides for this domain.")
@click.pass_obj
def state(app: AppContext, domain: str) -> None:
    """Show whether calm mode is active right now."""
    from calmguard.messaging.protocol import GetCalmState

    response = app.exchange(GetCalmState(domain=domain))
    schedule = app.store.load_or_default().schedule
    data = response.model_dump(mode="json", exclude={"type"})
    data["schedule"] = schedule.model_dump(mode="json")
    if domain:
        data["domain"] = domain
    app.emit(ServiceResult.success("get_state", data))
