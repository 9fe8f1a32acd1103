"""Subcommand modules for calmguard.

Provides register_commands() which uses deferred imports to keep
``calmguard --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the schedule group and the standalone commands on the root group."""
    # --- Groups ---
    from calmguard.commands.schedule import schedule

    cli.add_command(schedule)

    # --- Standalone commands ---
    from calmguard.commands.preferences import disable, enable, override, rules
    from calmguard.commands.state import state
    from calmguard.commands.watch import watch

    cli.add_command(state)
    cli.add_command(override)
    cli.add_command(rules)
    cli.add_command(enable)
    cli.add_command(disable)
    cli.add_command(watch)
