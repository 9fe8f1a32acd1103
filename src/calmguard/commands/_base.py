"""Click classes for calmguard commands that carry usage examples.

Schedules and overrides are easier to show than to describe, so commands
pass an ``examples`` block; ``--examples`` prints it and exits while
``--help`` stays short.
"""

from __future__ import annotations

from typing import Any

import click


def _examples_option(examples: str) -> click.Option:
    def _show(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if value:
            click.echo(f"Examples for '{ctx.command_path}':\n")
            click.echo(examples)
            ctx.exit(0)

    return click.Option(
        ["--examples"],
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=_show,
        help="Show usage examples.",
    )


class CalmCommand(click.Command):
    """A command with an optional ``examples`` block."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(_examples_option(examples))


class CalmGroup(click.Group):
    """A group with an optional ``examples`` block; its subcommands are CalmCommands."""

    command_class = CalmCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(_examples_option(examples))
