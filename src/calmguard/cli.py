"""Root CLI group for calmguard with global flags and command registration."""

from __future__ import annotations

import click

from calmguard import __version__
from calmguard.commands import register_commands
from calmguard.commands._context import AppContext
from calmguard.config.settings import CalmSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="calmguard")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug logs.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """calmguard — quiet hours for the web."""
    ctx.ensure_object(dict)
    settings = CalmSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
