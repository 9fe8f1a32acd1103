"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Builds the clock host on demand and centralizes
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import click

from calmguard.output.formatters import format_result
from calmguard.services.result import ServiceResult

if TYPE_CHECKING:
    from calmguard.config.settings import CalmSettings
    from calmguard.infrastructure.store import SettingsStore
    from calmguard.infrastructure.timers import Scheduler
    from calmguard.messaging.transport import LocalTransport
    from calmguard.plugins.manager import PluginManager
    from calmguard.services.clock_host import ClockHost


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Plugins are discovered lazily on first use so ``--help`` and
    ``--version`` never import third-party plugin code.
    """

    def __init__(self, settings: CalmSettings) -> None:
        self.settings = settings
        self._plugins: PluginManager | None = None

        from calmguard.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def store(self) -> SettingsStore:
        from calmguard.infrastructure.store import SettingsStore

        return SettingsStore(self.settings.store.path)

    @property
    def plugins(self) -> PluginManager:
        """The plugin manager (discovered lazily on first access)."""
        if self._plugins is None:
            from calmguard.plugins.manager import PluginManager

            self._plugins = PluginManager()
            self._plugins.discover_and_load(local_dir=self.settings.store.path.parent / "plugins")
        return self._plugins

    def clock_host(self, transport: LocalTransport, scheduler: Scheduler) -> ClockHost:
        from calmguard.infrastructure.solar import AstralCalculator
        from calmguard.services.clock_host import ClockHost

        return ClockHost(
            self.store,
            transport,
            scheduler=scheduler,
            calculator=AstralCalculator(),
            plugins=self.plugins,
            config=self.settings.clock,
        )

    def exchange(self, message: Any) -> Any:
        """Start a clock host, send one request through the transport, stop it."""
        from calmguard.infrastructure.timers import AsyncioScheduler
        from calmguard.messaging.transport import LocalTransport

        async def _run() -> Any:
            transport = LocalTransport()
            host = self.clock_host(transport, AsyncioScheduler())
            host.start()
            try:
                return transport.request(message)
            finally:
                host.stop()

        return asyncio.run(_run())

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings go to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        output = format_result(
            result,
            json_output=self.settings.json_output,
            verbose=self.settings.verbose,
        )
        if result.ok:
            click.echo(output)
            if not self.settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)


def ack_result(op: str, ack: Any, data: dict[str, Any] | None = None) -> ServiceResult:
    """Turn an ``Ack`` from the clock host into a ServiceResult."""
    if ack.ok:
        return ServiceResult.success(op, {**ack.data, **(data or {})})
    return ServiceResult.failure(op, "REQUEST_FAILED", ack.error or "request failed")


def invalid_result(op: str, exc: Exception) -> ServiceResult:
    """ServiceResult for input rejected before it reached the clock host."""
    return ServiceResult.failure(op, "INVALID_INPUT", str(exc))
