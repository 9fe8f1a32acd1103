"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from calmguard.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from calmguard.services.result import ServiceResult


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="calm.ok"), Text(f"  {result.op}", style="calm.op"))


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="calm.key")
    if isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, separators=(",", ":")))
    elif key.endswith("_at") or key.endswith("_time"):
        v = Text(str(value), style="calm.time")
    else:
        v = Text(str(value))
    console.print(k, v)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(Text("ERROR", style="calm.error"), Text(f"  {result.op}", style="calm.op"), msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── State renderer ────────────────────────────────────────────────────


def _render_state(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    data = result.data
    _status_line(console, result)
    if data.get("calm_active"):
        console.print(Text("  calm mode ACTIVE", style="calm.active"))
    else:
        console.print(Text("  calm mode inactive", style="calm.inactive"))
    if not data.get("extension_enabled", True):
        console.print(Text("  extension disabled", style="calm.warning"))

    for key in ("domain", "current_time", "next_transition_at"):
        if data.get(key):
            _field(console, key, data[key])

    schedule = data.get("schedule")
    if schedule:
        _field(console, "schedule", _describe_schedule(schedule))

    override = data.get("override")
    if override:
        table = Table(show_header=True, header_style="calm.key", box=None, pad_edge=False)
        table.add_column("  override")
        table.add_column("value")
        enabled = override.get("enabled")
        table.add_row("  enabled", "default" if enabled is None else str(enabled))
        allowed = override.get("allowed_rule_ids")
        table.add_row(
            "  allowed rules",
            "all" if allowed is None else ", ".join(sorted(allowed)) or "none",
        )
        console.print(table)


def _describe_schedule(schedule: dict[str, Any]) -> str:
    if schedule.get("kind") == "fixed":
        text = f"fixed {schedule['sleep_start']}-{schedule['sleep_end']}"
        if schedule.get("timezone"):
            text += f" ({schedule['timezone']})"
        return text
    return (
        f"sun at ({schedule['latitude']}, {schedule['longitude']}), "
        f"{schedule['offset_before_sunset_minutes']}m before sunset to "
        f"{schedule['offset_after_sunrise_minutes']}m after sunrise"
    )


# ── Mutation renderer ─────────────────────────────────────────────────


def _render_update(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        if key == "schedule" and isinstance(value, dict):
            _field(console, key, _describe_schedule(value))
        else:
            _field(console, key, value)
    for warning in result.warnings if verbose else ():
        console.print(Text(f"  warning: {warning}", style="calm.warning"))


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "get_state": _render_state,
    "update_schedule": _render_update,
    "set_domain_override": _render_update,
    "set_enabled_rules": _render_update,
    "set_extension_enabled": _render_update,
}
