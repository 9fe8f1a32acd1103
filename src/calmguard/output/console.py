"""Rich Console factory and theme for calmguard output.

Consoles render to a StringIO buffer so ``format_result() -> str`` stays a
pure function. In non-TTY environments (tests, pipes) Rich disables color
codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

CALM_THEME = Theme(
    {
        "calm.ok": "bold green",
        "calm.error": "bold red",
        "calm.warning": "bold yellow",
        "calm.op": "bold cyan",
        "calm.key": "dim",
        "calm.active": "bold magenta",
        "calm.inactive": "bold green",
        "calm.time": "blue",
        "calm.rule": "cyan",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes.
        width: Override terminal width (useful for stable test output).
    """
    return Console(
        file=StringIO(),
        theme=CALM_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 100,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
