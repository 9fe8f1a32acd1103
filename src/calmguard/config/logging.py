"""Log routing for the calmguard hosts and CLI.

Clock flips, page reapplies and plugin failures are all logged through
``logging.getLogger(__name__)``. :func:`configure_logging` sends those
records through structlog so they come out either as console lines or as
JSON lines (``--log-json``) on stderr, never mixed into command output.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Loggers that only matter when debugging the event loop itself.
_QUIET_LOGGERS = ("asyncio",)


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install one stderr handler on the root logger.

    Args:
        verbose: Show calmguard's DEBUG records (wake-ups, broadcasts,
            rule application). Other libraries stay at WARNING.
        log_json: Emit JSON lines instead of console text.

    Safe to call more than once; the previous handler is replaced.
    """
    processors = _shared_processors()
    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("calmguard").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
