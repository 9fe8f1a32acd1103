"""Rich/JSON output helpers.

The CLI renders a ServiceResult for humans (Rich) or machines (``--json``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from calmguard.output.renderers import render_result

if TYPE_CHECKING:
    from calmguard.services.result import ServiceResult


def format_result(
    result: ServiceResult,
    *,
    json_output: bool = False,
    verbose: bool = False,
) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        json_output: If True, return JSON; otherwise return human-readable text.
        verbose: Include error detail in human output.
    """
    if json_output:
        return result.model_dump_json(indent=2)
    return render_result(result, verbose=verbose)
