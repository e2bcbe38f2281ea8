"""CLI error handler.

Renders an EdgeDeckError with its id, message and recovery hints, then exits.
The exit code is 1, except for SubprocessExit, which mirrors the runtime's
exit code.
"""

import sys
from typing import NoReturn

from rich.console import Console
from rich.text import Text

from edgedeck.errors import EdgeDeckError, OperationFailed, SubprocessExit
from edgedeck.orchestrator.display import EDGEDECK_THEME

_ICONS = {
    "config": "⚙",
    "gateway": "⇄",
    "runtime": "⚡",
}


def exit_code_for(error: EdgeDeckError) -> int:
    if isinstance(error, SubprocessExit) and error.exit_code:
        return error.exit_code
    return 1


def handle_error(error: EdgeDeckError | Exception) -> NoReturn:
    """Print ``error`` to stderr and exit.

    Raises:
        SystemExit: Always
    """
    if not isinstance(error, EdgeDeckError):
        error = OperationFailed(str(error) or type(error).__name__, cause=error)

    console = Console(stderr=True, theme=EDGEDECK_THEME, highlight=False)

    header = Text()
    header.append(f"{_ICONS.get(error.category, '✗')} ", style="bold")
    header.append(error.error_id, style="edgedeck.error")
    header.append(f" {error.message}")
    console.print(header)

    hints = error.recovery_hints
    if hints:
        console.print("\n[bold]What you can do:[/]")
        for i, hint in enumerate(hints, 1):
            console.print(f"  {i}. {hint}")

    sys.exit(exit_code_for(error))
