"""
Standardized error handling and exit codes for the deploykit CLI.

Maps execution errors to user-facing messages with actionable guidance and
consistent exit codes.
"""

import logging
import sys
import traceback
from enum import IntEnum

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from deploykit.core.execution import (
    ExecutionError,
    InvalidConfigurationError,
    NonZeroExitError,
    SpawnFailureError,
    ToolNotAvailableError,
)

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for deploykit CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error."""

    USER_ERROR = 2
    """Configuration or input error (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


_SOLUTIONS = {
    ToolNotAvailableError: "Install the tool, or set its path with DEPLOYKIT_{tool}_PATH",
    SpawnFailureError: "Check the executable path and its permissions (deploykit doctor)",
    InvalidConfigurationError: "Check the flags passed for this mode",
}


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for CLI commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def exit_code_for(error: ExecutionError) -> int:
    """Exit code the CLI uses for an execution error."""
    if isinstance(error, NonZeroExitError):
        return error.exit_code
    if isinstance(error, InvalidConfigurationError):
        return ExitCode.USER_ERROR
    return ExitCode.GENERAL_ERROR


def handle_error(error: ExecutionError, debug: bool = False) -> None:
    """
    Display an execution error.

    Args:
        error: The exception that was raised
        debug: Show the full traceback
    """
    error_text = Text()
    error_text.append(f"{error.category}", style="bold red")
    error_text.append(": ", style="bold red")
    error_text.append(str(error))

    solution = _SOLUTIONS.get(type(error))
    if solution:
        error_text.append("\n→ Try: ", style="cyan")
        error_text.append(solution.format(tool=error.tool.upper()))

    console.print(
        Panel(
            error_text,
            title=f"[bold red]{error.tool or 'deploykit'} failed[/bold red]",
            border_style="red",
            expand=False,
        )
    )

    if debug:
        console.print("[dim]Full traceback:[/dim]")
        console.print(traceback.format_exc())
    else:
        console.print("[dim]Run with --debug for full traceback[/dim]")
