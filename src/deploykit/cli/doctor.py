"""
deploykit CLI - Doctor command.

Show where each tool resolves to and whether it responds to a version probe.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from deploykit.cli.errors import ExitCode, setup_logging
from deploykit.core.services import DeployService

console = Console()


def doctor(
    workdir: Annotated[
        Optional[Path],
        typer.Option("--workdir", "-C", help="Project directory to read configuration from"),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging"),
    ] = False,
) -> None:
    """
    Check that Skaffold and kubectl can be invoked.

    Exits with code 1 if any tool is unavailable.
    """
    setup_logging(debug)
    service = DeployService.from_config(project_dir=workdir)
    statuses = service.check_tools()

    table = Table(title="External tools")
    table.add_column("Tool", style="bold")
    table.add_column("Invocation")
    table.add_column("Source")
    table.add_column("Status")

    for status in statuses:
        table.add_row(
            status.name,
            status.invocation,
            "override" if status.overridden else "PATH",
            "[green]✓ available[/green]" if status.available else "[red]✗ unavailable[/red]",
        )

    console.print(table)

    if not all(status.available for status in statuses):
        raise typer.Exit(ExitCode.GENERAL_ERROR)
