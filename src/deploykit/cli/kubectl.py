"""
deploykit CLI - kubectl command.

Runs a kubectl subcommand to completion and prints its standard output.
Flags are checked against the subcommand's allow-list before kubectl is
started.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from deploykit.cli.errors import exit_code_for, handle_error, setup_logging
from deploykit.core.execution import ExecutionError, KubectlMode
from deploykit.core.services import DeployService

console = Console()


def kubectl(
    mode: Annotated[KubectlMode, typer.Argument(help="kubectl subcommand")],
    args: Annotated[
        Optional[list[str]],
        typer.Argument(help="Arguments and flags passed to the subcommand"),
    ] = None,
    workdir: Annotated[
        Optional[Path],
        typer.Option("--workdir", "-C", help="Directory to run kubectl in"),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging and full tracebacks"),
    ] = False,
) -> None:
    """
    Run a kubectl subcommand and print its output.

    Put `--` before kubectl flags so they are not parsed by deploykit.

    Examples:
        deploykit kubectl version -- --client
        deploykit kubectl get -- pods -o name
        deploykit kubectl create -- -f deployment.yaml
    """
    setup_logging(debug)
    service = DeployService.from_config(project_dir=workdir)
    try:
        output = service.run_kubectl(mode, list(args or []), working_directory=workdir)
    except ExecutionError as e:
        handle_error(e, debug)
        raise typer.Exit(exit_code_for(e))

    if output:
        console.out(output)
