"""
deploykit CLI - Skaffold commands.

Run Skaffold the way an editor run configuration would: `run`, `dev` and
`debug` stream the tool output until it exits or Ctrl+C stops it; `init`
runs to completion and prints the result.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from deploykit.cli.errors import ExitCode, exit_code_for, handle_error, setup_logging
from deploykit.core.execution import (
    ExecutionError,
    InvalidConfigurationError,
    SkaffoldMode,
    ToolProcess,
)
from deploykit.core.services import DeployService

console = Console()
app = typer.Typer(
    name="skaffold",
    help="Build and deploy with Skaffold",
    no_args_is_help=True,
)

FilenameOption = Annotated[
    Optional[str],
    typer.Option("--filename", "-f", help="Skaffold configuration file"),
]
ProfileOption = Annotated[
    Optional[str],
    typer.Option("--profile", "-p", help="Skaffold profile to activate"),
]
LabelOption = Annotated[
    Optional[list[str]],
    typer.Option("--label", "-l", help="Deployment label KEY=VALUE (repeatable)"),
]
RepoOption = Annotated[
    Optional[str],
    typer.Option("--default-repo", help="Default image repository"),
]
WorkdirOption = Annotated[
    Optional[Path],
    typer.Option("--workdir", "-C", help="Directory to run Skaffold in"),
]
DebugOption = Annotated[
    bool,
    typer.Option("--debug", help="Enable debug logging and full tracebacks"),
]


def parse_labels(values: list[str] | None) -> list[tuple[str, str]]:
    """
    Parse KEY=VALUE label options, keeping their order.

    Raises:
        InvalidConfigurationError: If a value has no '=' or an empty key
    """
    labels = []
    for value in values or []:
        key, sep, label_value = value.partition("=")
        if not sep or not key:
            raise InvalidConfigurationError(
                "skaffold", f"Invalid label '{value}', expected KEY=VALUE"
            )
        labels.append((key, label_value))
    return labels


def stream_process(process: ToolProcess, grace_seconds: float) -> int:
    """
    Echo the process output until it exits.

    Ctrl+C stops the tool gracefully (SIGTERM, then SIGKILL).

    Returns:
        The tool's exit code, or 130 when interrupted
    """
    console.print(f"[dim]$ {process.command_line}[/dim]")
    try:
        if process.stdout is not None:
            for raw_line in iter(process.stdout.readline, b""):
                console.out(raw_line.decode("utf-8", errors="replace").rstrip("\r\n"))
        return process.wait()
    except KeyboardInterrupt:
        console.print("[yellow]Stopping...[/yellow]")
        process.kill(grace_seconds=grace_seconds)
        return ExitCode.SIGINT
    finally:
        process.close()


def _start(
    mode: SkaffoldMode,
    debug: bool,
    workdir: Path | None,
    **options: object,
) -> None:
    setup_logging(debug)
    service = DeployService.from_config(project_dir=workdir)
    try:
        process = service.start_skaffold(mode, working_directory=workdir, **options)
    except ExecutionError as e:
        handle_error(e, debug)
        raise typer.Exit(exit_code_for(e))

    exit_code = stream_process(process, service.skaffold.kill_grace_seconds)
    raise typer.Exit(exit_code)


@app.command()
def run(
    filename: FilenameOption = None,
    profile: ProfileOption = None,
    label: LabelOption = None,
    tail: Annotated[
        bool, typer.Option("--tail", help="Stream logs from deployed objects")
    ] = False,
    default_repo: RepoOption = None,
    workdir: WorkdirOption = None,
    debug: DebugOption = False,
) -> None:
    """
    Build and deploy once.

    Examples:
        deploykit skaffold run -f skaffold.yaml
        deploykit skaffold run --profile gcb --tail
    """
    try:
        labels = parse_labels(label)
    except InvalidConfigurationError as e:
        handle_error(e, debug)
        raise typer.Exit(ExitCode.USER_ERROR)
    _start(
        SkaffoldMode.SINGLE_RUN,
        debug,
        workdir,
        config_file_path=filename,
        profile=profile,
        labels=labels,
        tail_logs_after_deploy=tail,
        default_image_repo=default_repo,
    )


@app.command()
def dev(
    filename: FilenameOption = None,
    profile: ProfileOption = None,
    label: LabelOption = None,
    default_repo: RepoOption = None,
    workdir: WorkdirOption = None,
    debug: DebugOption = False,
) -> None:
    """
    Run the continuous build/deploy loop until stopped.

    Examples:
        deploykit skaffold dev
        deploykit skaffold dev -f skaffold.yaml -l team=web
    """
    try:
        labels = parse_labels(label)
    except InvalidConfigurationError as e:
        handle_error(e, debug)
        raise typer.Exit(ExitCode.USER_ERROR)
    _start(
        SkaffoldMode.DEV,
        debug,
        workdir,
        config_file_path=filename,
        profile=profile,
        labels=labels,
        default_image_repo=default_repo,
    )


@app.command(name="debug")
def debug_cmd(
    filename: FilenameOption = None,
    profile: ProfileOption = None,
    label: LabelOption = None,
    default_repo: RepoOption = None,
    workdir: WorkdirOption = None,
    debug: DebugOption = False,
) -> None:
    """Run the dev loop with debugging enabled in deployed containers."""
    try:
        labels = parse_labels(label)
    except InvalidConfigurationError as e:
        handle_error(e, debug)
        raise typer.Exit(ExitCode.USER_ERROR)
    _start(
        SkaffoldMode.DEBUG,
        debug,
        workdir,
        config_file_path=filename,
        profile=profile,
        labels=labels,
        default_image_repo=default_repo,
    )


@app.command()
def init(
    analyze: Annotated[
        bool, typer.Option("--analyze", help="Print detected builders and manifests only")
    ] = False,
    force: Annotated[
        bool, typer.Option("--force", help="Accept the default choices without prompting")
    ] = False,
    filename: FilenameOption = None,
    workdir: WorkdirOption = None,
    debug: DebugOption = False,
) -> None:
    """
    Generate a Skaffold configuration for the project.

    --analyze and --force are mutually exclusive.
    """
    setup_logging(debug)
    service = DeployService.from_config(project_dir=workdir)
    try:
        output = service.run_skaffold(
            SkaffoldMode.INIT,
            config_file_path=filename,
            analyze_on_init=analyze,
            force_init=force,
            working_directory=workdir,
        )
    except ExecutionError as e:
        handle_error(e, debug)
        raise typer.Exit(exit_code_for(e))

    if output:
        console.out(output)
