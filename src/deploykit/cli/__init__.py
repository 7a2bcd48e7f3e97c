"""
deploykit CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import typer
from rich.console import Console

from deploykit import __version__
from deploykit.cli import doctor, kubectl, skaffold
from deploykit.core.config.env import load_layered_env

PANEL_TOOLS = "Run Tools"
PANEL_INSTALL = "Manage Your Installation"

app = typer.Typer(
    name="deploykit",
    help="Run Skaffold and kubectl from structured settings",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main() -> None:
    """
    deploykit - Skaffold and kubectl runner.

    Resolves the tool binaries (configured path first, then PATH), builds
    the command line from options and supervises the process.

    Quick Start:
        deploykit doctor                     # Check both tools
        deploykit skaffold dev               # Continuous build/deploy
        deploykit kubectl get -- pods        # One-off kubectl call

    Configuration:
        .deploykit.json                      # Project settings
        ~/.config/deploykit/config.json      # User settings
        DEPLOYKIT_SKAFFOLD_PATH / DEPLOYKIT_KUBECTL_PATH
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()


app.add_typer(skaffold.app, name="skaffold", rich_help_panel=PANEL_TOOLS)
app.command(name="kubectl", rich_help_panel=PANEL_TOOLS)(kubectl.kubectl)
app.command(name="doctor", rich_help_panel=PANEL_INSTALL)(doctor.doctor)


@app.command(rich_help_panel=PANEL_INSTALL)
def version() -> None:
    """Show deploykit version and exit."""
    console.print(f"deploykit version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
