"""Main Typer app definition and routing.

This is the canonical entry point for the CLI. The app, callback, and
sub-app registrations are all defined here.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.text import Text

from recovery_ladder import __version__
from recovery_ladder.cli.common import get_console, set_config_path

# Create Typer app
app = typer.Typer(
    name="recovery-ladder",
    help="Error recovery and graceful degradation for assistant hooks and agents",
    add_completion=False,
)

# Rich console for output - use singleton from common module
console = get_console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"recovery-ladder version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to recovery.yaml (default: $RECOVERY_LADDER_CONFIG or ~/.claude/recovery.yaml)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Recovery Ladder - retry, substitute, degrade, escalate.

    Supervises hooks and agents, bypasses broken hooks, degrades features
    as failures accumulate, and escalates to you when automation can't help.
    """
    if config:
        config_path = Path(config).expanduser()
        if not config_path.is_file():
            console.print(Text(f"Error: Config file not found: {config}", style="red"))
            raise typer.Exit(1)
        set_config_path(str(config_path))
    else:
        set_config_path(None)

    # If no subcommand and no --help, show help
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


# =========================================================================
# Sub-App Registration
# =========================================================================

# Import and register admin commands
from recovery_ladder.cli.admin import app as admin_app  # noqa: E402

app.add_typer(admin_app, name="admin")

# Import and register run commands
from recovery_ladder.cli.run import app as run_app  # noqa: E402

app.add_typer(run_app, name="run")


# =========================================================================
# Entry Point
# =========================================================================


def cli_main() -> None:
    """Entry point for the CLI."""
    app()


__all__ = ["app", "cli_main"]
