"""Admin commands.

Commands for status, diagnostics, reset and notification testing.
This module should NOT import heavy modules at the top level - use lazy imports inside functions.
"""
from __future__ import annotations

import json

import typer
from rich.text import Text

from recovery_ladder.cli.common import get_console, get_engine

# Create admin command group
app = typer.Typer(
    name="admin",
    help="Health status, diagnostics and reset",
    no_args_is_help=True,
)

console = get_console()


# =============================================================================
# Status Command
# =============================================================================


@app.command()
def status(
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the status as JSON.",
    ),
) -> None:
    """
    Show the degradation level, session counters and feature gates.

    Exits 0 at full health and 1 when degraded.

    Examples:
        recovery-ladder admin status
        recovery-ladder admin status --json
    """
    from recovery_ladder.cli.display import render_status
    from recovery_ladder.diagnostics import build_diagnostics

    engine = get_engine()
    diag = build_diagnostics(engine.config, engine.store, engine.error_log, lines=0)

    if as_json:
        typer.echo(json.dumps(diag.to_dict(), indent=2))
    else:
        render_status(console, diag)

    raise typer.Exit(diag.exit_code)


# =============================================================================
# Doctor Command
# =============================================================================


@app.command()
def doctor(
    lines: int = typer.Option(
        10,
        "--lines",
        "-n",
        min=0,
        help="Number of recent error-log lines to show.",
    ),
) -> None:
    """
    Run full diagnostics.

    Shows status, feature gates, file locations and recent errors.
    Exits 0 at full health and 1 when degraded.

    Examples:
        recovery-ladder admin doctor
        recovery-ladder admin doctor --lines 25
    """
    from recovery_ladder.cli.display import render_doctor
    from recovery_ladder.diagnostics import build_diagnostics

    engine = get_engine()
    diag = build_diagnostics(engine.config, engine.store, engine.error_log, lines=lines)
    render_doctor(console, diag)
    raise typer.Exit(diag.exit_code)


# =============================================================================
# Reset Command
# =============================================================================


@app.command()
def reset() -> None:
    """
    Reset the degradation level and session counters to zero.

    Intended to be called from a session-start hook.

    Examples:
        recovery-ladder admin reset
    """
    from recovery_ladder.health_store import HealthStoreError

    engine = get_engine()
    previous = engine.degradation.level
    try:
        engine.degradation.reset()
    except HealthStoreError as e:
        console.print(Text(f"Error: {e}", style="red"))
        raise typer.Exit(1)

    console.print(Text(
        f"Degradation level reset to 0 (was {int(previous)}). Session counters cleared.",
        style="green",
    ))


# =============================================================================
# Notification Test Command
# =============================================================================


@app.command("notify-test")
def notify_test() -> None:
    """
    Send a test notification at each urgency level.

    Examples:
        recovery-ladder admin notify-test
    """
    engine = get_engine()

    if not engine.config.notifications.enabled:
        console.print(Text("Desktop notifications are disabled in configuration.", style="yellow"))
        raise typer.Exit(0)

    for urgency, delivered in engine.notifier.test_notifications():
        if delivered:
            console.print(Text(f"  {urgency.value}: sent", style="green"))
        else:
            console.print(Text(f"  {urgency.value}: not delivered (no notifier available)", style="dim"))
