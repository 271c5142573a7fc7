"""Run commands.

Run hooks and agents under the safe executors, and route a failure through
the recovery ladder. Arguments after ``--`` are the command's argv.
"""
from __future__ import annotations

from typing import List, Optional

import typer
from rich.text import Text

from recovery_ladder.cli.common import get_console, get_engine
from recovery_ladder.models import ErrorType, HookCategory

# Create run command group
app = typer.Typer(
    name="run",
    help="Run hooks, agents and failure recovery",
    no_args_is_help=True,
)

console = get_console()


def _parse_error_type(value: str) -> ErrorType:
    try:
        return ErrorType.parse(value)
    except ValueError:
        valid = ", ".join(e.value for e in ErrorType)
        raise typer.BadParameter(f"Unknown error type '{value}'. Valid types: {valid}")


# =============================================================================
# Hook Command
# =============================================================================


@app.command()
def hook(
    path: str = typer.Argument(..., help="Path to the hook executable."),
    input_text: Optional[str] = typer.Option(
        None,
        "--input",
        "-i",
        help="Text piped to the hook's stdin.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        "-t",
        min=0.0,
        help="Timeout in seconds (default: configured hook timeout).",
    ),
    category: HookCategory = typer.Option(
        HookCategory.ESSENTIAL,
        "--category",
        "-c",
        help="Hook category, checked against the degradation level.",
    ),
) -> None:
    """
    Run a hook. Failures are bypassed, so this always exits 0.

    Examples:
        recovery-ladder run hook ~/.claude/hooks/pre-commit.sh
        recovery-ladder run hook ./format.sh --category optional --timeout 10
    """
    engine = get_engine()
    outcome = engine.hooks.run(path, input=input_text, timeout=timeout, category=category)
    if outcome.output:
        typer.echo(outcome.output, nl=not outcome.output.endswith("\n"))


# =============================================================================
# Agent Command
# =============================================================================


@app.command()
def agent(
    argv: List[str] = typer.Argument(..., help="Agent command and arguments (after --)."),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        "-t",
        min=0.0,
        help="Timeout in seconds (default: configured agent timeout).",
    ),
    no_retry_invalid: bool = typer.Option(
        False,
        "--no-retry-invalid",
        help="Do not re-run an agent that exits 0 with no output.",
    ),
) -> None:
    """
    Run an agent. Exits 0 on success and 1 on failure.

    Examples:
        recovery-ladder run agent --timeout 120 -- claude -p "summarize"
    """
    engine = get_engine()
    outcome = engine.agents.run(argv, timeout=timeout, retry_on_invalid=not no_retry_invalid)

    if outcome.output and outcome.success:
        typer.echo(outcome.output, nl=not outcome.output.endswith("\n"))
    if not outcome.success:
        if outcome.timed_out:
            console.print(Text("[!!] Agent timed out", style="red"))
        elif outcome.exit_code is not None:
            console.print(Text(f"[!!] Agent failed (exit {outcome.exit_code})", style="red"))
        raise typer.Exit(1)


# =============================================================================
# Handle Command
# =============================================================================


@app.command()
def handle(
    error_type: str = typer.Argument(..., help="Error type, e.g. transient, network, security."),
    argv: List[str] = typer.Argument(..., help="The failing command or component (after --)."),
    context: str = typer.Option(
        "",
        "--context",
        help="What happened, shown in logs and escalation reports.",
    ),
    alternatives: Optional[List[str]] = typer.Option(
        None,
        "--alt",
        "-a",
        help="Alternative command to try (repeatable, in order).",
    ),
) -> None:
    """
    Route a failure through retry, substitution, degradation and escalation.

    Exits 0 when the failure was recovered and 1 otherwise.

    Examples:
        recovery-ladder run handle network -- curl -sf https://example.com
        recovery-ladder run handle hook_failure --alt "npm run lint" -- npx eslint .
    """
    parsed = _parse_error_type(error_type)
    engine = get_engine()
    try:
        result = engine.handler.handle(parsed, argv, context=context, alternatives=alternatives or [])
    except ValueError as e:
        raise typer.BadParameter(f"Invalid command: {e}")

    if result.success:
        if result.output:
            typer.echo(result.output, nl=not result.output.endswith("\n"))
        console.print(Text(f"[i] Recovered via {result.tier.name.lower()}", style="cyan"))
        return

    if result.report is None:
        console.print(Text(
            f"[!!] Not recovered (level {int(result.level)}, "
            f"repeated failures {result.repeated_failures})",
            style="red",
        ))
    raise typer.Exit(1)
