"""Display helpers for the CLI.

Rich formatting for degradation levels, counters, feature gates and log lines.
This module should NOT import from admin/run modules to avoid circular imports.
"""
from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from recovery_ladder.diagnostics import Diagnostics
from recovery_ladder.models import DegradationLevel

# Level display styles
LEVEL_STYLES: dict[DegradationLevel, str] = {
    DegradationLevel.FULL: "green bold",
    DegradationLevel.REDUCED: "yellow",
    DegradationLevel.MINIMAL: "red",
    DegradationLevel.EMERGENCY: "red bold",
}


def format_level(diag: Diagnostics) -> Text:
    """Format the degradation level as '<n> (<name>)'."""
    return Text(f"{int(diag.level)} ({diag.level_name})", style=LEVEL_STYLES[diag.level])


def format_counter(value: int, threshold: int) -> Text:
    """Format a counter against its first threshold."""
    style = "red" if value >= threshold else ("yellow" if value else "dim")
    return Text(str(value), style=style)


def format_enabled(enabled: bool) -> Text:
    return Text("enabled", style="green") if enabled else Text("disabled", style="red")


def build_status_table(diag: Diagnostics) -> Table:
    """Build the health summary table."""
    t = diag.thresholds
    table = Table(title="Recovery Ladder Status", show_header=True, header_style="bold")
    table.add_column("Item", style="cyan", no_wrap=True)
    table.add_column("Value")
    table.add_column("Thresholds", style="dim")

    table.add_row("Degradation level", format_level(diag), "")
    table.add_row(
        "Hook failures (session)",
        format_counter(diag.hook_failures_session, t["hook_failures_l1"]),
        f"L1 >= {t['hook_failures_l1']}, L2 >= {t['hook_failures_l2']}",
    )
    table.add_row(
        "Agent timeouts (session)",
        format_counter(diag.agent_timeouts_session, t["agent_timeouts_l1"]),
        f"L1 >= {t['agent_timeouts_l1']}, L2 >= {t['agent_timeouts_l2']}",
    )
    table.add_row(
        "Repeated failures",
        format_counter(diag.repeated_failures, t["repeated_failure_escalation"]),
        f"escalate >= {t['repeated_failure_escalation']}, L3 >= {t['repeated_failures_l3']}",
    )
    table.add_row("Last degradation", Text(diag.last_degradation_at or "never"), "")
    return table


def build_feature_table(diag: Diagnostics) -> Table:
    """Build the feature gate table."""
    table = Table(title="Features", show_header=True, header_style="bold")
    table.add_column("Feature", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    for name, enabled in diag.features.items():
        table.add_row(name, format_enabled(enabled))
    return table


def render_status(console: Console, diag: Diagnostics) -> None:
    console.print(build_status_table(diag))
    console.print(build_feature_table(diag))


def render_doctor(console: Console, diag: Diagnostics) -> None:
    """Render full diagnostics."""
    border = "green" if diag.healthy else "red"
    console.print(Panel(Text("Recovery Ladder Diagnostics", style="bold"), border_style=border))
    render_status(console, diag)

    console.print()
    console.print(Text("Files:", style="bold cyan"))
    console.print(Text(f"  Health record: {diag.health_path}"))
    console.print(Text(f"  Error log: {diag.error_log_path}"))
    console.print(Text(f"  Mirrored errors: {diag.mirrored_errors}"))

    console.print()
    console.print(Text("Recent errors:", style="bold cyan"))
    if diag.recent_errors:
        for line in diag.recent_errors:
            console.print(Text(f"  {line}", style="dim"))
    else:
        console.print(Text("  No errors logged", style="dim"))

    console.print()
    if diag.healthy:
        console.print(Text("System is running at full capability.", style="green"))
    else:
        console.print(Text(
            f"System is degraded ({diag.level_name}). Run 'recovery-ladder admin reset' "
            "once the underlying issue is fixed.",
            style="yellow",
        ))
