"""
L4 of the recovery ladder: user escalation.

This module provides:
- Escalation policy (which error classes bypass every counter)
- A structured, human-readable report: what happened, what was tried,
  impact, and actionable next steps
- Escalation history for the current process
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from recovery_ladder.config import ThresholdConfig
from recovery_ladder.error_log import ErrorLog, utc_timestamp
from recovery_ladder.models import ALWAYS_ESCALATE, ErrorType, RecoveryAction
from recovery_ladder.notifications import NotificationSink, Severity


logger = logging.getLogger(__name__)

RULE = "=" * 60

DEFAULT_IMPACT = "Automated recovery has stopped; the current operation did not complete."


@dataclass
class EscalationReport:
    """
    A "needs human attention" report.

    Attributes:
        issue_type: Short name of the issue (an error type or a label).
        context: What happened.
        attempted: What automated recovery already tried.
        impact: What the failure means for the session.
        suggestions: Itemized suggested actions.
        options: Fixed guidance (diagnostics, logs, reset).
        created_at: ISO timestamp of creation.
    """

    issue_type: str
    context: str
    attempted: List[str] = field(default_factory=list)
    impact: str = DEFAULT_IMPACT
    suggestions: List[str] = field(default_factory=list)
    options: List[str] = field(default_factory=list)
    created_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utc_timestamp()

    def render(self) -> str:
        """Render the report as console text."""
        lines = [
            "",
            RULE,
            f"{Severity.CRITICAL} [ATTENTION REQUIRED] {self.issue_type}",
            RULE,
            "",
            f"What happened: {self.context}",
            "",
            "What was tried:",
        ]
        if self.attempted:
            lines.extend(f"  - {item}" for item in self.attempted)
        else:
            lines.append("  - No automated recovery applies to this error class")
        lines.extend(["", f"Impact: {self.impact}", ""])

        if self.suggestions:
            lines.append("Suggested actions:")
            lines.extend(f"  - {item}" for item in self.suggestions)
            lines.append("")

        lines.append("Options:")
        lines.extend(f"  {index}. {option}" for index, option in enumerate(self.options, start=1))
        lines.append(RULE)
        return "\n".join(lines)


class EscalationHandler:
    """Decides when to escalate and emits the escalation report."""

    def __init__(
        self,
        error_log: ErrorLog,
        notifier: NotificationSink,
        thresholds: Optional[ThresholdConfig] = None,
        log_path: Optional[Path] = None,
    ) -> None:
        """
        Initialize the handler.

        Args:
            error_log: Receives the user_escalation event.
            notifier: Console and desktop output.
            thresholds: Failure-count thresholds.
            log_path: Error log location shown in the report.
        """
        self._error_log = error_log
        self._notifier = notifier
        self.thresholds = thresholds or ThresholdConfig()
        self._log_path = log_path or error_log.path
        self.history: List[EscalationReport] = []

    def should_escalate(self, error_type: Union[ErrorType, str], failure_count: int) -> bool:
        """
        Decide whether a failure needs a human.

        Security-class errors always escalate. ``repeated_failure`` escalates
        from the repeated-failure threshold; every other type escalates at
        the level-3 threshold.
        """
        error_type = ErrorType.parse(error_type)

        if error_type in ALWAYS_ESCALATE:
            return True
        if error_type == ErrorType.REPEATED_FAILURE:
            return failure_count >= self.thresholds.repeated_failure_escalation
        return failure_count >= self.thresholds.repeated_failures_l3

    def escalate(
        self,
        issue_type: Union[ErrorType, str],
        context: str,
        suggestions: Optional[Sequence[str]] = None,
        attempted: Optional[Sequence[str]] = None,
        impact: Optional[str] = None,
    ) -> EscalationReport:
        """
        Log, notify, and print an escalation report.

        This is terminal: it never retries or recurses.

        Args:
            issue_type: Issue name shown in the report.
            context: What happened.
            suggestions: Optional itemized suggested actions.
            attempted: What automated recovery already tried.
            impact: What the failure means; a generic statement if omitted.

        Returns:
            The emitted report.
        """
        issue = issue_type.value if isinstance(issue_type, ErrorType) else str(issue_type)

        self._error_log.record(ErrorType.USER_ESCALATION, issue, context, RecoveryAction.ESCALATED)
        self._notifier.notify_escalation(issue, context)

        report = EscalationReport(
            issue_type=issue,
            context=context,
            attempted=list(attempted or []),
            impact=impact or DEFAULT_IMPACT,
            suggestions=[s for s in (suggestions or []) if s.strip()],
            options=[
                "Run 'recovery-ladder admin doctor' for full diagnostics",
                f"Check logs: {self._log_path}",
                "Reset system: 'recovery-ladder admin reset'",
            ],
        )
        self._notifier.print_block(report.render())
        self.history.append(report)
        logger.error("Escalated to user: %s - %s", issue, context)
        return report
