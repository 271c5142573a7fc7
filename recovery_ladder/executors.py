"""
Safe executors for hooks and agents.

Hooks are absorbed: a missing, failing or timed-out hook never fails the
caller, it only feeds the degradation counters. Agents are surfaced: the
caller depends on their output, so failures come back as failed outcomes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from recovery_ladder.config import TimeoutConfig
from recovery_ladder.degradation import DegradationController
from recovery_ladder.error_log import ErrorLog
from recovery_ladder.escalation import EscalationHandler
from recovery_ladder.health_store import HealthStore
from recovery_ladder.models import (
    Command,
    ErrorType,
    Feature,
    HealthState,
    HookCategory,
    OperationOutcome,
    RecoveryAction,
)
from recovery_ladder.notifications import NotificationSink
from recovery_ladder.runner import Runner
from recovery_ladder.self_healing import SelfHealingAdvisor
from recovery_ladder.utils.fs import file_exists, is_executable


logger = logging.getLogger(__name__)


def _increment_hook_failures(state: HealthState) -> None:
    state.hook_failures_session += 1


def _increment_agent_timeouts(state: HealthState) -> None:
    state.agent_timeouts_session += 1


class HookExecutor:
    """Runs hook scripts and bypasses their failures."""

    def __init__(
        self,
        runner: Runner,
        store: HealthStore,
        error_log: ErrorLog,
        degradation: DegradationController,
        notifier: NotificationSink,
        advisor: Optional[SelfHealingAdvisor] = None,
    ) -> None:
        self._runner = runner
        self._store = store
        self._error_log = error_log
        self._degradation = degradation
        self._notifier = notifier
        self._advisor = advisor or SelfHealingAdvisor()

    @property
    def default_timeout(self) -> float:
        """Current default hook timeout, as tuned by self-healing."""
        return self._advisor.hook_timeout

    def run(
        self,
        hook_path: Union[Path, str],
        input: Optional[str] = None,
        timeout: Optional[float] = None,
        category: Union[HookCategory, str] = HookCategory.ESSENTIAL,
    ) -> OperationOutcome:
        """
        Run a hook, absorbing any failure.

        Args:
            hook_path: Path to the executable hook.
            input: Text piped to the hook's stdin.
            timeout: Timeout in seconds; the current default when omitted.
            category: Hook category, checked against the degradation level.

        Returns:
            The hook's output on success; an empty success otherwise.
        """
        path = Path(hook_path)
        name = path.name

        if not self._degradation.should_hook_run(category):
            self._error_log.info(
                f"Hook skipped ({HookCategory(category).value} hooks disabled at level "
                f"{int(self._degradation.level)}): {name}"
            )
            return OperationOutcome.ok()

        if not file_exists(path) or not is_executable(path):
            self._error_log.record(
                ErrorType.HOOK_NOT_FOUND,
                str(path),
                "Hook missing or not executable",
                RecoveryAction.BYPASSED,
            )
            return OperationOutcome.ok()

        effective_timeout = timeout if timeout is not None else self.default_timeout
        outcome = self._runner.run(
            Command(argv=(str(path),), stdin=input, timeout=effective_timeout, name=name),
            timeout=effective_timeout,
        )
        if outcome.success:
            return outcome

        self._store.update(_increment_hook_failures)
        if outcome.timed_out:
            self._error_log.record(
                ErrorType.HOOK_TIMEOUT,
                str(path),
                f"Timed out after {effective_timeout:g}s",
                RecoveryAction.BYPASSED,
            )
            self._notifier.warning(f"Hook timed out: {name} (bypassing)")
        else:
            self._error_log.record(
                ErrorType.HOOK_FAILURE,
                str(path),
                f"Exit code {outcome.exit_code}: {outcome.output.strip()}",
                RecoveryAction.BYPASSED,
            )
            self._notifier.warning(f"Hook failed: {name} (bypassing)")

        self._degradation.check_triggers()
        return OperationOutcome.ok()


class AgentExecutor:
    """Runs agent commands and surfaces their failures."""

    def __init__(
        self,
        runner: Runner,
        store: HealthStore,
        error_log: ErrorLog,
        degradation: DegradationController,
        escalation: EscalationHandler,
        timeouts: Optional[TimeoutConfig] = None,
    ) -> None:
        self._runner = runner
        self._store = store
        self._error_log = error_log
        self._degradation = degradation
        self._escalation = escalation
        self.timeouts = timeouts or TimeoutConfig()

    def run(
        self,
        agent_cmd: Union[str, Sequence[str], Command],
        timeout: Optional[float] = None,
        retry_on_invalid: bool = True,
    ) -> OperationOutcome:
        """
        Run an agent command.

        When agents are gated off the command is not run; the user is
        escalated to instead.

        Args:
            agent_cmd: Command string, argv list, or Command.
            timeout: Timeout in seconds; timeouts.agent_seconds when omitted.
            retry_on_invalid: Re-run once if the agent exits 0 with no output.

        Returns:
            OperationOutcome; failed on timeout, non-zero exit or when gated off.
        """
        command = Command.parse(agent_cmd)

        if not self._degradation.is_feature_enabled(Feature.AGENTS):
            level = int(self._degradation.level)
            self._error_log.info(f"Agent blocked at degradation level {level}: {command.identifier}")
            self._escalation.escalate(
                "Agent Required",
                f"Agents are disabled at degradation level {level}; "
                f"'{command.identifier}' was not run.",
                suggestions=[
                    "Run 'recovery-ladder admin doctor' to see what caused the degradation",
                    "Run 'recovery-ladder admin reset' once the underlying issue is fixed",
                    "Perform the agent's task manually",
                ],
                attempted=[f"Degraded to level {level}, which disables agents"],
                impact="The requested agent task was not performed.",
            )
            return OperationOutcome.failed(1, "Agents are disabled at the current degradation level")

        effective_timeout = timeout if timeout is not None else self.timeouts.agent_seconds
        outcome = self._runner.run(command, timeout=effective_timeout)

        if retry_on_invalid and outcome.success and not outcome.output.strip():
            self._error_log.warn(f"Agent returned no output, retrying once: {command.identifier}")
            outcome = self._runner.run(command, timeout=effective_timeout)

        if outcome.success:
            return outcome

        if outcome.timed_out:
            self._store.update(_increment_agent_timeouts)
            self._error_log.record(
                ErrorType.AGENT_TIMEOUT,
                command.identifier,
                f"Timed out after {effective_timeout:g}s",
                RecoveryAction.KILLED,
            )
            self._degradation.check_triggers()
        else:
            self._error_log.record(
                ErrorType.AGENT_FAILURE,
                command.identifier,
                f"Exit code {outcome.exit_code}: {outcome.output.strip()}",
                RecoveryAction.FAILED,
            )
        return outcome
