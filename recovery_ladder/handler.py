"""UnifiedErrorHandler - single entry point for the four-tier recovery ladder.

Tiers, always evaluated in this order:

- Tier 1 (RETRY): backoff retry of the failing command, for transient/network errors
- Tier 2 (SUBSTITUTE): ordered alternative commands
- Tier 3 (DEGRADE): degradation trigger check, never short-circuits
- Tier 4 (ESCALATE): hand off to a human

Self-healing is consulted between tiers 2 and 3; its result is advisory.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Union

from recovery_ladder.config import RetryConfig
from recovery_ladder.degradation import DegradationController
from recovery_ladder.error_log import ErrorLog
from recovery_ladder.escalation import EscalationHandler, EscalationReport
from recovery_ladder.health_store import HealthStore
from recovery_ladder.models import (
    RETRYABLE,
    Command,
    DegradationLevel,
    ErrorType,
    HealthState,
    OperationOutcome,
    RecoveryAction,
)
from recovery_ladder.retry import AlternativeChainRunner, BackoffRetrier
from recovery_ladder.self_healing import SelfHealingAdvisor


logger = logging.getLogger(__name__)

CommandSpec = Union[str, Sequence[str], Command]


class RecoveryTier(Enum):
    """Recovery tiers ordered by cost."""

    RETRY = 1
    SUBSTITUTE = 2
    DEGRADE = 3
    ESCALATE = 4


class RecoveryStatus(Enum):
    """Final status of a handle() call."""

    RECOVERED = "recovered"
    DEGRADED = "degraded"
    ESCALATED = "escalated"


@dataclass
class HandleResult:
    """Result of running one failure through the ladder.

    Attributes:
        success: Whether the failure was recovered.
        status: How the call ended.
        tier: The tier that produced the result.
        outcome: The successful retry/alternative outcome, if any.
        level: Degradation level after the call.
        repeated_failures: Repeated-failure counter after the call.
        self_healed: Whether self-healing applied or signalled a fix.
        attempted: Human-readable list of what was tried.
        report: The escalation report, when escalated.
    """

    success: bool
    status: RecoveryStatus
    tier: RecoveryTier
    outcome: Optional[OperationOutcome] = None
    level: DegradationLevel = DegradationLevel.FULL
    repeated_failures: int = 0
    self_healed: bool = False
    attempted: List[str] = field(default_factory=list)
    report: Optional[EscalationReport] = None

    @property
    def output(self) -> str:
        return self.outcome.output if self.outcome else ""


def _increment_repeated(state: HealthState) -> None:
    state.repeated_failures += 1


def _decrement_repeated(state: HealthState) -> None:
    state.repeated_failures = max(0, state.repeated_failures - 1)


class UnifiedErrorHandler:
    """Routes a failure through retry, substitution, degradation and escalation."""

    def __init__(
        self,
        store: HealthStore,
        error_log: ErrorLog,
        retrier: BackoffRetrier,
        alternatives: AlternativeChainRunner,
        advisor: SelfHealingAdvisor,
        degradation: DegradationController,
        escalation: EscalationHandler,
        retry_config: Optional[RetryConfig] = None,
    ) -> None:
        self._store = store
        self._error_log = error_log
        self._retrier = retrier
        self._alternatives = alternatives
        self._advisor = advisor
        self._degradation = degradation
        self._escalation = escalation
        self.retry_config = retry_config or RetryConfig()

    def handle(
        self,
        error_type: Union[ErrorType, str],
        component: CommandSpec,
        context: str = "",
        alternatives: Sequence[CommandSpec] = (),
    ) -> HandleResult:
        """Run one failure through the recovery ladder.

        Args:
            error_type: Classification of the failure.
            component: The failing command (retried for transient/network
                errors) or just its identifier.
            context: What happened, for logs and escalation.
            alternatives: Substitute commands, most preferred first.

        Returns:
            HandleResult; success only when a retry or alternative succeeded.

        Raises:
            ValueError: Unknown error type, or a retried component or
                alternative that is empty or cannot be split into argv.
                Raised before any state changes.
        """
        error_type = ErrorType.parse(error_type)
        component_id = _identifier(component)
        command = Command.parse(component) if error_type in RETRYABLE else None
        ops = [Command.parse(alt) for alt in alternatives]
        attempted: List[str] = []

        self._store.update(_increment_repeated)

        # Tier 1: retry
        if command is not None:
            policy = self.retry_config.to_policy()
            outcome = self._retrier.retry(command, policy)
            if outcome.success:
                return self._recovered(RecoveryTier.RETRY, outcome)
            attempted.append(f"Retried {component_id} {max(1, policy.max_retries)} times with backoff")

        # Tier 2: substitute
        if ops:
            outcome = self._alternatives.run_alternatives(ops)
            if outcome.success:
                return self._recovered(RecoveryTier.SUBSTITUTE, outcome)
            attempted.append(f"Tried {len(ops)} alternative(s): " + ", ".join(op.identifier for op in ops))

        repeated = self._store.load().repeated_failures
        self_healed = self._advisor.attempt_self_heal(error_type, repeated)
        if self_healed:
            attempted.append(f"Applied self-healing for {error_type.value}")

        # Tier 3: degrade
        before = self._degradation.level
        level = self._degradation.check_triggers()
        if level > before:
            self._error_log.warn(f"System degraded from level {int(before)} to {int(level)}")
            attempted.append(f"Degraded to level {int(level)}")

        # Tier 4: escalate
        if self._escalation.should_escalate(error_type, repeated):
            report = self._escalation.escalate(
                error_type,
                f"{component_id}: {context}" if context else component_id,
                suggestions=_suggestions(error_type),
                attempted=attempted,
            )
            return HandleResult(
                success=False,
                status=RecoveryStatus.ESCALATED,
                tier=RecoveryTier.ESCALATE,
                level=level,
                repeated_failures=repeated,
                self_healed=self_healed,
                attempted=attempted,
                report=report,
            )

        self._error_log.record(error_type, component_id, context, RecoveryAction.DEGRADED)
        return HandleResult(
            success=False,
            status=RecoveryStatus.DEGRADED,
            tier=RecoveryTier.DEGRADE,
            level=level,
            repeated_failures=repeated,
            self_healed=self_healed,
            attempted=attempted,
        )

    def _recovered(self, tier: RecoveryTier, outcome: OperationOutcome) -> HandleResult:
        state = self._store.update(_decrement_repeated)
        logger.info("Recovered at tier %s", tier.name)
        return HandleResult(
            success=True,
            status=RecoveryStatus.RECOVERED,
            tier=tier,
            outcome=outcome,
            level=state.level,
            repeated_failures=state.repeated_failures,
        )


def _identifier(component: CommandSpec) -> str:
    if isinstance(component, Command):
        return component.identifier
    if isinstance(component, str):
        return component
    return shlex.join(str(part) for part in component)


def _suggestions(error_type: ErrorType) -> List[str]:
    if error_type == ErrorType.SECURITY:
        return ["Review the operation for unsafe actions before retrying"]
    if error_type in (ErrorType.DATA_LOSS, ErrorType.DATA_CORRUPTION):
        return ["Check version control or backups before continuing"]
    if error_type == ErrorType.AUTHENTICATION:
        return ["Re-authenticate and retry the operation"]
    if error_type == ErrorType.INFINITE_LOOP:
        return ["Stop the current task and break it into smaller steps"]
    if error_type == ErrorType.AGENT_REFUSAL:
        return ["Rephrase the request or perform the task manually"]
    return ["Investigate the repeated failure before continuing"]
