"""
L1 and L2 of the recovery ladder.

- BackoffRetrier: run one operation up to N times with capped exponential backoff
- AlternativeChainRunner: run substitute operations in order until one succeeds

Neither component decides whether an error class is retryable; the caller does.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

from recovery_ladder.error_log import ErrorLog
from recovery_ladder.models import (
    Command,
    ErrorType,
    OperationOutcome,
    RecoveryAction,
    RetryPolicy,
)
from recovery_ladder.runner import Runner


logger = logging.getLogger(__name__)


class BackoffRetrier:
    """
    Retries a command with exponential backoff.

    Usage:
        retrier = BackoffRetrier(runner, error_log)
        outcome = retrier.retry(Command.parse("curl -sf https://example.com"))
    """

    def __init__(
        self,
        runner: Runner,
        error_log: ErrorLog,
        default_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the retrier.

        Args:
            runner: Executes each attempt.
            error_log: Receives diagnostics and the retry_exhausted event.
            default_policy: Policy used when retry() gets none.
            sleep: Sleep function, injectable for tests.
        """
        self._runner = runner
        self._error_log = error_log
        self.default_policy = default_policy or RetryPolicy()
        self._sleep = sleep

    @staticmethod
    def backoff_schedule(policy: RetryPolicy, failures: int) -> list[float]:
        """
        Sleep durations that follow ``failures`` consecutive failed attempts.

        The first sleep is ``initial_backoff``; each later one is the previous
        times ``multiplier``, capped at ``max_backoff``.
        """
        delays = []
        backoff = min(policy.initial_backoff, policy.max_backoff)
        for _ in range(failures):
            delays.append(backoff)
            backoff = min(backoff * policy.multiplier, policy.max_backoff)
        return delays

    def retry(self, operation: Command, policy: Optional[RetryPolicy] = None) -> OperationOutcome:
        """
        Attempt ``operation`` up to ``policy.max_retries`` times.

        Args:
            operation: The command to run.
            policy: Retry policy; defaults to the retrier's default policy.

        Returns:
            The first successful outcome, or the last failed one.
        """
        policy = policy or self.default_policy
        max_attempts = max(1, policy.max_retries)
        backoff = min(policy.initial_backoff, policy.max_backoff)
        outcome = OperationOutcome.failed(1)

        for attempt in range(1, max_attempts + 1):
            self._error_log.info(f"Attempt {attempt}/{max_attempts}: {operation.identifier}")
            outcome = self._runner.run(operation)

            if outcome.success:
                return outcome

            if attempt < max_attempts:
                self._error_log.warn(
                    f"Attempt {attempt} failed (exit {outcome.exit_code}), "
                    f"retrying in {backoff:g}s"
                )
                self._sleep(backoff)
                backoff = min(backoff * policy.multiplier, policy.max_backoff)

        self._error_log.record(
            ErrorType.RETRY_EXHAUSTED,
            operation.identifier,
            f"Failed after {max_attempts} attempts",
            RecoveryAction.ESCALATE,
        )
        return outcome


class AlternativeChainRunner:
    """Runs an ordered list of substitute commands until one succeeds."""

    def __init__(self, runner: Runner, error_log: ErrorLog) -> None:
        self._runner = runner
        self._error_log = error_log

    def run_alternatives(self, ops: Sequence[Command]) -> OperationOutcome:
        """
        Execute ``ops`` strictly in order, stopping at the first success.

        Each op uses its own timeout; there is no backoff and no shared budget.

        Args:
            ops: Alternatives, most preferred first.

        Returns:
            The first successful outcome, or a failure when all fail.
        """
        if not ops:
            return OperationOutcome.failed(1, "No alternatives provided")

        total = len(ops)
        last = OperationOutcome.failed(1)
        for index, op in enumerate(ops, start=1):
            self._error_log.info(f"Trying alternative {index}/{total}: {op.identifier}")
            last = self._runner.run(op)

            if last.success:
                self._error_log.info(f"Alternative {index} succeeded")
                return last

            self._error_log.warn(f"Alternative {index} failed (exit {last.exit_code})")

        self._error_log.record(
            ErrorType.ALTERNATIVES_EXHAUSTED,
            ops[0].identifier,
            f"All {total} alternatives failed",
            RecoveryAction.DEGRADE,
        )
        return last
