"""
Engine wiring for Recovery Ladder.

build_engine() constructs every component from one RecoveryConfig so the
CLI and library callers share the same store, log, and thresholds.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from rich.console import Console

from recovery_ladder.config import RecoveryConfig
from recovery_ladder.degradation import DegradationController
from recovery_ladder.error_log import ErrorLog
from recovery_ladder.escalation import EscalationHandler
from recovery_ladder.executors import AgentExecutor, HookExecutor
from recovery_ladder.handler import UnifiedErrorHandler
from recovery_ladder.health_store import HealthStore
from recovery_ladder.notifications import NotificationSink
from recovery_ladder.retry import AlternativeChainRunner, BackoffRetrier
from recovery_ladder.runner import ProcessRunner, Runner
from recovery_ladder.self_healing import SelfHealingAdvisor


@dataclass
class RecoveryEngine:
    """All recovery components, wired to one health record and error log."""
    config: RecoveryConfig
    store: HealthStore
    error_log: ErrorLog
    notifier: NotificationSink
    runner: Runner
    retrier: BackoffRetrier
    alternatives: AlternativeChainRunner
    degradation: DegradationController
    escalation: EscalationHandler
    advisor: SelfHealingAdvisor
    hooks: HookExecutor
    agents: AgentExecutor
    handler: UnifiedErrorHandler


def build_engine(
    config: Optional[RecoveryConfig] = None,
    console: Optional[Console] = None,
    runner: Optional[Runner] = None,
    sleep: Optional[Callable[[float], None]] = None,
    notifier: Optional[NotificationSink] = None,
) -> RecoveryEngine:
    """
    Build a RecoveryEngine.

    Args:
        config: Configuration; defaults when omitted.
        console: Console for user-facing messages.
        runner: Process runner; a ProcessRunner when omitted.
        sleep: Backoff sleep function; time.sleep when omitted.
        notifier: Notification sink; built from config when omitted.

    Returns:
        The wired engine.
    """
    config = config or RecoveryConfig()
    runner = runner or ProcessRunner()
    notifier = notifier or NotificationSink(console=console, config=config.notifications)

    store = HealthStore(config.health_path)
    error_log = ErrorLog(config.error_log_path, store=store, retain=config.retained_errors)

    degradation = DegradationController(store, error_log, notifier, config.thresholds)
    escalation = EscalationHandler(error_log, notifier, config.thresholds)
    advisor = SelfHealingAdvisor(config.timeouts, error_log=error_log)
    retrier = BackoffRetrier(
        runner,
        error_log,
        default_policy=config.retry.to_policy(),
        sleep=sleep or time.sleep,
    )
    alternatives = AlternativeChainRunner(runner, error_log)

    return RecoveryEngine(
        config=config,
        store=store,
        error_log=error_log,
        notifier=notifier,
        runner=runner,
        retrier=retrier,
        alternatives=alternatives,
        degradation=degradation,
        escalation=escalation,
        advisor=advisor,
        hooks=HookExecutor(runner, store, error_log, degradation, notifier, advisor),
        agents=AgentExecutor(runner, store, error_log, degradation, escalation, config.timeouts),
        handler=UnifiedErrorHandler(
            store,
            error_log,
            retrier,
            alternatives,
            advisor,
            degradation,
            escalation,
            config.retry,
        ),
    )
