"""
Read-only diagnostics for Recovery Ladder.

Backs the ``admin status`` and ``admin doctor`` commands: current level,
session counters, thresholds, feature gates and the tail of the error log.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from recovery_ladder.config import RecoveryConfig
from recovery_ladder.degradation import LEVEL_NAMES, feature_enabled_at
from recovery_ladder.error_log import ErrorLog
from recovery_ladder.health_store import HealthStore
from recovery_ladder.models import DegradationLevel, Feature


@dataclass
class Diagnostics:
    """Snapshot of system health."""
    level: DegradationLevel
    hook_failures_session: int
    agent_timeouts_session: int
    repeated_failures: int
    last_degradation_at: str | None
    thresholds: dict[str, int]
    features: dict[str, bool]
    health_path: str
    error_log_path: str
    recent_errors: list[str] = field(default_factory=list)
    mirrored_errors: int = 0

    @property
    def level_name(self) -> str:
        return LEVEL_NAMES[self.level]

    @property
    def healthy(self) -> bool:
        """True when nothing is degraded."""
        return self.level == DegradationLevel.FULL

    @property
    def exit_code(self) -> int:
        """0 at full health, 1 when degraded."""
        return 0 if self.healthy else 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        data = asdict(self)
        data["level"] = int(self.level)
        data["level_name"] = self.level_name
        return data


def build_diagnostics(
    config: RecoveryConfig,
    store: HealthStore,
    error_log: ErrorLog,
    lines: int = 10,
) -> Diagnostics:
    """
    Collect diagnostics without modifying any state.

    Args:
        config: Active configuration.
        store: Health record storage.
        error_log: Error log to tail.
        lines: Number of recent log lines to include.

    Returns:
        Diagnostics snapshot.
    """
    state = store.load()
    level = state.level
    return Diagnostics(
        level=level,
        hook_failures_session=state.hook_failures_session,
        agent_timeouts_session=state.agent_timeouts_session,
        repeated_failures=state.repeated_failures,
        last_degradation_at=state.last_degradation_at,
        thresholds=asdict(config.thresholds),
        features={feature.value: feature_enabled_at(level, feature) for feature in Feature},
        health_path=str(store.path),
        error_log_path=str(error_log.path),
        recent_errors=error_log.tail(lines) if lines > 0 else [],
        mirrored_errors=len(state.errors),
    )


def get_error_summary(error_log: ErrorLog, lines: int = 10) -> str:
    """Last ``lines`` error-log lines, or "No errors logged"."""
    return error_log.summary(lines)
