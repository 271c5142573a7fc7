"""
L3 of the recovery ladder: graceful degradation.

States 0 (Full) -> 1 (Reduced) -> 2 (Minimal) -> 3 (Emergency). The
controller only ever raises the level on its own; reset() is the only way
down and must be requested explicitly.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from recovery_ladder.config import ThresholdConfig
from recovery_ladder.error_log import ErrorLog, utc_timestamp
from recovery_ladder.health_store import HealthStore
from recovery_ladder.models import (
    DegradationLevel,
    ErrorType,
    Feature,
    HealthState,
    HookCategory,
    RecoveryAction,
)
from recovery_ladder.notifications import NotificationSink


logger = logging.getLogger(__name__)


# feature -> enabled while level < value
FEATURE_TABLE: dict[Feature, int] = {
    Feature.HOOKS: 3,
    Feature.AGENTS: 3,
    Feature.PARALLEL_AGENTS: 2,
    Feature.SKILLS: 2,
    Feature.NON_ESSENTIAL_HOOKS: 1,
    Feature.FULL_VERIFICATION: 1,
}

# Unknown features are only enabled at full health
UNKNOWN_FEATURE_LIMIT = 1

# hook category -> runs while level < value
HOOK_CATEGORY_TABLE: dict[HookCategory, int] = {
    HookCategory.ESSENTIAL: 3,
    HookCategory.STANDARD: 2,
    HookCategory.OPTIONAL: 1,
}

LEVEL_NAMES: dict[DegradationLevel, str] = {
    DegradationLevel.FULL: "Full",
    DegradationLevel.REDUCED: "Reduced",
    DegradationLevel.MINIMAL: "Minimal",
    DegradationLevel.EMERGENCY: "Emergency",
}


def feature_enabled_at(level: int, feature: Union[Feature, str]) -> bool:
    """
    Pure feature-gate lookup.

    Args:
        level: Degradation level 0-3.
        feature: A Feature or its string name; unknown names are accepted.

    Returns:
        True if the feature may run at this level.
    """
    try:
        limit = FEATURE_TABLE[Feature(feature)]
    except ValueError:
        limit = UNKNOWN_FEATURE_LIMIT
    return level < limit


def target_level(state: HealthState, thresholds: ThresholdConfig) -> DegradationLevel:
    """
    Level implied by the counters, evaluated most-severe-first.

    Does not consider the current level; callers compare.
    """
    if state.repeated_failures >= thresholds.repeated_failures_l3:
        return DegradationLevel.EMERGENCY
    if (
        state.hook_failures_session >= thresholds.hook_failures_l2
        or state.agent_timeouts_session >= thresholds.agent_timeouts_l2
    ):
        return DegradationLevel.MINIMAL
    if (
        state.hook_failures_session >= thresholds.hook_failures_l1
        or state.agent_timeouts_session >= thresholds.agent_timeouts_l1
    ):
        return DegradationLevel.REDUCED
    return DegradationLevel.FULL


class DegradationController:
    """Owns the degradation level and the feature gates derived from it."""

    def __init__(
        self,
        store: HealthStore,
        error_log: ErrorLog,
        notifier: NotificationSink,
        thresholds: Optional[ThresholdConfig] = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            store: Health record storage.
            error_log: Receives degradation events and diagnostics.
            notifier: Receives degradation notifications.
            thresholds: Counter thresholds; defaults when omitted.
        """
        self._store = store
        self._error_log = error_log
        self._notifier = notifier
        self.thresholds = thresholds or ThresholdConfig()

    @property
    def level(self) -> DegradationLevel:
        """Current persisted degradation level."""
        return self._store.load().level

    def check_triggers(self) -> DegradationLevel:
        """
        Evaluate counters and raise the level if a threshold is crossed.

        A transition persists the new level and timestamp, logs a
        degradation_triggered event, and notifies the user once.

        Returns:
            The level after evaluation.
        """
        state = self._store.load()
        current = state.level
        target = target_level(state, self.thresholds)

        if target <= current:
            return current

        def transition(fresh: HealthState) -> None:
            fresh.degradation_level = max(int(fresh.degradation_level), int(target))
            fresh.last_degradation_at = utc_timestamp()

        saved = self._store.update(transition)
        self._error_log.record(
            ErrorType.DEGRADATION_TRIGGERED,
            "system",
            f"Degraded to level {int(target)}",
            RecoveryAction.AUTOMATIC,
        )
        self._notifier.notify_degradation(target)
        logger.warning("Degraded from level %d to %d", current, target)
        return saved.level

    def is_feature_enabled(self, feature: Union[Feature, str]) -> bool:
        """Check a feature gate against the current level."""
        return feature_enabled_at(self.level, feature)

    def should_hook_run(self, category: Union[HookCategory, str] = HookCategory.ESSENTIAL) -> bool:
        """
        Check whether a hook of the given category may run.

        Level 0 runs all hooks, level 1 skips optional ones, level 2 runs
        essential hooks only, level 3 runs none.
        """
        return self.level < HOOK_CATEGORY_TABLE[HookCategory(category)]

    def feature_table(self) -> dict[str, bool]:
        """Enabled/disabled status of every known feature at the current level."""
        level = self.level
        return {feature.value: feature_enabled_at(level, feature) for feature in Feature}

    def reset(self) -> HealthState:
        """
        Zero the level and every session counter and clear the transition time.

        The error mirror is kept; the error log file is authoritative history.

        Returns:
            The reset state.
        """

        def zero(state: HealthState) -> None:
            state.degradation_level = 0
            state.hook_failures_session = 0
            state.agent_timeouts_session = 0
            state.repeated_failures = 0
            state.last_degradation_at = None

        state = self._store.update(zero)
        self._error_log.info("Degradation level reset to 0")
        return state
