"""
Self-healing for known failure patterns.

The advisor applies cheap local fixes for patterns it recognizes:
- hook_timeout: raise the default hook timeout in steps, up to a cap
- skill_not_found: ask an external collaborator to rebuild its index
- context_overflow: ask an external collaborator to compact context

Results are advisory. Nothing here blocks or raises.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from recovery_ladder.config import TimeoutConfig
from recovery_ladder.error_log import ErrorLog
from recovery_ladder.models import ErrorType
from recovery_ladder.utils.fs import FileSystemError


logger = logging.getLogger(__name__)

# Repeated hook timeouts needed before the timeout is raised
HOOK_TIMEOUT_FREQUENCY = 3


class SelfHealingAdvisor:
    """Attempts automatic fixes for recognized failure patterns."""

    def __init__(
        self,
        timeouts: Optional[TimeoutConfig] = None,
        rebuild_index: Optional[Callable[[], None]] = None,
        compact_context: Optional[Callable[[], None]] = None,
        error_log: Optional[ErrorLog] = None,
    ) -> None:
        """
        Initialize the advisor.

        Args:
            timeouts: Timeout settings; the hook timeout starts at hook_seconds.
            rebuild_index: Called when a skill lookup failed.
            compact_context: Called when the context overflowed.
            error_log: Receives a diagnostic for every applied fix.
        """
        self.timeouts = timeouts or TimeoutConfig()
        self.hook_timeout: float = self.timeouts.hook_seconds
        self._rebuild_index = rebuild_index
        self._compact_context = compact_context
        self._error_log = error_log

    def attempt_self_heal(self, pattern: Union[ErrorType, str], frequency: int) -> bool:
        """
        Try to fix a failure pattern.

        Args:
            pattern: The error type that occurred.
            frequency: How often it has occurred recently.

        Returns:
            True if a fix was applied or signalled.
        """
        try:
            pattern = ErrorType.parse(pattern)
        except ValueError:
            return False

        if pattern == ErrorType.HOOK_TIMEOUT:
            if frequency < HOOK_TIMEOUT_FREQUENCY:
                return False
            return self._raise_hook_timeout()

        if pattern == ErrorType.SKILL_NOT_FOUND:
            self._signal(self._rebuild_index, "skill index rebuild")
            return True

        if pattern == ErrorType.CONTEXT_OVERFLOW:
            self._signal(self._compact_context, "context compaction")
            return True

        return False

    def _raise_hook_timeout(self) -> bool:
        current = self.hook_timeout
        raised = min(current + self.timeouts.hook_step_seconds, self.timeouts.hook_max_seconds)
        if raised <= current:
            return False
        self.hook_timeout = raised
        self._note(f"Self-heal: Increased hook timeout to {raised:g}s")
        return True

    def _signal(self, callback: Optional[Callable[[], None]], what: str) -> None:
        self._note(f"Self-heal: Triggering {what}")
        if callback is None:
            return
        try:
            callback()
        except Exception as e:
            logger.debug("Self-heal %s failed: %s", what, e)

    def _note(self, message: str) -> None:
        if self._error_log is None:
            logger.info(message)
            return
        try:
            self._error_log.info(message)
        except FileSystemError as e:
            logger.debug("Could not record self-heal diagnostic: %s", e)
