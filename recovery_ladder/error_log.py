"""
Append-only error log for Recovery Ladder.

Each error event is one line:
    [ISO8601] [error_type] component=<id> recovery=<action> details=<text>

Diagnostics share the file as:
    [ISO8601] [DIAG:LEVEL] message

The most recent events are also mirrored into the health record for quick
inspection; the log file remains the authoritative history and is never
rotated or truncated here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from recovery_ladder.health_store import HealthStore
from recovery_ladder.models import ErrorEvent, ErrorType, RecoveryAction
from recovery_ladder.utils.fs import append_line, tail_lines


logger = logging.getLogger(__name__)


class DiagLevel:
    """Diagnostic level constants."""
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


_PY_LEVELS = {
    DiagLevel.INFO: logging.INFO,
    DiagLevel.WARN: logging.WARNING,
    DiagLevel.ERROR: logging.ERROR,
}


def utc_timestamp() -> str:
    """Current UTC time in ISO 8601 form with microseconds."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


class ErrorLog:
    """
    Structured error event log.

    Write-only from the engine's perspective; ``tail()`` exists for diagnostics.
    """

    def __init__(
        self,
        path: Path | str,
        store: Optional[HealthStore] = None,
        retain: int = 50,
    ) -> None:
        """
        Initialize the error log.

        Args:
            path: Path to errors.log.
            store: Optional health store to mirror recent events into.
            retain: Number of recent events kept in the health record.
        """
        self._path = Path(path)
        self._store = store
        self._retain = retain

    @property
    def path(self) -> Path:
        """Path to the log file."""
        return self._path

    def record(
        self,
        error_type: Union[ErrorType, str],
        component: str,
        details: str = "",
        recovery: Union[RecoveryAction, str] = RecoveryAction.NONE,
    ) -> ErrorEvent:
        """
        Append an error event and mirror it into the health record.

        Args:
            error_type: Classification of the event.
            component: Identifier of the failing component.
            details: Human-readable details.
            recovery: What was done about it.

        Returns:
            The written ErrorEvent.
        """
        event = ErrorEvent(
            timestamp=utc_timestamp(),
            error_type=_value(error_type),
            component=component,
            details=details,
            recovery_action=_value(recovery),
        )
        append_line(self._path, event.to_line())
        logger.debug("error event: %s", event.to_line())

        if self._store is not None:
            self._store.update(lambda state: state.add_error(event, self._retain))

        return event

    def diagnostic(self, level: str, message: str) -> None:
        """
        Write a diagnostic line to the log file and the Python logger.

        Args:
            level: One of DiagLevel.INFO, WARN, ERROR.
            message: The message.
        """
        append_line(self._path, f"[{utc_timestamp()}] [DIAG:{level}] {message}")
        logger.log(_PY_LEVELS.get(level, logging.INFO), message)

    def info(self, message: str) -> None:
        self.diagnostic(DiagLevel.INFO, message)

    def warn(self, message: str) -> None:
        self.diagnostic(DiagLevel.WARN, message)

    def error(self, message: str) -> None:
        self.diagnostic(DiagLevel.ERROR, message)

    def tail(self, count: int = 10) -> list[str]:
        """
        Return the last ``count`` lines of the log, oldest first.

        Args:
            count: Number of lines.

        Returns:
            List of raw log lines; empty when nothing has been logged.
        """
        return tail_lines(self._path, count)

    def summary(self, count: int = 10) -> str:
        """Recent log lines as text, or "No errors logged"."""
        lines = self.tail(count)
        return "\n".join(lines) if lines else "No errors logged"


def _value(item: Union[ErrorType, RecoveryAction, str]) -> str:
    return item.value if isinstance(item, (ErrorType, RecoveryAction)) else str(item)
