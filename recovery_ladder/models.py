"""
Core data models for Recovery Ladder.

This module defines the foundational data structures used throughout the system:
- Enums for error types, features, hook categories and degradation levels
- Dataclasses for persisted health state and error events
- Value objects for retry policies, commands and operation outcomes
"""

from __future__ import annotations

import shlex
from dataclasses import asdict, dataclass, field
from enum import Enum, IntEnum
from typing import Any, Optional, Sequence, Union


class ErrorType(str, Enum):
    """
    Classification of failure events.

    The unified handler, escalation policy and self-healing advisor all
    branch on these values.
    """
    # Retryable
    TRANSIENT = "transient"
    NETWORK = "network"

    # Hook and agent outcomes
    HOOK_TIMEOUT = "hook_timeout"
    HOOK_FAILURE = "hook_failure"
    HOOK_NOT_FOUND = "hook_not_found"
    AGENT_TIMEOUT = "agent_timeout"
    AGENT_FAILURE = "agent_failure"

    # Recovery ladder events
    RETRY_EXHAUSTED = "retry_exhausted"
    ALTERNATIVES_EXHAUSTED = "alternatives_exhausted"
    DEGRADATION_TRIGGERED = "degradation_triggered"
    USER_ESCALATION = "user_escalation"
    REPEATED_FAILURE = "repeated_failure"

    # Patterns the self-healing advisor knows about
    SKILL_NOT_FOUND = "skill_not_found"
    CONTEXT_OVERFLOW = "context_overflow"

    # Always escalate
    SECURITY = "security"
    DATA_LOSS = "data_loss"
    DATA_CORRUPTION = "data_corruption"
    AGENT_REFUSAL = "agent_refusal"
    INFINITE_LOOP = "infinite_loop"
    AUTHENTICATION = "authentication"

    @classmethod
    def parse(cls, value: Union[str, "ErrorType"]) -> "ErrorType":
        """
        Convert a string to an ErrorType.

        Accepts ``corruption`` as an alias for ``data_corruption``.

        Raises:
            ValueError: If the value is not a known error type.
        """
        if isinstance(value, ErrorType):
            return value
        normalized = value.strip().lower().replace("-", "_")
        if normalized == "corruption":
            return cls.DATA_CORRUPTION
        return cls(normalized)


# Error types that bypass every counter and go straight to a human
ALWAYS_ESCALATE = frozenset([
    ErrorType.SECURITY,
    ErrorType.DATA_LOSS,
    ErrorType.DATA_CORRUPTION,
    ErrorType.AGENT_REFUSAL,
    ErrorType.INFINITE_LOOP,
    ErrorType.AUTHENTICATION,
])

# Error types the unified handler retries with backoff
RETRYABLE = frozenset([ErrorType.TRANSIENT, ErrorType.NETWORK])


class Feature(str, Enum):
    """Capabilities that can be gated off as the system degrades."""
    HOOKS = "hooks"
    NON_ESSENTIAL_HOOKS = "non_essential_hooks"
    AGENTS = "agents"
    PARALLEL_AGENTS = "parallel_agents"
    SKILLS = "skills"
    FULL_VERIFICATION = "full_verification"


class HookCategory(str, Enum):
    """How important a hook is to the session."""
    ESSENTIAL = "essential"
    STANDARD = "standard"
    OPTIONAL = "optional"


class DegradationLevel(IntEnum):
    """
    How much optional functionality is disabled.

    Levels only move up automatically; only an explicit reset moves down.
    """
    FULL = 0
    REDUCED = 1
    MINIMAL = 2
    EMERGENCY = 3


class RecoveryAction(str, Enum):
    """What was done about a logged error event."""
    ESCALATE = "escalate"
    DEGRADE = "degrade"
    DEGRADED = "degraded"
    AUTOMATIC = "automatic"
    BYPASSED = "bypassed"
    KILLED = "killed"
    FAILED = "failed"
    ESCALATED = "escalated"
    NONE = "none"


class Urgency(str, Enum):
    """Notification urgency."""
    LOW = "low"
    NORMAL = "normal"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorEvent:
    """
    A single logged failure event. Immutable once written.

    Attributes:
        timestamp: ISO 8601 UTC timestamp; also the key in HealthState.errors.
        error_type: The error classification (an ErrorType value or free text).
        component: Identifier of the failing hook, agent or command.
        details: Human-readable details.
        recovery_action: What was done about it.
    """
    timestamp: str
    error_type: str
    component: str
    details: str = ""
    recovery_action: str = RecoveryAction.NONE.value

    def to_line(self) -> str:
        """Render as one error-log line."""
        details = " ".join(self.details.splitlines())
        return (
            f"[{self.timestamp}] [{self.error_type}] component={self.component} "
            f"recovery={self.recovery_action} details={details}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ErrorEvent:
        """Create from dictionary."""
        return cls(
            timestamp=str(data.get("timestamp", "")),
            error_type=str(data.get("error_type", "")),
            component=str(data.get("component", "")),
            details=str(data.get("details", "")),
            recovery_action=str(data.get("recovery_action", RecoveryAction.NONE.value)),
        )


@dataclass
class HealthState:
    """
    Persisted health record, one per session/workspace.

    Counters are session-scoped and zeroed by an explicit reset.
    """
    degradation_level: int = 0
    hook_failures_session: int = 0
    agent_timeouts_session: int = 0
    repeated_failures: int = 0
    last_degradation_at: Optional[str] = None
    errors: dict[str, ErrorEvent] = field(default_factory=dict)

    @property
    def level(self) -> DegradationLevel:
        """Degradation level as an enum, clamped to the valid range."""
        return DegradationLevel(max(0, min(int(self.degradation_level), 3)))

    def add_error(self, event: ErrorEvent, retain: int) -> None:
        """Mirror an event, keeping only the most recent ``retain`` entries."""
        key = event.timestamp
        suffix = 1
        while key in self.errors:
            key = f"{event.timestamp}#{suffix}"
            suffix += 1
        self.errors[key] = event
        if retain >= 0:
            while len(self.errors) > retain:
                oldest = next(iter(self.errors))
                del self.errors[oldest]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "degradation_level": self.degradation_level,
            "hook_failures_session": self.hook_failures_session,
            "agent_timeouts_session": self.agent_timeouts_session,
            "repeated_failures": self.repeated_failures,
            "last_degradation_at": self.last_degradation_at,
            "errors": {key: event.to_dict() for key, event in self.errors.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HealthState:
        """
        Create from dictionary.

        Raises:
            TypeError, ValueError: If a field has the wrong shape.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Health record must be an object, got {type(data).__name__}")

        errors_data = data.get("errors") or {}
        if not isinstance(errors_data, dict):
            raise TypeError("Health record 'errors' must be an object")

        return cls(
            degradation_level=_non_negative(data.get("degradation_level", 0), "degradation_level"),
            hook_failures_session=_non_negative(data.get("hook_failures_session", 0), "hook_failures_session"),
            agent_timeouts_session=_non_negative(data.get("agent_timeouts_session", 0), "agent_timeouts_session"),
            repeated_failures=_non_negative(data.get("repeated_failures", 0), "repeated_failures"),
            last_degradation_at=data.get("last_degradation_at"),
            errors={str(k): ErrorEvent.from_dict(v) for k, v in errors_data.items()},
        )


def _non_negative(value: Any, name: str) -> int:
    number = int(value)
    if number < 0:
        raise ValueError(f"{name} must be non-negative, got {number}")
    return number


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff retry parameters, supplied per call."""
    max_retries: int = 3
    initial_backoff: float = 1.0
    max_backoff: float = 30.0
    multiplier: float = 2.0


@dataclass(frozen=True)
class Command:
    """
    An external invocation: argv list, optional stdin, optional timeout.

    Commands are never interpolated into a shell.
    """
    argv: tuple[str, ...]
    stdin: Optional[str] = None
    timeout: Optional[float] = None
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.argv:
            raise ValueError("Command argv must not be empty")
        object.__setattr__(self, "argv", tuple(str(arg) for arg in self.argv))

    @property
    def identifier(self) -> str:
        """Name used for this command in logs and reports."""
        return self.name or shlex.join(self.argv)

    @classmethod
    def parse(cls, spec: Union[str, Sequence[str], "Command"], **kwargs: Any) -> "Command":
        """
        Build a Command from a string, an argv sequence, or an existing Command.

        Strings are split with shell quoting rules but never run through a shell.
        """
        if isinstance(spec, Command):
            return spec
        if isinstance(spec, str):
            return cls(argv=tuple(shlex.split(spec)), **kwargs)
        return cls(argv=tuple(spec), **kwargs)


# Exit code reported for a timed-out invocation, matching coreutils `timeout`
TIMEOUT_EXIT_CODE = 124


@dataclass(frozen=True)
class OperationOutcome:
    """
    Result of one executed operation. Never persisted.

    Attributes:
        success: Whether the operation succeeded (exit code 0, or a bypass).
        output: Combined stdout and stderr.
        exit_code: Process exit code, if the process finished.
        timed_out: Whether the wall-clock timeout killed the process.
    """
    success: bool
    output: str = ""
    exit_code: Optional[int] = 0
    timed_out: bool = False

    @classmethod
    def ok(cls, output: str = "") -> OperationOutcome:
        return cls(success=True, output=output, exit_code=0)

    @classmethod
    def failed(cls, exit_code: int, output: str = "") -> OperationOutcome:
        return cls(success=False, output=output, exit_code=exit_code)

    @classmethod
    def timeout(cls, output: str = "") -> OperationOutcome:
        return cls(success=False, output=output, exit_code=TIMEOUT_EXIT_CODE, timed_out=True)
