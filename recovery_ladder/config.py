"""
Configuration loading and validation for Recovery Ladder.

This module handles:
- Loading recovery.yaml (explicit path, $RECOVERY_LADDER_CONFIG, or ~/.claude/recovery.yaml)
- Environment variable resolution (${VAR} syntax)
- Environment overrides for state/log directories and notifications
- Default values for every field
- Caching of the loaded configuration
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from recovery_ladder.models import RetryPolicy


CONFIG_ENV_VAR = "RECOVERY_LADDER_CONFIG"
STATE_DIR_ENV_VAR = "RECOVERY_LADDER_STATE_DIR"
LOG_DIR_ENV_VAR = "RECOVERY_LADDER_LOG_DIR"
NOTIFICATIONS_ENV_VAR = "RECOVERY_LADDER_NOTIFICATIONS"
NOTIFICATION_SOUND_ENV_VAR = "RECOVERY_LADDER_NOTIFICATION_SOUND"

DEFAULT_CONFIG_PATH = "~/.claude/recovery.yaml"
DEFAULT_STATE_DIR = "~/.claude/state"
DEFAULT_LOG_DIR = "~/.claude/logs"


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


@dataclass
class RetryConfig:
    """Default backoff policy for the retrier."""
    max_retries: int = 3                       # Maximum attempts
    initial_backoff_seconds: float = 1.0       # First sleep between attempts
    max_backoff_seconds: float = 30.0          # Cap on any single sleep
    multiplier: float = 2.0                    # Backoff growth factor

    def to_policy(self) -> RetryPolicy:
        """Build the RetryPolicy value object."""
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_backoff=self.initial_backoff_seconds,
            max_backoff=self.max_backoff_seconds,
            multiplier=self.multiplier,
        )


@dataclass
class TimeoutConfig:
    """Wall-clock timeouts for external invocations."""
    hook_seconds: float = 5.0                  # Default hook timeout
    agent_seconds: float = 60.0                # Default agent timeout
    hook_max_seconds: float = 30.0             # Self-healing never raises the hook timeout past this
    hook_step_seconds: float = 5.0             # Self-healing increment


@dataclass
class ThresholdConfig:
    """Counter thresholds that drive degradation and escalation."""
    hook_failures_l1: int = 3
    hook_failures_l2: int = 5
    agent_timeouts_l1: int = 2
    agent_timeouts_l2: int = 4
    repeated_failures_l3: int = 10
    repeated_failure_escalation: int = 5


@dataclass
class NotificationConfig:
    """Desktop notification settings."""
    enabled: bool = True                       # Send desktop notifications at all
    sound: bool = True                         # Attach sounds where the platform supports it


@dataclass
class RecoveryConfig:
    """
    Main configuration for Recovery Ladder.

    This is the top-level config loaded from recovery.yaml.
    """
    # Paths
    state_dir: str = DEFAULT_STATE_DIR
    log_dir: str = DEFAULT_LOG_DIR

    # Size of the most-recent error mirror kept in the health record
    retained_errors: int = 50

    # Nested configurations
    retry: RetryConfig = field(default_factory=RetryConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)

    def __post_init__(self) -> None:
        """Expand ~ in configured directories."""
        self.state_dir = str(Path(self.state_dir).expanduser())
        self.log_dir = str(Path(self.log_dir).expanduser())

    @property
    def state_path(self) -> Path:
        """Absolute path to the state directory."""
        return Path(self.state_dir)

    @property
    def logs_path(self) -> Path:
        """Absolute path to the log directory."""
        return Path(self.log_dir)

    @property
    def health_path(self) -> Path:
        """Path to the persisted health record."""
        return self.state_path / "health.json"

    @property
    def error_log_path(self) -> Path:
        """Path to the append-only error log."""
        return self.logs_path / "errors.log"


# Module-level cache for the loaded configuration
_config_cache: Optional[RecoveryConfig] = None


def _resolve_env_vars(value: Any) -> Any:
    """
    Resolve environment variables in a value.

    Supports ${VAR} syntax for environment variable substitution.
    Returns the original value if it's not a string.
    """
    if isinstance(value, str):
        pattern = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

        def replace(match: re.Match) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ConfigError(f"Environment variable ${{{var_name}}} is not set")
            return env_value

        return pattern.sub(replace, value)

    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]

    return value


def _parse_bool(value: Any, name: str) -> bool:
    """Parse a boolean from YAML or an environment string."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    return section


def _parse_retry_config(data: dict[str, Any]) -> RetryConfig:
    """Parse retry configuration from dict."""
    config = RetryConfig(
        max_retries=int(data.get("max_retries", 3)),
        initial_backoff_seconds=float(data.get("initial_backoff_seconds", 1.0)),
        max_backoff_seconds=float(data.get("max_backoff_seconds", 30.0)),
        multiplier=float(data.get("multiplier", 2.0)),
    )
    if config.max_retries < 1:
        raise ConfigError("retry.max_retries must be at least 1")
    return config


def _parse_timeout_config(data: dict[str, Any]) -> TimeoutConfig:
    """Parse timeout configuration from dict."""
    return TimeoutConfig(
        hook_seconds=float(data.get("hook_seconds", 5.0)),
        agent_seconds=float(data.get("agent_seconds", 60.0)),
        hook_max_seconds=float(data.get("hook_max_seconds", 30.0)),
        hook_step_seconds=float(data.get("hook_step_seconds", 5.0)),
    )


def _parse_threshold_config(data: dict[str, Any]) -> ThresholdConfig:
    """Parse threshold configuration from dict."""
    return ThresholdConfig(
        hook_failures_l1=int(data.get("hook_failures_l1", 3)),
        hook_failures_l2=int(data.get("hook_failures_l2", 5)),
        agent_timeouts_l1=int(data.get("agent_timeouts_l1", 2)),
        agent_timeouts_l2=int(data.get("agent_timeouts_l2", 4)),
        repeated_failures_l3=int(data.get("repeated_failures_l3", 10)),
        repeated_failure_escalation=int(data.get("repeated_failure_escalation", 5)),
    )


def _parse_notification_config(data: dict[str, Any]) -> NotificationConfig:
    """Parse notification configuration from dict."""
    return NotificationConfig(
        enabled=_parse_bool(data.get("enabled", True), "notifications.enabled"),
        sound=_parse_bool(data.get("sound", True), "notifications.sound"),
    )


def apply_env_overrides(config: RecoveryConfig) -> RecoveryConfig:
    """
    Apply RECOVERY_LADDER_* environment overrides to a config in place.

    Args:
        config: The config to update.

    Returns:
        The same config object.
    """
    state_dir = os.environ.get(STATE_DIR_ENV_VAR)
    if state_dir:
        config.state_dir = str(Path(state_dir).expanduser())

    log_dir = os.environ.get(LOG_DIR_ENV_VAR)
    if log_dir:
        config.log_dir = str(Path(log_dir).expanduser())

    enabled = os.environ.get(NOTIFICATIONS_ENV_VAR)
    if enabled is not None:
        config.notifications.enabled = _parse_bool(enabled, NOTIFICATIONS_ENV_VAR)

    sound = os.environ.get(NOTIFICATION_SOUND_ENV_VAR)
    if sound is not None:
        config.notifications.sound = _parse_bool(sound, NOTIFICATION_SOUND_ENV_VAR)

    return config


def parse_config(raw_data: Optional[dict[str, Any]]) -> RecoveryConfig:
    """
    Build a RecoveryConfig from already-loaded YAML data.

    Raises:
        ConfigError: If a value is invalid.
    """
    if not raw_data:
        return RecoveryConfig()
    if not isinstance(raw_data, dict):
        raise ConfigError("Configuration root must be a mapping")

    data = _resolve_env_vars(raw_data)

    try:
        return RecoveryConfig(
            state_dir=str(data.get("state_dir", DEFAULT_STATE_DIR)),
            log_dir=str(data.get("log_dir", DEFAULT_LOG_DIR)),
            retained_errors=int(data.get("retained_errors", 50)),
            retry=_parse_retry_config(_section(data, "retry")),
            timeouts=_parse_timeout_config(_section(data, "timeouts")),
            thresholds=_parse_threshold_config(_section(data, "thresholds")),
            notifications=_parse_notification_config(_section(data, "notifications")),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}")


def load_config(config_path: Optional[str] = None) -> RecoveryConfig:
    """
    Load configuration from recovery.yaml.

    Args:
        config_path: Optional path to config file. If not provided, uses
                     $RECOVERY_LADDER_CONFIG, then ~/.claude/recovery.yaml.
                     A missing default file yields the built-in defaults.

    Returns:
        RecoveryConfig: Loaded configuration with environment overrides applied.

    Raises:
        ConfigError: If config is invalid, or an explicitly named file is missing.
    """
    explicit = config_path or os.environ.get(CONFIG_ENV_VAR)
    path = Path(explicit or DEFAULT_CONFIG_PATH).expanduser()

    if not path.exists():
        if explicit:
            raise ConfigError(f"Configuration file not found: {path}")
        return apply_env_overrides(RecoveryConfig())

    try:
        with open(path, "r") as f:
            raw_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}")

    return apply_env_overrides(parse_config(raw_data))


def get_config(config_path: Optional[str] = None, force_reload: bool = False) -> RecoveryConfig:
    """
    Get the cached configuration, loading it if necessary.

    Args:
        config_path: Optional path to config file.
        force_reload: If True, reload configuration even if cached.

    Returns:
        RecoveryConfig: The loaded configuration.

    Raises:
        ConfigError: If config is invalid or cannot be loaded.
    """
    global _config_cache

    if _config_cache is None or force_reload:
        _config_cache = load_config(config_path)

    return _config_cache


def clear_config_cache() -> None:
    """Clear the configuration cache. Useful for testing."""
    global _config_cache
    _config_cache = None
