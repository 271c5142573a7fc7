"""Common utilities and global state for the CLI.

Contains the console singleton, the --config override, and engine construction.
This module should NOT import from admin/run modules to avoid circular imports.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import typer
from rich.console import Console
from rich.text import Text

if TYPE_CHECKING:
    from recovery_ladder.config import RecoveryConfig
    from recovery_ladder.engine import RecoveryEngine

# ============================================================================
# Global State
# ============================================================================

# Config file override (set via --config flag)
_config_path: Optional[str] = None

# Console singleton
_console: Optional[Console] = None


def get_config_path() -> Optional[str]:
    """Get the config file override if set."""
    return _config_path


def set_config_path(path: Optional[str]) -> None:
    """Set the config file override."""
    global _config_path
    _config_path = path


def get_console() -> Console:
    """Get or create the console singleton."""
    global _console
    if _console is None:
        _console = Console()
    return _console


# ============================================================================
# Config / Engine Helpers
# ============================================================================


def load_config_or_exit() -> "RecoveryConfig":
    """Load configuration, printing the error and exiting 1 if it is invalid."""
    from recovery_ladder.config import ConfigError, load_config

    try:
        return load_config(get_config_path())
    except ConfigError as e:
        get_console().print(Text(f"Error: {e}", style="red"))
        raise typer.Exit(1)


def get_engine() -> "RecoveryEngine":
    """Build an engine from the active configuration."""
    from recovery_ladder.engine import build_engine

    return build_engine(load_config_or_exit(), console=get_console())
