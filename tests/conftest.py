# tests/conftest.py

import io
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

import pytest
from rich.console import Console
from typer.testing import CliRunner

from recovery_ladder.config import NotificationConfig, RecoveryConfig, clear_config_cache
from recovery_ladder.engine import build_engine
from recovery_ladder.models import Command, OperationOutcome


ENV_VARS = (
    "RECOVERY_LADDER_CONFIG",
    "RECOVERY_LADDER_STATE_DIR",
    "RECOVERY_LADDER_LOG_DIR",
    "RECOVERY_LADDER_NOTIFICATIONS",
    "RECOVERY_LADDER_NOTIFICATION_SOUND",
)


class FakeRunner:
    """
    Scripted process runner.

    Each call pops the next outcome; the last one repeats once the script
    runs out. A callable script receives the command and returns an outcome.
    """

    def __init__(
        self,
        script: Union[Iterable[OperationOutcome], Callable[[Command], OperationOutcome], None] = None,
    ):
        self.calls: list[tuple[Command, Optional[float]]] = []
        if callable(script):
            self._fn = script
            self._outcomes = []
        else:
            self._fn = None
            self._outcomes = list(script or [OperationOutcome.ok("ok")])

    @property
    def commands(self) -> list[Command]:
        return [command for command, _ in self.calls]

    def run(self, command: Command, timeout: Optional[float] = None) -> OperationOutcome:
        self.calls.append((command, timeout))
        if self._fn is not None:
            return self._fn(command)
        if len(self._outcomes) > 1:
            return self._outcomes.pop(0)
        return self._outcomes[0]


class RecordingSleep:
    """Sleep replacement that records durations."""

    def __init__(self):
        self.durations: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.durations.append(seconds)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep user configuration and env overrides out of every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def recovery_config(tmp_path: Path) -> RecoveryConfig:
    """Config pointing at temporary state and log directories, notifications off."""
    return RecoveryConfig(
        state_dir=str(tmp_path / "state"),
        log_dir=str(tmp_path / "logs"),
        notifications=NotificationConfig(enabled=False),
    )


@pytest.fixture
def console() -> Console:
    """Rich console that captures output as plain text."""
    return Console(file=io.StringIO(), width=200, color_system=None, force_terminal=False)


def console_text(console: Console) -> str:
    return console.file.getvalue()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_engine(recovery_config, console, recording_sleep):
    """Factory for engines wired to a fake runner."""

    def factory(runner=None, config=None):
        return build_engine(
            config or recovery_config,
            console=console,
            runner=runner or FakeRunner(),
            sleep=recording_sleep,
        )

    return factory


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def make_runner():
    """The FakeRunner class, for tests that script outcomes."""
    return FakeRunner


@pytest.fixture
def output(console):
    """Callable returning everything printed to the captured console so far."""
    return lambda: console_text(console)
