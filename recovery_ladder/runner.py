"""
Process invocation for Recovery Ladder.

Every external operation (hook, agent, retried command, alternative) goes
through a runner: argv list, optional stdin, hard wall-clock timeout. The
runner never invokes a shell. Tests inject a fake runner with the same
``run(command, timeout=None)`` signature.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Optional, Protocol

from recovery_ladder.models import Command, OperationOutcome


logger = logging.getLogger(__name__)

# Exit codes a shell would report for these launch failures
NOT_EXECUTABLE_EXIT_CODE = 126
NOT_FOUND_EXIT_CODE = 127


class Runner(Protocol):
    """Anything that can execute a Command and classify its outcome."""

    def run(self, command: Command, timeout: Optional[float] = None) -> OperationOutcome:
        ...


class ProcessRunner:
    """Runs commands as subprocesses with stdout and stderr combined."""

    def __init__(self, cwd: Optional[str] = None) -> None:
        """
        Initialize the runner.

        Args:
            cwd: Optional working directory for every command.
        """
        self.cwd = cwd

    def run(self, command: Command, timeout: Optional[float] = None) -> OperationOutcome:
        """
        Execute a command.

        Args:
            command: The command to run.
            timeout: Timeout in seconds; overrides command.timeout when given.

        Returns:
            OperationOutcome. A timeout yields ``timed_out=True``; a missing or
            non-executable binary yields exit code 127 / 126.
        """
        effective_timeout = timeout if timeout is not None else command.timeout
        logger.debug("Running %s (timeout=%s)", command.identifier, effective_timeout)

        try:
            result = subprocess.run(
                list(command.argv),
                input=command.stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                timeout=effective_timeout,
                cwd=self.cwd,
            )
        except subprocess.TimeoutExpired as e:
            return OperationOutcome.timeout(output=_decode(e.output))
        except FileNotFoundError as e:
            return OperationOutcome.failed(NOT_FOUND_EXIT_CODE, output=str(e))
        except PermissionError as e:
            return OperationOutcome.failed(NOT_EXECUTABLE_EXIT_CODE, output=str(e))
        except OSError as e:
            return OperationOutcome.failed(NOT_EXECUTABLE_EXIT_CODE, output=str(e))

        output = result.stdout or ""
        if result.returncode == 0:
            return OperationOutcome.ok(output)
        return OperationOutcome.failed(result.returncode, output)


def _decode(data: Optional[bytes | str]) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
