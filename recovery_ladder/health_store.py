"""
Health state persistence for Recovery Ladder.

This module handles:
- Loading the health record from <state_dir>/health.json
- Atomic writes (temp file + rename) so readers never see a partial record
- Graceful handling of missing or corrupted health files
- Load -> mutate -> store cycles via update()

Last-writer-wins: there is no locking between processes sharing one file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable

from recovery_ladder.models import HealthState
from recovery_ladder.utils.fs import FileSystemError, file_exists, read_file, safe_write


logger = logging.getLogger(__name__)


class HealthStoreError(Exception):
    """Raised when the health record cannot be persisted."""
    pass


class HealthStore:
    """
    Persistent storage for the session HealthState.

    Every mutation is a full read-modify-write of the JSON record.
    """

    def __init__(self, path: Path | str) -> None:
        """
        Initialize the health store.

        Args:
            path: Path to the health.json record.
        """
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Path to the persisted record."""
        return self._path

    def exists(self) -> bool:
        """Check whether a record has been written yet."""
        return file_exists(self._path)

    def load(self) -> HealthState:
        """
        Load the health record from disk.

        Returns:
            The persisted HealthState, or an all-zero default when the file
            is missing, unreadable, corrupt, or has an invalid shape.
        """
        if not file_exists(self._path):
            logger.debug("Health record not found at %s, using defaults", self._path)
            return HealthState()

        try:
            content = read_file(self._path)
            return HealthState.from_dict(json.loads(content))

        except json.JSONDecodeError as e:
            logger.warning("Health record %s is corrupted (%s), reinitializing", self._path, e)
            return HealthState()

        except (KeyError, ValueError, TypeError) as e:
            logger.warning("Health record %s is invalid (%s), reinitializing", self._path, e)
            return HealthState()

        except FileSystemError as e:
            logger.warning("Health record %s could not be read (%s), using defaults", self._path, e)
            return HealthState()

    def save(self, state: HealthState) -> None:
        """
        Save the health record atomically.

        Args:
            state: The state to persist.

        Raises:
            HealthStoreError: If the write fails.
        """
        try:
            safe_write(self._path, json.dumps(state.to_dict(), indent=2) + "\n")
        except FileSystemError as e:
            raise HealthStoreError(f"Failed to save health record: {e}")

    def update(self, mutate: Callable[[HealthState], None]) -> HealthState:
        """
        Load the record, apply ``mutate`` to it, and store it atomically.

        Args:
            mutate: Function that modifies the state in place.

        Returns:
            The state as saved.
        """
        state = self.load()
        mutate(state)
        self.save(state)
        return state

    def reset(self) -> HealthState:
        """
        Replace the record with all-zero defaults.

        Returns:
            The new default state.
        """
        state = HealthState()
        self.save(state)
        return state

    def initialize(self) -> HealthState:
        """
        Create the record with defaults if it does not exist yet.

        Returns:
            The current state.
        """
        if self.exists():
            return self.load()
        return self.reset()

