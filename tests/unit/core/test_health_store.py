"""Tests for recovery_ladder.health_store."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from recovery_ladder.health_store import HealthStore, HealthStoreError
from recovery_ladder.models import HealthState
from recovery_ladder.utils.fs import FileSystemError


@pytest.fixture
def store(tmp_path):
    return HealthStore(tmp_path / "state" / "health.json")


class TestLoad:
    """Loading never raises."""

    def test_missing_file_gives_defaults(self, store):
        assert not store.exists()
        assert store.load() == HealthState()

    def test_corrupt_json_gives_defaults(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        assert store.load() == HealthState()

    def test_invalid_shape_gives_defaults(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({"degradation_level": "high"}))
        assert store.load() == HealthState()

    def test_round_trip(self, store):
        store.save(HealthState(degradation_level=2, agent_timeouts_session=4))
        loaded = store.load()
        assert loaded.degradation_level == 2
        assert loaded.agent_timeouts_session == 4


class TestSave:
    def test_writes_snake_case_json(self, store):
        store.save(HealthState(hook_failures_session=3))
        data = json.loads(store.path.read_text())
        assert data["hook_failures_session"] == 3
        assert data["errors"] == {}

    def test_write_failure_raises_store_error(self, store):
        with patch("recovery_ladder.health_store.safe_write", side_effect=FileSystemError("disk full")):
            with pytest.raises(HealthStoreError):
                store.save(HealthState())


class TestUpdate:
    def test_update_persists_mutation(self, store):
        def bump(state):
            state.repeated_failures += 1

        store.update(bump)
        returned = store.update(bump)

        assert returned.repeated_failures == 2
        assert store.load().repeated_failures == 2

    def test_update_recovers_from_corrupt_file(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("garbage")

        store.update(lambda s: setattr(s, "hook_failures_session", 1))

        assert store.load().hook_failures_session == 1

    def test_initialize_keeps_existing(self, store):
        store.save(HealthState(degradation_level=1))
        assert store.initialize().degradation_level == 1

    def test_initialize_creates_file(self, store):
        store.initialize()
        assert store.exists()
