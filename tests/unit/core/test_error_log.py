"""Tests for recovery_ladder.error_log."""

from __future__ import annotations

import logging
import re

import pytest

from recovery_ladder.error_log import ErrorLog, utc_timestamp
from recovery_ladder.health_store import HealthStore
from recovery_ladder.models import ErrorType, RecoveryAction


LINE_RE = re.compile(
    r"^\[\d{4}-\d{2}-\d{2}T[\d:.]+Z\] \[(?P<type>[a-z_]+)\] "
    r"component=(?P<component>\S+) recovery=(?P<recovery>[a-z]+) details=(?P<details>.*)$"
)


@pytest.fixture
def store(tmp_path):
    return HealthStore(tmp_path / "health.json")


@pytest.fixture
def error_log(tmp_path, store):
    return ErrorLog(tmp_path / "logs" / "errors.log", store=store, retain=3)


class TestRecord:
    def test_appends_formatted_line(self, error_log):
        error_log.record(ErrorType.HOOK_FAILURE, "lint.sh", "exit 1", RecoveryAction.BYPASSED)

        line = error_log.path.read_text().splitlines()[0]
        match = LINE_RE.match(line)
        assert match is not None
        assert match["type"] == "hook_failure"
        assert match["component"] == "lint.sh"
        assert match["recovery"] == "bypassed"
        assert match["details"] == "exit 1"

    def test_is_append_only(self, error_log):
        error_log.record(ErrorType.NETWORK, "a")
        error_log.record(ErrorType.NETWORK, "b")
        assert len(error_log.path.read_text().splitlines()) == 2

    def test_mirrors_into_health_record(self, error_log, store):
        event = error_log.record(ErrorType.AGENT_TIMEOUT, "agent", "slow", RecoveryAction.KILLED)
        mirrored = list(store.load().errors.values())
        assert mirrored == [event]

    def test_mirror_is_bounded(self, error_log, store):
        for i in range(6):
            error_log.record(ErrorType.TRANSIENT, f"op{i}")

        state = store.load()
        assert [e.component for e in state.errors.values()] == ["op3", "op4", "op5"]
        assert len(error_log.path.read_text().splitlines()) == 6

    def test_without_store(self, tmp_path):
        log = ErrorLog(tmp_path / "errors.log")
        log.record("free_text_type", "x")
        assert "[free_text_type]" in log.path.read_text()


class TestDiagnostics:
    def test_diagnostic_line_format(self, error_log):
        error_log.warn("Attempt 1 failed")
        line = error_log.path.read_text().strip()
        assert re.match(r"^\[.+Z\] \[DIAG:WARN\] Attempt 1 failed$", line)

    def test_diagnostic_goes_to_python_logger(self, error_log, caplog):
        with caplog.at_level(logging.INFO, logger="recovery_ladder.error_log"):
            error_log.info("hello")
        assert "hello" in caplog.text

    def test_diagnostics_do_not_touch_mirror(self, error_log, store):
        error_log.info("just a note")
        assert store.load().errors == {}


class TestTail:
    def test_summary_when_empty(self, error_log):
        assert error_log.summary() == "No errors logged"

    def test_tail(self, error_log):
        for i in range(4):
            error_log.info(f"msg {i}")
        tail = error_log.tail(2)
        assert len(tail) == 2
        assert tail[-1].endswith("msg 3")


def test_utc_timestamp_format():
    assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{6}Z$", utc_timestamp())
