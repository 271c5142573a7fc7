"""Tests for recovery_ladder.escalation."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from recovery_ladder.config import NotificationConfig
from recovery_ladder.error_log import ErrorLog
from recovery_ladder.escalation import EscalationHandler, EscalationReport
from recovery_ladder.health_store import HealthStore
from recovery_ladder.models import ALWAYS_ESCALATE, ErrorType
from recovery_ladder.notifications import NotificationSink


@pytest.fixture
def store(tmp_path):
    return HealthStore(tmp_path / "health.json")


@pytest.fixture
def notifier(console):
    return NotificationSink(console=console, config=NotificationConfig(enabled=False))


@pytest.fixture
def handler(tmp_path, store, notifier):
    return EscalationHandler(ErrorLog(tmp_path / "errors.log", store=store), notifier)


class TestShouldEscalate:
    """Escalation policy."""

    @pytest.mark.parametrize("error_type", sorted(ALWAYS_ESCALATE, key=lambda e: e.value))
    def test_always_escalate_types_ignore_count(self, handler, error_type):
        assert all(handler.should_escalate(error_type, count) for count in range(101))

    def test_security_by_name(self, handler):
        assert all(handler.should_escalate("security", count) for count in range(101))

    def test_corruption_alias_escalates(self, handler):
        assert handler.should_escalate("corruption", 0)

    @pytest.mark.parametrize("count,expected", [(0, False), (4, False), (5, True), (9, True)])
    def test_repeated_failure_threshold(self, handler, count, expected):
        assert handler.should_escalate(ErrorType.REPEATED_FAILURE, count) is expected

    @pytest.mark.parametrize("count,expected", [(0, False), (9, False), (10, True), (50, True)])
    def test_other_types_use_level3_threshold(self, handler, count, expected):
        assert handler.should_escalate(ErrorType.NETWORK, count) is expected
        assert handler.should_escalate(ErrorType.HOOK_FAILURE, count) is expected


class TestEscalate:
    """Escalation reports."""

    def test_logs_user_escalation(self, handler, store):
        handler.escalate("security", "Secret written to repo")

        [event] = [e for e in store.load().errors.values() if e.error_type == "user_escalation"]
        assert event.component == "security"
        assert event.recovery_action == "escalated"
        assert event.details == "Secret written to repo"

    def test_report_contents(self, handler, output):
        report = handler.escalate(
            ErrorType.INFINITE_LOOP,
            "Same edit applied 12 times",
            suggestions=["Stop the task", ""],
            attempted=["Retried 3 times"],
            impact="No progress on the task.",
        )

        assert isinstance(report, EscalationReport)
        assert report.suggestions == ["Stop the task"]
        text = output()
        assert "[!!!] [ATTENTION REQUIRED] infinite_loop" in text
        assert "What happened: Same edit applied 12 times" in text
        assert "  - Retried 3 times" in text
        assert "Impact: No progress on the task." in text
        assert "Suggested actions:" in text
        assert "recovery-ladder admin doctor" in text
        assert str(handler._log_path) in text
        assert "recovery-ladder admin reset" in text

    def test_report_without_suggestions_still_has_next_steps(self, handler):
        report = handler.escalate("repeated_failure", "ctx")
        rendered = report.render()
        assert "Suggested actions:" not in rendered
        assert "Options:" in rendered
        assert "Impact:" in rendered
        assert "What was tried:" in rendered

    def test_fires_critical_notification(self, tmp_path):
        notifier = Mock()
        handler = EscalationHandler(ErrorLog(tmp_path / "errors.log"), notifier)

        handler.escalate("authentication", "Token expired")

        notifier.notify_escalation.assert_called_once_with("authentication", "Token expired")
        notifier.print_block.assert_called_once()

    def test_history(self, handler):
        handler.escalate("a", "first")
        handler.escalate("b", "second")
        assert [r.issue_type for r in handler.history] == ["a", "b"]
