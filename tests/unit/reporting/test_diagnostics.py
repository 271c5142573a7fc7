"""Tests for recovery_ladder.diagnostics."""

from __future__ import annotations

from recovery_ladder.diagnostics import build_diagnostics, get_error_summary
from recovery_ladder.models import DegradationLevel


class TestBuildDiagnostics:
    def test_healthy_system(self, make_engine):
        engine = make_engine()

        diag = build_diagnostics(engine.config, engine.store, engine.error_log)

        assert diag.level == DegradationLevel.FULL
        assert diag.healthy
        assert diag.exit_code == 0
        assert all(diag.features.values())
        assert diag.recent_errors == []
        assert diag.thresholds["hook_failures_l1"] == 3

    def test_degraded_system(self, make_engine):
        engine = make_engine()
        engine.store.update(lambda s: setattr(s, "agent_timeouts_session", 4))
        engine.degradation.check_triggers()

        diag = build_diagnostics(engine.config, engine.store, engine.error_log, lines=5)

        assert diag.level == DegradationLevel.MINIMAL
        assert diag.level_name == "Minimal"
        assert diag.exit_code == 1
        assert diag.features["skills"] is False
        assert diag.features["hooks"] is True
        assert any("degradation_triggered" in line for line in diag.recent_errors)

    def test_is_read_only(self, make_engine):
        engine = make_engine()
        build_diagnostics(engine.config, engine.store, engine.error_log)
        assert not engine.store.exists()
        assert not engine.error_log.path.exists()

    def test_to_dict(self, make_engine):
        engine = make_engine()
        data = build_diagnostics(engine.config, engine.store, engine.error_log).to_dict()
        assert data["level"] == 0
        assert data["level_name"] == "Full"
        assert "features" in data


class TestErrorSummary:
    def test_empty(self, make_engine):
        assert get_error_summary(make_engine().error_log) == "No errors logged"

    def test_tail(self, make_engine):
        engine = make_engine()
        for i in range(3):
            engine.error_log.record("network", f"op{i}")
        summary = get_error_summary(engine.error_log, lines=2)
        assert "op0" not in summary
        assert "op2" in summary
