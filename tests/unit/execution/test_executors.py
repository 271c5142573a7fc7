"""Tests for HookExecutor and AgentExecutor."""

from __future__ import annotations

import os
import sys

import pytest

from recovery_ladder.models import DegradationLevel, HookCategory, OperationOutcome


@pytest.fixture
def make_hook(tmp_path):
    """Create an executable shell-script hook."""

    def _make(body: str, name: str = "hook.sh", executable: bool = True):
        path = tmp_path / "hooks" / name
        path.parent.mkdir(exist_ok=True)
        path.write_text(f"#!/bin/sh\n{body}\n")
        if executable:
            os.chmod(path, 0o755)
        return path

    return _make


def events(engine, error_type):
    return [e for e in engine.store.load().errors.values() if e.error_type == error_type]


def set_level(engine, level):
    engine.store.update(lambda s: setattr(s, "degradation_level", level))


# =============================================================================
# HookExecutor
# =============================================================================


class TestHookExecutor:
    """Hook failures are absorbed."""

    def test_success_returns_output(self, make_engine, make_runner, make_hook):
        runner = make_runner([OperationOutcome.ok("formatted")])
        engine = make_engine(runner)

        outcome = engine.hooks.run(make_hook("exit 0"), input="payload")

        assert outcome.success
        assert outcome.output == "formatted"
        [(command, timeout)] = runner.calls
        assert command.stdin == "payload"
        assert timeout == 5
        assert engine.store.load().hook_failures_session == 0

    @pytest.mark.parametrize(
        "outcome,error_type,notice",
        [
            (OperationOutcome.timeout(), "hook_timeout", "[!] Hook timed out: hook.sh (bypassing)"),
            (OperationOutcome.failed(2, "lint error"), "hook_failure", "[!] Hook failed: hook.sh (bypassing)"),
        ],
    )
    def test_failure_is_bypassed(self, make_engine, make_runner, make_hook, output, outcome, error_type, notice):
        engine = make_engine(make_runner([outcome]))

        result = engine.hooks.run(make_hook("exit 2"))

        assert result.success
        assert result.output == ""
        assert engine.store.load().hook_failures_session == 1
        [event] = events(engine, error_type)
        assert event.recovery_action == "bypassed"
        assert notice in output()

    def test_failure_output_is_logged(self, make_engine, make_runner, make_hook):
        engine = make_engine(make_runner([OperationOutcome.failed(2, "lint error\n")]))
        engine.hooks.run(make_hook("exit 2"))
        [event] = events(engine, "hook_failure")
        assert "lint error" in event.details

    def test_third_failure_degrades(self, make_engine, make_runner, make_hook, output):
        engine = make_engine(make_runner([OperationOutcome.failed(1)]))
        hook = make_hook("exit 1")

        for _ in range(3):
            assert engine.hooks.run(hook).success

        assert engine.degradation.level == DegradationLevel.REDUCED
        assert "Switched to reduced verification mode" in output()

    def test_missing_hook_is_bypassed(self, make_engine, make_runner, tmp_path):
        runner = make_runner()
        engine = make_engine(runner)

        outcome = engine.hooks.run(tmp_path / "nope.sh")

        assert outcome.success
        assert runner.calls == []
        [event] = events(engine, "hook_not_found")
        assert event.recovery_action == "bypassed"
        assert engine.store.load().hook_failures_session == 0

    def test_non_executable_hook_is_bypassed(self, make_engine, make_runner, make_hook):
        runner = make_runner()
        engine = make_engine(runner)

        assert engine.hooks.run(make_hook("exit 0", executable=False)).success
        assert runner.calls == []
        assert len(events(engine, "hook_not_found")) == 1

    def test_gated_off_at_emergency(self, make_engine, make_runner, make_hook):
        runner = make_runner()
        engine = make_engine(runner)
        set_level(engine, 3)

        outcome = engine.hooks.run(make_hook("exit 0"))

        assert outcome.success
        assert outcome.output == ""
        assert runner.calls == []
        assert engine.store.load().hook_failures_session == 0
        assert "[DIAG:INFO] Hook skipped" in engine.error_log.path.read_text()

    def test_optional_hooks_skip_at_reduced(self, make_engine, make_runner, make_hook):
        runner = make_runner()
        engine = make_engine(runner)
        set_level(engine, 1)

        engine.hooks.run(make_hook("exit 0"), category=HookCategory.OPTIONAL)
        assert runner.calls == []

        engine.hooks.run(make_hook("exit 0"), category="standard")
        assert len(runner.calls) == 1

    def test_default_timeout_follows_self_healing(self, make_engine, make_runner, make_hook):
        runner = make_runner()
        engine = make_engine(runner)
        engine.advisor.attempt_self_heal("hook_timeout", 3)

        engine.hooks.run(make_hook("exit 0"))

        assert runner.calls[0][1] == 10

    def test_explicit_timeout(self, make_engine, make_runner, make_hook):
        runner = make_runner()
        engine = make_engine(runner)
        engine.hooks.run(make_hook("exit 0"), timeout=1.5)
        assert runner.calls[0][1] == 1.5


@pytest.mark.skipif(sys.platform == "win32", reason="shell-script hooks")
class TestHookExecutorRealProcess:
    """HookExecutor with the real ProcessRunner."""

    @pytest.fixture
    def engine(self, recovery_config, console, recording_sleep):
        from recovery_ladder.engine import build_engine

        return build_engine(recovery_config, console=console, sleep=recording_sleep)

    def test_passes_stdin_and_captures_output(self, engine, make_hook):
        outcome = engine.hooks.run(make_hook("cat; echo done >&2"), input="hello\n")
        assert outcome.success
        assert outcome.output == "hello\ndone\n"

    def test_failing_hook_is_bypassed(self, engine, make_hook):
        outcome = engine.hooks.run(make_hook("echo broken; exit 3"))
        assert outcome.success
        [event] = events(engine, "hook_failure")
        assert "Exit code 3: broken" == event.details

    def test_undecodable_output_is_bypassed(self, engine, make_hook):
        outcome = engine.hooks.run(make_hook("printf '\\377\\376bad'; exit 3"), timeout=5)
        assert outcome.success
        [event] = events(engine, "hook_failure")
        assert event.details == "Exit code 3: \ufffd\ufffdbad"

    def test_slow_hook_times_out(self, engine, make_hook):
        outcome = engine.hooks.run(make_hook("exec sleep 5"), timeout=0.2)
        assert outcome.success
        assert len(events(engine, "hook_timeout")) == 1
        assert engine.store.load().hook_failures_session == 1


# =============================================================================
# AgentExecutor
# =============================================================================


class TestAgentExecutor:
    """Agent failures are surfaced."""

    def test_success(self, make_engine, make_runner):
        runner = make_runner([OperationOutcome.ok("answer")])
        engine = make_engine(runner)

        outcome = engine.agents.run("claude -p 'summarize'")

        assert outcome.success
        assert outcome.output == "answer"
        assert runner.commands[0].argv == ("claude", "-p", "summarize")
        assert runner.calls[0][1] == 60

    def test_timeout_counts_and_fails(self, make_engine, make_runner):
        engine = make_engine(make_runner([OperationOutcome.timeout()]))

        outcome = engine.agents.run(["agent"], timeout=2)

        assert not outcome.success
        assert outcome.timed_out
        assert engine.store.load().agent_timeouts_session == 1
        [event] = events(engine, "agent_timeout")
        assert event.recovery_action == "killed"

    def test_second_timeout_degrades(self, make_engine, make_runner):
        engine = make_engine(make_runner([OperationOutcome.timeout()]))
        engine.agents.run(["agent"])
        engine.agents.run(["agent"])
        assert engine.degradation.level == DegradationLevel.REDUCED

    def test_failure_does_not_count_as_timeout(self, make_engine, make_runner):
        engine = make_engine(make_runner([OperationOutcome.failed(1, "refused")]))

        for _ in range(5):
            outcome = engine.agents.run(["agent"])

        assert not outcome.success
        state = engine.store.load()
        assert state.agent_timeouts_session == 0
        assert state.degradation_level == 0
        assert len(events(engine, "agent_failure")) == 5
        assert events(engine, "agent_failure")[0].recovery_action == "failed"

    def test_blank_output_retried_once(self, make_engine, make_runner):
        runner = make_runner([OperationOutcome.ok("  \n"), OperationOutcome.ok("real answer")])
        engine = make_engine(runner)

        outcome = engine.agents.run(["agent"])

        assert outcome.output == "real answer"
        assert len(runner.calls) == 2

    def test_blank_output_not_retried_when_disabled(self, make_engine, make_runner):
        runner = make_runner([OperationOutcome.ok("")])
        engine = make_engine(runner)

        assert engine.agents.run(["agent"], retry_on_invalid=False).success
        assert len(runner.calls) == 1

    def test_disabled_agents_escalate(self, make_engine, make_runner, output):
        runner = make_runner()
        engine = make_engine(runner)
        set_level(engine, 3)

        outcome = engine.agents.run(["agent", "--do-work"])

        assert not outcome.success
        assert runner.calls == []
        assert "Agent Required" in output()
        assert engine.escalation.history[-1].issue_type == "Agent Required"
        assert len(events(engine, "user_escalation")) == 1
