"""CLI package for recovery-ladder.

Modules:
    app.py      - Main Typer app, version callback, sub-app registration
    admin.py    - Admin commands (status, doctor, reset, notify-test)
    run.py      - Run commands (hook, agent, handle)
    display.py  - Rich formatting utilities (format_level, build_status_table, etc.)
    common.py   - Shared helpers (get_console, get_engine, config override)

Command Structure:
    recovery-ladder admin status
    recovery-ladder run hook ~/.claude/hooks/pre-commit.sh
    recovery-ladder run handle network -- curl -sf https://example.com

Usage:
    from recovery_ladder.cli import app, cli_main  # Main exports
"""
from recovery_ladder.cli.app import app, cli_main

__all__ = ["app", "cli_main"]
