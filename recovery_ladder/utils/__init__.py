"""Utility modules for Recovery Ladder."""

from recovery_ladder.utils.fs import (
    FileSystemError,
    append_line,
    ensure_dir,
    file_exists,
    is_executable,
    read_file,
    safe_write,
    tail_lines,
)

__all__ = [
    "FileSystemError",
    "append_line",
    "ensure_dir",
    "file_exists",
    "is_executable",
    "read_file",
    "safe_write",
    "tail_lines",
]
