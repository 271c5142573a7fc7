"""
File system utilities for Recovery Ladder.

This module provides safe file operations including:
- Atomic writes (write to temp file, then rename)
- Directory creation
- Append-only line writes for the error log
- Tail reads for diagnostics
"""

from __future__ import annotations

import os
import shutil
import tempfile
from collections import deque
from pathlib import Path


class FileSystemError(Exception):
    """Raised when a file system operation fails."""
    pass


def ensure_dir(path: str | Path) -> Path:
    """
    Create a directory if it does not exist.

    Creates parent directories as needed (like mkdir -p).

    Args:
        path: Path to the directory to create.

    Returns:
        Path: The path object for the created/existing directory.

    Raises:
        FileSystemError: If directory creation fails.
    """
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
        return path
    except OSError as e:
        raise FileSystemError(f"Failed to create directory {path}: {e}")


def safe_write(path: str | Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write content to a file atomically.

    Uses a temporary file and rename to ensure atomic write.
    A concurrent reader sees either the old or the new file, never a partial one.

    Args:
        path: Path to the file to write.
        content: Content to write to the file.
        encoding: Character encoding to use. Defaults to utf-8.

    Raises:
        FileSystemError: If write operation fails.
    """
    path = Path(path)

    ensure_dir(path.parent)

    try:
        # Temp file must live on the same filesystem for the rename to be atomic
        fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding=encoding) as f:
                f.write(content)

            shutil.move(temp_path, path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise
    except OSError as e:
        raise FileSystemError(f"Failed to write file {path}: {e}")


def append_line(path: str | Path, line: str, encoding: str = "utf-8") -> None:
    """
    Append a single line to a file, creating it if needed.

    Args:
        path: Path to the file.
        line: Line to append (a trailing newline is added).
        encoding: Character encoding to use.

    Raises:
        FileSystemError: If the append fails.
    """
    path = Path(path)
    ensure_dir(path.parent)
    try:
        with open(path, "a", encoding=encoding) as f:
            f.write(line.rstrip("\n") + "\n")
    except OSError as e:
        raise FileSystemError(f"Failed to append to {path}: {e}")


def file_exists(path: str | Path) -> bool:
    """Check if a path exists and is a regular file."""
    return Path(path).is_file()


def is_executable(path: str | Path) -> bool:
    """Check if a path is a regular file the current user may execute."""
    path = Path(path)
    return path.is_file() and os.access(path, os.X_OK)


def read_file(path: str | Path, encoding: str = "utf-8") -> str:
    """
    Read a file's contents with encoding handling.

    Args:
        path: Path to the file to read.
        encoding: Character encoding. Defaults to utf-8.

    Returns:
        str: Contents of the file.

    Raises:
        FileSystemError: If file cannot be read.
    """
    path = Path(path)

    if not path.exists():
        raise FileSystemError(f"File not found: {path}")

    if not path.is_file():
        raise FileSystemError(f"Not a file: {path}")

    try:
        return path.read_text(encoding=encoding)
    except UnicodeDecodeError as e:
        raise FileSystemError(f"Failed to decode file {path} with encoding {encoding}: {e}")
    except OSError as e:
        raise FileSystemError(f"Failed to read file {path}: {e}")


def tail_lines(path: str | Path, count: int, encoding: str = "utf-8") -> list[str]:
    """
    Return the last ``count`` lines of a file.

    Args:
        path: Path to the file.
        count: Maximum number of lines to return.
        encoding: Character encoding.

    Returns:
        list[str]: Lines without trailing newlines, oldest first. Empty if
        the file does not exist.
    """
    path = Path(path)
    if count <= 0 or not path.is_file():
        return []
    try:
        with open(path, "r", encoding=encoding, errors="replace") as f:
            return [line.rstrip("\n") for line in deque(f, maxlen=count)]
    except OSError as e:
        raise FileSystemError(f"Failed to read file {path}: {e}")
