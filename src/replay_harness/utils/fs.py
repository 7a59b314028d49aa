"""
replay-harness — filesystem utilities

File: src/replay_harness/utils/fs.py
Last updated: 2026-10-18

Purpose
- Crash-safe writes for run artifacts, reports, and golden baselines, plus the
  small readers and appenders the CLI needs.

Functional requirements
- A reader never observes a half-written artifact: content goes to a sibling
  temp file that replaces the target in one ``os.replace``.
- Parent directories are created on demand.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from replay_harness.utils.stable_json import stable_stringify

PathLike = str | os.PathLike[str]


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """Replace ``path`` with ``data`` via an fsynced sibling temp file."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = data if isinstance(data, bytes) else data.encode(encoding)

    fd, staged = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as stream:
            stream.write(payload)
            stream.flush()
            os.fsync(stream.fileno())
        os.replace(staged, target)
    except BaseException:
        Path(staged).unlink(missing_ok=True)
        raise
    _sync_directory(target.parent)


def write_stable_json(path: PathLike, value: object) -> None:
    """Write ``value`` as sorted-key indented JSON with a trailing newline."""

    atomic_write(path, f"{stable_stringify(value)}\n")


def read_json(path: PathLike) -> object:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def append_text(path: PathLike, text: str) -> None:
    """Append to ``path``; used for the GitHub step summary file."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as stream:
        stream.write(text)


def _sync_directory(directory: Path) -> None:
    # Persists the rename on POSIX; Windows cannot open directories for fsync.
    if os.name == "nt":
        return
    dir_fd = os.open(directory, os.O_RDONLY | getattr(os, "O_DIRECTORY", 0))
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


__all__ = ["append_text", "atomic_write", "read_json", "write_stable_json"]
