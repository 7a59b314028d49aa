"""
replay-harness — stable JSON serialization

File: src/replay_harness/utils/stable_json.py
Last updated: 2026-10-18

Purpose
- Serialize arbitrary JSON-like values with recursively sorted object keys so that
  digests, artifacts, and reports are byte-identical regardless of insertion order.

Functional requirements
- Objects (mappings) are emitted with keys sorted lexicographically at every depth.
- Arrays keep their order; tuples are treated as arrays.
- Non-JSON scalars are rejected instead of silently stringified.

Non-functional requirements
- Standard library only; pure functions with no hidden state.
"""

from __future__ import annotations

import json
import math
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Final

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_INDENT: Final[int] = 2


def to_stable_value(value: object, *, path: str = "$") -> JSONValue:
    """
    Return a canonical copy of ``value`` with object keys sorted recursively.

    Mappings become ``dict`` objects, sequences become ``list`` objects, and
    scalars are validated for JSON compatibility.
    """

    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{path}: non-finite number is not JSON serializable")
        return value
    if isinstance(value, Mapping):
        output: dict[str, JSONValue] = {}
        for key in sorted(value, key=_key_text):
            if not isinstance(key, str):
                raise ValueError(f"{path}: object keys must be strings, got {type(key).__name__}")
            output[key] = to_stable_value(value[key], path=f"{path}.{key}")
        return output
    if isinstance(value, (list, tuple)):
        return [to_stable_value(item, path=f"{path}[{index}]") for index, item in enumerate(value)]
    raise ValueError(f"{path}: unsupported JSON value type {type(value).__name__}")


def stable_stringify(value: object) -> str:
    """Serialize ``value`` as indented JSON with recursively sorted keys."""

    return json.dumps(to_stable_value(value), indent=_INDENT, ensure_ascii=False)


def stable_json_line(value: object) -> str:
    """Serialize ``value`` as compact single-line JSON with sorted keys."""

    return json.dumps(to_stable_value(value), separators=(",", ":"), ensure_ascii=False)


def to_workspace_relative_path(
    file_path: str | os.PathLike[str],
    workspace_path: str | os.PathLike[str] | None = None,
) -> str:
    """
    Render ``file_path`` relative to ``workspace_path`` using forward slashes.

    Returns ``"."`` for the workspace itself and the absolute forward-slash path
    when the file lies outside the workspace.
    """

    resolved_file = Path(file_path).resolve()
    base = Path(workspace_path).resolve() if workspace_path is not None else Path.cwd().resolve()
    relative = os.path.relpath(resolved_file, base)
    if relative == ".":
        return "."
    if relative == ".." or relative.startswith(f"..{os.sep}") or os.path.isabs(relative):
        return resolved_file.as_posix()
    return Path(relative).as_posix()


def _key_text(key: object) -> str:
    return key if isinstance(key, str) else repr(key)


__all__ = [
    "JSONScalar",
    "JSONValue",
    "stable_json_line",
    "stable_stringify",
    "to_stable_value",
    "to_workspace_relative_path",
]
