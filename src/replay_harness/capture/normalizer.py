"""
replay-harness — deterministic trace normalizer

File: src/replay_harness/capture/normalizer.py
Last updated: 2026-10-18

Purpose
- Remove wall-clock, host, and identifier noise from raw trace events so that two
  captures of the same behaviour compare equal.

What should be included in this file
- ``NormalizationOptions`` (all four flags default to enabled).
- ``normalize_trace_events`` and the action alias table.

Functional requirements
- Timestamps are rebased onto the first event: ``max(0, t - events[0].t)``.
- Payload strings are rewritten in order: volatile ids, absolute paths, then
  non-deterministic text. Nested dicts and lists are walked recursively.
- Event count and order are preserved.

Non-functional requirements
- Pure: same events and options yield identical output on any host, at any time.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Final

from replay_harness.constants import ID_PLACEHOLDER, NONDETERMINISTIC_PLACEHOLDER
from replay_harness.domain.models import TraceEvent
from replay_harness.utils.stable_json import JSONValue

VOLATILE_ID_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"\b(sess|run|req)_[A-Za-z0-9_-]+\b", re.ASCII),
    re.compile(
        r"\b[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}\b",
        re.ASCII | re.IGNORECASE,
    ),
    re.compile(r"\b[0-9A-HJKMNP-TV-Z]{26}\b", re.ASCII),
)

NON_DETERMINISTIC_TEXT_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"\b\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?Z\b", re.ASCII),
    re.compile(r"\b\d{10,}\b", re.ASCII),
)

WINDOWS_ABSOLUTE_PATH_PATTERN: Final[re.Pattern[str]] = re.compile(r"[A-Za-z]:\\[^\s\"']+")
POSIX_ABSOLUTE_PATH_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(^|[\s\"'(=])(/[\w.\-/]+)", re.ASCII
)

ACTION_ALIASES: Final[Mapping[str, str]] = {
    "run": "execute",
    "send": "execute",
    "create": "execute",
    "kill": "terminate",
    "close": "terminate",
}


@dataclass(frozen=True, slots=True)
class NormalizationOptions:
    workspace_path: str | None = None
    mask_ids: bool = True
    canonicalize_timestamps: bool = True
    canonicalize_paths: bool = True
    strip_nondeterministic_text: bool = True


def canonicalize_action(raw_action: str | None) -> str | None:
    """Map a raw verb through the alias table; unmapped verbs are trimmed and lower-cased."""

    if not raw_action:
        return None
    normalized = raw_action.strip().lower()
    return ACTION_ALIASES.get(normalized, normalized)


def canonicalize_absolute_path(value: str, workspace_path: str | None = None) -> str:
    """
    Rewrite an absolute path relative to ``workspace_path`` when it lies inside it.

    Matching is case-insensitive against both the workspace as given and its
    absolute form. The workspace itself becomes ``"."``; paths outside keep their
    absolute form with forward slashes.
    """

    normalized_value = _forward_slashes(value)
    if not workspace_path:
        return normalized_value

    candidates: list[str] = []
    for form in (workspace_path, os.path.abspath(workspace_path)):
        candidate = _forward_slashes(form).rstrip("/")
        if candidate and candidate not in candidates:
            candidates.append(candidate)

    lowered_value = normalized_value.lower()
    for candidate in candidates:
        lowered_candidate = candidate.lower()
        if lowered_value == lowered_candidate or lowered_value.startswith(f"{lowered_candidate}/"):
            relative = normalized_value[len(candidate) :].lstrip("/")
            return relative or "."
    return normalized_value


def normalize_string(value: str, options: NormalizationOptions) -> str:
    if options.mask_ids:
        for pattern in VOLATILE_ID_PATTERNS:
            value = pattern.sub(ID_PLACEHOLDER, value)

    if options.canonicalize_paths:
        value = _canonicalize_path_tokens(value, options.workspace_path)

    if options.strip_nondeterministic_text:
        for pattern in NON_DETERMINISTIC_TEXT_PATTERNS:
            value = pattern.sub(NONDETERMINISTIC_PLACEHOLDER, value)

    return value


def normalize_trace_events(
    events: Sequence[TraceEvent],
    options: NormalizationOptions | None = None,
) -> tuple[TraceEvent, ...]:
    """Return normalized copies of ``events``; the input is not modified."""

    effective = options or NormalizationOptions()
    base_timestamp = events[0].timestamp_ms if events else 0

    normalized: list[TraceEvent] = []
    for event in events:
        timestamp = (
            max(0, event.timestamp_ms - base_timestamp)
            if effective.canonicalize_timestamps
            else event.timestamp_ms
        )
        action_canonical = canonicalize_action(event.action_raw) or event.action_canonical
        payload = (
            _normalize_value(event.payload, effective) if event.payload is not None else None
        )
        normalized.append(
            replace(
                event,
                timestamp_ms=timestamp,
                action_canonical=action_canonical,
                tool_name=event.tool_name.strip() if event.tool_name else event.tool_name,
                payload=payload,  # type: ignore[arg-type]
            )
        )
    return tuple(normalized)


def _canonicalize_path_tokens(value: str, workspace_path: str | None) -> str:
    value = WINDOWS_ABSOLUTE_PATH_PATTERN.sub(
        lambda match: canonicalize_absolute_path(match.group(0), workspace_path), value
    )
    return POSIX_ABSOLUTE_PATH_PATTERN.sub(
        lambda match: match.group(1) + canonicalize_absolute_path(match.group(2), workspace_path),
        value,
    )


def _normalize_value(value: JSONValue, options: NormalizationOptions) -> JSONValue:
    if isinstance(value, str):
        return normalize_string(value, options)
    if isinstance(value, list):
        return [_normalize_value(item, options) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_value(item, options) for key, item in value.items()}
    return value


def _forward_slashes(value: str) -> str:
    return value.replace("\\", "/")


__all__ = [
    "ACTION_ALIASES",
    "NormalizationOptions",
    "canonicalize_absolute_path",
    "canonicalize_action",
    "normalize_string",
    "normalize_trace_events",
]
