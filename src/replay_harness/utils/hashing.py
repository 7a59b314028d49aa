"""
replay-harness — hashing utilities

File: src/replay_harness/utils/hashing.py
Last updated: 2026-10-18

Purpose
- Provide deterministic SHA-256 helpers for bytes, text, and JSON-like values.

Functional requirements
- JSON digests are computed over the stable (sorted-key) serialization so that
  key insertion order never changes the result.

Non-functional requirements
- Standard library only; behavior is cross-platform deterministic.
"""

from __future__ import annotations

import hashlib

from replay_harness.utils.stable_json import stable_stringify

__all__ = [
    "sha256_bytes",
    "sha256_json",
    "sha256_text",
]


def sha256_bytes(data: bytes) -> str:
    """Return SHA-256 hex digest for raw bytes."""

    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str, *, encoding: str = "utf-8") -> str:
    """Return SHA-256 hex digest for text encoded with ``encoding``."""

    return sha256_bytes(text.encode(encoding))


def sha256_json(value: object) -> str:
    """Return SHA-256 hex digest of the stable JSON serialization of ``value``."""

    return sha256_text(stable_stringify(value))
