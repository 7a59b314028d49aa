"""Shared utilities: stable JSON, hashing, atomic filesystem writes, async timeouts."""

from replay_harness.utils.clock import epoch_ms, iso_utc, utc_now
from replay_harness.utils.concurrency import RunTimeoutError, run_with_timeout
from replay_harness.utils.fs import append_text, atomic_write, read_json, write_stable_json
from replay_harness.utils.hashing import sha256_bytes, sha256_json, sha256_text
from replay_harness.utils.stable_json import (
    JSONScalar,
    JSONValue,
    stable_json_line,
    stable_stringify,
    to_stable_value,
    to_workspace_relative_path,
)

__all__ = [
    "JSONScalar",
    "JSONValue",
    "RunTimeoutError",
    "append_text",
    "atomic_write",
    "epoch_ms",
    "iso_utc",
    "read_json",
    "run_with_timeout",
    "sha256_bytes",
    "sha256_json",
    "sha256_text",
    "stable_json_line",
    "stable_stringify",
    "to_stable_value",
    "to_workspace_relative_path",
    "utc_now",
]
