"""Stable constants shared across replay-harness components."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
SCENARIO_SCHEMA_VERSION: Final[str] = "1.0"
SCENARIO_DRIVER: Final[str] = "copilot-sdk"
CONFIG_SCHEMA_VERSION: Final[int] = 1
GOLDEN_STORE_VERSION: Final[str] = "v1"
GOLDEN_METADATA_SCHEMA_VERSION: Final[str] = "replay-golden-baseline-metadata.v1"

# Execution profiles.
PROFILE_BASELINE: Final[str] = "baseline"
PROFILE_CANDIDATE: Final[str] = "candidate"
PROFILE_NAMES: Final[tuple[str, ...]] = (PROFILE_BASELINE, PROFILE_CANDIDATE)

# Artifact file names inside a run directory or golden store slot.
MANIFEST_FILENAME: Final[str] = "manifest.json"
COMPARISON_FILENAME: Final[str] = "comparison.json"
REPORT_FILENAME: Final[str] = "report.md"
GATE_SUMMARY_JSON_FILENAME: Final[str] = "gate-summary.json"
GATE_SUMMARY_MARKDOWN_FILENAME: Final[str] = "gate-summary.md"
GOLDEN_BASELINE_FILENAME: Final[str] = "baseline.norm.json"
GOLDEN_METADATA_FILENAME: Final[str] = "metadata.json"

# Placeholders written by the trace normalizer.
ID_PLACEHOLDER: Final[str] = "<ID>"
NONDETERMINISTIC_PLACEHOLDER: Final[str] = "<NONDET>"

# Severity ordering for deterministic sorting.
SEVERITY_LEVELS: Final[tuple[str, ...]] = ("low", "medium", "high")

# Default scenario values.
DEFAULT_WAIT_MS: Final[int] = 100
DEFAULT_BASELINE_ID: Final[str] = "default"
DEFAULT_RUN_LABEL: Final[str] = "replay"


def raw_artifact_filename(profile: str) -> str:
    """Return the JSON-lines raw event file name for ``profile``."""

    return f"{profile}.raw.jsonl"


def normalized_artifact_filename(profile: str) -> str:
    """Return the normalized artifact bundle file name for ``profile``."""

    return f"{profile}.norm.json"


__all__ = [
    "COMPARISON_FILENAME",
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_BASELINE_ID",
    "DEFAULT_RUN_LABEL",
    "DEFAULT_WAIT_MS",
    "GATE_SUMMARY_JSON_FILENAME",
    "GATE_SUMMARY_MARKDOWN_FILENAME",
    "GOLDEN_BASELINE_FILENAME",
    "GOLDEN_METADATA_FILENAME",
    "GOLDEN_METADATA_SCHEMA_VERSION",
    "GOLDEN_STORE_VERSION",
    "ID_PLACEHOLDER",
    "MANIFEST_FILENAME",
    "NONDETERMINISTIC_PLACEHOLDER",
    "PROFILE_BASELINE",
    "PROFILE_CANDIDATE",
    "PROFILE_NAMES",
    "REPORT_FILENAME",
    "SCENARIO_DRIVER",
    "SCENARIO_SCHEMA_VERSION",
    "SEVERITY_LEVELS",
    "normalized_artifact_filename",
    "raw_artifact_filename",
]
