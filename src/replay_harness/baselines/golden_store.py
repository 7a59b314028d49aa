"""
replay-harness — versioned golden baseline store

File: src/replay_harness/baselines/golden_store.py
Last updated: 2026-10-18

Purpose
- Persist approved baseline artifact bundles under a versioned, id-keyed layout.

Storage layout
- `<goldens_root>/v1/<baseline_id>/`
  - `baseline.norm.json` (normalized artifact bundle, profile ``baseline``)
  - `metadata.json` (schema version, promotion timestamp, source file, scenario ids)

Functional requirements
- Baseline ids are lower-cased and restricted to ``[a-z0-9._-]``; empty ids become ``default``.
- Only bundles with profile ``baseline`` may be read from or written to the store.
- A missing baseline reads as ``None``; malformed files raise.

Non-functional requirements
- Files are written atomically with stable key ordering.
- Single writer per baseline id; no locking is attempted.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Final

from replay_harness.constants import (
    DEFAULT_BASELINE_ID,
    GOLDEN_BASELINE_FILENAME,
    GOLDEN_METADATA_FILENAME,
    GOLDEN_METADATA_SCHEMA_VERSION,
    GOLDEN_STORE_VERSION,
    PROFILE_BASELINE,
)
from replay_harness.domain.errors import ProfileMismatchError, SchemaValidationError
from replay_harness.domain.models import ProfileArtifacts
from replay_harness.utils.clock import iso_utc, utc_now
from replay_harness.utils.fs import read_json, write_stable_json
from replay_harness.utils.stable_json import JSONValue, to_workspace_relative_path

logger = logging.getLogger(__name__)

PathLike = str | os.PathLike[str]

_UNSAFE_ID_CHARS: Final[re.Pattern[str]] = re.compile(r"[^a-z0-9._-]+")


def sanitize_baseline_id(value: str | None) -> str:
    normalized = _UNSAFE_ID_CHARS.sub("-", (value or "").strip().lower()).strip("-")
    return normalized or DEFAULT_BASELINE_ID


def read_profile_artifacts(
    path: PathLike, *, expected_profile: str | None = None
) -> ProfileArtifacts:
    """Load a normalized artifact bundle, optionally enforcing its profile."""

    source = Path(path)
    try:
        payload = read_json(source)
    except (OSError, ValueError) as exc:
        raise SchemaValidationError(f"{source}: unable to read artifact bundle: {exc}") from exc

    if isinstance(payload, Mapping) and expected_profile is not None:
        actual = payload.get("profile")
        if actual != expected_profile:
            raise ProfileMismatchError(expected_profile, str(actual), source=source.as_posix())

    try:
        return ProfileArtifacts.from_mapping(payload, path=source.name)
    except ValueError as exc:
        raise SchemaValidationError(str(exc)) from exc


@dataclass(frozen=True, slots=True)
class GoldenBaselineLocation:
    store_root: Path
    store_version: str
    baseline_id: str
    baseline_dir: Path
    baseline_artifact_file: Path
    metadata_file: Path


@dataclass(frozen=True, slots=True)
class GoldenBaselineRecord:
    location: GoldenBaselineLocation
    metadata: dict[str, JSONValue]
    artifact: ProfileArtifacts


class GoldenBaselineStore:
    """Golden baseline store rooted at ``goldens_root``."""

    __slots__ = ("_clock", "_store_root")

    def __init__(
        self,
        goldens_root: PathLike,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store_root = Path(goldens_root).expanduser().resolve()
        self._clock = clock

    @property
    def store_root(self) -> Path:
        return self._store_root

    def location(self, baseline_id: str | None) -> GoldenBaselineLocation:
        sanitized = sanitize_baseline_id(baseline_id)
        baseline_dir = self._store_root / GOLDEN_STORE_VERSION / sanitized
        return GoldenBaselineLocation(
            store_root=self._store_root,
            store_version=GOLDEN_STORE_VERSION,
            baseline_id=sanitized,
            baseline_dir=baseline_dir,
            baseline_artifact_file=baseline_dir / GOLDEN_BASELINE_FILENAME,
            metadata_file=baseline_dir / GOLDEN_METADATA_FILENAME,
        )

    def read(self, location: GoldenBaselineLocation) -> GoldenBaselineRecord | None:
        if not location.metadata_file.is_file() or not location.baseline_artifact_file.is_file():
            return None

        metadata = read_json(location.metadata_file)
        if not isinstance(metadata, dict):
            raise SchemaValidationError(f"{location.metadata_file}: expected JSON object")
        artifact = read_profile_artifacts(
            location.baseline_artifact_file, expected_profile=PROFILE_BASELINE
        )
        return GoldenBaselineRecord(location=location, metadata=metadata, artifact=artifact)

    def write(
        self,
        location: GoldenBaselineLocation,
        artifact: ProfileArtifacts,
        *,
        source_candidate_file: PathLike,
    ) -> GoldenBaselineRecord:
        if artifact.profile != PROFILE_BASELINE:
            raise ProfileMismatchError(PROFILE_BASELINE, artifact.profile, source="golden store write")

        metadata: dict[str, JSONValue] = {
            "schema_version": GOLDEN_METADATA_SCHEMA_VERSION,
            "store_version": location.store_version,
            "baseline_id": location.baseline_id,
            "promoted_at": iso_utc(self._clock()),
            "source_candidate_file": to_workspace_relative_path(
                source_candidate_file, location.store_root
            ),
            "artifact": {
                "profile": PROFILE_BASELINE,
                "normalized_artifact_file": location.baseline_artifact_file.name,
                "scenario_count": len(artifact.scenarios),
                "scenario_ids": list(artifact.scenario_ids),
            },
        }
        write_stable_json(location.baseline_artifact_file, artifact.to_dict())
        write_stable_json(location.metadata_file, metadata)
        logger.info(
            "golden_baseline_written",
            extra={
                "baseline_id": location.baseline_id,
                "scenario_count": len(artifact.scenarios),
            },
        )
        return GoldenBaselineRecord(location=location, metadata=metadata, artifact=artifact)


__all__ = [
    "GoldenBaselineLocation",
    "GoldenBaselineRecord",
    "GoldenBaselineStore",
    "read_profile_artifacts",
    "sanitize_baseline_id",
]
