"""
replay-harness — artifact resolution across explicit, golden, and legacy sources

File: src/replay_harness/baselines/resolver.py
Last updated: 2026-10-18

Purpose
- Find the baseline or candidate artifact bundle a command should consume.

Functional requirements
- Precedence: explicit file, then golden store (baseline only), then a named legacy
  run directory, then the newest legacy run directory by modification time.
- Inside a legacy run directory ``<kind>.norm.json`` wins over ``<kind>.json``.
- Nothing resolvable returns ``None``; ``require_replay_artifact`` raises
  ``ArtifactResolutionError`` instead.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from replay_harness.baselines.golden_store import GoldenBaselineStore
from replay_harness.constants import DEFAULT_BASELINE_ID, PROFILE_BASELINE, PROFILE_NAMES
from replay_harness.domain.errors import ArtifactResolutionError

PathLike = str | os.PathLike[str]


class ArtifactSource(str, Enum):
    EXPLICIT = "explicit"
    GOLDEN_V1 = "golden_v1"
    LEGACY_RUN = "legacy_run"


@dataclass(frozen=True, slots=True)
class ResolutionRequest:
    kind: str
    goldens_root: PathLike
    legacy_runs_root: PathLike
    baseline_id: str = DEFAULT_BASELINE_ID
    explicit_file: PathLike | None = None
    legacy_run_dir: PathLike | None = None

    def __post_init__(self) -> None:
        if self.kind not in PROFILE_NAMES:
            raise ValueError(f"kind must be one of {', '.join(PROFILE_NAMES)}, got {self.kind!r}")


@dataclass(frozen=True, slots=True)
class ResolvedArtifact:
    kind: str
    file: Path
    source: ArtifactSource
    legacy_run_dir: Path | None = None


def legacy_artifact_candidates(kind: str) -> tuple[str, str]:
    return (f"{kind}.norm.json", f"{kind}.json")


def resolve_from_legacy_run_dir(run_dir: Path, kind: str) -> ResolvedArtifact | None:
    for file_name in legacy_artifact_candidates(kind):
        candidate = run_dir / file_name
        if candidate.is_file():
            return ResolvedArtifact(
                kind=kind, file=candidate, source=ArtifactSource.LEGACY_RUN, legacy_run_dir=run_dir
            )
    return None


def resolve_latest_legacy_run(runs_root: Path, kind: str) -> ResolvedArtifact | None:
    if not runs_root.is_dir():
        return None
    run_dirs = sorted(
        (entry for entry in runs_root.iterdir() if entry.is_dir()),
        key=lambda entry: entry.stat().st_mtime_ns,
        reverse=True,
    )
    for run_dir in run_dirs:
        resolved = resolve_from_legacy_run_dir(run_dir, kind)
        if resolved is not None:
            return resolved
    return None


def resolve_replay_artifact(request: ResolutionRequest) -> ResolvedArtifact | None:
    if request.explicit_file:
        explicit = Path(request.explicit_file).expanduser().resolve()
        if explicit.is_file():
            return ResolvedArtifact(kind=request.kind, file=explicit, source=ArtifactSource.EXPLICIT)

    if request.kind == PROFILE_BASELINE:
        location = GoldenBaselineStore(request.goldens_root).location(request.baseline_id)
        if location.baseline_artifact_file.is_file():
            return ResolvedArtifact(
                kind=request.kind,
                file=location.baseline_artifact_file,
                source=ArtifactSource.GOLDEN_V1,
            )

    runs_root = Path(request.legacy_runs_root).expanduser().resolve()
    if request.legacy_run_dir:
        run_dir = Path(request.legacy_run_dir).expanduser()
        run_dir = run_dir.resolve() if run_dir.is_absolute() else (runs_root / run_dir).resolve()
        resolved = resolve_from_legacy_run_dir(run_dir, request.kind)
        if resolved is not None:
            return resolved

    return resolve_latest_legacy_run(runs_root, request.kind)


def require_replay_artifact(request: ResolutionRequest) -> ResolvedArtifact:
    resolved = resolve_replay_artifact(request)
    if resolved is None:
        raise ArtifactResolutionError(f"no {request.kind} artifact could be resolved")
    return resolved


__all__ = [
    "ArtifactSource",
    "ResolutionRequest",
    "ResolvedArtifact",
    "legacy_artifact_candidates",
    "require_replay_artifact",
    "resolve_from_legacy_run_dir",
    "resolve_latest_legacy_run",
    "resolve_replay_artifact",
]
