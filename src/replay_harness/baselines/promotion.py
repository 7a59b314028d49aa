"""
replay-harness — guarded baseline promotion

File: src/replay_harness/baselines/promotion.py
Last updated: 2026-10-18

Purpose
- Diff a candidate baseline bundle against the stored golden baseline and write it
  only when the operator's guard flags allow.

Functional requirements
- Guards are evaluated in order: ``apply`` (else dry-run), ``approve``, then ``force``
  when a baseline already exists.
- The diff summary is always computed, including for rejected promotions.
- A scenario is "changed" when its normalized event list differs; raw events and
  success flags are not considered.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from replay_harness.baselines.golden_store import (
    GoldenBaselineLocation,
    GoldenBaselineRecord,
    GoldenBaselineStore,
    read_profile_artifacts,
)
from replay_harness.constants import PROFILE_BASELINE
from replay_harness.domain.models import ProfileArtifacts
from replay_harness.observability.logging import correlation_scope
from replay_harness.utils.clock import utc_now
from replay_harness.utils.stable_json import JSONValue, stable_stringify

logger = logging.getLogger(__name__)

PathLike = str | os.PathLike[str]

DRY_RUN_GUARD = "Dry-run mode. Re-run with --apply --approve to write baseline artifacts."
APPROVAL_GUARD = "Promotion requires explicit approval. Re-run with --approve."


@dataclass(frozen=True, slots=True)
class PromotionSummary:
    baseline_id: str
    has_existing_baseline: bool
    total_candidate_scenarios: int
    added_scenarios: tuple[str, ...]
    removed_scenarios: tuple[str, ...]
    changed_scenarios: tuple[str, ...]
    unchanged_scenarios: tuple[str, ...]

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "baseline_id": self.baseline_id,
            "has_existing_baseline": self.has_existing_baseline,
            "total_candidate_scenarios": self.total_candidate_scenarios,
            "added_scenarios": list(self.added_scenarios),
            "removed_scenarios": list(self.removed_scenarios),
            "changed_scenarios": list(self.changed_scenarios),
            "unchanged_scenarios": list(self.unchanged_scenarios),
        }


@dataclass(frozen=True, slots=True)
class PromotionResult:
    applied: bool
    location: GoldenBaselineLocation
    summary: PromotionSummary
    guard_reason: str | None = None
    baseline_artifact_file: Path | None = None
    metadata_file: Path | None = None


def _events_signature(artifact: ProfileArtifacts, scenario_id: str) -> str:
    # First artifact with the id wins when a bundle repeats a scenario.
    scenario = next((item for item in artifact.scenarios if item.scenario_id == scenario_id), None)
    if scenario is None:
        return ""
    return stable_stringify([event.to_dict() for event in scenario.normalized_events])


def summarize_promotion(
    location: GoldenBaselineLocation,
    candidate: ProfileArtifacts,
    existing: GoldenBaselineRecord | None,
) -> PromotionSummary:
    candidate_ids = candidate.scenario_ids
    existing_ids = existing.artifact.scenario_ids if existing is not None else ()
    candidate_set = set(candidate_ids)
    existing_set = set(existing_ids)

    changed: list[str] = []
    unchanged: list[str] = []
    if existing is not None:
        for scenario_id in candidate_ids:
            if scenario_id not in existing_set:
                continue
            if _events_signature(candidate, scenario_id) == _events_signature(
                existing.artifact, scenario_id
            ):
                unchanged.append(scenario_id)
            else:
                changed.append(scenario_id)

    return PromotionSummary(
        baseline_id=location.baseline_id,
        has_existing_baseline=existing is not None,
        total_candidate_scenarios=len(candidate.scenarios),
        added_scenarios=tuple(item for item in candidate_ids if item not in existing_set),
        removed_scenarios=tuple(item for item in existing_ids if item not in candidate_set),
        changed_scenarios=tuple(changed),
        unchanged_scenarios=tuple(unchanged),
    )


def promote_baseline(
    *,
    goldens_root: PathLike,
    baseline_id: str | None,
    candidate_file: PathLike,
    apply: bool = False,
    approve: bool = False,
    force: bool = False,
    clock: Callable[[], datetime] = utc_now,
) -> PromotionResult:
    """Promote ``candidate_file`` (profile ``baseline``) into the golden store."""

    store = GoldenBaselineStore(goldens_root, clock=clock)
    location = store.location(baseline_id)

    with correlation_scope(baseline_id=location.baseline_id):
        candidate = read_profile_artifacts(candidate_file, expected_profile=PROFILE_BASELINE)
        existing = store.read(location)
        summary = summarize_promotion(location, candidate, existing)

        guard_reason: str | None = None
        if not apply:
            guard_reason = DRY_RUN_GUARD
        elif not approve:
            guard_reason = APPROVAL_GUARD
        elif existing is not None and not force:
            guard_reason = (
                f"Baseline '{location.baseline_id}' already exists. Re-run with --force to overwrite."
            )

        if guard_reason is not None:
            logger.info("baseline_promotion_guarded", extra={"guard_reason": guard_reason})
            return PromotionResult(
                applied=False, location=location, summary=summary, guard_reason=guard_reason
            )

        record = store.write(location, candidate, source_candidate_file=candidate_file)
        logger.info(
            "baseline_promotion_applied",
            extra={
                "added": len(summary.added_scenarios),
                "removed": len(summary.removed_scenarios),
                "changed": len(summary.changed_scenarios),
            },
        )
        return PromotionResult(
            applied=True,
            location=location,
            summary=summary,
            baseline_artifact_file=record.location.baseline_artifact_file,
            metadata_file=record.location.metadata_file,
        )


__all__ = [
    "APPROVAL_GUARD",
    "DRY_RUN_GUARD",
    "PromotionResult",
    "PromotionSummary",
    "promote_baseline",
    "summarize_promotion",
]
