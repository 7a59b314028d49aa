"""
replay-harness — drift explainability enrichment

File: src/replay_harness/comparison/enrichment.py
Last updated: 2026-10-18

Purpose
- Attach category, confidence, operator bucket, remediation, and evidence to raw drifts,
  and aggregate enriched drifts into per-scenario groups and a report rollup.

Functional requirements
- Category comes from the check type when the drift's check is declared; otherwise
  it is inferred from keywords in ``check_id`` and ``message``.
- Evidence event indexes use explicit ``details`` indexes when present, else indexes
  derived by matching ``details`` action names against normalized events.
- Fingerprints are SHA-256 over ``scenario_id|check_id|severity|lower(message)``.

Non-functional requirements
- Deterministic output; groups follow the fixed taxonomy order.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Final

from replay_harness.constants import normalized_artifact_filename
from replay_harness.domain.models import (
    EXPLAINABILITY_TAXONOMY_ORDER,
    ConfidenceBand,
    DriftEvidence,
    DriftFinding,
    DriftRemediation,
    DriftSeverity,
    ExplainabilityCategory,
    ExplainabilityGroup,
    ExplainabilityRollup,
    OperatorBucket,
    TraceEvent,
)
from replay_harness.scenarios.schema import CheckSpec
from replay_harness.utils.hashing import sha256_text

CATEGORY_BY_CHECK_TYPE: Final[Mapping[str, ExplainabilityCategory]] = {
    "tool_order": ExplainabilityCategory.TOOL_SEQUENCE,
    "auth_outcome": ExplainabilityCategory.AUTHORIZATION_POLICY,
    "flow": ExplainabilityCategory.FLOW_PROTOCOL,
    "success_signature": ExplainabilityCategory.SUCCESS_SIGNATURE,
}

# Keyword inference, first match wins.
_CATEGORY_KEYWORDS: Final[tuple[tuple[ExplainabilityCategory, tuple[str, ...]], ...]] = (
    (ExplainabilityCategory.ARTIFACT_INTEGRITY, ("scenario-presence", "scenario-timeout", "artifact")),
    (ExplainabilityCategory.AUTHORIZATION_POLICY, ("auth",)),
    (ExplainabilityCategory.TOOL_SEQUENCE, ("tool", "order", "sequence")),
    (ExplainabilityCategory.FLOW_PROTOCOL, ("handoff", "complete", "confirmation", "flow")),
    (ExplainabilityCategory.SUCCESS_SIGNATURE, ("signature",)),
)

OPERATOR_BUCKET_BY_SEVERITY: Final[Mapping[DriftSeverity, OperatorBucket]] = {
    DriftSeverity.HIGH: OperatorBucket.BLOCKER,
    DriftSeverity.MEDIUM: OperatorBucket.ACTIONABLE,
    DriftSeverity.LOW: OperatorBucket.MONITOR,
}

_REMEDIATION_TEMPLATES: Final[Mapping[ExplainabilityCategory, DriftRemediation]] = {
    ExplainabilityCategory.TOOL_SEQUENCE: DriftRemediation(
        likely_causes=("Planner selected a different tool/action sequence than baseline.",),
        recommended_actions=("Compare baseline/candidate tool-action order and align decision flow.",),
        verification_steps=("Re-run replay and confirm tool-order drift no longer appears.",),
    ),
    ExplainabilityCategory.AUTHORIZATION_POLICY: DriftRemediation(
        likely_causes=("Authorization policy outcome or reason-class changed.",),
        recommended_actions=("Inspect authorization rationale and policy envelopes for parity.",),
        verification_steps=(
            "Validate auth events and reason_class values match baseline expectations.",
        ),
    ),
    ExplainabilityCategory.FLOW_PROTOCOL: DriftRemediation(
        likely_causes=("Required sequencing (confirmation/handoff/complete) was violated.",),
        recommended_actions=("Restore protocol ordering before gated updates and completion.",),
        verification_steps=("Replay scenario and verify protocol event ordering checks pass.",),
    ),
    ExplainabilityCategory.SUCCESS_SIGNATURE: DriftRemediation(
        likely_causes=("Expected success signature tokens were missing from candidate run.",),
        recommended_actions=("Restore missing success-signature emitting path.",),
        verification_steps=(
            "Confirm must_include signatures are present in normalized candidate events.",
        ),
    ),
}


def infer_category(check_id: str | None, message: str) -> ExplainabilityCategory:
    token = f"{check_id or ''} {message}".lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in token for keyword in keywords):
            return category
    return ExplainabilityCategory.ARTIFACT_INTEGRITY


def derive_category(check: CheckSpec | None, drift: DriftFinding) -> ExplainabilityCategory:
    if check is not None:
        return CATEGORY_BY_CHECK_TYPE[check.type]
    return infer_category(drift.check_id, drift.message)


def derive_confidence(drift: DriftFinding) -> ConfidenceBand:
    """More attached detail fields mean higher confidence; thresholds vary by severity."""

    count = drift.detail_count
    if drift.severity is DriftSeverity.HIGH:
        return ConfidenceBand.HIGH if count > 0 else ConfidenceBand.MEDIUM
    if drift.severity is DriftSeverity.MEDIUM:
        if count >= 2:
            return ConfidenceBand.HIGH
        return ConfidenceBand.MEDIUM if count > 0 else ConfidenceBand.LOW
    return ConfidenceBand.MEDIUM if count >= 2 else ConfidenceBand.LOW


def remediation_for(category: ExplainabilityCategory, drift: DriftFinding) -> DriftRemediation:
    template = _REMEDIATION_TEMPLATES.get(category)
    if template is not None:
        return template
    return DriftRemediation(
        likely_causes=("Required replay artifacts were missing or could not be resolved.",),
        recommended_actions=(
            "Rebuild baseline/candidate artifacts and verify scenario coverage parity.",
        ),
        verification_steps=(
            f"Confirm artifacts exist for scenario {drift.scenario_id} and rerun comparison.",
        ),
    )


def find_action_indexes(events: Sequence[TraceEvent], actions: object) -> tuple[int, ...] | None:
    """Indexes of events whose canonical (or raw) action is in ``actions``; ``None`` if none."""

    if not isinstance(actions, list) or not actions:
        return None
    expected = {action.strip().lower() for action in actions if isinstance(action, str)}
    indexes = tuple(
        index
        for index, event in enumerate(events)
        if (event.action_canonical or event.action_raw or "").strip().lower() in expected
    )
    return indexes or None


def explicit_event_indexes(value: object) -> tuple[int, ...] | None:
    if not isinstance(value, list):
        return None
    return tuple(item for item in value if isinstance(item, int) and not isinstance(item, bool))


def artifact_ref(profile: str, scenario_id: str) -> str:
    return f"{normalized_artifact_filename(profile)}#scenario:{scenario_id}".strip().replace("\\", "/")


def drift_fingerprint(drift: DriftFinding) -> str:
    material = "|".join(
        (drift.scenario_id, drift.check_id, drift.severity.value, drift.message.strip().lower())
    )
    return sha256_text(material)


def build_evidence(
    drift: DriftFinding,
    *,
    baseline_profile: str,
    candidate_profile: str,
    baseline_events: Sequence[TraceEvent] = (),
    candidate_events: Sequence[TraceEvent] = (),
) -> DriftEvidence:
    details = drift.details or {}
    baseline_indexes = explicit_event_indexes(details.get("baseline_event_indexes"))
    if baseline_indexes is None:
        baseline_indexes = find_action_indexes(baseline_events, details.get("baseline_actions"))
    candidate_indexes = explicit_event_indexes(details.get("candidate_event_indexes"))
    if candidate_indexes is None:
        candidate_indexes = find_action_indexes(candidate_events, details.get("candidate_actions"))

    return DriftEvidence(
        baseline_event_indexes=baseline_indexes,
        candidate_event_indexes=candidate_indexes,
        artifact_refs=(
            artifact_ref(baseline_profile, drift.scenario_id),
            artifact_ref(candidate_profile, drift.scenario_id),
        ),
        fingerprint=drift_fingerprint(drift),
    )


def enrich_drift(
    drift: DriftFinding,
    check: CheckSpec | None,
    *,
    baseline_profile: str,
    candidate_profile: str,
    baseline_events: Sequence[TraceEvent] = (),
    candidate_events: Sequence[TraceEvent] = (),
) -> DriftFinding:
    category = derive_category(check, drift)
    return replace(
        drift,
        category=category,
        confidence=derive_confidence(drift),
        operator_bucket=OPERATOR_BUCKET_BY_SEVERITY[drift.severity],
        remediation=remediation_for(category, drift),
        evidence=build_evidence(
            drift,
            baseline_profile=baseline_profile,
            candidate_profile=candidate_profile,
            baseline_events=baseline_events,
            candidate_events=candidate_events,
        ),
    )


def build_explainability_groups(
    drifts: Sequence[DriftFinding],
) -> tuple[ExplainabilityGroup, ...] | None:
    """Per-category counts in taxonomy order; ``None`` when there are no drifts."""

    if not drifts:
        return None

    groups: dict[ExplainabilityCategory, ExplainabilityGroup] = {}
    for drift in drifts:
        if drift.category is None:
            continue
        current = groups.get(drift.category) or ExplainabilityGroup(category=drift.category)
        groups[drift.category] = replace(
            current,
            total_drifts=current.total_drifts + 1,
            high_confidence=current.high_confidence + (drift.confidence is ConfidenceBand.HIGH),
            medium_confidence=current.medium_confidence + (drift.confidence is ConfidenceBand.MEDIUM),
            low_confidence=current.low_confidence + (drift.confidence is ConfidenceBand.LOW),
            blocker_bucket=current.blocker_bucket + (drift.operator_bucket is OperatorBucket.BLOCKER),
            actionable_bucket=current.actionable_bucket
            + (drift.operator_bucket is OperatorBucket.ACTIONABLE),
            monitor_bucket=current.monitor_bucket + (drift.operator_bucket is OperatorBucket.MONITOR),
        )

    return tuple(groups[category] for category in EXPLAINABILITY_TAXONOMY_ORDER if category in groups)


def build_explainability_rollup(drifts: Sequence[DriftFinding]) -> ExplainabilityRollup | None:
    explained = [drift for drift in drifts if drift.is_enriched]
    if not explained:
        return None

    by_category = Counter(drift.category.value for drift in explained if drift.category is not None)
    by_confidence = Counter(
        drift.confidence.value for drift in explained if drift.confidence is not None
    )
    by_bucket = Counter(
        drift.operator_bucket.value for drift in explained if drift.operator_bucket is not None
    )
    return ExplainabilityRollup(
        total_explained_drifts=len(explained),
        by_category=dict(by_category),
        by_confidence=dict(by_confidence),
        by_operator_bucket=dict(by_bucket),
    )


__all__ = [
    "CATEGORY_BY_CHECK_TYPE",
    "OPERATOR_BUCKET_BY_SEVERITY",
    "artifact_ref",
    "build_evidence",
    "build_explainability_groups",
    "build_explainability_rollup",
    "derive_category",
    "derive_confidence",
    "drift_fingerprint",
    "enrich_drift",
    "explicit_event_indexes",
    "find_action_indexes",
    "infer_category",
    "remediation_for",
]
