"""
replay-harness — core domain models

File: src/replay_harness/domain/models.py
Last updated: 2026-10-18

Purpose
- Typed records for trace events, captured artifacts, drift findings, and comparison reports.

What should be included in this file
- Frozen dataclasses with ``to_dict``/``from_mapping`` for every persisted shape.
- Enumerations for severities and the explainability taxonomy.

Functional requirements
- ``to_dict`` omits absent optional fields so persisted JSON stays minimal and stable.
- ``from_mapping`` validates shape and raises ``ValueError`` with a field path on failure.

Non-functional requirements
- No IO in this module.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Final, TypeVar

from replay_harness.constants import PROFILE_NAMES
from replay_harness.utils.stable_json import JSONValue, to_stable_value

OUTCOME_EVENT_TYPE: Final[str] = "outcome"

_EnumT = TypeVar("_EnumT", bound=Enum)


class DriftSeverity(str, Enum):
    """Severity attached to a drift finding or check."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AuthOutcome(str, Enum):
    """Authorization outcome recorded on tool calls."""

    ALLOWED = "allowed"
    ALLOWED_WITH_WARNING = "allowed_with_warning"
    BLOCKED = "blocked"


class ExplainabilityCategory(str, Enum):
    """Taxonomy bucket used to explain a drift to operators."""

    FLOW_PROTOCOL = "flow_protocol"
    AUTHORIZATION_POLICY = "authorization_policy"
    TOOL_SEQUENCE = "tool_sequence"
    SUCCESS_SIGNATURE = "success_signature"
    ARTIFACT_INTEGRITY = "artifact_integrity"


EXPLAINABILITY_TAXONOMY_ORDER: Final[tuple[ExplainabilityCategory, ...]] = (
    ExplainabilityCategory.FLOW_PROTOCOL,
    ExplainabilityCategory.AUTHORIZATION_POLICY,
    ExplainabilityCategory.TOOL_SEQUENCE,
    ExplainabilityCategory.SUCCESS_SIGNATURE,
    ExplainabilityCategory.ARTIFACT_INTEGRITY,
)


class ConfidenceBand(str, Enum):
    """How much attached evidence backs a drift."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class OperatorBucket(str, Enum):
    """Operator triage bucket derived from severity."""

    BLOCKER = "blocker"
    ACTIONABLE = "actionable"
    MONITOR = "monitor"


@dataclass(frozen=True, slots=True)
class AuthorizationResult:
    outcome: str
    reason_class: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {"outcome": self.outcome}
        if self.reason_class is not None:
            payload["reason_class"] = self.reason_class
        return payload

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object], path: str) -> AuthorizationResult:
        return cls(
            outcome=_require_str(payload.get("outcome"), f"{path}.outcome"),
            reason_class=_optional_str(payload.get("reason_class"), f"{path}.reason_class"),
        )


@dataclass(frozen=True, slots=True)
class TraceEvent:
    """One timestamped record emitted by a scenario runner."""

    event_type: str
    timestamp_ms: int | float
    scenario_id: str
    step_id: str | None = None
    tool_name: str | None = None
    action_raw: str | None = None
    action_canonical: str | None = None
    authorization: AuthorizationResult | None = None
    phase: str | None = None
    success_signature: str | None = None
    payload: dict[str, JSONValue] | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {
            "event_type": self.event_type,
            "timestamp_ms": self.timestamp_ms,
            "scenario_id": self.scenario_id,
        }
        for key in (
            "step_id",
            "tool_name",
            "action_raw",
            "action_canonical",
            "phase",
            "success_signature",
        ):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        if self.authorization is not None:
            out["authorization"] = self.authorization.to_dict()
        if self.payload is not None:
            out["payload"] = self.payload
        return out

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object], path: str = "event") -> TraceEvent:
        if not isinstance(payload, Mapping):
            raise ValueError(f"{path}: expected object, got {type(payload).__name__}")
        authorization_raw = payload.get("authorization")
        authorization: AuthorizationResult | None = None
        if authorization_raw is not None:
            if not isinstance(authorization_raw, Mapping):
                raise ValueError(f"{path}.authorization: expected object")
            authorization = AuthorizationResult.from_mapping(
                authorization_raw, f"{path}.authorization"
            )
        event_payload = payload.get("payload")
        if event_payload is not None and not isinstance(event_payload, Mapping):
            raise ValueError(f"{path}.payload: expected object")
        return cls(
            event_type=_require_str(payload.get("event_type"), f"{path}.event_type"),
            timestamp_ms=_require_number(payload.get("timestamp_ms"), f"{path}.timestamp_ms"),
            scenario_id=_require_str(payload.get("scenario_id"), f"{path}.scenario_id"),
            step_id=_optional_str(payload.get("step_id"), f"{path}.step_id"),
            tool_name=_optional_str(payload.get("tool_name"), f"{path}.tool_name"),
            action_raw=_optional_str(payload.get("action_raw"), f"{path}.action_raw"),
            action_canonical=_optional_str(
                payload.get("action_canonical"), f"{path}.action_canonical"
            ),
            authorization=authorization,
            phase=_optional_str(payload.get("phase"), f"{path}.phase"),
            success_signature=_optional_str(
                payload.get("success_signature"), f"{path}.success_signature"
            ),
            payload=_json_object(event_payload, f"{path}.payload"),
        )


@dataclass(frozen=True, slots=True)
class ScenarioArtifact:
    """Raw and normalized events captured for one scenario under one profile."""

    scenario_id: str
    profile: str
    raw_events: tuple[TraceEvent, ...]
    normalized_events: tuple[TraceEvent, ...]
    success: bool
    timed_out: bool = False

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {
            "scenario_id": self.scenario_id,
            "profile": self.profile,
            "raw_events": [event.to_dict() for event in self.raw_events],
            "normalized_events": [event.to_dict() for event in self.normalized_events],
            "success": self.success,
        }
        if self.timed_out:
            out["timed_out"] = True
        return out

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object], path: str) -> ScenarioArtifact:
        if not isinstance(payload, Mapping):
            raise ValueError(f"{path}: expected object, got {type(payload).__name__}")
        return cls(
            scenario_id=_require_str(payload.get("scenario_id"), f"{path}.scenario_id"),
            profile=_require_profile(payload.get("profile"), f"{path}.profile"),
            raw_events=_parse_events(payload.get("raw_events", []), f"{path}.raw_events"),
            normalized_events=_parse_events(
                payload.get("normalized_events", []), f"{path}.normalized_events"
            ),
            success=bool(payload.get("success", False)),
            timed_out=bool(payload.get("timed_out", False)),
        )


@dataclass(frozen=True, slots=True)
class ProfileArtifacts:
    """All scenario artifacts captured under one profile."""

    profile: str
    scenarios: tuple[ScenarioArtifact, ...]

    @property
    def scenario_ids(self) -> tuple[str, ...]:
        return tuple(artifact.scenario_id for artifact in self.scenarios)

    def by_scenario(self) -> dict[str, ScenarioArtifact]:
        """Index artifacts by scenario id; later duplicates win."""

        return {artifact.scenario_id: artifact for artifact in self.scenarios}

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "profile": self.profile,
            "scenarios": [artifact.to_dict() for artifact in self.scenarios],
        }

    @classmethod
    def from_mapping(cls, payload: object, path: str = "artifacts") -> ProfileArtifacts:
        if not isinstance(payload, Mapping):
            raise ValueError(f"{path}: expected object, got {type(payload).__name__}")
        scenarios_raw = payload.get("scenarios")
        if not isinstance(scenarios_raw, list):
            raise ValueError(f"{path}.scenarios: expected array")
        return cls(
            profile=_require_profile(payload.get("profile"), f"{path}.profile"),
            scenarios=tuple(
                ScenarioArtifact.from_mapping(item, f"{path}.scenarios[{index}]")
                for index, item in enumerate(scenarios_raw)
            ),
        )


@dataclass(frozen=True, slots=True)
class DriftRemediation:
    likely_causes: tuple[str, ...] = ()
    recommended_actions: tuple[str, ...] = ()
    verification_steps: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "likely_causes": list(self.likely_causes),
            "recommended_actions": list(self.recommended_actions),
            "verification_steps": list(self.verification_steps),
        }

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object], path: str) -> DriftRemediation:
        return cls(
            likely_causes=_str_tuple(payload.get("likely_causes"), f"{path}.likely_causes"),
            recommended_actions=_str_tuple(
                payload.get("recommended_actions"), f"{path}.recommended_actions"
            ),
            verification_steps=_str_tuple(
                payload.get("verification_steps"), f"{path}.verification_steps"
            ),
        )


@dataclass(frozen=True, slots=True)
class DriftEvidence:
    artifact_refs: tuple[str, ...]
    fingerprint: str
    baseline_event_indexes: tuple[int, ...] | None = None
    candidate_event_indexes: tuple[int, ...] | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {
            "artifact_refs": list(self.artifact_refs),
            "fingerprint": self.fingerprint,
        }
        if self.baseline_event_indexes is not None:
            out["baseline_event_indexes"] = list(self.baseline_event_indexes)
        if self.candidate_event_indexes is not None:
            out["candidate_event_indexes"] = list(self.candidate_event_indexes)
        return out

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object], path: str) -> DriftEvidence:
        return cls(
            artifact_refs=_str_tuple(payload.get("artifact_refs"), f"{path}.artifact_refs"),
            fingerprint=_require_str(payload.get("fingerprint"), f"{path}.fingerprint"),
            baseline_event_indexes=_optional_int_tuple(
                payload.get("baseline_event_indexes"), f"{path}.baseline_event_indexes"
            ),
            candidate_event_indexes=_optional_int_tuple(
                payload.get("candidate_event_indexes"), f"{path}.candidate_event_indexes"
            ),
        )


@dataclass(frozen=True, slots=True)
class DriftFinding:
    """A detected divergence for one scenario/check, optionally enriched."""

    scenario_id: str
    check_id: str
    severity: DriftSeverity
    message: str
    details: dict[str, JSONValue] | None = None
    category: ExplainabilityCategory | None = None
    confidence: ConfidenceBand | None = None
    operator_bucket: OperatorBucket | None = None
    remediation: DriftRemediation | None = None
    evidence: DriftEvidence | None = None

    @property
    def detail_count(self) -> int:
        return len(self.details) if self.details else 0

    @property
    def is_enriched(self) -> bool:
        return (
            self.category is not None
            or self.confidence is not None
            or self.operator_bucket is not None
        )

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {
            "scenario_id": self.scenario_id,
            "check_id": self.check_id,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.details is not None:
            out["details"] = self.details
        if self.category is not None:
            out["category"] = self.category.value
        if self.confidence is not None:
            out["confidence"] = self.confidence.value
        if self.operator_bucket is not None:
            out["operator_bucket"] = self.operator_bucket.value
        if self.remediation is not None:
            out["remediation"] = self.remediation.to_dict()
        if self.evidence is not None:
            out["evidence"] = self.evidence.to_dict()
        return out

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object], path: str = "drift") -> DriftFinding:
        if not isinstance(payload, Mapping):
            raise ValueError(f"{path}: expected object, got {type(payload).__name__}")
        remediation_raw = payload.get("remediation")
        evidence_raw = payload.get("evidence")
        return cls(
            scenario_id=_require_str(payload.get("scenario_id"), f"{path}.scenario_id"),
            check_id=_require_str(payload.get("check_id"), f"{path}.check_id"),
            severity=_enum(DriftSeverity, payload.get("severity"), f"{path}.severity"),
            message=_require_str(payload.get("message"), f"{path}.message"),
            details=_json_object(payload.get("details"), f"{path}.details"),
            category=_optional_enum(
                ExplainabilityCategory, payload.get("category"), f"{path}.category"
            ),
            confidence=_optional_enum(ConfidenceBand, payload.get("confidence"), f"{path}.confidence"),
            operator_bucket=_optional_enum(
                OperatorBucket, payload.get("operator_bucket"), f"{path}.operator_bucket"
            ),
            remediation=(
                DriftRemediation.from_mapping(remediation_raw, f"{path}.remediation")
                if isinstance(remediation_raw, Mapping)
                else None
            ),
            evidence=(
                DriftEvidence.from_mapping(evidence_raw, f"{path}.evidence")
                if isinstance(evidence_raw, Mapping)
                else None
            ),
        )


@dataclass(frozen=True, slots=True)
class ExplainabilityGroup:
    """Per-category drift counts for one scenario."""

    category: ExplainabilityCategory
    total_drifts: int = 0
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0
    blocker_bucket: int = 0
    actionable_bucket: int = 0
    monitor_bucket: int = 0

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "category": self.category.value,
            "total_drifts": self.total_drifts,
            "high_confidence": self.high_confidence,
            "medium_confidence": self.medium_confidence,
            "low_confidence": self.low_confidence,
            "blocker_bucket": self.blocker_bucket,
            "actionable_bucket": self.actionable_bucket,
            "monitor_bucket": self.monitor_bucket,
        }

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object], path: str) -> ExplainabilityGroup:
        return cls(
            category=_enum(ExplainabilityCategory, payload.get("category"), f"{path}.category"),
            total_drifts=_count(payload.get("total_drifts"), f"{path}.total_drifts"),
            high_confidence=_count(payload.get("high_confidence"), f"{path}.high_confidence"),
            medium_confidence=_count(payload.get("medium_confidence"), f"{path}.medium_confidence"),
            low_confidence=_count(payload.get("low_confidence"), f"{path}.low_confidence"),
            blocker_bucket=_count(payload.get("blocker_bucket"), f"{path}.blocker_bucket"),
            actionable_bucket=_count(payload.get("actionable_bucket"), f"{path}.actionable_bucket"),
            monitor_bucket=_count(payload.get("monitor_bucket"), f"{path}.monitor_bucket"),
        )


@dataclass(frozen=True, slots=True)
class ExplainabilityRollup:
    """Report-level aggregate of enriched drifts."""

    total_explained_drifts: int
    by_category: dict[str, int] = field(default_factory=dict)
    by_confidence: dict[str, int] = field(default_factory=dict)
    by_operator_bucket: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "total_explained_drifts": self.total_explained_drifts,
            "by_category": dict(self.by_category),
            "by_confidence": dict(self.by_confidence),
            "by_operator_bucket": dict(self.by_operator_bucket),
        }

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object], path: str) -> ExplainabilityRollup:
        return cls(
            total_explained_drifts=_count(
                payload.get("total_explained_drifts"), f"{path}.total_explained_drifts"
            ),
            by_category=_count_map(payload.get("by_category"), f"{path}.by_category"),
            by_confidence=_count_map(payload.get("by_confidence"), f"{path}.by_confidence"),
            by_operator_bucket=_count_map(
                payload.get("by_operator_bucket"), f"{path}.by_operator_bucket"
            ),
        )


@dataclass(frozen=True, slots=True)
class ScenarioComparison:
    scenario_id: str
    passed: bool
    drifts: tuple[DriftFinding, ...]
    checks_executed: tuple[str, ...]
    explainability_groups: tuple[ExplainabilityGroup, ...] | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {
            "scenario_id": self.scenario_id,
            "passed": self.passed,
            "drifts": [drift.to_dict() for drift in self.drifts],
            "checks_executed": list(self.checks_executed),
        }
        if self.explainability_groups is not None:
            out["explainability_groups"] = [group.to_dict() for group in self.explainability_groups]
        return out

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object], path: str) -> ScenarioComparison:
        if not isinstance(payload, Mapping):
            raise ValueError(f"{path}: expected object, got {type(payload).__name__}")
        drifts_raw = payload.get("drifts", [])
        if not isinstance(drifts_raw, list):
            raise ValueError(f"{path}.drifts: expected array")
        groups_raw = payload.get("explainability_groups")
        groups: tuple[ExplainabilityGroup, ...] | None = None
        if isinstance(groups_raw, list):
            groups = tuple(
                ExplainabilityGroup.from_mapping(item, f"{path}.explainability_groups[{index}]")
                for index, item in enumerate(groups_raw)
                if isinstance(item, Mapping)
            )
        return cls(
            scenario_id=_require_str(payload.get("scenario_id"), f"{path}.scenario_id"),
            passed=bool(payload.get("passed", False)),
            drifts=tuple(
                DriftFinding.from_mapping(item, f"{path}.drifts[{index}]")
                for index, item in enumerate(drifts_raw)
            ),
            checks_executed=_str_tuple(payload.get("checks_executed"), f"{path}.checks_executed"),
            explainability_groups=groups,
        )


@dataclass(frozen=True, slots=True)
class ComparisonSummary:
    total_scenarios: int
    passed_scenarios: int
    failed_scenarios: int
    high_severity_drifts: int
    medium_severity_drifts: int
    low_severity_drifts: int
    explainability_rollup: ExplainabilityRollup | None = None

    @property
    def total_drifts(self) -> int:
        return self.high_severity_drifts + self.medium_severity_drifts + self.low_severity_drifts

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {
            "total_scenarios": self.total_scenarios,
            "passed_scenarios": self.passed_scenarios,
            "failed_scenarios": self.failed_scenarios,
            "high_severity_drifts": self.high_severity_drifts,
            "medium_severity_drifts": self.medium_severity_drifts,
            "low_severity_drifts": self.low_severity_drifts,
        }
        if self.explainability_rollup is not None:
            out["explainability_rollup"] = self.explainability_rollup.to_dict()
        return out

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object], path: str = "summary") -> ComparisonSummary:
        if not isinstance(payload, Mapping):
            raise ValueError(f"{path}: expected object, got {type(payload).__name__}")
        rollup_raw = payload.get("explainability_rollup")
        return cls(
            total_scenarios=_count(payload.get("total_scenarios"), f"{path}.total_scenarios"),
            passed_scenarios=_count(payload.get("passed_scenarios"), f"{path}.passed_scenarios"),
            failed_scenarios=_count(payload.get("failed_scenarios"), f"{path}.failed_scenarios"),
            high_severity_drifts=_count(
                payload.get("high_severity_drifts"), f"{path}.high_severity_drifts"
            ),
            medium_severity_drifts=_count(
                payload.get("medium_severity_drifts"), f"{path}.medium_severity_drifts"
            ),
            low_severity_drifts=_count(
                payload.get("low_severity_drifts"), f"{path}.low_severity_drifts"
            ),
            explainability_rollup=(
                ExplainabilityRollup.from_mapping(rollup_raw, f"{path}.explainability_rollup")
                if isinstance(rollup_raw, Mapping)
                else None
            ),
        )


@dataclass(frozen=True, slots=True)
class ComparisonReport:
    """Full comparison result across a scenario suite."""

    generated_at: str
    profile_name: str
    passed: bool
    scenarios: tuple[ScenarioComparison, ...]
    summary: ComparisonSummary

    @property
    def is_blocking(self) -> bool:
        return not self.passed or self.summary.high_severity_drifts > 0

    def iter_drifts(self) -> tuple[DriftFinding, ...]:
        return tuple(drift for scenario in self.scenarios for drift in scenario.drifts)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "generated_at": self.generated_at,
            "profile_name": self.profile_name,
            "passed": self.passed,
            "scenarios": [scenario.to_dict() for scenario in self.scenarios],
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_mapping(cls, payload: object, path: str = "comparison") -> ComparisonReport:
        if not isinstance(payload, Mapping):
            raise ValueError(f"{path}: expected object, got {type(payload).__name__}")
        scenarios_raw = payload.get("scenarios")
        if not isinstance(scenarios_raw, list):
            raise ValueError(f"{path}.scenarios: expected array")
        summary_raw = payload.get("summary")
        if not isinstance(summary_raw, Mapping):
            raise ValueError(f"{path}.summary: expected object")
        return cls(
            generated_at=_require_str(payload.get("generated_at"), f"{path}.generated_at"),
            profile_name=_require_str(payload.get("profile_name"), f"{path}.profile_name"),
            passed=bool(payload.get("passed", False)),
            scenarios=tuple(
                ScenarioComparison.from_mapping(item, f"{path}.scenarios[{index}]")
                for index, item in enumerate(scenarios_raw)
            ),
            summary=ComparisonSummary.from_mapping(summary_raw, f"{path}.summary"),
        )


def _parse_events(value: object, path: str) -> tuple[TraceEvent, ...]:
    if not isinstance(value, list):
        raise ValueError(f"{path}: expected array, got {type(value).__name__}")
    return tuple(
        TraceEvent.from_mapping(item, f"{path}[{index}]") for index, item in enumerate(value)
    )


def _require_profile(value: object, path: str) -> str:
    parsed = _require_str(value, path)
    if parsed not in PROFILE_NAMES:
        allowed = ", ".join(PROFILE_NAMES)
        raise ValueError(f"{path}: invalid profile {parsed!r}; expected one of: {allowed}")
    return parsed


def _require_str(value: object, path: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{path}: expected string, got {type(value).__name__}")
    if not value.strip():
        raise ValueError(f"{path}: must not be empty")
    return value


def _optional_str(value: object, path: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{path}: expected string, got {type(value).__name__}")
    return value


def _require_number(value: object, path: str) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{path}: expected number, got {type(value).__name__}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"{path}: must be finite")
    return value


def _count(value: object, path: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{path}: expected integer, got {type(value).__name__}")
    return value


def _count_map(value: object, path: str) -> dict[str, int]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{path}: expected object, got {type(value).__name__}")
    return {str(key): _count(item, f"{path}.{key}") for key, item in value.items()}


def _str_tuple(value: object, path: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise ValueError(f"{path}: expected array, got {type(value).__name__}")
    items: list[str] = []
    for index, item in enumerate(value):
        if not isinstance(item, str):
            raise ValueError(f"{path}[{index}]: expected string, got {type(item).__name__}")
        items.append(item)
    return tuple(items)


def _optional_int_tuple(value: object, path: str) -> tuple[int, ...] | None:
    if value is None:
        return None
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise ValueError(f"{path}: expected array, got {type(value).__name__}")
    items: list[int] = []
    for index, item in enumerate(value):
        if isinstance(item, bool) or not isinstance(item, int):
            raise ValueError(f"{path}[{index}]: expected integer, got {type(item).__name__}")
        items.append(item)
    return tuple(items)


def _json_object(value: object, path: str) -> dict[str, JSONValue] | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValueError(f"{path}: expected object, got {type(value).__name__}")
    normalized = to_stable_value(value, path=path)
    if not isinstance(normalized, dict):
        raise ValueError(f"{path}: expected object")
    return normalized


def _enum(enum_type: type[_EnumT], value: object, path: str) -> _EnumT:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(str(item.value) for item in enum_type)
        raise ValueError(f"{path}: invalid value {value!r}; expected one of: {allowed}") from exc


def _optional_enum(enum_type: type[_EnumT], value: object, path: str) -> _EnumT | None:
    if value is None:
        return None
    return _enum(enum_type, value, path)


__all__ = [
    "EXPLAINABILITY_TAXONOMY_ORDER",
    "OUTCOME_EVENT_TYPE",
    "AuthOutcome",
    "AuthorizationResult",
    "ComparisonReport",
    "ComparisonSummary",
    "ConfidenceBand",
    "DriftEvidence",
    "DriftFinding",
    "DriftRemediation",
    "DriftSeverity",
    "ExplainabilityCategory",
    "ExplainabilityGroup",
    "ExplainabilityRollup",
    "OperatorBucket",
    "ProfileArtifacts",
    "ScenarioArtifact",
    "ScenarioComparison",
    "TraceEvent",
]
