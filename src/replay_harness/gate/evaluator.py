"""
replay-harness — CI gate evaluator

File: src/replay_harness/gate/evaluator.py
Last updated: 2026-10-18

Purpose
- Map a comparison report (plus an optional retry comparison) to a gate decision
  with flake-vs-regression classification, triage labels, and annotations.

What should be included in this file
- ``GateMode``, ``GateClassification`` and the ``GateEvaluation`` record.
- ``evaluate_replay_gate`` / ``evaluate_replay_gate_with_retry``.
- Markdown summary and GitHub workflow-command annotation rendering.

Functional requirements
- A comparison blocks iff it did not pass or it has high-severity drifts.
- Blocking on primary but not on retry is an intermittent flake; blocking on primary
  otherwise is a deterministic regression.
- Only strict mode can fail, and only on deterministic regressions.
- Annotation level depends on mode alone: strict=error, warn=warning, info=notice.

Non-functional requirements
- Pure evaluation; the only clock read is ``generated_at``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final

from replay_harness.domain.models import ComparisonReport, ComparisonSummary, ExplainabilityRollup
from replay_harness.utils.clock import iso_utc, utc_now
from replay_harness.utils.stable_json import JSONValue


class GateMode(str, Enum):
    STRICT = "strict"
    WARN = "warn"
    INFO = "info"


class GateClassification(str, Enum):
    CLEAN = "clean"
    DETERMINISTIC_REGRESSION = "deterministic_regression"
    INTERMITTENT_FLAKE = "intermittent_flake"


class GateStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    WARN = "WARN"
    INFO = "INFO"


DEFAULT_GATE_MODE: Final[GateMode] = GateMode.WARN

ANNOTATION_LEVEL_BY_MODE: Final[dict[GateMode, str]] = {
    GateMode.STRICT: "error",
    GateMode.WARN: "warning",
    GateMode.INFO: "notice",
}


@dataclass(frozen=True, slots=True)
class GateAnnotation:
    level: str
    scenario_id: str
    check_id: str
    severity: str
    message: str
    evidence_refs: tuple[str, ...] | None = None
    evidence_fingerprint: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "level": self.level,
            "scenario_id": self.scenario_id,
            "check_id": self.check_id,
            "severity": self.severity,
            "message": self.message,
        }
        if self.evidence_refs is not None:
            payload["evidence_refs"] = list(self.evidence_refs)
        if self.evidence_fingerprint is not None:
            payload["evidence_fingerprint"] = self.evidence_fingerprint
        return payload


@dataclass(frozen=True, slots=True)
class GateEvaluation:
    mode: GateMode
    passed: bool
    status: GateStatus
    reason: str
    classification: GateClassification
    triage_labels: tuple[str, ...]
    retried: bool
    annotations: tuple[GateAnnotation, ...]
    summary: ComparisonSummary
    generated_at: str
    explainability_rollup: ExplainabilityRollup | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "mode": self.mode.value,
            "passed": self.passed,
            "status": self.status.value,
            "reason": self.reason,
            "classification": self.classification.value,
            "triage_labels": list(self.triage_labels),
            "retried": self.retried,
            "annotations": [annotation.to_dict() for annotation in self.annotations],
            "summary": self.summary.to_dict(),
            "generated_at": self.generated_at,
        }
        if self.explainability_rollup is not None:
            payload["explainability_rollup"] = self.explainability_rollup.to_dict()
        return payload


def normalize_gate_mode(value: str | GateMode | None) -> GateMode:
    """Parse a mode string; unknown or empty values fall back to ``warn``."""

    if isinstance(value, GateMode):
        return value
    token = (value or DEFAULT_GATE_MODE.value).strip().lower()
    try:
        return GateMode(token)
    except ValueError:
        return DEFAULT_GATE_MODE


def is_blocking(comparison: ComparisonReport) -> bool:
    return not comparison.passed or comparison.summary.high_severity_drifts > 0


def drift_set_fingerprint(comparison: ComparisonReport) -> str:
    tokens = sorted(
        f"{drift.scenario_id}|{drift.check_id}|{drift.severity.value}|{drift.message}"
        for drift in comparison.iter_drifts()
    )
    return "||".join(tokens)


def classify(
    primary: ComparisonReport, retry: ComparisonReport | None
) -> GateClassification:
    if not is_blocking(primary):
        return GateClassification.CLEAN
    if retry is not None and not is_blocking(retry):
        return GateClassification.INTERMITTENT_FLAKE
    return GateClassification.DETERMINISTIC_REGRESSION


def evaluate_replay_gate(
    comparison: ComparisonReport,
    mode: str | GateMode | None = None,
    *,
    clock: Callable[[], datetime] = utc_now,
) -> GateEvaluation:
    return evaluate_replay_gate_with_retry(comparison, None, mode, clock=clock)


def evaluate_replay_gate_with_retry(
    primary: ComparisonReport,
    retry: ComparisonReport | None,
    mode: str | GateMode | None = None,
    *,
    clock: Callable[[], datetime] = utc_now,
) -> GateEvaluation:
    gate_mode = normalize_gate_mode(mode)
    classification = classify(primary, retry)
    retried = retry is not None
    same_fingerprint = (
        drift_set_fingerprint(primary) == drift_set_fingerprint(retry) if retry is not None else True
    )
    labels = _triage_labels(classification, gate_mode, same_fingerprint)

    level = ANNOTATION_LEVEL_BY_MODE[gate_mode]
    annotations = tuple(
        GateAnnotation(
            level=level,
            scenario_id=scenario.scenario_id,
            check_id=drift.check_id,
            severity=drift.severity.value,
            message=drift.message,
            evidence_refs=drift.evidence.artifact_refs if drift.evidence is not None else None,
            evidence_fingerprint=drift.evidence.fingerprint if drift.evidence is not None else None,
        )
        for scenario in primary.scenarios
        for drift in scenario.drifts
    )

    passed, status, reason = _decide(gate_mode, classification, has_annotations=bool(annotations))
    return GateEvaluation(
        mode=gate_mode,
        passed=passed,
        status=status,
        reason=reason,
        classification=classification,
        triage_labels=labels,
        retried=retried,
        annotations=annotations,
        summary=primary.summary,
        generated_at=iso_utc(clock()),
        explainability_rollup=primary.summary.explainability_rollup,
    )


def render_gate_summary_markdown(evaluation: GateEvaluation) -> str:
    summary = evaluation.summary
    lines = [
        "## Replay Gate Summary",
        "",
        f"- Mode: {evaluation.mode.value}",
        f"- Status: {evaluation.status.value}",
        f"- Passed: {_yes_no(evaluation.passed)}",
        f"- Reason: {evaluation.reason}",
        f"- Classification: {evaluation.classification.value}",
        f"- Retried: {_yes_no(evaluation.retried)}",
        f"- Triage labels: {', '.join(evaluation.triage_labels)}",
        f"- Total scenarios: {summary.total_scenarios}",
        f"- Failed scenarios: {summary.failed_scenarios}",
        f"- High drifts: {summary.high_severity_drifts}",
        f"- Medium drifts: {summary.medium_severity_drifts}",
        f"- Low drifts: {summary.low_severity_drifts}",
        f"- Annotation count: {len(evaluation.annotations)}",
    ]
    return "\n".join(lines)


def to_github_annotations(evaluation: GateEvaluation) -> list[str]:
    """Render one ``::level title=...::message`` workflow command per annotation."""

    return [
        f"::{annotation.level} title=Replay Gate ({annotation.severity.upper()})::"
        f"[{evaluation.classification.value}] {annotation.scenario_id} {annotation.check_id} "
        f"{annotation.message}{_evidence_suffix(annotation)}"
        for annotation in evaluation.annotations
    ]


def _triage_labels(
    classification: GateClassification, mode: GateMode, same_fingerprint: bool
) -> tuple[str, ...]:
    gate_label = f"gate:{mode.value}"
    if classification is GateClassification.INTERMITTENT_FLAKE:
        return ("replay", "intermittent", "flake", gate_label)
    if classification is GateClassification.DETERMINISTIC_REGRESSION:
        fingerprint_label = "stable-fingerprint" if same_fingerprint else "changed-fingerprint"
        return ("replay", "deterministic-regression", gate_label, fingerprint_label)
    return ("replay", "clean", gate_label)


def _decide(
    mode: GateMode, classification: GateClassification, *, has_annotations: bool
) -> tuple[bool, GateStatus, str]:
    if mode is GateMode.STRICT:
        if classification is GateClassification.DETERMINISTIC_REGRESSION:
            return False, GateStatus.FAIL, "Strict gate failed due to deterministic replay regression."
        if classification is GateClassification.INTERMITTENT_FLAKE:
            return (
                True,
                GateStatus.WARN,
                "Strict gate retried once and recovered; labeling as intermittent flake.",
            )
        return True, GateStatus.PASS, "Strict gate passed with no blocking replay drift."

    if mode is GateMode.WARN:
        if has_annotations:
            return (
                True,
                GateStatus.WARN,
                "Warn gate allows CI to pass while emitting replay drift annotations.",
            )
        return True, GateStatus.PASS, "Warn gate passed with no replay drift annotations."

    if has_annotations:
        return True, GateStatus.INFO, "Info gate collected replay drift insights without failing CI."
    return True, GateStatus.PASS, "Info gate passed with no replay drift annotations."


def _evidence_suffix(annotation: GateAnnotation) -> str:
    tokens: list[str] = []
    refs = [ref.strip().replace("\\", "/") for ref in annotation.evidence_refs or ()]
    refs = [ref for ref in refs if ref]
    if refs:
        tokens.append(f"evidence_refs={'|'.join(refs)}")
    if annotation.evidence_fingerprint:
        tokens.append(f"evidence_fingerprint={annotation.evidence_fingerprint}")
    return f" [{' '.join(tokens)}]" if tokens else ""


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


__all__ = [
    "ANNOTATION_LEVEL_BY_MODE",
    "DEFAULT_GATE_MODE",
    "GateAnnotation",
    "GateClassification",
    "GateEvaluation",
    "GateMode",
    "GateStatus",
    "classify",
    "drift_set_fingerprint",
    "evaluate_replay_gate",
    "evaluate_replay_gate_with_retry",
    "is_blocking",
    "normalize_gate_mode",
    "render_gate_summary_markdown",
    "to_github_annotations",
]
