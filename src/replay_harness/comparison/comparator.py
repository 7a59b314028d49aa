"""
replay-harness — replay comparator

File: src/replay_harness/comparison/comparator.py
Last updated: 2026-10-18

Purpose
- Diff baseline and candidate artifacts scenario by scenario and build the
  ``ComparisonReport`` consumed by the gate evaluator and report writer.

What should be included in this file
- Presence and timeout handling for incomplete scenario pairs.
- Dispatch of declared checks, acceptance thresholds, and enrichment.
- Report summary with per-severity totals and the explainability rollup.

Functional requirements
- A scenario missing on either side gets one high-severity ``scenario-presence``
  drift and is marked failed; the rest of the suite is still compared.
- A timed-out capture gets one high-severity ``scenario-timeout`` drift; content
  checks are skipped for that scenario.
- Report ``passed`` means no failed scenarios and no high-severity drifts.

Non-functional requirements
- Each scenario comparison is independent of every other.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Final

from replay_harness.comparison.checks import run_check
from replay_harness.comparison.enrichment import (
    build_explainability_groups,
    build_explainability_rollup,
    enrich_drift,
)
from replay_harness.comparison.profile import ComparatorProfile
from replay_harness.domain.models import (
    ComparisonReport,
    ComparisonSummary,
    DriftFinding,
    DriftSeverity,
    ProfileArtifacts,
    ScenarioArtifact,
    ScenarioComparison,
)
from replay_harness.scenarios.schema import Scenario
from replay_harness.utils.clock import iso_utc, utc_now
from replay_harness.utils.stable_json import JSONValue

logger = logging.getLogger(__name__)

PRESENCE_CHECK_ID: Final[str] = "scenario-presence"
TIMEOUT_CHECK_ID: Final[str] = "scenario-timeout"

# (check_id, threshold field, observed detail key, severity of the synthetic drift)
_THRESHOLD_RULES: Final[tuple[tuple[str, str, str, DriftSeverity], ...]] = (
    ("drift-threshold-total", "max_total_drifts", "observed_total", DriftSeverity.HIGH),
    ("drift-threshold-high", "max_high_severity_drifts", "observed_high", DriftSeverity.HIGH),
    ("drift-threshold-medium", "max_medium_severity_drifts", "observed_medium", DriftSeverity.MEDIUM),
    ("drift-threshold-low", "max_low_severity_drifts", "observed_low", DriftSeverity.LOW),
)


def threshold_drifts(scenario: Scenario, drifts: Sequence[DriftFinding]) -> list[DriftFinding]:
    """Synthetic drifts for every acceptance threshold the scenario exceeded."""

    thresholds = scenario.acceptance_thresholds
    if thresholds is None:
        return []

    observed = {
        "observed_total": len(drifts),
        "observed_high": sum(drift.severity is DriftSeverity.HIGH for drift in drifts),
        "observed_medium": sum(drift.severity is DriftSeverity.MEDIUM for drift in drifts),
        "observed_low": sum(drift.severity is DriftSeverity.LOW for drift in drifts),
    }
    findings: list[DriftFinding] = []
    for check_id, field_name, observed_key, severity in _THRESHOLD_RULES:
        limit = getattr(thresholds, field_name)
        count = observed[observed_key]
        if limit is None or count <= limit:
            continue
        findings.append(
            DriftFinding(
                scenario_id=scenario.scenario_id,
                check_id=check_id,
                severity=severity,
                message=f"Scenario exceeded {field_name} threshold ({count} > {limit}).",
                details={observed_key: count, "threshold": limit},
            )
        )
    return findings


def compare_scenario(
    scenario: Scenario,
    baseline: ScenarioArtifact,
    candidate: ScenarioArtifact,
    profile: ComparatorProfile,
) -> ScenarioComparison:
    if baseline.timed_out or candidate.timed_out:
        return _timeout_comparison(scenario, baseline, candidate)

    checks_by_id = {check.id: check for check in scenario.checks}
    enrich_kwargs = {
        "baseline_profile": baseline.profile,
        "candidate_profile": candidate.profile,
        "baseline_events": baseline.normalized_events,
        "candidate_events": candidate.normalized_events,
    }

    raw: list[DriftFinding] = []
    for check in scenario.checks:
        raw.extend(
            run_check(
                scenario, check, baseline.normalized_events, candidate.normalized_events, profile
            )
        )

    enriched = [
        enrich_drift(drift, checks_by_id.get(drift.check_id), **enrich_kwargs) for drift in raw
    ]
    synthetic = [
        enrich_drift(drift, None, **enrich_kwargs)
        for drift in threshold_drifts(scenario, enriched)
    ]
    drifts = tuple(enriched + synthetic)

    return ScenarioComparison(
        scenario_id=scenario.scenario_id,
        passed=not drifts,
        drifts=drifts,
        checks_executed=tuple(check.id for check in scenario.checks),
        explainability_groups=build_explainability_groups(drifts),
    )


def compare_replay_runs(
    suite: Sequence[Scenario],
    baseline: ProfileArtifacts,
    candidate: ProfileArtifacts,
    profile: ComparatorProfile | None = None,
    *,
    clock: Callable[[], datetime] = utc_now,
) -> ComparisonReport:
    """Compare two artifact bundles over ``suite`` in suite order."""

    resolved_profile = profile or ComparatorProfile()
    baseline_by_id = baseline.by_scenario()
    candidate_by_id = candidate.by_scenario()

    comparisons: list[ScenarioComparison] = []
    for scenario in suite:
        baseline_artifact = baseline_by_id.get(scenario.scenario_id)
        candidate_artifact = candidate_by_id.get(scenario.scenario_id)
        if baseline_artifact is None or candidate_artifact is None:
            comparisons.append(
                _presence_comparison(
                    scenario,
                    baseline_found=baseline_artifact is not None,
                    candidate_found=candidate_artifact is not None,
                    baseline_profile=baseline.profile,
                    candidate_profile=candidate.profile,
                )
            )
            continue
        comparisons.append(
            compare_scenario(scenario, baseline_artifact, candidate_artifact, resolved_profile)
        )

    all_drifts = [drift for comparison in comparisons for drift in comparison.drifts]
    summary = ComparisonSummary(
        total_scenarios=len(comparisons),
        passed_scenarios=sum(comparison.passed for comparison in comparisons),
        failed_scenarios=sum(not comparison.passed for comparison in comparisons),
        high_severity_drifts=sum(drift.severity is DriftSeverity.HIGH for drift in all_drifts),
        medium_severity_drifts=sum(drift.severity is DriftSeverity.MEDIUM for drift in all_drifts),
        low_severity_drifts=sum(drift.severity is DriftSeverity.LOW for drift in all_drifts),
        explainability_rollup=build_explainability_rollup(all_drifts),
    )
    report = ComparisonReport(
        generated_at=iso_utc(clock()),
        profile_name=resolved_profile.profile_name,
        passed=summary.failed_scenarios == 0 and summary.high_severity_drifts == 0,
        scenarios=tuple(comparisons),
        summary=summary,
    )
    logger.info(
        "replay_comparison_completed",
        extra={
            "total_scenarios": summary.total_scenarios,
            "failed_scenarios": summary.failed_scenarios,
            "high_severity_drifts": summary.high_severity_drifts,
            "passed": report.passed,
        },
    )
    return report


def _presence_comparison(
    scenario: Scenario,
    *,
    baseline_found: bool,
    candidate_found: bool,
    baseline_profile: str,
    candidate_profile: str,
) -> ScenarioComparison:
    drift = DriftFinding(
        scenario_id=scenario.scenario_id,
        check_id=PRESENCE_CHECK_ID,
        severity=DriftSeverity.HIGH,
        message="Baseline or candidate artifacts are missing for this scenario.",
        details={"baseline_found": baseline_found, "candidate_found": candidate_found},
    )
    return _structural_failure(scenario, drift, baseline_profile, candidate_profile)


def _timeout_comparison(
    scenario: Scenario, baseline: ScenarioArtifact, candidate: ScenarioArtifact
) -> ScenarioComparison:
    details: dict[str, JSONValue] = {
        "baseline_timed_out": baseline.timed_out,
        "candidate_timed_out": candidate.timed_out,
    }
    if scenario.run_timeout_ms is not None:
        details["run_timeout_ms"] = scenario.run_timeout_ms
    drift = DriftFinding(
        scenario_id=scenario.scenario_id,
        check_id=TIMEOUT_CHECK_ID,
        severity=DriftSeverity.HIGH,
        message="Scenario capture exceeded run_timeout_ms; replay artifacts are incomplete.",
        details=details,
    )
    return _structural_failure(scenario, drift, baseline.profile, candidate.profile)


def _structural_failure(
    scenario: Scenario,
    drift: DriftFinding,
    baseline_profile: str,
    candidate_profile: str,
) -> ScenarioComparison:
    enriched = enrich_drift(
        drift, None, baseline_profile=baseline_profile, candidate_profile=candidate_profile
    )
    return ScenarioComparison(
        scenario_id=scenario.scenario_id,
        passed=False,
        drifts=(enriched,),
        checks_executed=(),
        explainability_groups=build_explainability_groups((enriched,)),
    )


__all__ = [
    "PRESENCE_CHECK_ID",
    "TIMEOUT_CHECK_ID",
    "compare_replay_runs",
    "compare_scenario",
    "threshold_drifts",
]
