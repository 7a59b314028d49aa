"""
replay-harness — unit tests for the replay comparator

File: tests/unit/comparison/test_comparator.py
Last updated: 2026-10-18

Purpose
- Validate suite-level comparison: clean passes, presence and timeout failures,
  acceptance thresholds, and the report summary.

What this test file should cover
- One missing scenario never stops the rest of the suite from being compared.
- Every drift in a report is enriched.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from replay_harness.capture.normalizer import normalize_trace_events
from replay_harness.capture.runner import RunnerContext
from replay_harness.comparison import (
    PRESENCE_CHECK_ID,
    TIMEOUT_CHECK_ID,
    compare_replay_runs,
    compare_scenario,
)
from replay_harness.comparison.profile import ComparatorProfile
from replay_harness.domain.models import (
    DriftSeverity,
    ExplainabilityCategory,
    OperatorBucket,
    ProfileArtifacts,
    ScenarioArtifact,
    TraceEvent,
)
from replay_harness.scenarios.schema import Scenario
from replay_harness.testing.simulator import simulate_scenario_events

ScenarioBuilder = Callable[..., Scenario]
EventFilter = Callable[[TraceEvent], bool]


def _artifact(
    scenario: Scenario, profile: str, *, keep: EventFilter | None = None, timed_out: bool = False
) -> ScenarioArtifact:
    if timed_out:
        return ScenarioArtifact(
            scenario_id=scenario.scenario_id,
            profile=profile,
            raw_events=(),
            normalized_events=(),
            success=False,
            timed_out=True,
        )
    events = simulate_scenario_events(scenario, RunnerContext(profile=profile, run_id="run"))
    if keep is not None:
        events = [event for event in events if keep(event)]
    return ScenarioArtifact(
        scenario_id=scenario.scenario_id,
        profile=profile,
        raw_events=tuple(events),
        normalized_events=normalize_trace_events(events),
        success=True,
    )


def _bundle(profile: str, *artifacts: ScenarioArtifact) -> ProfileArtifacts:
    return ProfileArtifacts(profile=profile, scenarios=artifacts)


def test_identical_runs_pass(
    make_scenario: ScenarioBuilder, fixed_clock: Callable[[], datetime]
) -> None:
    suite = [make_scenario(scenario_id="one"), make_scenario(scenario_id="two")]
    baseline = _bundle("baseline", *(_artifact(scenario, "baseline") for scenario in suite))
    candidate = _bundle("candidate", *(_artifact(scenario, "candidate") for scenario in suite))

    report = compare_replay_runs(suite, baseline, candidate, clock=fixed_clock)

    assert report.passed is True
    assert report.generated_at == "2026-03-01T12:00:00.000Z"
    assert report.profile_name == "default-replay-profile"
    assert [comparison.scenario_id for comparison in report.scenarios] == ["ONE", "TWO"]
    assert report.scenarios[0].checks_executed == ("TOOL_ORDER", "AUTH", "FLOW", "SIGNATURES")
    assert report.scenarios[0].explainability_groups is None
    assert report.summary.passed_scenarios == 2
    assert report.summary.explainability_rollup is None


def test_missing_scenario_gets_presence_drift_and_suite_continues(
    make_scenario: ScenarioBuilder,
) -> None:
    suite = [make_scenario(scenario_id="one"), make_scenario(scenario_id="two")]
    baseline = _bundle("baseline", *(_artifact(scenario, "baseline") for scenario in suite))
    candidate = _bundle("candidate", _artifact(suite[1], "candidate"))

    report = compare_replay_runs(suite, baseline, candidate)

    missing, present = report.scenarios
    assert present.passed is True
    assert missing.passed is False
    assert missing.checks_executed == ()
    (drift,) = missing.drifts
    assert drift.check_id == PRESENCE_CHECK_ID
    assert drift.severity is DriftSeverity.HIGH
    assert drift.details == {"baseline_found": True, "candidate_found": False}
    assert drift.category is ExplainabilityCategory.ARTIFACT_INTEGRITY
    assert drift.evidence is not None
    assert drift.evidence.artifact_refs == (
        "baseline.norm.json#scenario:ONE",
        "candidate.norm.json#scenario:ONE",
    )
    assert report.passed is False
    assert report.summary.failed_scenarios == 1
    assert report.summary.high_severity_drifts == 1


def test_timed_out_capture_skips_content_checks(make_scenario: ScenarioBuilder) -> None:
    scenario = make_scenario(timeouts={"run_timeout_ms": 500})

    comparison = compare_scenario(
        scenario,
        _artifact(scenario, "baseline"),
        _artifact(scenario, "candidate", timed_out=True),
        ComparatorProfile(),
    )

    (drift,) = comparison.drifts
    assert drift.check_id == TIMEOUT_CHECK_ID
    assert drift.details == {
        "baseline_timed_out": False,
        "candidate_timed_out": True,
        "run_timeout_ms": 500,
    }
    assert comparison.checks_executed == ()
    assert comparison.passed is False


def test_medium_drift_fails_scenario_and_report(make_scenario: ScenarioBuilder) -> None:
    scenario = make_scenario()

    report = compare_replay_runs(
        [scenario],
        _bundle("baseline", _artifact(scenario, "baseline")),
        _bundle(
            "candidate",
            _artifact(scenario, "candidate", keep=lambda event: event.event_type != "confirmation"),
        ),
    )

    (comparison,) = report.scenarios
    (drift,) = comparison.drifts
    assert drift.check_id == "FLOW"
    assert drift.severity is DriftSeverity.MEDIUM
    assert drift.operator_bucket is OperatorBucket.ACTIONABLE
    assert comparison.passed is False
    assert report.passed is False
    assert report.summary.medium_severity_drifts == 1
    assert report.summary.explainability_rollup is not None
    assert report.summary.explainability_rollup.by_category == {"flow_protocol": 1}


def test_acceptance_thresholds_add_synthetic_drifts(make_scenario: ScenarioBuilder) -> None:
    scenario = make_scenario(
        acceptance_thresholds={"max_total_drifts": 0, "max_high_severity_drifts": 0}
    )

    comparison = compare_scenario(
        scenario,
        _artifact(scenario, "baseline"),
        _artifact(scenario, "candidate", keep=lambda event: event.event_type != "outcome"),
        ComparatorProfile(),
    )

    assert [drift.check_id for drift in comparison.drifts] == [
        "SIGNATURES",
        "drift-threshold-total",
        "drift-threshold-high",
    ]
    total = comparison.drifts[1]
    assert total.message == "Scenario exceeded max_total_drifts threshold (1 > 0)."
    assert total.details == {"observed_total": 1, "threshold": 0}
    assert all(drift.is_enriched for drift in comparison.drifts)


def test_thresholds_within_limit_add_nothing(make_scenario: ScenarioBuilder) -> None:
    scenario = make_scenario(acceptance_thresholds={"max_total_drifts": 3})

    comparison = compare_scenario(
        scenario,
        _artifact(scenario, "baseline"),
        _artifact(scenario, "candidate", keep=lambda event: event.event_type != "outcome"),
        ComparatorProfile(),
    )

    assert [drift.check_id for drift in comparison.drifts] == ["SIGNATURES"]


def test_tool_order_drift_evidence_points_at_events(make_scenario: ScenarioBuilder) -> None:
    scenario = make_scenario()

    comparison = compare_scenario(
        scenario,
        _artifact(scenario, "baseline"),
        _artifact(scenario, "candidate", keep=lambda event: event.action_raw != "update"),
        ComparatorProfile(),
    )

    order_drift = next(drift for drift in comparison.drifts if drift.check_id == "TOOL_ORDER")
    assert order_drift.category is ExplainabilityCategory.TOOL_SEQUENCE
    assert order_drift.evidence is not None
    assert order_drift.evidence.baseline_event_indexes
    assert order_drift.evidence.candidate_event_indexes
