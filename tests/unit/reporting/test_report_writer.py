"""
replay-harness — unit tests for the report writer

File: tests/unit/reporting/test_report_writer.py
Last updated: 2026-10-18

Purpose
- Validate markdown rendering, explainability sections, and persisted artifacts.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from replay_harness.capture.normalizer import normalize_trace_events
from replay_harness.capture.runner import RunnerContext
from replay_harness.comparison import compare_replay_runs
from replay_harness.domain.models import (
    ComparisonReport,
    ComparisonSummary,
    ProfileArtifacts,
    ScenarioArtifact,
    ScenarioComparison,
)
from replay_harness.reporting import (
    render_replay_report_markdown,
    write_gate_summary_artifacts,
    write_replay_report,
)
from replay_harness.reporting.report_writer import collect_evidence_handles, collect_top_actions
from replay_harness.scenarios.schema import Scenario
from replay_harness.testing.simulator import simulate_scenario_events


def _bundle(scenario: Scenario, profile: str, *, drop: str | None = None) -> ProfileArtifacts:
    events = [
        event
        for event in simulate_scenario_events(scenario, RunnerContext(profile=profile, run_id="r"))
        if event.event_type != drop
    ]
    artifact = ScenarioArtifact(
        scenario_id=scenario.scenario_id,
        profile=profile,
        raw_events=tuple(events),
        normalized_events=normalize_trace_events(events),
        success=True,
    )
    return ProfileArtifacts(profile=profile, scenarios=(artifact,))


def _drifting_report(
    make_scenario: Callable[..., Scenario], fixed_clock: Callable[[], datetime]
) -> ComparisonReport:
    scenario = make_scenario()
    return compare_replay_runs(
        [scenario],
        _bundle(scenario, "baseline"),
        _bundle(scenario, "candidate", drop="outcome"),
        clock=fixed_clock,
    )


def test_markdown_for_clean_report_has_no_explainability() -> None:
    report = ComparisonReport(
        generated_at="2026-03-01T12:00:00.000Z",
        profile_name="default-replay-profile",
        passed=True,
        scenarios=(
            ScenarioComparison(
                scenario_id="PLAN", passed=True, drifts=(), checks_executed=("A", "B")
            ),
        ),
        summary=ComparisonSummary(
            total_scenarios=1,
            passed_scenarios=1,
            failed_scenarios=0,
            high_severity_drifts=0,
            medium_severity_drifts=0,
            low_severity_drifts=0,
        ),
    )

    markdown = render_replay_report_markdown(report)

    assert markdown.splitlines()[:5] == [
        "# Replay Drift Report",
        "",
        "- Generated at: 2026-03-01T12:00:00.000Z",
        "- Comparator profile: default-replay-profile",
        "- Overall result: PASS",
    ]
    assert "### PLAN - PASS" in markdown
    assert "- Checks executed: 2" in markdown
    assert "- Drift findings: none" in markdown
    assert "## Explainability" not in markdown


def test_markdown_for_drifting_report(
    make_scenario: Callable[..., Scenario], fixed_clock: Callable[[], datetime]
) -> None:
    report = _drifting_report(make_scenario, fixed_clock)

    markdown = render_replay_report_markdown(report)

    assert "- Overall result: FAIL" in markdown
    assert "### PLAN_BUILD_FLOW - FAIL" in markdown
    assert (
        "  - [HIGH] SIGNATURES: Missing required success signatures: "
        "plan_confirmed, handoff_complete"
    ) in markdown
    assert "### Rollup" in markdown
    assert "- By category: success_signature 1" in markdown
    assert "- By operator bucket: blocker 1" in markdown
    assert "#### PLAN_BUILD_FLOW" in markdown
    assert "- Restore missing success-signature emitting path. (x1)" in markdown
    assert "- artifact:candidate.norm.json#scenario:PLAN_BUILD_FLOW" in markdown


def test_top_actions_and_evidence_handles(
    make_scenario: Callable[..., Scenario], fixed_clock: Callable[[], datetime]
) -> None:
    report = _drifting_report(make_scenario, fixed_clock)

    handles = collect_evidence_handles(report)

    assert collect_top_actions(report) == ["Restore missing success-signature emitting path. (x1)"]
    assert handles == sorted(handles)
    assert handles[0] == "artifact:baseline.norm.json#scenario:PLAN_BUILD_FLOW"
    assert handles[-1].startswith("fingerprint:")


def test_write_replay_report_is_byte_stable(
    tmp_path: Path,
    make_scenario: Callable[..., Scenario],
    fixed_clock: Callable[[], datetime],
) -> None:
    report = _drifting_report(make_scenario, fixed_clock)

    paths = write_replay_report(tmp_path / "out", report, workspace_path=str(tmp_path))
    first = (tmp_path / "out" / "comparison.json").read_bytes()
    write_replay_report(tmp_path / "out", report, workspace_path=str(tmp_path))

    assert paths == {"comparison_json": "out/comparison.json", "report_markdown": "out/report.md"}
    assert (tmp_path / "out" / "comparison.json").read_bytes() == first
    assert ComparisonReport.from_mapping(json.loads(first)) == report
    assert (tmp_path / "out" / "report.md").read_text(encoding="utf-8").endswith("\n")


def test_gate_summary_artifacts_honor_custom_output(tmp_path: Path) -> None:
    payload = {"gate": {"status": "PASS"}}

    default_paths = write_gate_summary_artifacts(
        tmp_path, payload, "## Replay Gate Summary", workspace_path=str(tmp_path)
    )
    custom_paths = write_gate_summary_artifacts(
        tmp_path,
        payload,
        "## Replay Gate Summary",
        gate_output=tmp_path / "ci" / "gate.json",
        workspace_path=str(tmp_path),
    )

    assert default_paths == {
        "summary_file": "gate-summary.json",
        "markdown_file": "gate-summary.md",
    }
    assert custom_paths["summary_file"] == "ci/gate.json"
    assert json.loads((tmp_path / "ci" / "gate.json").read_text(encoding="utf-8")) == payload
