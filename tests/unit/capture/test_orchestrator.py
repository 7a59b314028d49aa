"""
replay-harness — unit tests for capture orchestration

File: tests/unit/capture/test_orchestrator.py
Last updated: 2026-10-18

Purpose
- Validate artifact layout, sequential execution order, timeouts, and
  single-profile capture against the simulated runner.

What this test file should cover
- Manifest paths are workspace-relative and point at files that exist.
- Raw traces are JSON lines wrapped in a run/profile/scenario envelope.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest

from replay_harness.capture.orchestrator import (
    ReplayOrchestrator,
    capture_scenario_artifact,
    normalization_options_for,
)
from replay_harness.capture.runner import RunnerContext
from replay_harness.scenarios.schema import Scenario
from replay_harness.testing.simulator import SimulatedScenarioRunner
from replay_harness.utils.clock import epoch_ms

ScenarioBuilder = Callable[..., Scenario]


async def test_run_writes_manifest_and_profile_artifacts(
    tmp_path: Path,
    make_scenario: ScenarioBuilder,
    fixed_clock: Callable[[], datetime],
) -> None:
    runner = SimulatedScenarioRunner()
    orchestrator = ReplayOrchestrator(tmp_path / "runs", runner, clock=fixed_clock)
    scenarios = [make_scenario(scenario_id="first"), make_scenario(scenario_id="second")]

    result = await orchestrator.run(scenarios, "nightly", workspace_path=str(tmp_path))

    expected_run_id = f"nightly-{epoch_ms(fixed_clock())}"
    assert result.output_dir == (tmp_path / "runs" / expected_run_id).resolve()
    manifest = json.loads((result.output_dir / "manifest.json").read_text(encoding="utf-8"))
    assert manifest == result.manifest
    assert manifest["run_id"] == expected_run_id
    assert manifest["created_at"] == "2026-03-01T12:00:00.000Z"
    assert manifest["scenario_count"] == 2
    assert manifest["output_dir"] == f"runs/{expected_run_id}"
    assert manifest["baseline_artifact_file"] == f"runs/{expected_run_id}/baseline.norm.json"
    assert manifest["candidate_raw_artifact_file"] == f"runs/{expected_run_id}/candidate.raw.jsonl"
    assert manifest["artifact_envelope"]["candidate"]["scenario_count"] == 2
    assert set(manifest["determinism_env"]) == {"python_version", "tz", "locale"}
    for key in ("baseline_normalized_artifact_file", "candidate_normalized_artifact_file"):
        assert (tmp_path / manifest[key]).is_file()

    assert result.baseline.scenario_ids == ("FIRST", "SECOND")
    assert all(artifact.success for artifact in result.candidate.scenarios)


async def test_scenarios_run_sequentially_baseline_first(
    tmp_path: Path, make_scenario: ScenarioBuilder
) -> None:
    runner = SimulatedScenarioRunner()
    orchestrator = ReplayOrchestrator(tmp_path, runner)

    await orchestrator.run([make_scenario(scenario_id="b"), make_scenario(scenario_id="a")], "order")

    assert runner.calls == [
        ("baseline", "B"),
        ("baseline", "A"),
        ("candidate", "B"),
        ("candidate", "A"),
    ]


async def test_raw_trace_is_enveloped_json_lines(
    tmp_path: Path, make_scenario: ScenarioBuilder
) -> None:
    orchestrator = ReplayOrchestrator(tmp_path, SimulatedScenarioRunner())

    result = await orchestrator.run([make_scenario()], "raw")

    lines = (result.output_dir / "baseline.raw.jsonl").read_text(encoding="utf-8").splitlines()
    rows = [json.loads(line) for line in lines]
    assert len(rows) == len(result.baseline.scenarios[0].raw_events)
    assert {row["profile"] for row in rows} == {"baseline"}
    assert {row["run_id"] for row in rows} == {result.manifest["run_id"]}
    assert rows[0]["event"]["event_type"] == "user_prompt"
    assert lines[0] == json.dumps(rows[0], sort_keys=True, separators=(",", ":"))


async def test_normalized_events_are_rebased(make_scenario: ScenarioBuilder) -> None:
    artifact = await capture_scenario_artifact(
        make_scenario(),
        RunnerContext(profile="baseline", run_id="r1"),
        SimulatedScenarioRunner(),
    )

    assert artifact.raw_events[0].timestamp_ms > 0
    assert artifact.normalized_events[0].timestamp_ms == 0
    assert len(artifact.normalized_events) == len(artifact.raw_events)
    assert artifact.success is True
    assert artifact.timed_out is False


async def test_run_timeout_records_empty_timed_out_artifact(make_scenario: ScenarioBuilder) -> None:
    scenario = make_scenario(timeouts={"run_timeout_ms": 20})

    artifact = await capture_scenario_artifact(
        scenario,
        RunnerContext(profile="candidate", run_id="r2"),
        SimulatedScenarioRunner(delay_seconds=1.0),
    )

    assert artifact.timed_out is True
    assert artifact.success is False
    assert artifact.raw_events == ()
    assert artifact.to_dict()["timed_out"] is True


@pytest.mark.parametrize("run_timeout_ms", [None, 500])
async def test_runner_timeout_error_propagates(
    make_scenario: ScenarioBuilder, run_timeout_ms: int | None
) -> None:
    timeouts = {} if run_timeout_ms is None else {"run_timeout_ms": run_timeout_ms}
    scenario = make_scenario(timeouts=timeouts)

    async def failing_runner(scenario: Scenario, context: RunnerContext) -> list[object]:
        raise TimeoutError("upstream socket timed out")

    with pytest.raises(TimeoutError, match="upstream socket timed out"):
        await capture_scenario_artifact(
            scenario, RunnerContext(profile="candidate", run_id="r3"), failing_runner
        )


async def test_capture_single_profile(
    tmp_path: Path, make_scenario: ScenarioBuilder, fixed_clock: Callable[[], datetime]
) -> None:
    runner = SimulatedScenarioRunner()
    orchestrator = ReplayOrchestrator(tmp_path, runner, clock=fixed_clock)

    result = await orchestrator.capture("candidate", [make_scenario()], "promote")

    assert result.output_file.name == "candidate.norm.json"
    assert result.raw_output_file.name == "candidate.raw.jsonl"
    assert result.output_file.parent.name == f"promote-candidate-{epoch_ms(fixed_clock())}"
    assert json.loads(result.output_file.read_text(encoding="utf-8")) == result.profile.to_dict()
    assert runner.calls == [("candidate", "PLAN_BUILD_FLOW")]


async def test_capture_rejects_unknown_profile(
    tmp_path: Path, make_scenario: ScenarioBuilder
) -> None:
    orchestrator = ReplayOrchestrator(tmp_path, SimulatedScenarioRunner())

    with pytest.raises(ValueError, match="unknown profile 'shadow'"):
        await orchestrator.capture("shadow", [make_scenario()], "x")


def test_normalization_options_follow_scenario_flags(make_scenario: ScenarioBuilder) -> None:
    default = normalization_options_for(make_scenario(), "/work")
    tuned = normalization_options_for(
        make_scenario(normalization={"mask_ids": False, "canonicalize_paths": True}), None
    )

    assert default.workspace_path == "/work"
    assert default.mask_ids is True
    assert tuned.mask_ids is False
    assert tuned.canonicalize_paths is True
    assert tuned.canonicalize_timestamps is True
