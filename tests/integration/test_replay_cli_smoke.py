"""
replay-harness — CLI subprocess smoke contracts

File: tests/integration/test_replay_cli_smoke.py
Last updated: 2026-10-18

Purpose
- Run ``python -m replay_harness`` as a real process and verify exit codes,
  stdout signals, and the artifacts left on disk.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
SIMULATED_RUNNER = "replay_harness.testing.simulator:SimulatedScenarioRunner"

DRIFTING_RUNNER_SOURCE = '''
from replay_harness.testing.simulator import SimulatedScenarioRunner


def _drop_candidate_handoffs(scenario, context, events):
    if context.profile != "candidate":
        return events
    return [event for event in events if event.event_type != "handoff"]


runner = SimulatedScenarioRunner(mutate=_drop_candidate_handoffs)
'''


def _run_cli(repo_root: Path, *args: str) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    existing_pythonpath = env.get("PYTHONPATH")
    local_pythonpath = os.pathsep.join([str(SRC_PATH), str(repo_root)])
    env["PYTHONPATH"] = (
        local_pythonpath
        if not existing_pythonpath
        else f"{local_pythonpath}{os.pathsep}{existing_pythonpath}"
    )
    env.pop("GITHUB_STEP_SUMMARY", None)
    return subprocess.run(
        [sys.executable, "-m", "replay_harness", *args],
        cwd=repo_root,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )


@pytest.fixture
def repo_root(
    tmp_path: Path,
    write_suite: Callable[..., Path],
    scenario_payload: Callable[..., dict[str, Any]],
) -> Path:
    write_suite([scenario_payload()], name="scenarios.json")
    (tmp_path / "replay.toml").write_text(
        '[meta]\nschema_version = 1\n\n[paths]\nscenarios = "scenarios.json"\n'
        'output_root = "out"\n\n[logging]\nlog_dir = "logs"\n',
        encoding="utf-8",
    )
    (tmp_path / "drifting_runner.py").write_text(DRIFTING_RUNNER_SOURCE, encoding="utf-8")
    return tmp_path


@pytest.mark.integration
def test_cli_run_subprocess_contract(repo_root: Path) -> None:
    completed = _run_cli(repo_root, "run", "--runner", SIMULATED_RUNNER, "--gate-mode", "strict")

    assert completed.returncode == 0, completed.stderr
    assert "Replay run complete." in completed.stdout
    assert "- Status: PASS" in completed.stdout

    run_dir = next((repo_root / "out").iterdir())
    manifest = json.loads((run_dir / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["scenario_count"] == 1
    assert manifest["determinism_env"]["tz"] == (os.environ.get("TZ") or "UTC")
    raw_lines = (run_dir / "baseline.raw.jsonl").read_text(encoding="utf-8").splitlines()
    assert all(json.loads(line)["profile"] == "baseline" for line in raw_lines)
    assert list((repo_root / "logs").glob("cli-run-*/replay.jsonl"))


@pytest.mark.integration
def test_cli_strict_gate_exit_code(repo_root: Path) -> None:
    completed = _run_cli(
        repo_root, "run", "--runner", "drifting_runner:runner", "--gate-mode", "strict"
    )

    assert completed.returncode == 1
    assert "- Status: FAIL" in completed.stdout


@pytest.mark.integration
def test_cli_list_scenarios_json(repo_root: Path) -> None:
    completed = _run_cli(repo_root, "list-scenarios", "--json")

    assert completed.returncode == 0, completed.stderr
    payload = json.loads(completed.stdout)
    assert payload["scenarios"] == [
        {"scenario_id": "PLAN_BUILD_FLOW", "tags": ["smoke", "plan"], "title": "Plan and build flow"}
    ]


@pytest.mark.integration
def test_cli_usage_errors_exit_two(repo_root: Path) -> None:
    no_runner = _run_cli(repo_root, "run")
    bad_config = _run_cli(repo_root, "list-scenarios", "--config", "absent.toml")

    assert no_runner.returncode == 2
    assert "no scenario runner configured" in no_runner.stderr
    assert bad_config.returncode == 2
    assert "config file not found" in bad_config.stderr
