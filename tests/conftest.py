"""Shared fixtures for replay-harness tests."""

from __future__ import annotations

import copy
import json
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from replay_harness.observability.logging import shutdown_logging
from replay_harness.scenarios.schema import Scenario, normalize_scenario

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)

BASE_SCENARIO: dict[str, Any] = {
    "scenario_id": "plan_build_flow",
    "title": "Plan and build flow",
    "intent": "Confirm the plan, update a step, then hand off and complete.",
    "workspace": {"workspace_path": "/work/project", "workspace_id": "ws-001"},
    "runtime": {"mode": "headless", "terminal_surface": "auto"},
    "steps": [
        {"kind": "user", "id": "ask", "prompt": "Build the project"},
        {"kind": "tool", "id": "confirm", "tool": "memory_plan", "action": "confirm"},
        {"kind": "tool", "id": "update", "tool": "memory_steps", "action": "update"},
        {
            "kind": "tool",
            "id": "handoff",
            "tool": "memory_agent",
            "action": "handoff",
            "args": {"to_agent": "Coordinator", "from_agent": "Executor"},
        },
        {
            "kind": "tool",
            "id": "complete",
            "tool": "memory_agent",
            "action": "complete",
            "args": {"to_agent": "Coordinator", "from_agent": "Executor"},
        },
    ],
    "expectations": {
        "success_signature": {"must_include": ["plan_confirmed", "handoff_complete"]},
        "checks": [
            {"id": "TOOL_ORDER", "type": "tool_order", "severity": "high"},
            {"id": "AUTH", "type": "auth_outcome", "severity": "high"},
            {"id": "FLOW", "type": "flow", "severity": "medium"},
            {"id": "SIGNATURES", "type": "success_signature", "severity": "high"},
        ],
    },
    "tags": ["smoke", "plan"],
}


ScenarioFactory = Callable[..., dict[str, Any]]


@pytest.fixture(autouse=True)
def _cleanup_logging() -> Iterator[None]:
    yield
    shutdown_logging()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def scenario_payload() -> ScenarioFactory:
    """Build a raw scenario document; keyword arguments replace top-level fields."""

    def _build(**overrides: Any) -> dict[str, Any]:
        payload = copy.deepcopy(BASE_SCENARIO)
        payload.update(copy.deepcopy(overrides))
        return payload

    return _build


@pytest.fixture
def make_scenario(scenario_payload: ScenarioFactory) -> Callable[..., Scenario]:
    def _build(**overrides: Any) -> Scenario:
        return normalize_scenario(scenario_payload(**overrides))

    return _build


@pytest.fixture
def write_suite(tmp_path: Path) -> Callable[..., Path]:
    def _write(scenarios: list[dict[str, Any]], name: str = "scenarios.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps({"scenarios": scenarios}, indent=2), encoding="utf-8")
        return path

    return _write
