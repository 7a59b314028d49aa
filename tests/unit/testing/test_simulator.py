"""
replay-harness — unit tests for the simulated scenario runner

File: tests/unit/testing/test_simulator.py
Last updated: 2026-10-18

Purpose
- Validate deterministic synthetic traces and the drift-injection hook.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from replay_harness.capture.runner import RunnerContext
from replay_harness.domain.models import TraceEvent
from replay_harness.scenarios.schema import Scenario
from replay_harness.testing import (
    SimulatedScenarioRunner,
    resolve_selected_surface,
    simulate_scenario_events,
)

BASELINE = RunnerContext(profile="baseline", run_id="r1")


def test_trace_follows_declared_steps(make_scenario: Callable[..., Scenario]) -> None:
    events = simulate_scenario_events(make_scenario(), BASELINE)

    assert [event.event_type for event in events] == [
        "user_prompt",
        "tool_call",
        "confirmation",
        "tool_call",
        "plan_step_update",
        "tool_call",
        "handoff",
        "tool_call",
        "complete",
        "outcome",
        "outcome",
    ]
    handoff = events[6]
    assert handoff.payload == {"to_agent": "Coordinator", "from_agent": "Executor"}
    assert [event.success_signature for event in events[-2:]] == ["plan_confirmed", "handoff_complete"]
    assert events[0].timestamp_ms == 1_700_000_000_025


def test_trace_is_deterministic(make_scenario: Callable[..., Scenario]) -> None:
    scenario = make_scenario()

    assert simulate_scenario_events(scenario, BASELINE) == simulate_scenario_events(scenario, BASELINE)


def test_expected_auth_sets_reason_class(make_scenario: Callable[..., Scenario]) -> None:
    scenario = make_scenario(
        steps=[{"kind": "tool", "tool": "memory_terminal", "action": "run", "expect_auth": "blocked"}]
    )

    (call, *_) = simulate_scenario_events(scenario, BASELINE)

    assert call.authorization is not None
    assert call.authorization.outcome == "blocked"
    assert call.authorization.reason_class == "policy_block"


def test_build_script_emits_resolution_and_launch(make_scenario: Callable[..., Scenario]) -> None:
    scenario = make_scenario(
        runtime={"mode": "interactive", "terminal_surface": "auto"},
        steps=[{"kind": "tool", "id": "build", "tool": "memory_plan", "action": "run_build_script"}],
    )

    call, resolved, launch, *_ = simulate_scenario_events(scenario, BASELINE)

    assert resolved.event_type == "build_script_resolved"
    assert launch.step_id == "build_launch"
    assert launch.tool_name == "memory_terminal_interactive"
    assert launch.action_raw == "execute"
    assert call.payload is not None
    assert call.payload["selected_surface_reason"] == "auto_runtime_mode_interactive"


@pytest.mark.parametrize(
    ("surface", "mode", "tool", "selected", "reason"),
    [
        ("memory_terminal", "interactive", None, "memory_terminal", "explicit_runtime_surface"),
        (
            "auto",
            "headless",
            "memory_terminal_interactive",
            "memory_terminal_interactive",
            "auto_tool_surface_preference",
        ),
        (
            "auto",
            "headless",
            "memory_terminal_vscode",
            "memory_terminal_interactive",
            "auto_policy_vscode_maps_to_interactive",
        ),
        (
            "auto",
            "headless",
            "memory_plan",
            "memory_terminal",
            "auto_runtime_mode_headless_default",
        ),
    ],
)
def test_surface_resolution(
    make_scenario: Callable[..., Scenario],
    surface: str,
    mode: str,
    tool: str | None,
    selected: str,
    reason: str,
) -> None:
    scenario = make_scenario(runtime={"mode": mode, "terminal_surface": surface})

    resolution = resolve_selected_surface(scenario, tool)

    assert resolution.requested_surface == surface
    assert resolution.selected_surface == selected
    assert resolution.selection_reason == reason


async def test_runner_records_calls_and_applies_mutation(
    make_scenario: Callable[..., Scenario],
) -> None:
    def drop_outcomes(
        scenario: Scenario, context: RunnerContext, events: list[TraceEvent]
    ) -> list[TraceEvent]:
        if context.profile != "candidate":
            return events
        return [event for event in events if event.event_type != "outcome"]

    runner = SimulatedScenarioRunner(mutate=drop_outcomes)
    scenario = make_scenario()

    baseline = await runner(scenario, BASELINE)
    candidate = await runner(scenario, RunnerContext(profile="candidate", run_id="r1"))

    assert runner.calls == [("baseline", "PLAN_BUILD_FLOW"), ("candidate", "PLAN_BUILD_FLOW")]
    assert len(baseline) - len(candidate) == 2
