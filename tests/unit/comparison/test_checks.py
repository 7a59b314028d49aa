"""
replay-harness — unit tests for structural comparison checks

File: tests/unit/comparison/test_checks.py
Last updated: 2026-10-18

Purpose
- Validate tool order, authorization, flow, and success signature checks in isolation.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from replay_harness.comparison.checks import (
    check_auth_outcome,
    check_flow,
    check_success_signature,
    check_tool_order,
    is_subsequence,
    run_check,
    tool_actions,
)
from replay_harness.comparison.profile import (
    AuthorizationSettings,
    ComparatorProfile,
    FlowSettings,
    SuccessSignatureSettings,
    ToolOrderSettings,
)
from replay_harness.domain.models import AuthorizationResult, DriftSeverity, TraceEvent
from replay_harness.scenarios.schema import CheckSpec, Scenario

DEFAULT_PROFILE = ComparatorProfile()


def _call(
    action: str,
    *,
    tool: str = "memory_terminal",
    outcome: str | None = None,
    reason: str | None = None,
    surface: str | None = None,
) -> TraceEvent:
    return TraceEvent(
        event_type="tool_call",
        timestamp_ms=0,
        scenario_id="S",
        tool_name=tool,
        action_canonical=action,
        authorization=AuthorizationResult(outcome, reason) if outcome else None,
        payload={"selected_terminal_surface": surface} if surface else None,
    )


def _event(event_type: str, **fields: object) -> TraceEvent:
    return TraceEvent(event_type=event_type, timestamp_ms=0, scenario_id="S", **fields)


@pytest.fixture
def scenario(make_scenario: Callable[..., Scenario]) -> Scenario:
    return make_scenario(scenario_id="s")


def test_tool_actions_skip_ignored_tools_and_lowercase() -> None:
    events = [
        _call("Execute", tool="Memory_Terminal"),
        _call("update", tool="memory_steps"),
        _event("confirmation"),
    ]

    assert tool_actions(events, ["MEMORY_STEPS"]) == [("memory_terminal", "execute")]


def test_is_subsequence() -> None:
    assert is_subsequence([], ["a"])
    assert is_subsequence(["a", "c"], ["a", "b", "c"])
    assert not is_subsequence(["c", "a"], ["a", "b", "c"])


def test_strict_tool_order_drift(scenario: Scenario) -> None:
    check = CheckSpec(id="ORDER", type="tool_order", severity="high")

    (drift,) = check_tool_order(
        scenario, check, [_call("a"), _call("b")], [_call("b"), _call("a")], DEFAULT_PROFILE
    )

    assert drift.check_id == "ORDER"
    assert drift.severity is DriftSeverity.HIGH
    assert "strict ordering" in drift.message
    assert drift.details == {"baseline_actions": ["a", "b"], "candidate_actions": ["b", "a"]}


def test_relaxed_tool_order_reports_sequence_then_extras(scenario: Scenario) -> None:
    check = CheckSpec(id="ORDER", type="tool_order", strict_order=False)

    (reordered,) = check_tool_order(
        scenario, check, [_call("a"), _call("b")], [_call("b"), _call("a")], DEFAULT_PROFILE
    )
    (extra,) = check_tool_order(
        scenario, check, [_call("a")], [_call("a"), _call("b"), _call("a")], DEFAULT_PROFILE
    )

    assert "does not preserve baseline action order" in reordered.message
    assert extra.message == "Candidate trace contains unexpected extra tool actions: a, b."
    assert extra.details is not None
    assert extra.details["unexpected_actions"] == ["a", "b"]
    assert check_tool_order(
        scenario, check, [_call("a")], [_call("x"), _call("a")], DEFAULT_PROFILE
    )


def test_profile_strict_default_and_ignored_tools(scenario: Scenario) -> None:
    check = CheckSpec(id="ORDER", type="tool_order")
    relaxed = ComparatorProfile(
        tool_order=ToolOrderSettings(strict_default=False, ignore_optional_tools=("memory_steps",))
    )
    baseline = [_call("a"), _call("b")]
    candidate = [_call("a"), _call("update", tool="memory_steps"), _call("b")]

    assert check_tool_order(scenario, check, baseline, candidate, relaxed) == []
    assert check_tool_order(scenario, check, baseline, candidate, DEFAULT_PROFILE)


def test_auth_outcome_and_reason_drifts(scenario: Scenario) -> None:
    check = CheckSpec(id="AUTH", type="auth_outcome", severity="high")
    baseline = [_call("run", outcome="allowed", reason="allowlist_match")]
    candidate = [_call("run", outcome="blocked", reason="policy_block")]

    drifts = check_auth_outcome(scenario, check, baseline, candidate, DEFAULT_PROFILE)
    lenient = check_auth_outcome(
        scenario,
        check,
        baseline,
        candidate,
        ComparatorProfile(authorization=AuthorizationSettings(compare_reason_class=False)),
    )

    assert [drift.message for drift in drifts] == [
        "Authorization outcome drift at index 0.",
        "Authorization reason-class drift at index 0.",
    ]
    assert drifts[0].details == {
        "baseline": {"action": "run", "outcome": "allowed", "reason_class": "allowlist_match"},
        "candidate": {"action": "run", "outcome": "blocked", "reason_class": "policy_block"},
    }
    assert len(lenient) == 1


def test_auth_event_count_drift(scenario: Scenario) -> None:
    check = CheckSpec(id="AUTH", type="auth_outcome")
    baseline = [_call("run", outcome="allowed"), _call("kill", outcome="allowed")]

    (drift,) = check_auth_outcome(
        scenario, check, baseline, [_call("run", outcome="allowed")], DEFAULT_PROFILE
    )

    assert drift.message == "Authorization event count drift detected."
    assert drift.details == {"baseline_count": 2, "candidate_count": 1}


def test_flow_ordering_rules(scenario: Scenario) -> None:
    check = CheckSpec(id="FLOW", type="flow", severity="high")
    candidate = [
        _event("plan_step_update"),
        _event("complete"),
        _event("handoff", payload={"to_agent": "Reviewer"}),
    ]

    drifts = check_flow(scenario, check, [], candidate, DEFAULT_PROFILE)

    assert [drift.message for drift in drifts] == [
        "Expected handoff event before complete event was not observed.",
        "Plan step updates occurred without a confirmation event.",
        "Unexpected handoff target 'Reviewer'; expected 'Coordinator'.",
    ]
    assert [drift.severity for drift in drifts] == [
        DriftSeverity.HIGH,
        DriftSeverity.MEDIUM,
        DriftSeverity.HIGH,
    ]


def test_flow_rules_can_be_disabled(scenario: Scenario) -> None:
    check = CheckSpec(id="FLOW", type="flow")
    profile = ComparatorProfile(
        flow=FlowSettings(
            require_handoff_before_complete=False,
            require_confirmation_before_gated_updates=False,
            required_handoff_target="Reviewer",
        )
    )
    candidate = [
        _event("plan_step_update"),
        _event("complete"),
        _event("handoff", payload={"to_agent": "Reviewer"}),
    ]

    assert check_flow(scenario, check, [], candidate, profile) == []


def test_missing_handoff_target_is_reported_as_none(scenario: Scenario) -> None:
    check = CheckSpec(id="FLOW", type="flow")

    (drift,) = check_flow(scenario, check, [], [_event("handoff")], DEFAULT_PROFILE)

    assert drift.message == "Unexpected handoff target 'none'; expected 'Coordinator'."


def test_expected_surfaces_membership_and_order(scenario: Scenario) -> None:
    candidate = [
        _call("run", surface="memory_terminal_interactive"),
        _call("run", surface="Memory_Terminal"),
    ]
    relaxed = CheckSpec(
        id="SURFACE",
        type="flow",
        expected="memory_terminal",
        metadata={"expected_selected_surfaces": ["memory_terminal_interactive"]},
    )
    strict = CheckSpec(
        id="SURFACE",
        type="flow",
        strict_order=True,
        expected=("memory_terminal", "memory_terminal_interactive"),
    )

    assert check_flow(scenario, relaxed, [], candidate, DEFAULT_PROFILE) == []
    (drift,) = check_flow(scenario, strict, [], candidate, DEFAULT_PROFILE)
    assert drift.message == "Selected terminal surface order did not match expected flow sequence."
    assert drift.details == {
        "expected_selected_surfaces": ["memory_terminal", "memory_terminal_interactive"],
        "observed_selected_surfaces": ["memory_terminal_interactive", "memory_terminal"],
    }


def test_missing_success_signatures(scenario: Scenario) -> None:
    check = CheckSpec(id="SIG", type="success_signature", severity="high")
    candidate = [_event("outcome", success_signature="plan_confirmed")]

    (drift,) = check_success_signature(scenario, check, [], candidate, DEFAULT_PROFILE)
    (relaxed,) = check_success_signature(
        scenario,
        check,
        [],
        candidate,
        ComparatorProfile(success_signatures=SuccessSignatureSettings(require_all=False)),
    )

    assert drift.message == "Missing required success signatures: handoff_complete"
    assert drift.details == {
        "required": ["plan_confirmed", "handoff_complete"],
        "observed": ["plan_confirmed"],
    }
    assert relaxed.message == drift.message


def test_relaxed_profile_still_lists_every_missing_signature(scenario: Scenario) -> None:
    check = CheckSpec(id="SIG", type="success_signature")
    profile = ComparatorProfile(success_signatures=SuccessSignatureSettings(require_all=False))

    (drift,) = check_success_signature(scenario, check, [], [], profile)

    assert drift.message == (
        "Missing required success signatures: plan_confirmed, handoff_complete"
    )


def test_run_check_rejects_unknown_type(scenario: Scenario) -> None:
    check = CheckSpec(id="X", type="latency")  # type: ignore[arg-type]

    with pytest.raises(ValueError, match="unsupported check type 'latency'"):
        run_check(scenario, check, [], [], DEFAULT_PROFILE)
