"""
replay-harness — structural comparison checks

File: src/replay_harness/comparison/checks.py
Last updated: 2026-10-18

Purpose
- Implement the declared per-scenario checks over normalized trace events.

What should be included in this file
- ``tool_order``, ``auth_outcome``, ``flow`` and ``success_signature`` checks.
- A dispatch table keyed by check type.

Functional requirements
- Checks return raw (unenriched) drift findings; enrichment happens in the comparator.
- ``tool_order`` reports at most one drift per check, in priority order: ordering,
  missing action, unexpected extras.
- ``auth_outcome`` pairs authorization-bearing events by position.

Non-functional requirements
- Pure functions over immutable inputs.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from typing import Final

from replay_harness.comparison.profile import ComparatorProfile
from replay_harness.domain.models import DriftFinding, DriftSeverity, TraceEvent
from replay_harness.scenarios.schema import CheckSpec, Scenario
from replay_harness.utils.stable_json import JSONValue

CheckHandler = Callable[
    [Scenario, CheckSpec, Sequence[TraceEvent], Sequence[TraceEvent], ComparatorProfile],
    list[DriftFinding],
]

TOOL_CALL_EVENT: Final[str] = "tool_call"


def tool_actions(
    events: Sequence[TraceEvent], ignored_tools: Sequence[str] = ()
) -> list[tuple[str, str]]:
    """Ordered ``(tool, action)`` pairs from tool calls, lower-cased, minus ignored tools."""

    ignored = {tool.strip().lower() for tool in ignored_tools}
    pairs: list[tuple[str, str]] = []
    for event in events:
        if event.event_type != TOOL_CALL_EVENT:
            continue
        tool = (event.tool_name or "unknown").strip().lower()
        action = (event.action_canonical or event.action_raw or "unknown").strip().lower()
        if tool not in ignored:
            pairs.append((tool, action))
    return pairs


def is_subsequence(required: Sequence[str], observed: Sequence[str]) -> bool:
    """True when ``required`` appears in ``observed`` in order, not necessarily adjacent."""

    if not required:
        return True
    cursor = 0
    for value in observed:
        if value == required[cursor]:
            cursor += 1
            if cursor == len(required):
                return True
    return False


def check_tool_order(
    scenario: Scenario,
    check: CheckSpec,
    baseline: Sequence[TraceEvent],
    candidate: Sequence[TraceEvent],
    profile: ComparatorProfile,
) -> list[DriftFinding]:
    ignored = profile.tool_order.ignore_optional_tools
    baseline_actions = [action for _, action in tool_actions(baseline, ignored)]
    candidate_actions = [action for _, action in tool_actions(candidate, ignored)]
    strict = (
        check.strict_order if check.strict_order is not None else profile.tool_order.strict_default
    )
    details: dict[str, JSONValue] = {
        "baseline_actions": list(baseline_actions),
        "candidate_actions": list(candidate_actions),
    }

    if strict and baseline_actions != candidate_actions:
        message = "Tool call order drift detected under strict ordering."
        return [_drift(scenario, check, message, details)]

    if not strict and not is_subsequence(baseline_actions, candidate_actions):
        return [
            _drift(
                scenario,
                check,
                "Tool call sequence drift detected "
                "(candidate does not preserve baseline action order).",
                details,
            )
        ]

    for action in baseline_actions:
        if action not in candidate_actions:
            return [
                _drift(
                    scenario,
                    check,
                    f"Candidate trace is missing required tool action '{action}'.",
                    details,
                )
            ]

    baseline_counts = Counter(baseline_actions)
    candidate_counts = Counter(candidate_actions)
    extras = [action for action, count in candidate_counts.items() if count > baseline_counts[action]]
    if extras:
        return [
            _drift(
                scenario,
                check,
                f"Candidate trace contains unexpected extra tool actions: {', '.join(extras)}.",
                {**details, "unexpected_actions": list(extras)},
            )
        ]
    return []


def _authorization_rows(events: Sequence[TraceEvent]) -> list[dict[str, JSONValue]]:
    rows: list[dict[str, JSONValue]] = []
    for event in events:
        if event.authorization is None:
            continue
        row: dict[str, JSONValue] = {
            "action": event.action_canonical or event.action_raw or event.event_type,
            "outcome": event.authorization.outcome,
        }
        if event.authorization.reason_class is not None:
            row["reason_class"] = event.authorization.reason_class
        rows.append(row)
    return rows


def check_auth_outcome(
    scenario: Scenario,
    check: CheckSpec,
    baseline: Sequence[TraceEvent],
    candidate: Sequence[TraceEvent],
    profile: ComparatorProfile,
) -> list[DriftFinding]:
    baseline_rows = _authorization_rows(baseline)
    candidate_rows = _authorization_rows(candidate)
    drifts: list[DriftFinding] = []

    for index, (left, right) in enumerate(zip(baseline_rows, candidate_rows, strict=False)):
        details: dict[str, JSONValue] = {"baseline": left, "candidate": right}
        if left["outcome"] != right["outcome"]:
            drifts.append(
                _drift(scenario, check, f"Authorization outcome drift at index {index}.", details)
            )
        if profile.authorization.compare_reason_class and left.get("reason_class") != right.get(
            "reason_class"
        ):
            drifts.append(
                _drift(scenario, check, f"Authorization reason-class drift at index {index}.", details)
            )

    if len(baseline_rows) != len(candidate_rows):
        drifts.append(
            _drift(
                scenario,
                check,
                "Authorization event count drift detected.",
                {"baseline_count": len(baseline_rows), "candidate_count": len(candidate_rows)},
            )
        )
    return drifts


def expected_surface_sequence(check: CheckSpec) -> list[str]:
    """Expected terminal surfaces from ``expected`` plus ``metadata.expected_selected_surfaces``."""

    values: list[object] = list(check.expected_values)
    metadata_surfaces = (check.metadata or {}).get("expected_selected_surfaces")
    if isinstance(metadata_surfaces, list):
        values.extend(metadata_surfaces)
    surfaces = [value.strip().lower() for value in values if isinstance(value, str)]
    return [surface for surface in surfaces if surface]


def check_flow(
    scenario: Scenario,
    check: CheckSpec,
    baseline: Sequence[TraceEvent],
    candidate: Sequence[TraceEvent],
    profile: ComparatorProfile,
) -> list[DriftFinding]:
    del baseline
    drifts: list[DriftFinding] = []
    event_types = [event.event_type for event in candidate]

    if profile.flow.require_handoff_before_complete:
        if "complete" in event_types and not is_subsequence(["handoff", "complete"], event_types):
            message = "Expected handoff event before complete event was not observed."
            drifts.append(_drift(scenario, check, message))

    if profile.flow.require_confirmation_before_gated_updates:
        if "plan_step_update" in event_types and "confirmation" not in event_types:
            drifts.append(
                _drift(
                    scenario,
                    check,
                    "Plan step updates occurred without a confirmation event.",
                    severity=DriftSeverity.MEDIUM,
                )
            )

    target = profile.flow.required_handoff_target
    for event in candidate:
        if event.event_type != "handoff":
            continue
        observed = (event.payload or {}).get("to_agent")
        if observed != target:
            drifts.append(
                _drift(
                    scenario,
                    check,
                    f"Unexpected handoff target '{_target_text(observed)}'; expected '{target}'.",
                    {"observed_target": observed, "expected_target": target},
                )
            )
            break

    expected_surfaces = expected_surface_sequence(check)
    if expected_surfaces:
        observed_surfaces: list[str] = []
        for event in candidate:
            if event.event_type != TOOL_CALL_EVENT:
                continue
            selected = (event.payload or {}).get("selected_terminal_surface")
            if isinstance(selected, str) and selected.strip():
                observed_surfaces.append(selected.strip().lower())

        strict = check.strict_order is True
        if strict:
            matched = is_subsequence(expected_surfaces, observed_surfaces)
        else:
            matched = all(surface in observed_surfaces for surface in expected_surfaces)
        if not matched:
            message = (
                "Selected terminal surface order did not match expected flow sequence."
                if strict
                else "Expected selected terminal surfaces were not observed in flow events."
            )
            drifts.append(
                _drift(
                    scenario,
                    check,
                    message,
                    {
                        "expected_selected_surfaces": list(expected_surfaces),
                        "observed_selected_surfaces": list(observed_surfaces),
                    },
                )
            )
    return drifts


def check_success_signature(
    scenario: Scenario,
    check: CheckSpec,
    baseline: Sequence[TraceEvent],
    candidate: Sequence[TraceEvent],
    profile: ComparatorProfile,
) -> list[DriftFinding]:
    del baseline, profile
    observed = list(
        dict.fromkeys(event.success_signature for event in candidate if event.success_signature)
    )
    required = list(scenario.expectations.success_signature.must_include)
    missing = [signature for signature in required if signature not in observed]
    if not missing:
        return []
    return [
        _drift(
            scenario,
            check,
            f"Missing required success signatures: {', '.join(missing)}",
            {"required": list(required), "observed": list(observed)},
        )
    ]


CHECK_HANDLERS: Final[Mapping[str, CheckHandler]] = {
    "tool_order": check_tool_order,
    "auth_outcome": check_auth_outcome,
    "flow": check_flow,
    "success_signature": check_success_signature,
}


def run_check(
    scenario: Scenario,
    check: CheckSpec,
    baseline: Sequence[TraceEvent],
    candidate: Sequence[TraceEvent],
    profile: ComparatorProfile,
) -> list[DriftFinding]:
    handler = CHECK_HANDLERS.get(check.type)
    if handler is None:
        raise ValueError(f"unsupported check type {check.type!r} for {check.id}")
    return handler(scenario, check, baseline, candidate, profile)


def _drift(
    scenario: Scenario,
    check: CheckSpec,
    message: str,
    details: dict[str, JSONValue] | None = None,
    *,
    severity: DriftSeverity | None = None,
) -> DriftFinding:
    return DriftFinding(
        scenario_id=scenario.scenario_id,
        check_id=check.id,
        severity=severity or DriftSeverity(check.severity),
        message=message,
        details=details,
    )


def _target_text(value: object) -> str:
    if value is None:
        return "none"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


__all__ = [
    "CHECK_HANDLERS",
    "CheckHandler",
    "check_auth_outcome",
    "check_flow",
    "check_success_signature",
    "check_tool_order",
    "expected_surface_sequence",
    "is_subsequence",
    "run_check",
    "tool_actions",
]
