"""
replay-harness — unit tests for the trace normalizer

File: tests/unit/capture/test_normalizer.py
Last updated: 2026-10-18

Purpose
- Validate timestamp rebasing, id masking, path canonicalization, text stripping,
  and action aliasing, including the per-flag opt-outs.
"""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from replay_harness.capture.normalizer import (
    NormalizationOptions,
    canonicalize_absolute_path,
    canonicalize_action,
    normalize_string,
    normalize_trace_events,
)
from replay_harness.domain.models import TraceEvent


def _event(timestamp_ms: int, **fields: object) -> TraceEvent:
    return TraceEvent(event_type="tool_call", timestamp_ms=timestamp_ms, scenario_id="S", **fields)


def test_timestamps_are_rebased_on_first_event() -> None:
    events = [_event(1_000), _event(1_250), _event(900)]

    normalized = normalize_trace_events(events)

    assert [event.timestamp_ms for event in normalized] == [0, 250, 0]


def test_timestamps_kept_when_flag_disabled() -> None:
    events = [_event(1_000), _event(1_250)]

    normalized = normalize_trace_events(events, NormalizationOptions(canonicalize_timestamps=False))

    assert [event.timestamp_ms for event in normalized] == [1_000, 1_250]


def test_volatile_ids_are_masked() -> None:
    text = (
        "sess_abc123 run_42 req_x-y 123e4567-e89b-12d3-a456-426614174000 "
        "01ARZ3NDEKTSV4RRFFQ69G5FAV keep_me"
    )

    assert normalize_string(text, NormalizationOptions()) == "<ID> <ID> <ID> <ID> <ID> keep_me"


def test_nondeterministic_text_is_stripped() -> None:
    text = "at 2026-03-01T12:00:00.123Z after 1700000000000 ms, attempt 3"

    assert normalize_string(text, NormalizationOptions()) == "at <NONDET> after <NONDET> ms, attempt 3"


def test_paths_inside_workspace_become_relative() -> None:
    options = NormalizationOptions(workspace_path="/work/project")

    assert normalize_string("open /work/project/src/app.py now", options) == "open src/app.py now"
    assert normalize_string("cwd=/work/project", options) == "cwd=."
    assert normalize_string("see /etc/hosts", options) == "see /etc/hosts"


def test_windows_paths_are_canonicalized() -> None:
    assert canonicalize_absolute_path("C:\\Work\\Proj\\src\\a.ts", "c:\\work\\proj") == "src/a.ts"
    assert canonicalize_absolute_path("D:\\other\\file.txt", "c:\\work\\proj") == "D:/other/file.txt"


def test_flags_disable_individual_rewrites() -> None:
    options = NormalizationOptions(
        workspace_path="/work/project",
        mask_ids=False,
        canonicalize_paths=False,
        strip_nondeterministic_text=False,
    )
    text = "sess_abc /work/project/a 2026-03-01T12:00:00Z"

    assert normalize_string(text, options) == text


def test_payloads_are_walked_recursively_and_input_is_untouched() -> None:
    payload = {"nested": {"items": ["sess_1", 5, None, {"path": "/work/project/x"}]}}
    event = _event(10, payload=payload, action_raw=" Run ", tool_name=" memory_terminal ")

    (normalized,) = normalize_trace_events(
        [event], NormalizationOptions(workspace_path="/work/project")
    )

    assert normalized.payload == {"nested": {"items": ["<ID>", 5, None, {"path": "x"}]}}
    assert normalized.action_canonical == "execute"
    assert normalized.tool_name == "memory_terminal"
    assert event.payload == payload
    assert event.action_canonical is None


def test_action_aliases() -> None:
    assert canonicalize_action("send") == "execute"
    assert canonicalize_action("CLOSE") == "terminate"
    assert canonicalize_action(" Confirm ") == "confirm"
    assert canonicalize_action("") is None
    assert canonicalize_action(None) is None


def test_existing_canonical_action_kept_without_raw_action() -> None:
    (normalized,) = normalize_trace_events([_event(0, action_canonical="handoff")])

    assert normalized.action_canonical == "handoff"


def test_empty_trace_normalizes_to_empty() -> None:
    assert normalize_trace_events([]) == ()


@given(
    st.lists(
        st.tuples(st.integers(min_value=0, max_value=10**13), st.text(max_size=20)),
        max_size=15,
    )
)
def test_normalization_preserves_count_order_and_is_idempotent(
    rows: list[tuple[int, str]],
) -> None:
    events = [
        _event(timestamp, step_id=f"step-{index}", payload={"text": text})
        for index, (timestamp, text) in enumerate(rows)
    ]

    once = normalize_trace_events(events)
    twice = normalize_trace_events(once)

    assert [event.step_id for event in once] == [event.step_id for event in events]
    assert all(event.timestamp_ms >= 0 for event in once)
    assert [event.payload for event in twice] == [event.payload for event in once]
