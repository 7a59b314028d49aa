"""Trace capture: runner boundary, normalizer, and run orchestration."""

from replay_harness.capture.normalizer import (
    ACTION_ALIASES,
    NormalizationOptions,
    canonicalize_absolute_path,
    canonicalize_action,
    normalize_trace_events,
)
from replay_harness.capture.orchestrator import (
    CaptureResult,
    ReplayOrchestrator,
    RunResult,
    capture_scenario_artifact,
    normalization_options_for,
)
from replay_harness.capture.runner import (
    RunnerContext,
    RunnerLoadError,
    ScenarioRunner,
    load_runner,
)

__all__ = [
    "ACTION_ALIASES",
    "CaptureResult",
    "NormalizationOptions",
    "ReplayOrchestrator",
    "RunResult",
    "RunnerContext",
    "RunnerLoadError",
    "ScenarioRunner",
    "canonicalize_absolute_path",
    "canonicalize_action",
    "capture_scenario_artifact",
    "load_runner",
    "normalization_options_for",
    "normalize_trace_events",
]
