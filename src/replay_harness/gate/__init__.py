"""Gate evaluation exports."""

from replay_harness.gate.evaluator import (
    GateAnnotation,
    GateClassification,
    GateEvaluation,
    GateMode,
    GateStatus,
    evaluate_replay_gate,
    evaluate_replay_gate_with_retry,
    is_blocking,
    normalize_gate_mode,
    render_gate_summary_markdown,
    to_github_annotations,
)

__all__ = [
    "GateAnnotation",
    "GateClassification",
    "GateEvaluation",
    "GateMode",
    "GateStatus",
    "evaluate_replay_gate",
    "evaluate_replay_gate_with_retry",
    "is_blocking",
    "normalize_gate_mode",
    "render_gate_summary_markdown",
    "to_github_annotations",
]
