"""Report rendering exports."""

from replay_harness.reporting.report_writer import (
    render_replay_report_markdown,
    write_gate_summary_artifacts,
    write_replay_report,
)

__all__ = [
    "render_replay_report_markdown",
    "write_gate_summary_artifacts",
    "write_replay_report",
]
