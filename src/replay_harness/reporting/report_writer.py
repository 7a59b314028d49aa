"""
replay-harness — comparison report writer

File: src/replay_harness/reporting/report_writer.py
Last updated: 2026-10-18

Purpose
- Persist a ``ComparisonReport`` as stable JSON and render its markdown report.

What should be included in this file
- ``render_replay_report_markdown`` for the human-readable drift report.
- ``write_replay_report`` writing ``comparison.json`` and ``report.md``.
- ``write_gate_summary_artifacts`` writing the gate summary JSON and markdown.

Functional requirements
- The explainability section is rendered only when the report carries enrichment data.
- Top actions are the five most frequent recommended actions (ties by name).
- Evidence handles are de-duplicated and sorted.

Non-functional requirements
- Output is byte-stable for the same report.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Final

from replay_harness.constants import (
    COMPARISON_FILENAME,
    GATE_SUMMARY_JSON_FILENAME,
    GATE_SUMMARY_MARKDOWN_FILENAME,
    REPORT_FILENAME,
)
from replay_harness.domain.models import (
    EXPLAINABILITY_TAXONOMY_ORDER,
    ComparisonReport,
    ConfidenceBand,
    OperatorBucket,
)
from replay_harness.utils.fs import atomic_write, write_stable_json
from replay_harness.utils.stable_json import JSONValue, to_workspace_relative_path

TOP_ACTION_LIMIT: Final[int] = 5

_CATEGORY_ORDER: Final[tuple[str, ...]] = tuple(item.value for item in EXPLAINABILITY_TAXONOMY_ORDER)
_CONFIDENCE_ORDER: Final[tuple[str, ...]] = tuple(item.value for item in ConfidenceBand)
_BUCKET_ORDER: Final[tuple[str, ...]] = tuple(item.value for item in OperatorBucket)


def write_replay_report(
    output_dir: str | Path,
    comparison: ComparisonReport,
    workspace_path: str | None = None,
) -> dict[str, str]:
    """Write ``comparison.json`` and ``report.md``; return their workspace-relative paths."""

    target = Path(output_dir).expanduser().resolve()
    target.mkdir(parents=True, exist_ok=True)
    comparison_file = target / COMPARISON_FILENAME
    report_file = target / REPORT_FILENAME

    write_stable_json(comparison_file, comparison.to_dict())
    atomic_write(report_file, f"{render_replay_report_markdown(comparison)}\n")

    return {
        "comparison_json": to_workspace_relative_path(comparison_file, workspace_path),
        "report_markdown": to_workspace_relative_path(report_file, workspace_path),
    }


def write_gate_summary_artifacts(
    output_dir: str | Path,
    payload: Mapping[str, JSONValue],
    markdown: str,
    *,
    gate_output: str | Path | None = None,
    workspace_path: str | None = None,
) -> dict[str, str]:
    """Write the gate summary JSON (to ``gate_output`` when given) and markdown."""

    target = Path(output_dir).expanduser().resolve()
    summary_file = (
        Path(gate_output).expanduser().resolve()
        if gate_output
        else target / GATE_SUMMARY_JSON_FILENAME
    )
    markdown_file = target / GATE_SUMMARY_MARKDOWN_FILENAME

    write_stable_json(summary_file, payload)
    atomic_write(markdown_file, f"{markdown}\n")

    return {
        "summary_file": to_workspace_relative_path(summary_file, workspace_path),
        "markdown_file": to_workspace_relative_path(markdown_file, workspace_path),
    }


def render_replay_report_markdown(comparison: ComparisonReport) -> str:
    summary = comparison.summary
    lines = [
        "# Replay Drift Report",
        "",
        f"- Generated at: {comparison.generated_at}",
        f"- Comparator profile: {comparison.profile_name}",
        f"- Overall result: {_pass_fail(comparison.passed)}",
        "",
        "## Summary",
        "",
        f"- Total scenarios: {summary.total_scenarios}",
        f"- Passed scenarios: {summary.passed_scenarios}",
        f"- Failed scenarios: {summary.failed_scenarios}",
        f"- High severity drifts: {summary.high_severity_drifts}",
        f"- Medium severity drifts: {summary.medium_severity_drifts}",
        f"- Low severity drifts: {summary.low_severity_drifts}",
        "",
        "## Scenario Results",
        "",
    ]

    for scenario in comparison.scenarios:
        lines.append(f"### {scenario.scenario_id} - {_pass_fail(scenario.passed)}")
        lines.append("")
        lines.append(f"- Checks executed: {len(scenario.checks_executed)}")
        if not scenario.drifts:
            lines.extend(["- Drift findings: none", ""])
            continue
        lines.append("- Drift findings:")
        for drift in scenario.drifts:
            lines.append(f"  - [{drift.severity.value.upper()}] {drift.check_id}: {drift.message}")
        lines.append("")

    lines.extend(_explainability_section(comparison))
    return "\n".join(lines)


def _has_explainability(comparison: ComparisonReport) -> bool:
    if comparison.summary.explainability_rollup is not None:
        return True
    return any(
        scenario.explainability_groups or any(drift.is_enriched for drift in scenario.drifts)
        for scenario in comparison.scenarios
    )


def _explainability_section(comparison: ComparisonReport) -> list[str]:
    if not _has_explainability(comparison):
        return []

    lines = ["## Explainability", ""]
    rollup = comparison.summary.explainability_rollup
    if rollup is not None:
        lines.extend(["### Rollup", "", f"- Explained drifts: {rollup.total_explained_drifts}"])
        for label, counts, order in (
            ("By category", rollup.by_category, _CATEGORY_ORDER),
            ("By confidence", rollup.by_confidence, _CONFIDENCE_ORDER),
            ("By operator bucket", rollup.by_operator_bucket, _BUCKET_ORDER),
        ):
            rendered = _render_counts(counts, order)
            if rendered:
                lines.append(f"- {label}: {rendered}")
        lines.append("")

    grouped = [scenario for scenario in comparison.scenarios if scenario.explainability_groups]
    if grouped:
        lines.extend(["### Group Summaries", ""])
        for scenario in grouped:
            lines.append(f"#### {scenario.scenario_id}")
            for group in scenario.explainability_groups or ():
                lines.append(
                    f"- {group.category.value}: {group.total_drifts} drift(s)"
                    f"; confidence high {group.high_confidence}, medium {group.medium_confidence}, "
                    f"low {group.low_confidence}"
                    f"; buckets blocker {group.blocker_bucket}, actionable {group.actionable_bucket}, "
                    f"monitor {group.monitor_bucket}"
                )
            lines.append("")

    top_actions = collect_top_actions(comparison)
    if top_actions:
        lines.extend(["### Top Actions", ""])
        lines.extend(f"- {action}" for action in top_actions)
        lines.append("")

    handles = collect_evidence_handles(comparison)
    if handles:
        lines.extend(["### Evidence Handles", ""])
        lines.extend(f"- {handle}" for handle in handles)
        lines.append("")

    return lines


def _render_counts(counts: Mapping[str, int], order: Sequence[str]) -> str:
    return ", ".join(f"{key} {counts[key]}" for key in order if key in counts)


def collect_top_actions(comparison: ComparisonReport, limit: int = TOP_ACTION_LIMIT) -> list[str]:
    frequency: Counter[str] = Counter()
    for drift in comparison.iter_drifts():
        if drift.remediation is None:
            continue
        for action in drift.remediation.recommended_actions:
            normalized = action.strip()
            if normalized:
                frequency[normalized] += 1

    ranked = sorted(frequency.items(), key=lambda item: (-item[1], item[0]))
    return [f"{action} (x{count})" for action, count in ranked[:limit]]


def collect_evidence_handles(comparison: ComparisonReport) -> list[str]:
    handles: set[str] = set()
    for drift in comparison.iter_drifts():
        if drift.evidence is None:
            continue
        fingerprint = drift.evidence.fingerprint.strip()
        if fingerprint:
            handles.add(f"fingerprint:{fingerprint}")
        for ref in drift.evidence.artifact_refs:
            normalized = ref.strip().replace("\\", "/")
            if normalized:
                handles.add(f"artifact:{normalized}")
    return sorted(handles)


def _pass_fail(passed: bool) -> str:
    return "PASS" if passed else "FAIL"


__all__ = [
    "TOP_ACTION_LIMIT",
    "collect_evidence_handles",
    "collect_top_actions",
    "render_replay_report_markdown",
    "write_gate_summary_artifacts",
    "write_replay_report",
]
