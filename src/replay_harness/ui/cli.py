"""Command-line interface router for replay-harness."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from replay_harness.baselines import (
    ArtifactSource,
    PromotionResult,
    ResolutionRequest,
    ResolvedArtifact,
    promote_baseline,
    read_profile_artifacts,
    require_replay_artifact,
    resolve_replay_artifact,
)
from replay_harness.capture import ReplayOrchestrator, RunnerLoadError, ScenarioRunner, load_runner
from replay_harness.comparison import (
    ComparatorProfile,
    ComparatorProfileError,
    compare_replay_runs,
    load_comparator_profile,
)
from replay_harness.config import ConfigLoadError, ConfigValidationError, load_config
from replay_harness.constants import (
    DEFAULT_BASELINE_ID,
    DEFAULT_RUN_LABEL,
    MANIFEST_FILENAME,
    PROFILE_BASELINE,
    PROFILE_CANDIDATE,
    PROFILE_NAMES,
    REPORT_FILENAME,
)
from replay_harness.domain import ArtifactResolutionError, ComparisonReport, ReplayHarnessError
from replay_harness.gate import (
    GateEvaluation,
    evaluate_replay_gate,
    evaluate_replay_gate_with_retry,
    is_blocking,
    normalize_gate_mode,
    render_gate_summary_markdown,
    to_github_annotations,
)
from replay_harness.observability import LoggingConfig, setup_structured_logging, shutdown_logging
from replay_harness.reporting import (
    render_replay_report_markdown,
    write_gate_summary_artifacts,
    write_replay_report,
)
from replay_harness.scenarios import Scenario, SelectionError, load_scenario_suite, select_scenarios
from replay_harness.ui.render import CLIRenderer, create_renderer
from replay_harness.utils.clock import epoch_ms
from replay_harness.utils.fs import append_text, atomic_write, read_json
from replay_harness.utils.stable_json import JSONValue

GITHUB_STEP_SUMMARY_ENV: Final[str] = "GITHUB_STEP_SUMMARY"
NO_SCENARIOS_MATCHED: Final[str] = "No scenarios matched the provided scenario/tag/shard filters."
GUARD_FALLBACK: Final[str] = "guarded write path not satisfied"


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="replay-harness",
        description=(
            "replay-harness: deterministic replay regression testing.\n\n"
            "Common workflows:\n"
            "  replay-harness run --runner pkg.mod:runner      Capture both profiles and gate\n"
            "  replay-harness compare --baseline-id main       Compare against a golden baseline\n"
            "  replay-harness promote-baseline --candidate f   Preview a baseline promotion\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to replay TOML config (default: ./replay.toml if present).",
    )
    common.add_argument("--verbose", "-v", action="store_true", default=False)
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )
    common.add_argument("--out", dest="output_root", default=None, help="Output root directory.")
    common.add_argument("--label", default=DEFAULT_RUN_LABEL, help="Run label prefix.")
    common.add_argument(
        "--workspace-path",
        default=None,
        help="Workspace root used for path canonicalization and relative output paths.",
    )
    common.add_argument("--log-level", default=None, help="Override [logging] level.")

    selection = argparse.ArgumentParser(add_help=False)
    selection.add_argument("--scenarios", default=None, help="Scenario suite file (JSON or YAML).")
    selection.add_argument(
        "--scenario", dest="scenario_ids", action="append", default=None, help="Scenario id filter."
    )
    selection.add_argument("--tag", dest="tags", action="append", default=None, help="Tag filter.")
    selection.add_argument("--shard-index", type=int, default=None)
    selection.add_argument("--shard-count", type=int, default=None)

    profile = argparse.ArgumentParser(add_help=False)
    profile.add_argument(
        "--profile", dest="comparator_profile", default=None, help="Comparator profile file."
    )

    gate = argparse.ArgumentParser(add_help=False)
    gate.add_argument("--gate-mode", default=None, help="strict | warn | info (default: warn).")
    gate.add_argument("--gate-output", default=None, help="Gate summary JSON destination.")
    gate.add_argument("--emit-github-annotations", action="store_true", default=None)

    runner = argparse.ArgumentParser(add_help=False)
    runner.add_argument(
        "--runner", default=None, help="Scenario runner entrypoint 'package.module:attr'."
    )

    store = argparse.ArgumentParser(add_help=False)
    store.add_argument("--goldens-root", default=None)
    store.add_argument("--baseline-id", default=DEFAULT_BASELINE_ID)
    store.add_argument("--legacy-runs-root", default=None)
    store.add_argument("--legacy-run-dir", default=None)

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run",
        parents=[common, selection, profile, gate, runner],
        help="Capture baseline and candidate traces, compare them, and evaluate the gate",
    )
    run_parser.add_argument(
        "--retry-once",
        action="store_true",
        default=None,
        help="Re-run once when the primary comparison blocks, to classify flakes.",
    )
    run_parser.set_defaults(handler=_cmd_run)

    capture_parser = subparsers.add_parser(
        "capture",
        parents=[common, selection, runner],
        help="Capture traces under a single profile",
    )
    capture_parser.add_argument(
        "--capture-profile", choices=PROFILE_NAMES, default=PROFILE_BASELINE
    )
    capture_parser.set_defaults(handler=_cmd_capture)

    compare_parser = subparsers.add_parser(
        "compare",
        parents=[common, selection, profile, gate, store],
        help="Compare resolved baseline and candidate artifacts",
    )
    compare_parser.add_argument("--baseline", dest="baseline_file", default=None)
    compare_parser.add_argument("--candidate", dest="candidate_file", default=None)
    compare_parser.set_defaults(handler=_cmd_compare)

    report_parser = subparsers.add_parser(
        "report", parents=[common], help="Render a markdown report from comparison.json"
    )
    report_parser.add_argument("--comparison", dest="comparison_file", default=None)
    report_parser.set_defaults(handler=_cmd_report)

    list_parser = subparsers.add_parser(
        "list-scenarios", parents=[common, selection], help="List selected scenarios"
    )
    list_parser.add_argument("--json", action="store_true", default=False)
    list_parser.set_defaults(handler=_cmd_list_scenarios)

    for name, handler, help_text in (
        ("promote-baseline", _cmd_promote_baseline, "Promote a baseline artifact to the golden store"),
        (
            "migrate-legacy-runs",
            _cmd_migrate_legacy_runs,
            "Import a legacy run's baseline artifact into the golden store",
        ),
    ):
        promotion_parser = subparsers.add_parser(name, parents=[common, store], help=help_text)
        promotion_parser.add_argument("--candidate", dest="candidate_file", default=None)
        promotion_parser.add_argument("--apply", action="store_true", default=False)
        promotion_parser.add_argument("--approve", action="store_true", default=False)
        promotion_parser.add_argument("--force", action="store_true", default=False)
        promotion_parser.set_defaults(handler=handler)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        config = _load_effective_config(namespace)
        with _logging_session(config, namespace.command, verbose=bool(namespace.verbose)):
            result = handler(namespace, config)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_run(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    workspace_path = _workspace_path(args)
    scenarios = _select(args, config)
    profile = _comparator_profile(config)
    runner = _load_runner(config)
    retry_once = bool(_config_value(config, "gate", "retry_once"))
    mode = normalize_gate_mode(_config_str(config, "gate", "mode"))

    orchestrator = ReplayOrchestrator(_output_root(config), runner)
    result = asyncio.run(orchestrator.run(scenarios, args.label, workspace_path))
    comparison = compare_replay_runs(scenarios, result.baseline, result.candidate, profile)

    retry_comparison: ComparisonReport | None = None
    if retry_once and is_blocking(comparison):
        retry_result = asyncio.run(
            orchestrator.run(scenarios, f"{args.label}-retry", workspace_path)
        )
        retry_comparison = compare_replay_runs(
            scenarios, retry_result.baseline, retry_result.candidate, profile
        )

    report = write_replay_report(result.output_dir, comparison, workspace_path)
    gate = evaluate_replay_gate_with_retry(comparison, retry_comparison, mode)
    gate_markdown = render_gate_summary_markdown(gate)
    payload: dict[str, JSONValue] = {
        **_gate_payload(gate, report),
        "flake_controls": {
            "retry_once_enabled": retry_once,
            "retry_performed": retry_comparison is not None,
            "retry_summary": (
                retry_comparison.summary.to_dict() if retry_comparison is not None else None
            ),
        },
    }
    gate_files = write_gate_summary_artifacts(
        result.output_dir,
        payload,
        gate_markdown,
        gate_output=args.gate_output,
        workspace_path=workspace_path,
    )

    renderer = _get_renderer(args)
    renderer.text("Replay run complete.")
    renderer.kv("Manifest", result.output_dir / MANIFEST_FILENAME)
    return _finish_gate(renderer, config, gate, gate_markdown, report, gate_files)


def _cmd_capture(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    scenarios = _select(args, config)
    runner = _load_runner(config)
    profile_name: str = args.capture_profile

    orchestrator = ReplayOrchestrator(_output_root(config), runner)
    result = asyncio.run(
        orchestrator.capture(profile_name, scenarios, args.label, _workspace_path(args))
    )

    renderer = _get_renderer(args)
    renderer.text(f"Capture complete ({profile_name}).")
    renderer.kv("Artifact", result.output_file)
    renderer.kv("Raw artifact", result.raw_output_file)
    return 0


def _cmd_compare(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    workspace_path = _workspace_path(args)
    try:
        resolved_baseline = require_replay_artifact(
            _resolution_request(args, config, PROFILE_BASELINE, args.baseline_file)
        )
        resolved_candidate = require_replay_artifact(
            _resolution_request(args, config, PROFILE_CANDIDATE, args.candidate_file)
        )
    except ArtifactResolutionError as exc:
        raise CLIError(
            f"compare command could not resolve artifacts ({exc}). "
            "Provide --baseline and --candidate, or use --baseline-id plus "
            "--legacy-runs-root/--legacy-run-dir for legacy replay outputs.",
            exit_code=2,
        ) from exc

    scenarios = _select(args, config)
    profile = _comparator_profile(config)
    try:
        baseline = read_profile_artifacts(resolved_baseline.file)
        candidate = read_profile_artifacts(resolved_candidate.file)
    except ReplayHarnessError as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    comparison = compare_replay_runs(scenarios, baseline, candidate, profile)
    output_dir = _output_root(config) / f"{args.label}-{epoch_ms()}"
    report = write_replay_report(output_dir, comparison, workspace_path)
    gate = evaluate_replay_gate(comparison, _config_str(config, "gate", "mode"))
    gate_markdown = render_gate_summary_markdown(gate)
    gate_files = write_gate_summary_artifacts(
        output_dir,
        _gate_payload(gate, report),
        gate_markdown,
        gate_output=args.gate_output,
        workspace_path=workspace_path,
    )

    renderer = _get_renderer(args)
    renderer.text("Comparison complete.")
    renderer.kv(f"Resolved baseline ({resolved_baseline.source.value})", resolved_baseline.file)
    renderer.kv(f"Resolved candidate ({resolved_candidate.source.value})", resolved_candidate.file)
    return _finish_gate(renderer, config, gate, gate_markdown, report, gate_files)


def _cmd_report(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    if not args.comparison_file:
        raise CLIError("report command requires --comparison <comparison.json>.", exit_code=2)

    source = Path(args.comparison_file).expanduser().resolve()
    try:
        comparison = ComparisonReport.from_mapping(read_json(source))
    except OSError as exc:
        raise CLIError(f"unable to read comparison file {source}: {exc}", exit_code=2) from exc
    except ValueError as exc:
        raise CLIError(f"invalid comparison file {source}: {exc}", exit_code=2) from exc

    report_path = _output_root(config) / f"{args.label}-{epoch_ms()}" / REPORT_FILENAME
    atomic_write(report_path, f"{render_replay_report_markdown(comparison)}\n")
    _get_renderer(args).kv("Report rendered", report_path)
    return 0


def _cmd_list_scenarios(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    scenarios = _select(args, config, allow_empty=True)

    if args.json:
        _emit_json(
            {
                "command": "list-scenarios",
                "scenarios": [
                    {
                        "scenario_id": scenario.scenario_id,
                        "title": scenario.title,
                        "tags": list(scenario.tags),
                    }
                    for scenario in scenarios
                ],
            }
        )
        return 0

    renderer = _get_renderer(args)
    for scenario in scenarios:
        tags = f" [{', '.join(scenario.tags)}]" if scenario.tags else ""
        renderer.text(f"{scenario.scenario_id}: {scenario.title}{tags}")
    return 0


def _cmd_promote_baseline(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    resolved = resolve_replay_artifact(
        _resolution_request(args, config, PROFILE_BASELINE, args.candidate_file)
    )
    if resolved is None:
        raise CLIError(
            "promote-baseline command requires --candidate <baseline.norm.json>, or legacy run "
            "artifacts resolvable via --legacy-runs-root/--legacy-run-dir.",
            exit_code=2,
        )

    result = _promote(args, config, resolved)
    summary = result.summary
    renderer = _get_renderer(args)
    renderer.kv("Baseline id", summary.baseline_id)
    renderer.kv(f"Resolved source ({resolved.source.value})", resolved.file)
    renderer.kv("Store location", result.location.baseline_dir)
    renderer.kv("Existing baseline", "yes" if summary.has_existing_baseline else "no")
    renderer.kv("Candidate scenarios", summary.total_candidate_scenarios)
    renderer.kv("Added scenarios", len(summary.added_scenarios))
    renderer.kv("Removed scenarios", len(summary.removed_scenarios))
    renderer.kv("Changed scenarios", len(summary.changed_scenarios))
    renderer.kv("Unchanged scenarios", len(summary.unchanged_scenarios))
    if args.verbose:
        for label, ids in (
            ("added", summary.added_scenarios),
            ("removed", summary.removed_scenarios),
            ("changed", summary.changed_scenarios),
        ):
            for scenario_id in ids:
                renderer.detail(f"{label}: {scenario_id}")
    return _finish_promotion(renderer, args, result, noun="Promotion")


def _cmd_migrate_legacy_runs(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    resolved = resolve_replay_artifact(
        _resolution_request(args, config, PROFILE_BASELINE, args.candidate_file)
    )
    if resolved is None or resolved.source is ArtifactSource.GOLDEN_V1:
        raise CLIError(
            "migrate-legacy-runs requires a legacy baseline artifact. Provide --candidate or "
            "--legacy-runs-root/--legacy-run-dir pointing to historical replay run output.",
            exit_code=2,
        )

    result = _promote(args, config, resolved)
    renderer = _get_renderer(args)
    renderer.kv("Legacy migration baseline id", result.summary.baseline_id)
    renderer.kv(f"Resolved legacy source ({resolved.source.value})", resolved.file)
    if resolved.legacy_run_dir is not None:
        renderer.kv("Legacy run directory", resolved.legacy_run_dir)
    renderer.kv("Store location", result.location.baseline_dir)
    return _finish_promotion(renderer, args, result, noun="Migration")


# ---------------------------------------------------------------------------
# Helpers: shared command flow
# ---------------------------------------------------------------------------


def _gate_payload(gate: GateEvaluation, report: Mapping[str, str]) -> dict[str, JSONValue]:
    return {
        "gate": gate.to_dict(),
        "explainability_rollup": (
            gate.explainability_rollup.to_dict() if gate.explainability_rollup is not None else None
        ),
        "report": dict(report),
    }


def _finish_gate(
    renderer: CLIRenderer,
    config: Mapping[str, object],
    gate: GateEvaluation,
    gate_markdown: str,
    report: Mapping[str, str],
    gate_files: Mapping[str, str],
) -> int:
    renderer.kv("Comparison", report["comparison_json"])
    renderer.kv("Markdown report", report["report_markdown"])
    renderer.block(gate_markdown)
    renderer.kv("Gate summary JSON", gate_files["summary_file"])
    renderer.kv("Gate summary Markdown", gate_files["markdown_file"])

    if _config_value(config, "gate", "emit_github_annotations"):
        for line in to_github_annotations(gate):
            renderer.text(line)

    step_summary = os.environ.get(GITHUB_STEP_SUMMARY_ENV, "").strip()
    if step_summary:
        append_text(step_summary, f"{gate_markdown}\n\n")

    renderer.status("Replay gate", gate.status.value)
    return 0 if gate.passed else 1


def _promote(
    args: argparse.Namespace, config: Mapping[str, object], resolved: ResolvedArtifact
) -> PromotionResult:
    try:
        return promote_baseline(
            goldens_root=_config_path(config, "goldens_root"),
            baseline_id=args.baseline_id,
            candidate_file=resolved.file,
            apply=args.apply,
            approve=args.approve,
            force=args.force,
        )
    except ReplayHarnessError as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _finish_promotion(
    renderer: CLIRenderer, args: argparse.Namespace, result: PromotionResult, *, noun: str
) -> int:
    if not result.applied:
        renderer.kv(f"{noun} not applied", result.guard_reason or GUARD_FALLBACK)
        return 1 if args.apply else 0

    renderer.text(f"{noun} applied.")
    renderer.kv("Baseline artifact", result.baseline_artifact_file)
    renderer.kv("Metadata", result.metadata_file)
    return 0


def _resolution_request(
    args: argparse.Namespace,
    config: Mapping[str, object],
    kind: str,
    explicit_file: str | None,
) -> ResolutionRequest:
    return ResolutionRequest(
        kind=kind,
        explicit_file=explicit_file,
        goldens_root=_config_path(config, "goldens_root"),
        baseline_id=args.baseline_id,
        legacy_runs_root=_legacy_runs_root(config),
        legacy_run_dir=args.legacy_run_dir,
    )


def _select(
    args: argparse.Namespace, config: Mapping[str, object], *, allow_empty: bool = False
) -> tuple[Scenario, ...]:
    try:
        suite = load_scenario_suite(_config_path(config, "scenarios"))
        selected = select_scenarios(
            suite.scenarios,
            ids=args.scenario_ids,
            tags=args.tags,
            shard_index=args.shard_index,
            shard_count=args.shard_count,
        )
    except (ReplayHarnessError, SelectionError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    if not selected and not allow_empty:
        raise CLIError(NO_SCENARIOS_MATCHED, exit_code=2)
    return selected


def _comparator_profile(config: Mapping[str, object]) -> ComparatorProfile:
    try:
        return load_comparator_profile(_config_str(config, "paths", "comparator_profile") or None)
    except ComparatorProfileError as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _load_runner(config: Mapping[str, object]) -> ScenarioRunner:
    entrypoint = _config_str(config, "runner", "entrypoint")
    if not entrypoint:
        raise CLIError(
            "no scenario runner configured; pass --runner package.module:attr "
            "or set [runner] entrypoint in replay.toml",
            exit_code=2,
        )
    try:
        return load_runner(entrypoint)
    except RunnerLoadError as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(
        no_color=bool(getattr(args, "no_color", False)),
        verbose=bool(getattr(args, "verbose", False)),
    )


# ---------------------------------------------------------------------------
# Helpers: config and paths
# ---------------------------------------------------------------------------


def _load_effective_config(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {
        "paths.scenarios": _absolute(getattr(args, "scenarios", None)),
        "paths.comparator_profile": _absolute(getattr(args, "comparator_profile", None)),
        "paths.output_root": _absolute(getattr(args, "output_root", None)),
        "paths.goldens_root": _absolute(getattr(args, "goldens_root", None)),
        "paths.legacy_runs_root": _absolute(getattr(args, "legacy_runs_root", None)),
        "gate.retry_once": getattr(args, "retry_once", None),
        "gate.emit_github_annotations": getattr(args, "emit_github_annotations", None),
        "runner.entrypoint": getattr(args, "runner", None),
        "logging.level": getattr(args, "log_level", None),
    }
    gate_mode = getattr(args, "gate_mode", None)
    if gate_mode is not None:
        overrides["gate.mode"] = normalize_gate_mode(gate_mode).value

    try:
        loaded = load_config(args.config_path, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc
    return dict(loaded)


@contextmanager
def _logging_session(
    config: Mapping[str, object], command: str, *, verbose: bool
) -> Iterator[None]:
    log_dir = _config_str(config, "logging", "log_dir")
    handle = setup_structured_logging(
        LoggingConfig(
            run_id=f"cli-{command}-{epoch_ms()}",
            log_dir=log_dir or None,
            level=_config_str(config, "logging", "level") or "INFO",
            log_to_stderr=verbose,
        )
    )
    try:
        yield
    finally:
        shutdown_logging(handle)


def _config_value(config: Mapping[str, object], section: str, key: str) -> object:
    block = config.get(section)
    if not isinstance(block, Mapping):
        return None
    return block.get(key)


def _config_str(config: Mapping[str, object], section: str, key: str) -> str:
    value = _config_value(config, section, key)
    return value.strip() if isinstance(value, str) else ""


def _config_path(config: Mapping[str, object], key: str) -> Path:
    value = _config_str(config, "paths", key)
    if not value:
        raise CLIError(f"missing config path: paths.{key}", exit_code=2)
    return Path(value)


def _output_root(config: Mapping[str, object]) -> Path:
    return _config_path(config, "output_root")


def _legacy_runs_root(config: Mapping[str, object]) -> Path:
    value = _config_str(config, "paths", "legacy_runs_root")
    return Path(value) if value else _output_root(config)


def _workspace_path(args: argparse.Namespace) -> str | None:
    raw = getattr(args, "workspace_path", None)
    return str(Path(raw).expanduser().resolve()) if raw else None


def _absolute(value: str | None) -> str | None:
    if not value:
        return None
    return str(Path(value).expanduser().resolve())


__all__ = ["CLIError", "build_parser", "run_cli"]
