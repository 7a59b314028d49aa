"""
replay-harness — capture and orchestration

File: src/replay_harness/capture/orchestrator.py
Last updated: 2026-10-18

Purpose
- Drive the injected scenario runner for each scenario under each profile and
  persist raw JSON-lines traces, normalized bundles, and a run manifest.

What should be included in this file
- ``capture_scenario_artifact`` for a single scenario/profile.
- ``ReplayOrchestrator.run`` (baseline + candidate) and ``ReplayOrchestrator.capture``
  (single profile, used to produce promotion candidates).

Functional requirements
- Scenarios run strictly sequentially in suite order.
- A declared ``timeouts.run_timeout_ms`` bounds the runner call; a timed-out
  capture is recorded with no events and ``timed_out=True``.
- Manifest paths are workspace-relative.

Non-functional requirements
- All filesystem writes go under the configured output root.
- No state is shared between runs beyond the injected runner.
"""

from __future__ import annotations

import logging
import os
import platform
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from replay_harness.capture.normalizer import NormalizationOptions, normalize_trace_events
from replay_harness.capture.runner import RunnerContext, ScenarioRunner, coerce_trace_events
from replay_harness.constants import (
    MANIFEST_FILENAME,
    PROFILE_BASELINE,
    PROFILE_CANDIDATE,
    PROFILE_NAMES,
    normalized_artifact_filename,
    raw_artifact_filename,
)
from replay_harness.domain.models import (
    OUTCOME_EVENT_TYPE,
    ProfileArtifacts,
    ScenarioArtifact,
)
from replay_harness.observability.logging import correlation_scope
from replay_harness.scenarios.schema import Scenario
from replay_harness.utils.clock import epoch_ms, iso_utc, utc_now
from replay_harness.utils.concurrency import RunTimeoutError, run_with_timeout
from replay_harness.utils.fs import atomic_write, write_stable_json
from replay_harness.utils.stable_json import JSONValue, stable_json_line, to_workspace_relative_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunResult:
    output_dir: Path
    manifest: dict[str, JSONValue]
    baseline: ProfileArtifacts
    candidate: ProfileArtifacts


@dataclass(frozen=True, slots=True)
class CaptureResult:
    profile: ProfileArtifacts
    output_file: Path
    raw_output_file: Path


def normalization_options_for(
    scenario: Scenario, workspace_path: str | None
) -> NormalizationOptions:
    """Build normalizer options from the scenario flags; unset flags stay enabled."""

    flags = scenario.normalization
    if flags is None:
        return NormalizationOptions(workspace_path=workspace_path)

    def _flag(value: bool | None) -> bool:
        return True if value is None else value

    return NormalizationOptions(
        workspace_path=workspace_path,
        mask_ids=_flag(flags.mask_ids),
        canonicalize_timestamps=_flag(flags.canonicalize_timestamps),
        canonicalize_paths=_flag(flags.canonicalize_paths),
        strip_nondeterministic_text=_flag(flags.strip_nondeterministic_text),
    )


async def capture_scenario_artifact(
    scenario: Scenario,
    context: RunnerContext,
    runner: ScenarioRunner,
    *,
    workspace_path: str | None = None,
) -> ScenarioArtifact:
    """Run one scenario under ``context.profile`` and normalize its trace."""

    timeout_ms = scenario.run_timeout_ms
    try:
        rows = await run_with_timeout(runner(scenario, context), timeout_ms)
    except RunTimeoutError:
        logger.warning(
            "scenario_capture_timed_out",
            extra={"run_timeout_ms": timeout_ms},
        )
        return ScenarioArtifact(
            scenario_id=scenario.scenario_id,
            profile=context.profile,
            raw_events=(),
            normalized_events=(),
            success=False,
            timed_out=True,
        )

    raw_events = coerce_trace_events(rows, scenario_id=scenario.scenario_id)
    normalized_events = normalize_trace_events(
        raw_events, normalization_options_for(scenario, workspace_path)
    )
    return ScenarioArtifact(
        scenario_id=scenario.scenario_id,
        profile=context.profile,
        raw_events=raw_events,
        normalized_events=normalized_events,
        success=any(event.event_type == OUTCOME_EVENT_TYPE for event in raw_events),
    )


def raw_event_envelopes(run_id: str, artifacts: ProfileArtifacts) -> list[dict[str, JSONValue]]:
    """One ``{run_id, profile, scenario_id, event}`` row per raw event, in capture order."""

    return [
        {
            "run_id": run_id,
            "profile": artifacts.profile,
            "scenario_id": artifact.scenario_id,
            "event": event.to_dict(),
        }
        for artifact in artifacts.scenarios
        for event in artifact.raw_events
    ]


def determinism_env() -> dict[str, JSONValue]:
    return {
        "python_version": platform.python_version(),
        "tz": os.environ.get("TZ") or "UTC",
        "locale": os.environ.get("LC_ALL") or os.environ.get("LANG") or "C.UTF-8",
    }


class ReplayOrchestrator:
    """Runs scenario suites through an injected runner and persists the artifacts."""

    def __init__(
        self,
        output_root: str | Path,
        runner: ScenarioRunner,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._output_root = Path(output_root).expanduser().resolve()
        self._runner = runner
        self._clock = clock

    @property
    def output_root(self) -> Path:
        return self._output_root

    async def run(
        self,
        scenarios: Sequence[Scenario],
        label: str,
        workspace_path: str | None = None,
    ) -> RunResult:
        started = self._clock()
        run_id = f"{label}-{epoch_ms(started)}"
        output_dir = self._output_root / run_id
        output_dir.mkdir(parents=True, exist_ok=True)

        with correlation_scope(run_id=run_id):
            logger.info("replay_run_started", extra={"scenario_count": len(scenarios)})
            baseline = await self._execute_profile(
                PROFILE_BASELINE, scenarios, run_id, workspace_path
            )
            candidate = await self._execute_profile(
                PROFILE_CANDIDATE, scenarios, run_id, workspace_path
            )

            files: dict[str, dict[str, Path]] = {}
            for artifacts in (baseline, candidate):
                raw_file, normalized_file = self._write_profile(output_dir, run_id, artifacts)
                files[artifacts.profile] = {"raw": raw_file, "normalized": normalized_file}

            def rel(path: Path) -> str:
                return to_workspace_relative_path(path, workspace_path)

            manifest: dict[str, JSONValue] = {
                "run_id": run_id,
                "created_at": iso_utc(self._clock()),
                "scenario_count": len(scenarios),
                "output_dir": rel(output_dir),
                "baseline_artifact_file": rel(files[PROFILE_BASELINE]["normalized"]),
                "candidate_artifact_file": rel(files[PROFILE_CANDIDATE]["normalized"]),
                "baseline_raw_artifact_file": rel(files[PROFILE_BASELINE]["raw"]),
                "candidate_raw_artifact_file": rel(files[PROFILE_CANDIDATE]["raw"]),
                "baseline_normalized_artifact_file": rel(files[PROFILE_BASELINE]["normalized"]),
                "candidate_normalized_artifact_file": rel(files[PROFILE_CANDIDATE]["normalized"]),
                "artifact_envelope": {
                    artifacts.profile: {
                        "raw_file": rel(files[artifacts.profile]["raw"]),
                        "normalized_file": rel(files[artifacts.profile]["normalized"]),
                        "scenario_count": len(artifacts.scenarios),
                    }
                    for artifacts in (baseline, candidate)
                },
                "determinism_env": determinism_env(),
            }
            write_stable_json(output_dir / MANIFEST_FILENAME, manifest)
            logger.info("replay_run_completed", extra={"output_dir": output_dir.as_posix()})

        return RunResult(
            output_dir=output_dir,
            manifest=manifest,
            baseline=baseline,
            candidate=candidate,
        )

    async def capture(
        self,
        profile: str,
        scenarios: Sequence[Scenario],
        label: str,
        workspace_path: str | None = None,
    ) -> CaptureResult:
        if profile not in PROFILE_NAMES:
            expected = ", ".join(PROFILE_NAMES)
            raise ValueError(f"unknown profile {profile!r}; expected one of: {expected}")

        run_id = f"{label}-{profile}-{epoch_ms(self._clock())}"
        output_dir = self._output_root / run_id
        output_dir.mkdir(parents=True, exist_ok=True)

        with correlation_scope(run_id=run_id, profile=profile):
            artifacts = await self._execute_profile(profile, scenarios, run_id, workspace_path)
            raw_file, normalized_file = self._write_profile(output_dir, run_id, artifacts)
            logger.info("replay_capture_completed", extra={"output_file": normalized_file.as_posix()})

        return CaptureResult(profile=artifacts, output_file=normalized_file, raw_output_file=raw_file)

    async def _execute_profile(
        self,
        profile: str,
        scenarios: Sequence[Scenario],
        run_id: str,
        workspace_path: str | None,
    ) -> ProfileArtifacts:
        context = RunnerContext(profile=profile, run_id=run_id)
        captured: list[ScenarioArtifact] = []
        for scenario in scenarios:
            with correlation_scope(profile=profile, scenario_id=scenario.scenario_id):
                artifact = await capture_scenario_artifact(
                    scenario, context, self._runner, workspace_path=workspace_path
                )
                logger.debug(
                    "scenario_captured",
                    extra={
                        "event_count": len(artifact.raw_events),
                        "success": artifact.success,
                    },
                )
            captured.append(artifact)
        return ProfileArtifacts(profile=profile, scenarios=tuple(captured))

    def _write_profile(
        self, output_dir: Path, run_id: str, artifacts: ProfileArtifacts
    ) -> tuple[Path, Path]:
        raw_file = output_dir / raw_artifact_filename(artifacts.profile)
        normalized_file = output_dir / normalized_artifact_filename(artifacts.profile)
        rows = [stable_json_line(row) for row in raw_event_envelopes(run_id, artifacts)]
        atomic_write(raw_file, "".join(f"{row}\n" for row in rows))
        write_stable_json(normalized_file, artifacts.to_dict())
        return raw_file, normalized_file


__all__ = [
    "CaptureResult",
    "ReplayOrchestrator",
    "RunResult",
    "capture_scenario_artifact",
    "determinism_env",
    "normalization_options_for",
    "raw_event_envelopes",
]
