"""
replay-harness — injected scenario runner boundary

File: src/replay_harness/capture/runner.py
Last updated: 2026-10-18

Purpose
- Define the ``ScenarioRunner`` protocol the orchestrator drives, and resolve a
  concrete runner from a ``package.module:attr`` entrypoint string.

Functional requirements
- Runners are async callables ``(scenario, context) -> Sequence[TraceEvent | Mapping]``.
- Mapping rows are validated into ``TraceEvent`` before normalization.
- A class entrypoint is instantiated with no arguments.
"""

from __future__ import annotations

import importlib
import inspect
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Final, Protocol, runtime_checkable

from replay_harness.domain.models import TraceEvent
from replay_harness.scenarios.schema import Scenario

ENTRYPOINT_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_][\w.]*:[A-Za-z_][\w.]*$")


@dataclass(frozen=True, slots=True)
class RunnerContext:
    profile: str
    run_id: str


@runtime_checkable
class ScenarioRunner(Protocol):
    async def __call__(
        self, scenario: Scenario, context: RunnerContext
    ) -> Sequence[TraceEvent | Mapping[str, object]]: ...


class RunnerLoadError(ValueError):
    """Raised when a runner entrypoint cannot be imported or is not callable."""


def load_runner(entrypoint: str) -> ScenarioRunner:
    """Import ``module:attr`` and return an async scenario runner."""

    text = entrypoint.strip()
    if not ENTRYPOINT_PATTERN.fullmatch(text):
        raise RunnerLoadError(
            f"runner entrypoint must look like 'package.module:attr', got {entrypoint!r}"
        )
    module_name, _, attr_path = text.partition(":")
    try:
        target: object = importlib.import_module(module_name)
    except ImportError as exc:
        raise RunnerLoadError(f"unable to import runner module {module_name!r}: {exc}") from exc

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise RunnerLoadError(f"runner entrypoint {text!r} has no attribute {part!r}") from exc

    if inspect.isclass(target):
        target = target()
    if not callable(target):
        raise RunnerLoadError(f"runner entrypoint {text!r} is not callable")
    return target  # type: ignore[return-value]


def coerce_trace_events(
    rows: Sequence[TraceEvent | Mapping[str, object]], *, scenario_id: str
) -> tuple[TraceEvent, ...]:
    """Validate runner output into ``TraceEvent`` records."""

    if isinstance(rows, (str, bytes)) or not isinstance(rows, Sequence):
        raise TypeError(
            f"runner for {scenario_id} must return a sequence of events, got {type(rows).__name__}"
        )
    events: list[TraceEvent] = []
    for index, row in enumerate(rows):
        if isinstance(row, TraceEvent):
            events.append(row)
        else:
            events.append(TraceEvent.from_mapping(row, f"{scenario_id}.events[{index}]"))
    return tuple(events)


__all__ = [
    "ENTRYPOINT_PATTERN",
    "RunnerContext",
    "RunnerLoadError",
    "ScenarioRunner",
    "coerce_trace_events",
    "load_runner",
]
