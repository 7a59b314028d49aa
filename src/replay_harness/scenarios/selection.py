"""Scenario selection by id, tag, and deterministic shard."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from replay_harness.scenarios.schema import Scenario


class SelectionError(ValueError):
    """Raised for invalid shard arguments."""


def filter_by_ids(scenarios: Sequence[Scenario], ids: Iterable[str] | None) -> tuple[Scenario, ...]:
    wanted = {item.strip().upper() for item in ids or () if item.strip()}
    if not wanted:
        return tuple(scenarios)
    return tuple(scenario for scenario in scenarios if scenario.scenario_id in wanted)


def filter_by_tags(scenarios: Sequence[Scenario], tags: Iterable[str] | None) -> tuple[Scenario, ...]:
    """Keep scenarios carrying at least one of ``tags`` (case-insensitive)."""

    wanted = {item.strip().lower() for item in tags or () if item.strip()}
    if not wanted:
        return tuple(scenarios)
    return tuple(
        scenario
        for scenario in scenarios
        if wanted.intersection(tag.lower() for tag in scenario.tags)
    )


def shard_scenarios(
    scenarios: Sequence[Scenario],
    shard_index: int | None,
    shard_count: int | None,
) -> tuple[Scenario, ...]:
    """
    Return the ``shard_index``-th of ``shard_count`` shards.

    Scenarios are ordered by id before slicing so every shard is stable across
    suite reorderings. Without both arguments the input is returned unchanged.
    """

    if shard_index is None or shard_count is None:
        return tuple(scenarios)
    if shard_count <= 0 or shard_index < 0 or shard_index >= shard_count:
        raise SelectionError(
            f"Invalid shard arguments: shard-index={shard_index}, shard-count={shard_count}."
        )
    ordered = sorted(scenarios, key=lambda scenario: scenario.scenario_id)
    return tuple(
        scenario for position, scenario in enumerate(ordered) if position % shard_count == shard_index
    )


def select_scenarios(
    scenarios: Sequence[Scenario],
    *,
    ids: Iterable[str] | None = None,
    tags: Iterable[str] | None = None,
    shard_index: int | None = None,
    shard_count: int | None = None,
) -> tuple[Scenario, ...]:
    by_id = filter_by_ids(scenarios, ids)
    by_tag = filter_by_tags(by_id, tags)
    return shard_scenarios(by_tag, shard_index, shard_count)


__all__ = [
    "SelectionError",
    "filter_by_ids",
    "filter_by_tags",
    "select_scenarios",
    "shard_scenarios",
]
