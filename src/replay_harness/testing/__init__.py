"""Deterministic test doubles for the capture pipeline."""

from replay_harness.testing.simulator import (
    SimulatedScenarioRunner,
    resolve_selected_surface,
    simulate_scenario_events,
)

__all__ = ["SimulatedScenarioRunner", "resolve_selected_surface", "simulate_scenario_events"]
