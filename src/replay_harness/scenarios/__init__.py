"""Scenario schema, suite loading, and selection."""

from replay_harness.scenarios.loader import load_scenario_suite, read_scenario_document
from replay_harness.scenarios.schema import (
    CheckSpec,
    Err,
    NormalizationConfig,
    Ok,
    Scenario,
    ScenarioStep,
    ScenarioSuite,
    ScenarioValidationResult,
    compute_scenario_digest,
    normalize_scenario,
    parse_scenario_suite,
    validate_scenario,
)
from replay_harness.scenarios.selection import SelectionError, select_scenarios

__all__ = [
    "CheckSpec",
    "Err",
    "NormalizationConfig",
    "Ok",
    "Scenario",
    "ScenarioStep",
    "ScenarioSuite",
    "ScenarioValidationResult",
    "SelectionError",
    "compute_scenario_digest",
    "load_scenario_suite",
    "normalize_scenario",
    "parse_scenario_suite",
    "read_scenario_document",
    "select_scenarios",
    "validate_scenario",
]
