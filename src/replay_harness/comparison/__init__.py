"""Comparator: profile, structural checks, enrichment, and report assembly."""

from replay_harness.comparison.checks import CHECK_HANDLERS, run_check
from replay_harness.comparison.comparator import (
    PRESENCE_CHECK_ID,
    TIMEOUT_CHECK_ID,
    compare_replay_runs,
    compare_scenario,
)
from replay_harness.comparison.enrichment import enrich_drift
from replay_harness.comparison.profile import (
    ComparatorProfile,
    ComparatorProfileError,
    load_comparator_profile,
)

__all__ = [
    "CHECK_HANDLERS",
    "PRESENCE_CHECK_ID",
    "TIMEOUT_CHECK_ID",
    "ComparatorProfile",
    "ComparatorProfileError",
    "compare_replay_runs",
    "compare_scenario",
    "enrich_drift",
    "load_comparator_profile",
    "run_check",
]
