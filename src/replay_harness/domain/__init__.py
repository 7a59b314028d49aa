"""Domain model exports for replay-harness."""

from replay_harness.domain.errors import (
    ArtifactResolutionError,
    ProfileMismatchError,
    ReplayHarnessError,
    SchemaValidationError,
)
from replay_harness.domain.models import (
    EXPLAINABILITY_TAXONOMY_ORDER,
    OUTCOME_EVENT_TYPE,
    AuthOutcome,
    AuthorizationResult,
    ComparisonReport,
    ComparisonSummary,
    ConfidenceBand,
    DriftEvidence,
    DriftFinding,
    DriftRemediation,
    DriftSeverity,
    ExplainabilityCategory,
    ExplainabilityGroup,
    ExplainabilityRollup,
    OperatorBucket,
    ProfileArtifacts,
    ScenarioArtifact,
    ScenarioComparison,
    TraceEvent,
)

__all__ = [
    "EXPLAINABILITY_TAXONOMY_ORDER",
    "OUTCOME_EVENT_TYPE",
    "ArtifactResolutionError",
    "AuthOutcome",
    "AuthorizationResult",
    "ComparisonReport",
    "ComparisonSummary",
    "ConfidenceBand",
    "DriftEvidence",
    "DriftFinding",
    "DriftRemediation",
    "DriftSeverity",
    "ExplainabilityCategory",
    "ExplainabilityGroup",
    "ExplainabilityRollup",
    "OperatorBucket",
    "ProfileArtifacts",
    "ProfileMismatchError",
    "ReplayHarnessError",
    "SchemaValidationError",
    "ScenarioArtifact",
    "ScenarioComparison",
    "TraceEvent",
]
