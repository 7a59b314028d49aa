"""Golden baseline store, promotion, and artifact resolution."""

from replay_harness.baselines.golden_store import (
    GoldenBaselineLocation,
    GoldenBaselineRecord,
    GoldenBaselineStore,
    read_profile_artifacts,
    sanitize_baseline_id,
)
from replay_harness.baselines.promotion import (
    PromotionResult,
    PromotionSummary,
    promote_baseline,
    summarize_promotion,
)
from replay_harness.baselines.resolver import (
    ArtifactSource,
    ResolutionRequest,
    ResolvedArtifact,
    require_replay_artifact,
    resolve_replay_artifact,
)

__all__ = [
    "ArtifactSource",
    "GoldenBaselineLocation",
    "GoldenBaselineRecord",
    "GoldenBaselineStore",
    "PromotionResult",
    "PromotionSummary",
    "ResolutionRequest",
    "ResolvedArtifact",
    "promote_baseline",
    "read_profile_artifacts",
    "require_replay_artifact",
    "resolve_replay_artifact",
    "sanitize_baseline_id",
    "summarize_promotion",
]
