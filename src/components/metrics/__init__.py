"""
Metrics component - page health scoring.

Public API for turning raw page counters into scores and recommendations.
"""

from .component import (
    cadence_from_post_times,
    compute,
    compute_metrics,
    engagement_rate,
    generate_recommendations,
    load_config_from_rules,
    run,
    score_consistency,
    score_engagement,
    score_readiness,
)
from .models import (
    READINESS_CHECKS,
    AuditScore,
    Breakdown,
    ComputeScoreInput,
    RawPageInputs,
    ScoringConfig,
)

__all__ = [
    # Functions
    "compute",
    "compute_metrics",
    "cadence_from_post_times",
    "engagement_rate",
    "generate_recommendations",
    "load_config_from_rules",
    "run",
    "score_consistency",
    "score_engagement",
    "score_readiness",
    # Models
    "AuditScore",
    "Breakdown",
    "ComputeScoreInput",
    "RawPageInputs",
    "ScoringConfig",
    "READINESS_CHECKS",
]
