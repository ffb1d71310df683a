"""
Metrics component models.

Raw page counters in, scored result out. All models are immutable so a
computed score can be stored and compared later without defensive copies.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from src.domain.entities import Recommendation

# --- Inputs ---

READINESS_CHECKS: tuple[str, ...] = (
    "has_profile_photo",
    "has_cover_photo",
    "has_description",
    "has_contact_info",
    "has_call_to_action",
)


@dataclass(frozen=True)
class RawPageInputs:
    """
    Raw counters for one page over the analysed window.

    Every field is optional; ``None`` means the value was not available from
    the data source and the dependent sub-score degrades to 0.
    """

    followers: int | None = None
    likes: int | None = None
    comments: int | None = None
    shares: int | None = None
    posts_analyzed: int | None = None
    posts_per_week: float | None = None
    has_profile_photo: bool | None = None
    has_cover_photo: bool | None = None
    has_description: bool | None = None
    has_contact_info: bool | None = None
    has_call_to_action: bool | None = None
    top_post_type: str | None = None
    impressions: int | None = None
    reach: int | None = None

    def is_empty(self) -> bool:
        """True when no input at all was supplied."""
        return all(getattr(self, f.name) is None for f in fields(self))

    @property
    def total_engagements(self) -> int:
        return (self.likes or 0) + (self.comments or 0) + (self.shares or 0)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> RawPageInputs:
        """Build inputs from a dict, ignoring unknown keys."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ComputeScoreInput:
    """Input for scoring one audit run."""

    raw: RawPageInputs | None = None


# --- Outputs ---


@dataclass(frozen=True)
class Breakdown:
    """Named sub-scores, each in [0, 100]."""

    engagement: int = 0
    consistency: int = 0
    readiness: int = 0


@dataclass(frozen=True)
class AuditScore:
    """Result of scoring one audit run."""

    overall: int
    breakdown: Breakdown
    recommendations: tuple[Recommendation, ...] = ()
    computed_metrics: dict[str, Any] = field(default_factory=dict)

    def breakdown_dict(self) -> dict[str, int]:
        """Breakdown in the stored ``score_breakdown`` shape (includes overall)."""
        return {
            "overall": self.overall,
            "engagement": self.breakdown.engagement,
            "consistency": self.breakdown.consistency,
            "readiness": self.breakdown.readiness,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall,
            "breakdown": self.breakdown_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "computed_metrics": dict(self.computed_metrics),
        }


# --- Configuration ---


@dataclass(frozen=True)
class ScoringConfig:
    """Scoring configuration from rules."""

    engagement_weight: float = 0.40
    consistency_weight: float = 0.35
    readiness_weight: float = 0.25
    engagement_threshold: int = 50
    consistency_threshold: int = 60
    readiness_threshold: int = 80
    readiness_item_weight: int = 20
