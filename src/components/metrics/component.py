"""
Metrics component - page health scoring.

Pure functions that turn raw page counters into an overall score, a
sub-score breakdown and an ordered recommendation list.

Invariants:
- Every score is an integer clamped to [0, 100]
- Zero or missing followers/posts never divide; the sub-score is 0
- Same inputs always produce the same output (no clock, no randomness)
- Recommendations are generated for every tier and tagged ``isPro``;
  trimming for free callers happens at read time, not here
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from src.domain.entities import Recommendation
from src.rules.models import Rules

from .models import (
    READINESS_CHECKS,
    AuditScore,
    Breakdown,
    ComputeScoreInput,
    RawPageInputs,
    ScoringConfig,
)

# Engagement-rate tiers (percent of followers engaging per post) -> sub-score
ENGAGEMENT_TIERS: tuple[tuple[float, int], ...] = (
    (5.0, 100),
    (3.0, 85),
    (1.0, 65),
    (0.5, 45),
)

# Posts-per-week tiers -> sub-score
CONSISTENCY_TIERS: tuple[tuple[float, int], ...] = (
    (7.0, 100),
    (5.0, 85),
    (3.0, 70),
    (1.0, 50),
)

READINESS_LABELS: dict[str, str] = {
    "has_profile_photo": "a profile photo",
    "has_cover_photo": "a cover photo",
    "has_description": "a page description",
    "has_contact_info": "contact information",
    "has_call_to_action": "a call-to-action button",
}


# --- Helpers ---


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


# --- Sub-scores ---


def engagement_rate(raw: RawPageInputs) -> float:
    """
    Average engagements per post as a percentage of followers.

    Returns 0.0 when followers or posts are missing or zero.
    """
    if not raw.followers or not raw.posts_analyzed:
        return 0.0
    if raw.followers <= 0 or raw.posts_analyzed <= 0:
        return 0.0
    per_post = raw.total_engagements / raw.posts_analyzed
    return per_post / raw.followers * 100


def score_engagement(raw: RawPageInputs) -> int:
    if not raw.followers or not raw.posts_analyzed:
        return 0
    rate = engagement_rate(raw)
    for floor, score in ENGAGEMENT_TIERS:
        if rate >= floor:
            return score
    return clamp_score(max(20.0, rate * 20))


def score_consistency(raw: RawPageInputs) -> int:
    """Posts per week against the cadence bands. An unknown post count does not zero it."""
    if raw.posts_analyzed == 0 or raw.posts_per_week is None:
        return 0
    cadence = raw.posts_per_week
    if cadence <= 0:
        return 0
    for floor, score in CONSISTENCY_TIERS:
        if cadence >= floor:
            return score
    return 20


def score_readiness(raw: RawPageInputs, item_weight: int = 20) -> int:
    present = sum(1 for check in READINESS_CHECKS if getattr(raw, check) is True)
    return clamp_score(present * item_weight)


def overall_score(breakdown: Breakdown, config: ScoringConfig) -> int:
    weighted = (
        breakdown.engagement * config.engagement_weight
        + breakdown.consistency * config.consistency_weight
        + breakdown.readiness * config.readiness_weight
    )
    return clamp_score(weighted)


def cadence_from_post_times(created_times: Sequence[datetime]) -> float | None:
    """
    Posts per week derived from post timestamps.

    Uses the span between the oldest and newest post (minimum one day),
    rounded to one decimal. Fewer than two posts gives no cadence.
    """
    if len(created_times) < 2:
        return None
    oldest, newest = min(created_times), max(created_times)
    days = max(1.0, (newest - oldest).total_seconds() / 86400)
    return round_half_up(len(created_times) / days * 7 * 10) / 10


# --- Computed metrics ---


def compute_metrics(raw: RawPageInputs) -> dict[str, Any]:
    posts = raw.posts_analyzed or 0
    total = raw.total_engagements
    return {
        "followers": raw.followers or 0,
        "totalEngagements": total,
        "totalLikes": raw.likes or 0,
        "totalComments": raw.comments or 0,
        "totalShares": raw.shares or 0,
        "postsCount": posts,
        "postsPerWeek": raw.posts_per_week or 0.0,
        "avgEngagementPerPost": round_half_up(total / posts * 10) / 10 if posts > 0 else 0.0,
        "engagementRate": round_half_up(engagement_rate(raw) * 100) / 100,
        "topPostType": raw.top_post_type,
        "impressions": raw.impressions,
        "reach": raw.reach,
    }


# --- Recommendations ---


def generate_recommendations(
    breakdown: Breakdown,
    raw: RawPageInputs,
    config: ScoringConfig,
) -> list[Recommendation]:
    """Ordered recommendations: free advice first, Pro-only advice after."""
    recommendations: list[Recommendation] = []

    if breakdown.engagement < config.engagement_threshold:
        recommendations.append(
            Recommendation(
                priority="high",
                category="engagement",
                title="Improve Post Engagement",
                description=(
                    "Your engagement rate is below average. "
                    "Focus on creating more interactive content."
                ),
                is_pro=False,
            )
        )

    if breakdown.consistency < config.consistency_threshold:
        recommendations.append(
            Recommendation(
                priority="high",
                category="consistency",
                title="Increase Posting Frequency",
                description=(
                    "Post more regularly to maintain audience interest. "
                    "Aim for 3-5 posts per week."
                ),
                is_pro=False,
            )
        )

    if breakdown.readiness < config.readiness_threshold:
        missing = [
            READINESS_LABELS[check]
            for check in READINESS_CHECKS
            if getattr(raw, check) is not True
        ]
        recommendations.append(
            Recommendation(
                priority="medium",
                category="optimization",
                title="Complete Page Profile",
                description="Add " + ", ".join(missing) + " to improve page discoverability.",
                is_pro=False,
            )
        )

    # Pro-only advice depends on post-level and insights data
    if raw.top_post_type:
        recommendations.append(
            Recommendation(
                priority="medium",
                category="content",
                title=f"Focus on {raw.top_post_type} Content",
                description=(
                    f"Your {raw.top_post_type} posts drive the most engagement. "
                    "Plan more of them into your schedule."
                ),
                is_pro=True,
            )
        )

    if raw.posts_analyzed:
        recommendations.append(
            Recommendation(
                priority="medium",
                category="timing",
                title="Optimize Posting Times",
                description=(
                    "Schedule posts for the hours your audience is most active, "
                    "based on your page insights."
                ),
                is_pro=True,
            )
        )

    if raw.impressions is not None or raw.reach is not None:
        reach = raw.reach if raw.reach is not None else raw.impressions or 0
        share = f" Your posts reach {reach:,} people." if reach else ""
        recommendations.append(
            Recommendation(
                priority="low",
                category="reach",
                title="Grow Organic Reach",
                description="Boost reach with shareable formats and timely topics." + share,
                is_pro=True,
            )
        )

    return recommendations


# --- Entry points ---


def compute(raw_inputs: RawPageInputs | None, config: ScoringConfig | None = None) -> AuditScore:
    """
    Score one audit run.

    Entirely absent inputs produce a zero score with no recommendations.
    """
    config = config or ScoringConfig()

    if raw_inputs is None or raw_inputs.is_empty():
        return AuditScore(
            overall=0,
            breakdown=Breakdown(),
            recommendations=(),
            computed_metrics=compute_metrics(RawPageInputs()),
        )

    breakdown = Breakdown(
        engagement=score_engagement(raw_inputs),
        consistency=score_consistency(raw_inputs),
        readiness=score_readiness(raw_inputs, config.readiness_item_weight),
    )

    return AuditScore(
        overall=overall_score(breakdown, config),
        breakdown=breakdown,
        recommendations=tuple(generate_recommendations(breakdown, raw_inputs, config)),
        computed_metrics=compute_metrics(raw_inputs),
    )


def run(inp: ComputeScoreInput, config: ScoringConfig | None = None) -> AuditScore:
    """Main component entry point."""
    return compute(inp.raw, config)


def load_config_from_rules(rules: Rules) -> ScoringConfig:
    scoring = rules.scoring
    return ScoringConfig(
        engagement_weight=scoring.weights.engagement,
        consistency_weight=scoring.weights.consistency,
        readiness_weight=scoring.weights.readiness,
        engagement_threshold=scoring.recommend_below.engagement,
        consistency_threshold=scoring.recommend_below.consistency,
        readiness_threshold=scoring.recommend_below.readiness,
        readiness_item_weight=scoring.readiness_item_weight,
    )
