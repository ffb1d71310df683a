from pydantic import BaseModel, Field, model_validator


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class ScoringWeights(BaseModel):
    engagement: float = 0.40
    consistency: float = 0.35
    readiness: float = 0.25

    @model_validator(mode="after")
    def weights_sum_to_one(self) -> "ScoringWeights":
        total = self.engagement + self.consistency + self.readiness
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"scoring weights must sum to 1.0, got {total}")
        return self


class RecommendationThresholds(BaseModel):
    engagement: int = 50
    consistency: int = 60
    readiness: int = 80


class ScoringRules(BaseModel):
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    recommend_below: RecommendationThresholds = Field(default_factory=RecommendationThresholds)
    readiness_item_weight: int = 20


class PlanRules(BaseModel):
    default_audits_per_month: int = 3
    default_pdf_exports: int = 0
    default_history_days: int = 7
    unlimited_sentinel: int = 999999


class ReportRules(BaseModel):
    free_recommendation_limit: int = 2
    preview_fields: list[str] = Field(default_factory=lambda: ["engagementRate"])
    locked_sections: list[str] = Field(
        default_factory=lambda: [
            "detailed_metrics",
            "all_recommendations",
            "posts_analysis",
            "demographics",
            "ai_insights",
            "pdf_export",
            "share_link",
        ]
    )


class SharingRules(BaseModel):
    base_url: str = "https://pagelyzer.io"
    path_prefix: str = "/r"
    slug_length: int = Field(default=8, ge=4, le=64)
    max_slug_attempts: int = Field(default=5, ge=1)


class UsageRules(BaseModel):
    reference_timezone: str = "UTC"


class OpsRules(BaseModel):
    required_env: list[str] = Field(default_factory=list)


class Rules(BaseModel):
    project: ProjectRules
    scoring: ScoringRules = Field(default_factory=ScoringRules)
    plans: PlanRules = Field(default_factory=PlanRules)
    reports: ReportRules = Field(default_factory=ReportRules)
    sharing: SharingRules = Field(default_factory=SharingRules)
    usage: UsageRules = Field(default_factory=UsageRules)
    ops: OpsRules = Field(default_factory=OpsRules)
