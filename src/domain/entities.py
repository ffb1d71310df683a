from datetime import UTC, datetime
from typing import Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
BillingType = Literal["free", "monthly", "yearly", "lifetime"]
SubscriptionStatus = Literal["active", "cancelled", "expired"]
AuditType = Literal["manual", "automatic"]
Priority = Literal["high", "medium", "low"]


def utcnow() -> datetime:
    return datetime.now(UTC)


# --- Accounts & Billing ---


class Account(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    created_at: datetime = Field(default_factory=utcnow)


class PlanLimits(BaseModel):
    audits_per_month: int = 3
    pdf_exports: int = 0
    history_days: int = 7


class Plan(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    billing_type: BillingType = "free"
    price: float = 0.0
    currency: str = "USD"
    feature_flags: dict[str, bool] = Field(default_factory=dict)
    limits: PlanLimits = Field(default_factory=PlanLimits)


class Subscription(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    plan: Plan
    status: SubscriptionStatus = "active"
    gateway: str | None = None
    gateway_subscription_id: str | None = None
    started_at: datetime = Field(default_factory=utcnow)
    renews_at: datetime | None = None
    expires_at: datetime | None = None


class FreeAuditGrant(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    grant_month: str  # YYYY-MM-01
    granted_by: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


# --- Audits ---


class Recommendation(BaseModel):
    priority: Priority
    category: str
    title: str
    description: str
    is_pro: bool = Field(default=False, alias="isPro")

    model_config = {"populate_by_name": True}

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ScoreBreakdown(BaseModel):
    overall: int = 0
    engagement: int = 0
    consistency: int = 0
    readiness: int = 0


class Audit(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    page_name: str
    page_url: str | None = None
    audit_type: AuditType = "manual"
    input_data: dict[str, Any] = Field(default_factory=dict)
    score_total: int = 0
    score_breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    recommendations: list[Recommendation] = Field(default_factory=list)
    is_pro_unlocked: bool = False
    request_key: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class AuditMetrics(BaseModel):
    audit_id: UUID
    computed_metrics: dict[str, Any] | None = None
    raw_metrics: dict[str, Any] | None = None
    data_availability: dict[str, bool] | None = None
    ai_insights: dict[str, Any] | None = None
    demographics: dict[str, Any] | None = None


# --- Sharing ---


class ShareRecord(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    audit_id: UUID
    is_public: bool = False
    share_slug: str | None = None
    views_count: int = 0
    pdf_url: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
