from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from src.components.billing import PaymentEventType
from src.components.metrics import RawPageInputs
from src.domain.entities import AuditType, SubscriptionStatus


# --- Audits ---
class PageInputsModel(BaseModel):
    """Raw page inputs as entered or imported. Every field is optional."""

    followers: int | None = Field(default=None, ge=0)
    likes: int | None = Field(default=None, ge=0)
    comments: int | None = Field(default=None, ge=0)
    shares: int | None = Field(default=None, ge=0)
    posts_analyzed: int | None = Field(default=None, ge=0)
    posts_per_week: float | None = Field(default=None, ge=0)
    has_profile_photo: bool | None = None
    has_cover_photo: bool | None = None
    has_description: bool | None = None
    has_contact_info: bool | None = None
    has_call_to_action: bool | None = None
    top_post_type: str | None = None
    impressions: int | None = Field(default=None, ge=0)
    reach: int | None = Field(default=None, ge=0)

    def to_raw(self) -> RawPageInputs:
        return RawPageInputs(**self.model_dump())


class RunAuditRequest(BaseModel):
    page_name: str = Field(..., min_length=1, max_length=200)
    page_url: str | None = None
    audit_type: AuditType = "manual"
    inputs: PageInputsModel = Field(default_factory=PageInputsModel)
    ai_insights: dict[str, Any] | None = None
    demographics: dict[str, Any] | None = None


class UsageResponse(BaseModel):
    used: int
    limit: int | None = None
    remaining: int | None = None
    period_start: str


class RunAuditResponse(BaseModel):
    id: UUID
    score_total: int
    score_breakdown: dict[str, int]
    is_pro_unlocked: bool
    created: bool
    usage: UsageResponse


class AuditSummaryResponse(BaseModel):
    id: UUID
    page_name: str
    audit_type: str
    score_total: int
    is_pro_unlocked: bool
    created_at: datetime


class CompareResponse(BaseModel):
    base_id: UUID
    other_id: UUID
    deltas: dict[str, int]


# --- Sharing ---
class ShareResponse(BaseModel):
    share_url: str
    share_slug: str


class SuccessResponse(BaseModel):
    success: bool


# --- Billing / Admin ---
class PaymentEventRequest(BaseModel):
    event_type: PaymentEventType
    gateway: str = Field(..., min_length=1)
    gateway_subscription_id: str | None = None
    account_id: UUID | None = None
    plan_id: UUID | None = None
    status: SubscriptionStatus | None = None
    renews_at: datetime | None = None


class PaymentEventResponse(BaseModel):
    applied: bool
    subscription_id: UUID | None = None
    status: str | None = None
    detail: str | None = None


class GrantRequest(BaseModel):
    account_id: UUID
    month: str | None = Field(default=None, description="YYYY-MM or YYYY-MM-DD; defaults to current")


class GrantResponse(BaseModel):
    account_id: UUID
    grant_month: str
    created: bool
