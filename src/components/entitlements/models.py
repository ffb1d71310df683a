"""
Entitlements component models.

An EntitlementSnapshot is derived per request from the account's active
subscription, any free grant for the current month and the month's usage.
It is never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from src.components.usage import UsageSummary
from src.domain.entities import PlanLimits

# Public feature name -> plan feature_flags key
FEATURE_FLAGS: dict[str, str] = {
    "canAutoAudit": "auto_audit",
    "canExportPdf": "pdf_export",
    "canShareReport": "share_report",
    "canViewFullMetrics": "full_metrics",
    "canViewDemographics": "demographics",
    "canViewAIInsights": "ai_insights",
}


@dataclass(frozen=True)
class EntitlementConfig:
    """Entitlement configuration from rules."""

    default_audits_per_month: int = 3
    default_pdf_exports: int = 0
    default_history_days: int = 7
    unlimited_sentinel: int = 999999

    def default_limits(self) -> PlanLimits:
        return PlanLimits(
            audits_per_month=self.default_audits_per_month,
            pdf_exports=self.default_pdf_exports,
            history_days=self.default_history_days,
        )


@dataclass(frozen=True)
class EntitlementSnapshot:
    """Resolved capabilities and limits for one account, for one request."""

    account_id: UUID
    is_pro: bool
    subscribed: bool
    is_paid_subscriber: bool
    has_free_audit_grant: bool
    plan_name: str
    features: dict[str, bool] = field(default_factory=dict)
    limits: PlanLimits = field(default_factory=PlanLimits)
    usage: UsageSummary = field(default_factory=lambda: UsageSummary(used=0, period_start=""))

    def can(self, feature: str) -> bool:
        return self.features.get(feature, False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "isPro": self.is_pro,
            "subscribed": self.subscribed,
            "isPaidSubscriber": self.is_paid_subscriber,
            "hasFreeAuditGrant": self.has_free_audit_grant,
            "plan": self.plan_name,
            "features": dict(self.features),
            "limits": {
                "auditsPerMonth": self.limits.audits_per_month,
                "pdfExports": self.limits.pdf_exports,
                "historyDays": self.limits.history_days,
            },
            "usage": {
                "used": self.usage.used,
                "limit": self.usage.limit,
                "remaining": self.usage.remaining,
                "periodStart": self.usage.period_start,
            },
        }


@dataclass(frozen=True)
class ResolveInput:
    account_id: UUID
