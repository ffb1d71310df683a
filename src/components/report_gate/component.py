"""
Report gate component - the free/Pro boundary for audit reports.

``has_effective_access`` is the single decision point; report loading and
share creation both go through it.

Invariants:
- Free view shows at most N non-Pro recommendations, in stored order
- Free view omits Pro-only keys entirely
- Pro view (paid, granted or sticky-unlocked) has no locked sections
- An audit owned by another account is reported as not found
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any
from uuid import UUID

from src.components.entitlements import EntitlementSnapshot
from src.domain.entities import Audit, AuditMetrics, Recommendation, ShareRecord
from src.domain.errors import NotFoundError
from src.rules.models import Rules

from .models import GateConfig, LoadReportInput, ReportPayload
from .ports import AuditReaderPort, EntitlementPort, ShareReaderPort

logger = logging.getLogger(__name__)


# --- Pure Functions ---


def has_effective_access(audit: Audit, entitlement: EntitlementSnapshot) -> bool:
    """Pro entitlement or a sticky per-audit unlock."""
    return entitlement.is_pro or audit.is_pro_unlocked


def free_recommendations(recommendations: Sequence[Recommendation], limit: int) -> list[Recommendation]:
    """First ``limit`` non-Pro recommendations, original order."""
    return [r for r in recommendations if not r.is_pro][:limit]


def build_preview(computed_metrics: dict[str, Any] | None, fields: Iterable[str]) -> dict[str, Any]:
    """Allow-listed subset of the computed metrics; None where not computed."""
    metrics = computed_metrics or {}
    return {name: metrics.get(name) for name in fields}


def base_fields(audit: Audit) -> dict[str, Any]:
    return {
        "id": str(audit.id),
        "page_name": audit.page_name,
        "page_url": audit.page_url,
        "audit_type": audit.audit_type,
        "score_total": audit.score_total,
        "score_breakdown": audit.score_breakdown.model_dump(),
        "is_pro_unlocked": audit.is_pro_unlocked,
        "created_at": audit.created_at.isoformat(),
    }


def share_fields(share: ShareRecord | None) -> dict[str, Any] | None:
    if share is None:
        return None
    return {
        "id": str(share.id),
        "is_public": share.is_public,
        "share_slug": share.share_slug,
        "pdf_url": share.pdf_url,
        "views_count": share.views_count,
    }


def full_payload(
    audit: Audit,
    metrics: AuditMetrics | None = None,
    share: ShareRecord | None = None,
) -> ReportPayload:
    """Unrestricted report, as seen by Pro callers and public share viewers."""
    data = base_fields(audit)
    data.update(
        {
            "recommendations": [r.to_dict() for r in audit.recommendations],
            "input_data": dict(audit.input_data),
            "detailed_metrics": metrics.computed_metrics if metrics else None,
            "raw_metrics": metrics.raw_metrics if metrics else None,
            "data_availability": metrics.data_availability if metrics else None,
            "ai_insights": metrics.ai_insights if metrics else None,
            "demographics": metrics.demographics if metrics else None,
            "report": share_fields(share),
        }
    )
    return ReportPayload(has_pro_access=True, data=data, locked_sections=())


def free_payload(
    audit: Audit,
    metrics: AuditMetrics | None = None,
    config: GateConfig | None = None,
) -> ReportPayload:
    config = config or GateConfig()
    computed = metrics.computed_metrics if metrics else None
    data = base_fields(audit)
    data.update(
        {
            "recommendations": [
                r.to_dict()
                for r in free_recommendations(audit.recommendations, config.free_recommendation_limit)
            ],
            "input_summary": {
                "followers": audit.input_data.get("followers"),
                "postsAnalyzed": audit.input_data.get("posts_analyzed"),
            },
            "detailed_metrics_preview": build_preview(computed, config.preview_fields),
        }
    )
    return ReportPayload(
        has_pro_access=False,
        data=data,
        locked_sections=tuple(config.locked_sections),
    )


def gate(
    audit: Audit,
    entitlement: EntitlementSnapshot,
    *,
    metrics: AuditMetrics | None = None,
    share: ShareRecord | None = None,
    config: GateConfig | None = None,
) -> ReportPayload:
    """Caller-visible report for this audit under this entitlement."""
    if has_effective_access(audit, entitlement):
        return full_payload(audit, metrics, share)
    return free_payload(audit, metrics, config)


# --- Service ---


class ReportAccessService:
    """Loads stored audits and gates them for their owner."""

    def __init__(
        self,
        audits: AuditReaderPort,
        shares: ShareReaderPort,
        entitlements: EntitlementPort,
        config: GateConfig | None = None,
    ) -> None:
        self._audits = audits
        self._shares = shares
        self._entitlements = entitlements
        self._config = config or GateConfig()

    def get_owned_audit(self, audit_id: UUID, account_id: UUID) -> Audit:
        """Audit owned by the account; any other account's audit is not found."""
        audit = self._audits.get_by_id(audit_id)
        if audit is None or audit.account_id != account_id:
            raise NotFoundError("Audit")
        return audit

    def load_report(self, audit_id: UUID, account_id: UUID) -> ReportPayload:
        audit = self.get_owned_audit(audit_id, account_id)
        entitlement = self._entitlements.resolve(account_id)

        payload = gate(
            audit,
            entitlement,
            metrics=self._audits.get_metrics(audit_id),
            share=self._shares.get_by_audit(audit_id),
            config=self._config,
        )
        logger.info(
            "Report served audit=%s account=%s pro=%s",
            audit_id,
            account_id,
            payload.has_pro_access,
        )
        return payload


def run(inp: LoadReportInput, service: ReportAccessService) -> ReportPayload:
    """Load a gated report for its owner."""
    return service.load_report(inp.audit_id, inp.account_id)


def load_config_from_rules(rules: Rules) -> GateConfig:
    reports = rules.reports
    return GateConfig(
        free_recommendation_limit=reports.free_recommendation_limit,
        preview_fields=tuple(reports.preview_fields),
        locked_sections=tuple(reports.locked_sections),
    )
