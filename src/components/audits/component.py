"""
Audit runner component - creates, lists and compares audits.

Invariants:
- A run is refused with LimitReachedError once the month's counter holds the
  plan limit; the datastore increment decides, not the resolved snapshot
- Score, breakdown and recommendations never change after creation
- Usage is counted once per created audit, including on retried requests
- Audits created under a monthly free grant are created unlocked
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import UUID

from src.components.entitlements import EntitlementSnapshot
from src.components.metrics import AuditScore, RawPageInputs, ScoringConfig, compute
from src.components.report_gate import EntitlementPort
from src.components.usage import UsageAccountant
from src.core.ports.time import TimePort
from src.domain.entities import Audit, AuditMetrics, ScoreBreakdown, utcnow
from src.domain.errors import NotFoundError

from .models import AuditComparison, AuditSummary, RunAuditInput, RunAuditOutput
from .ports import AuditRepoPort

logger = logging.getLogger(__name__)


# --- Pure Functions ---


def data_availability(raw: RawPageInputs) -> dict[str, bool]:
    """Which input groups were present for this run."""
    return {
        "followers": raw.followers is not None,
        "engagement": any(v is not None for v in (raw.likes, raw.comments, raw.shares)),
        "posts": raw.posts_analyzed is not None,
        "cadence": raw.posts_per_week is not None,
        "profile": any(
            v is not None
            for v in (
                raw.has_profile_photo,
                raw.has_cover_photo,
                raw.has_description,
                raw.has_contact_info,
                raw.has_call_to_action,
            )
        ),
        "insights": raw.impressions is not None or raw.reach is not None,
    }


def build_audit(
    inp: RunAuditInput,
    score: AuditScore,
    unlocked: bool,
    created_at: datetime | None = None,
) -> tuple[Audit, AuditMetrics]:
    audit = Audit(
        account_id=inp.account_id,
        page_name=inp.page_name,
        page_url=inp.page_url,
        audit_type=inp.audit_type,
        input_data={k: v for k, v in inp.raw.to_dict().items() if v is not None},
        score_total=score.overall,
        score_breakdown=ScoreBreakdown(**score.breakdown_dict()),
        recommendations=list(score.recommendations),
        is_pro_unlocked=unlocked,
        request_key=inp.request_key,
        created_at=created_at or utcnow(),
    )
    metrics = AuditMetrics(
        audit_id=audit.id,
        computed_metrics=dict(score.computed_metrics),
        raw_metrics=inp.raw.to_dict(),
        data_availability=data_availability(inp.raw),
        ai_insights=inp.ai_insights,
        demographics=inp.demographics,
    )
    return audit, metrics


def score_deltas(base: ScoreBreakdown, other: ScoreBreakdown) -> dict[str, int]:
    before = base.model_dump()
    after = other.model_dump()
    return {name: after[name] - before[name] for name in before}


# --- Service ---


class AuditService:
    """Runs audits against the caller's entitlement and usage."""

    def __init__(
        self,
        repo: AuditRepoPort,
        entitlements: EntitlementPort,
        usage: UsageAccountant,
        time: TimePort,
        scoring: ScoringConfig | None = None,
    ) -> None:
        self._repo = repo
        self._entitlements = entitlements
        self._usage = usage
        self._time = time
        self._scoring = scoring or ScoringConfig()

    def run_audit(self, inp: RunAuditInput) -> RunAuditOutput:
        """
        Score and store one audit run, counting it against this month.

        The month's slot is reserved before the audit is stored; the reservation
        is the limit check and is given back if the store does not keep the audit.

        Raises:
            LimitReachedError: no runs left this month
        """
        if inp.request_key:
            existing = self._repo.get_by_request_key(inp.account_id, inp.request_key)
            if existing is not None:
                logger.info("Audit request replayed key=%s audit=%s", inp.request_key, existing.id)
                count = self._usage.record_audit_run(inp.account_id, existing.id)
                return RunAuditOutput(audit=existing, created=False, usage_count=count)

        entitlement = self._entitlements.resolve(inp.account_id)
        score = compute(inp.raw, self._scoring)
        audit, metrics = build_audit(
            inp,
            score,
            unlocked=entitlement.has_free_audit_grant,
            created_at=self._time.now_utc(),
        )

        count = self._usage.record_audit_run(
            inp.account_id, audit.id, limit=entitlement.usage.limit
        )
        try:
            saved, created = self._repo.create(audit, metrics)
        except Exception:
            self._usage.release_audit_run(audit.id)
            raise

        if not created:
            # Same request key stored by a concurrent run; count its audit instead
            self._usage.release_audit_run(audit.id)
            count = self._usage.record_audit_run(inp.account_id, saved.id)

        logger.info(
            "Audit stored account=%s audit=%s score=%d created=%s",
            inp.account_id,
            saved.id,
            saved.score_total,
            created,
        )
        return RunAuditOutput(audit=saved, created=created, usage_count=count)

    def list_history(self, account_id: UUID, entitlement: EntitlementSnapshot) -> list[AuditSummary]:
        """Audits inside the entitlement's history window, newest first."""
        since = self._time.now_utc() - timedelta(days=entitlement.limits.history_days)
        audits = self._repo.list_for_account(account_id, since=since)
        return [AuditSummary.from_audit(a) for a in audits]

    def compare_audits(self, account_id: UUID, base_id: UUID, other_id: UUID) -> AuditComparison:
        base = self._owned(account_id, base_id)
        other = self._owned(account_id, other_id)
        return AuditComparison(
            base_id=base.id,
            other_id=other.id,
            deltas=score_deltas(base.score_breakdown, other.score_breakdown),
        )

    def _owned(self, account_id: UUID, audit_id: UUID) -> Audit:
        audit = self._repo.get_by_id(audit_id)
        if audit is None or audit.account_id != account_id:
            raise NotFoundError("Audit")
        return audit


def run(inp: RunAuditInput, service: AuditService) -> RunAuditOutput:
    """Run an audit."""
    return service.run_audit(inp)
