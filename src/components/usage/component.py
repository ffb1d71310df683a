"""
Usage component - monthly audit counters.

Buckets are keyed by the first day of the month in the reference timezone.
A new month starts a new bucket; old buckets are never reset or deleted.
"""

from __future__ import annotations

import logging
from uuid import UUID

from src.core.ports.time import TimePort
from src.domain.errors import LimitReachedError

from .models import RecordRunInput, UsageSummary
from .ports import UsageRepoPort

logger = logging.getLogger(__name__)


def remaining_runs(used: int, limit: int) -> int:
    """Runs left in the bucket, clamped at 0."""
    return max(0, limit - used)


class UsageAccountant:
    """Records and reports monthly audit runs."""

    def __init__(self, repo: UsageRepoPort, time: TimePort) -> None:
        self._repo = repo
        self._time = time

    def current_period(self) -> str:
        return self._time.month_key()

    def record_audit_run(
        self, account_id: UUID, audit_id: UUID, limit: int | None = None
    ) -> int:
        """
        Count an audit run against this month.

        Safe to call again for the same audit (e.g. a retried request); the
        counter only moves on the first call. With a limit the datastore only
        increments while the bucket is below it, so concurrent runs cannot
        overshoot.

        Raises:
            LimitReachedError: the bucket already holds `limit` runs
        """
        period = self.current_period()
        count = self._repo.record_run(account_id, audit_id, period, limit=limit)
        if count is None:
            used = self._repo.get_count(account_id, period)
            logger.info(
                "Usage refused account=%s period=%s used=%d limit=%s",
                account_id,
                period,
                used,
                limit,
            )
            raise LimitReachedError(used=used, limit=limit or 0)
        logger.info(
            "Usage recorded account=%s audit=%s period=%s count=%d",
            account_id,
            audit_id,
            period,
            count,
        )
        return count

    def release_audit_run(self, audit_id: UUID) -> bool:
        released = self._repo.release_run(audit_id)
        if released:
            logger.info("Usage released audit=%s", audit_id)
        return released

    def get_usage(self, account_id: UUID, limit: int | None = None) -> UsageSummary:
        period = self.current_period()
        used = self._repo.get_count(account_id, period)
        return UsageSummary(
            used=used,
            period_start=period,
            limit=limit,
            remaining=remaining_runs(used, limit) if limit is not None else None,
        )


def run(inp: RecordRunInput, accountant: UsageAccountant) -> int:
    """Record an audit run."""
    return accountant.record_audit_run(inp.account_id, inp.audit_id)
