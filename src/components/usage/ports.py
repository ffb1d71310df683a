"""
Usage component ports.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID


class UsageRepoPort(Protocol):
    """Monthly usage counter storage."""

    def record_run(
        self,
        account_id: UUID,
        audit_id: UUID,
        period_start: str,
        limit: int | None = None,
    ) -> int | None:
        """
        Count one audit run against the bucket, at most once per audit.

        Must be atomic: a repeated call for the same audit_id leaves the
        counter unchanged, and with a limit the increment only happens while
        the counter is below it. Returns the bucket count after the call, or
        None when the limit refused the run.
        """
        ...

    def release_run(self, audit_id: UUID) -> bool:
        """Remove a counted run and give its slot back. False if it was not counted."""
        ...

    def get_count(self, account_id: UUID, period_start: str) -> int:
        """Count for the bucket, 0 when absent."""
        ...
