"""
Usage component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class UsageSummary:
    """
    Audit usage for one account in the current month bucket.

    ``limit`` and ``remaining`` are None when no limit was supplied.
    ``remaining`` is never negative.
    """

    used: int
    period_start: str
    limit: int | None = None
    remaining: int | None = None

    def to_dict(self) -> dict[str, int | str | None]:
        return {
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "period_start": self.period_start,
        }


@dataclass(frozen=True)
class RecordRunInput:
    account_id: UUID
    audit_id: UUID
