"""
Audit runner models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from src.components.metrics import RawPageInputs
from src.domain.entities import Audit, AuditType


@dataclass(frozen=True)
class RunAuditInput:
    """
    One audit run for a page.

    ``request_key`` makes the call idempotent per account: a retry with the
    same key returns the audit created by the first call.
    """

    account_id: UUID
    page_name: str
    raw: RawPageInputs = field(default_factory=RawPageInputs)
    page_url: str | None = None
    audit_type: AuditType = "manual"
    request_key: str | None = None
    ai_insights: dict[str, Any] | None = None
    demographics: dict[str, Any] | None = None


@dataclass(frozen=True)
class RunAuditOutput:
    audit: Audit
    created: bool
    usage_count: int


@dataclass(frozen=True)
class AuditSummary:
    id: UUID
    page_name: str
    audit_type: str
    score_total: int
    is_pro_unlocked: bool
    created_at: datetime

    @classmethod
    def from_audit(cls, audit: Audit) -> AuditSummary:
        return cls(
            id=audit.id,
            page_name=audit.page_name,
            audit_type=audit.audit_type,
            score_total=audit.score_total,
            is_pro_unlocked=audit.is_pro_unlocked,
            created_at=audit.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "page_name": self.page_name,
            "audit_type": self.audit_type,
            "score_total": self.score_total,
            "is_pro_unlocked": self.is_pro_unlocked,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class AuditComparison:
    """Score movement from ``base`` to ``other`` (other minus base)."""

    base_id: UUID
    other_id: UUID
    deltas: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_id": str(self.base_id),
            "other_id": str(self.other_id),
            "deltas": dict(self.deltas),
        }
