"""
Report gate ports.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from src.components.entitlements import EntitlementSnapshot
from src.domain.entities import Audit, AuditMetrics, ShareRecord


class AuditReaderPort(Protocol):
    def get_by_id(self, audit_id: UUID) -> Audit | None:
        """Get audit by ID."""
        ...

    def get_metrics(self, audit_id: UUID) -> AuditMetrics | None:
        """Stored metrics for the audit, if computed."""
        ...


class ShareReaderPort(Protocol):
    def get_by_audit(self, audit_id: UUID) -> ShareRecord | None:
        """Share record for the audit, if one was ever created."""
        ...


class EntitlementPort(Protocol):
    def resolve(self, account_id: UUID) -> EntitlementSnapshot:
        """Fresh entitlement snapshot for the account."""
        ...
