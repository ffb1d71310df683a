"""
Audit runner ports.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from src.domain.entities import Audit, AuditMetrics


class AuditRepoPort(Protocol):
    """Append-only audit storage."""

    def create(self, audit: Audit, metrics: AuditMetrics) -> tuple[Audit, bool]:
        """
        Store a new audit and its metrics in one transaction.

        If the account already has an audit with the same request_key, the
        stored audit is returned instead. Returns (audit, created).
        """
        ...

    def get_by_id(self, audit_id: UUID) -> Audit | None:
        """Get audit by ID."""
        ...

    def get_by_request_key(self, account_id: UUID, request_key: str) -> Audit | None:
        """Audit created for this idempotency key, if any."""
        ...

    def get_metrics(self, audit_id: UUID) -> AuditMetrics | None:
        """Stored metrics for the audit."""
        ...

    def list_for_account(self, account_id: UUID, since: datetime | None = None) -> list[Audit]:
        """Account's audits, newest first, optionally created at or after ``since``."""
        ...
