"""
Share link ports.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from src.domain.entities import ShareRecord


class ShareRepoPort(Protocol):
    """
    Share record storage.

    ``publish`` and ``record_view`` must be single atomic statements; the
    unique indexes on audit and slug are what keep concurrent creates safe.
    """

    def get_by_audit(self, audit_id: UUID) -> ShareRecord | None:
        """Share record for the audit, if one was ever created."""
        ...

    def slug_exists(self, slug: str) -> bool:
        """Whether any report currently holds the slug."""
        ...

    def publish(self, audit_id: UUID, slug: str) -> ShareRecord | None:
        """
        Make the audit public under ``slug``.

        Inserts a record or updates a private one. Returns None if the audit
        is already public (a concurrent create won). Raises SlugTakenError
        when the slug belongs to another report.
        """
        ...

    def unpublish(self, audit_id: UUID) -> bool:
        """Clear public flag and slug. True if a public link was removed."""
        ...

    def record_view(self, slug: str) -> ShareRecord | None:
        """Increment views of a public slug by one; None if not public."""
        ...
