"""
Billing component ports.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from src.domain.entities import FreeAuditGrant, Plan, Subscription, SubscriptionStatus


class SubscriptionWriterPort(Protocol):
    def get_plan(self, plan_id: UUID) -> Plan | None:
        """Get plan by ID."""
        ...

    def get_by_gateway_id(self, gateway: str, gateway_subscription_id: str) -> Subscription | None:
        """Subscription known to the gateway under this ID."""
        ...

    def activate(self, subscription: Subscription) -> Subscription:
        """
        Store an active subscription, cancelling any other active one for the
        account in the same transaction.
        """
        ...

    def update_status(
        self,
        subscription_id: UUID,
        status: SubscriptionStatus,
        renews_at: datetime | None = None,
        expires_at: datetime | None = None,
    ) -> None:
        """
        Change status and, when given, renewal and expiry times. Setting a
        subscription active cancels any other active one for the account in
        the same transaction.
        """
        ...


class GrantWriterPort(Protocol):
    def add_grant(self, grant: FreeAuditGrant) -> tuple[FreeAuditGrant, bool]:
        """Insert unless a grant exists for the month. Returns (grant, created)."""
        ...

    def remove_grant(self, account_id: UUID, grant_month: str) -> bool:
        """Delete the month's grant. True if one existed."""
        ...


class AuditUnlockPort(Protocol):
    def set_unlocked(self, audit_id: UUID) -> bool:
        """Set the sticky unlock flag. False if the audit does not exist."""
        ...
