"""
Entitlements component ports.

Lookups may raise ``AuthExpiredError`` when the datastore credential is
stale and ``TimeoutError`` when the lookup does not return in time.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from src.domain.entities import Account, Subscription


class AccountRepoPort(Protocol):
    def get_by_id(self, account_id: UUID) -> Account | None:
        """Get account by ID."""
        ...


class SubscriptionRepoPort(Protocol):
    def get_active(self, account_id: UUID) -> Subscription | None:
        """The account's single active subscription, if any."""
        ...


class GrantRepoPort(Protocol):
    def has_grant(self, account_id: UUID, grant_month: str) -> bool:
        """Whether a free audit grant exists for the month (``YYYY-MM-01``)."""
        ...
