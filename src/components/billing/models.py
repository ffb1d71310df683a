"""
Billing component models.

Payment events arrive already normalized by the gateway collaborator
(Stripe, PayPal); signature checks happen before they reach this component.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID

from src.domain.entities import FreeAuditGrant, Subscription, SubscriptionStatus

PaymentEventType = Literal[
    "checkout_completed",
    "subscription_updated",
    "subscription_deleted",
    "payment_failed",
]


@dataclass(frozen=True)
class PaymentEvent:
    """Gateway-neutral payment event."""

    event_type: PaymentEventType
    gateway: str
    gateway_subscription_id: str | None = None
    account_id: UUID | None = None
    plan_id: UUID | None = None
    status: SubscriptionStatus | None = None
    renews_at: datetime | None = None


@dataclass(frozen=True)
class PaymentEventResult:
    applied: bool
    subscription: Subscription | None = None
    detail: str = ""


@dataclass(frozen=True)
class GrantResult:
    grant: FreeAuditGrant
    created: bool
