"""
Billing component - subscriptions, monthly free grants and sticky unlocks.

Everything here only writes state; EntitlementResolver reads it fresh on
the next request.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from src.components.entitlements import AccountRepoPort
from src.core.ports.time import TimePort
from src.domain.entities import FreeAuditGrant, Subscription
from src.domain.errors import AccountNotFoundError, NotFoundError

from .models import GrantResult, PaymentEvent, PaymentEventResult
from .ports import AuditUnlockPort, GrantWriterPort, SubscriptionWriterPort

logger = logging.getLogger(__name__)


def normalize_month(value: str) -> str:
    """
    Normalize ``YYYY-MM`` or ``YYYY-MM-DD`` to the ``YYYY-MM-01`` grant key.

    Raises:
        ValueError: value is not a calendar month
    """
    parsed = datetime.strptime(value.strip()[:7], "%Y-%m")
    return parsed.strftime("%Y-%m-01")


class BillingService:
    """Applies payment events and manages overrides."""

    def __init__(
        self,
        subscriptions: SubscriptionWriterPort,
        grants: GrantWriterPort,
        audits: AuditUnlockPort,
        accounts: AccountRepoPort,
        time: TimePort,
    ) -> None:
        self._subscriptions = subscriptions
        self._grants = grants
        self._audits = audits
        self._accounts = accounts
        self._time = time

    # --- Payment events ---

    def apply_payment_event(self, event: PaymentEvent) -> PaymentEventResult:
        if event.event_type == "checkout_completed":
            return self._checkout_completed(event)

        if not event.gateway_subscription_id:
            raise ValueError(f"{event.event_type} requires gateway_subscription_id")

        existing = self._subscriptions.get_by_gateway_id(event.gateway, event.gateway_subscription_id)
        if existing is None:
            logger.warning(
                "Ignoring %s for unknown subscription %s/%s",
                event.event_type,
                event.gateway,
                event.gateway_subscription_id,
            )
            return PaymentEventResult(applied=False, detail="unknown subscription")

        now = self._time.now_utc()
        if event.event_type == "subscription_updated":
            status = event.status or "active"
            self._subscriptions.update_status(existing.id, status, renews_at=event.renews_at)
        elif event.event_type == "subscription_deleted":
            status = "cancelled"
            self._subscriptions.update_status(existing.id, status, expires_at=now)
        elif event.event_type == "payment_failed":
            status = "expired"
            self._subscriptions.update_status(existing.id, status, expires_at=now)
        else:
            raise ValueError(f"Unsupported payment event: {event.event_type}")

        logger.info(
            "Payment event %s applied subscription=%s status=%s",
            event.event_type,
            existing.id,
            status,
        )
        updated = existing.model_copy(update={"status": status})
        return PaymentEventResult(applied=True, subscription=updated, detail=event.event_type)

    def _checkout_completed(self, event: PaymentEvent) -> PaymentEventResult:
        if event.account_id is None or event.plan_id is None:
            raise ValueError("checkout_completed requires account_id and plan_id")
        if self._accounts.get_by_id(event.account_id) is None:
            raise AccountNotFoundError(event.account_id)
        plan = self._subscriptions.get_plan(event.plan_id)
        if plan is None:
            raise NotFoundError("Plan")

        subscription = self._subscriptions.activate(
            Subscription(
                account_id=event.account_id,
                plan=plan,
                status="active",
                gateway=event.gateway,
                gateway_subscription_id=event.gateway_subscription_id,
                started_at=self._time.now_utc(),
                renews_at=event.renews_at,
            )
        )
        logger.info(
            "Subscription activated account=%s plan=%s gateway=%s",
            event.account_id,
            plan.name,
            event.gateway,
        )
        return PaymentEventResult(applied=True, subscription=subscription, detail=event.event_type)

    # --- Free grants ---

    def grant_free_audit(
        self,
        account_id: UUID,
        month: str | None = None,
        granted_by: str | None = None,
    ) -> GrantResult:
        """Grant Pro-equivalent access for one calendar month. Idempotent per month."""
        if self._accounts.get_by_id(account_id) is None:
            raise AccountNotFoundError(account_id)
        grant_month = normalize_month(month) if month else self._time.month_key()
        grant, created = self._grants.add_grant(
            FreeAuditGrant(account_id=account_id, grant_month=grant_month, granted_by=granted_by)
        )
        logger.info(
            "Free audit grant account=%s month=%s created=%s by=%s",
            account_id,
            grant_month,
            created,
            granted_by,
        )
        return GrantResult(grant=grant, created=created)

    def revoke_free_audit(self, account_id: UUID, month: str | None = None) -> bool:
        grant_month = normalize_month(month) if month else self._time.month_key()
        removed = self._grants.remove_grant(account_id, grant_month)
        logger.info("Free audit grant revoked account=%s month=%s removed=%s", account_id, grant_month, removed)
        return removed

    # --- Sticky unlock ---

    def unlock_audit(self, audit_id: UUID) -> None:
        """Permanently unlock one audit's full report."""
        if not self._audits.set_unlocked(audit_id):
            raise NotFoundError("Audit")
        logger.info("Audit unlocked audit=%s", audit_id)
