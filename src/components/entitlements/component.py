"""
Entitlements component - per-request entitlement resolution.

Invariants:
- Resolved fresh on every call; payment events can change state at any time
- is_pro = paid subscriber OR free grant for the current month
- A lookup that times out fails closed (free tier), never open
- AuthExpiredError and AccountNotFoundError stay distinct
"""

from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

from src.components.usage import UsageAccountant
from src.core.ports.time import TimePort
from src.domain.entities import Subscription
from src.domain.errors import AccountNotFoundError
from src.rules.models import Rules

from .models import FEATURE_FLAGS, EntitlementConfig, EntitlementSnapshot, ResolveInput
from .ports import AccountRepoPort, GrantRepoPort, SubscriptionRepoPort

logger = logging.getLogger(__name__)


def is_paid(subscription: Subscription | None) -> bool:
    """Active subscription on a plan that is not the free tier."""
    return (
        subscription is not None
        and subscription.status == "active"
        and subscription.plan.billing_type != "free"
    )


def resolve_features(is_pro: bool, plan_flags: dict[str, bool]) -> dict[str, bool]:
    """Every feature for Pro; otherwise only what the plan explicitly enables."""
    return {name: is_pro or plan_flags.get(flag) is True for name, flag in FEATURE_FLAGS.items()}


class EntitlementResolver:
    """Resolves an EntitlementSnapshot from current account state."""

    def __init__(
        self,
        accounts: AccountRepoPort,
        subscriptions: SubscriptionRepoPort,
        grants: GrantRepoPort,
        usage: UsageAccountant,
        time: TimePort,
        config: EntitlementConfig | None = None,
    ) -> None:
        self._accounts = accounts
        self._subscriptions = subscriptions
        self._grants = grants
        self._usage = usage
        self._time = time
        self._config = config or EntitlementConfig()

    def resolve(self, account_id: UUID) -> EntitlementSnapshot:
        if self._accounts.get_by_id(account_id) is None:
            raise AccountNotFoundError(account_id)

        subscription = self._active_subscription(account_id)
        has_grant = self._has_current_grant(account_id)

        paid = is_paid(subscription)
        is_pro = paid or has_grant

        if subscription is not None:
            plan_name = subscription.plan.name
            plan_flags = subscription.plan.feature_flags
            limits = subscription.plan.limits
        else:
            plan_name = "free"
            plan_flags = {}
            limits = self._config.default_limits()

        if has_grant:
            sentinel = self._config.unlimited_sentinel
            usage = replace(self._usage.get_usage(account_id), limit=sentinel, remaining=sentinel)
        else:
            usage = self._usage.get_usage(account_id, limit=limits.audits_per_month)

        snapshot = EntitlementSnapshot(
            account_id=account_id,
            is_pro=is_pro,
            subscribed=subscription is not None,
            is_paid_subscriber=paid,
            has_free_audit_grant=has_grant,
            plan_name=plan_name,
            features=resolve_features(is_pro, plan_flags),
            limits=limits,
            usage=usage,
        )
        logger.debug(
            "Entitlement resolved account=%s pro=%s paid=%s grant=%s remaining=%s",
            account_id,
            is_pro,
            paid,
            has_grant,
            usage.remaining,
        )
        return snapshot

    def _active_subscription(self, account_id: UUID) -> Subscription | None:
        try:
            return self._subscriptions.get_active(account_id)
        except TimeoutError:
            logger.warning("Subscription lookup timed out for %s; treating as free", account_id)
            return None

    def _has_current_grant(self, account_id: UUID) -> bool:
        try:
            return self._grants.has_grant(account_id, self._time.month_key())
        except TimeoutError:
            logger.warning("Grant lookup timed out for %s; treating as no grant", account_id)
            return False


def run(inp: ResolveInput, resolver: EntitlementResolver) -> EntitlementSnapshot:
    """Resolve entitlements for an account."""
    return resolver.resolve(inp.account_id)


def load_config_from_rules(rules: Rules) -> EntitlementConfig:
    plans = rules.plans
    return EntitlementConfig(
        default_audits_per_month=plans.default_audits_per_month,
        default_pdf_exports=plans.default_pdf_exports,
        default_history_days=plans.default_history_days,
        unlimited_sentinel=plans.unlimited_sentinel,
    )
