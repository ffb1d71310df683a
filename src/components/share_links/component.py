"""
Share link component - public, slug-addressed report views.

Invariants:
- Only callers with effective access to the audit can create a link
- At most one public link per audit; repeat creates return the same URL
- A slug is never reused or overwritten while another report holds it
- Revoked slugs stop resolving immediately
- Each successful public fetch adds exactly one view
"""

from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Callable
from uuid import UUID

from src.components.report_gate import (
    AuditReaderPort,
    EntitlementPort,
    ReportPayload,
    full_payload,
    has_effective_access,
)
from src.domain.entities import Audit
from src.domain.errors import ConflictError, NotFoundError, ProRequiredError, SlugTakenError
from src.rules.models import Rules

from .models import (
    CreateShareInput,
    FetchPublicInput,
    RevokeShareInput,
    ShareConfig,
    ShareLinkResult,
)
from .ports import ShareRepoPort

logger = logging.getLogger(__name__)

SLUG_ALPHABET = string.ascii_letters + string.digits


# --- Pure Functions ---


def generate_slug(length: int = 8) -> str:
    """Random alphanumeric slug."""
    return "".join(secrets.choice(SLUG_ALPHABET) for _ in range(length))


def build_share_url(slug: str, config: ShareConfig | None = None) -> str:
    config = config or ShareConfig()
    prefix = config.path_prefix.strip("/")
    path = f"/{prefix}/{slug}" if prefix else f"/{slug}"
    return config.base_url.rstrip("/") + path


# --- Service ---


class ShareLinkManager:
    """Creates, revokes and serves public report links."""

    def __init__(
        self,
        audits: AuditReaderPort,
        shares: ShareRepoPort,
        entitlements: EntitlementPort,
        config: ShareConfig | None = None,
        slug_factory: Callable[[int], str] = generate_slug,
    ) -> None:
        self._audits = audits
        self._shares = shares
        self._entitlements = entitlements
        self._config = config or ShareConfig()
        self._slug_factory = slug_factory

    def _owned_audit(self, audit_id: UUID, account_id: UUID) -> Audit:
        audit = self._audits.get_by_id(audit_id)
        if audit is None or audit.account_id != account_id:
            raise NotFoundError("Audit")
        return audit

    def create(self, audit_id: UUID, account_id: UUID) -> ShareLinkResult:
        """
        Publish the audit's report under a public slug.

        Raises:
            NotFoundError: audit missing or owned by another account
            ProRequiredError: caller lacks effective access to this audit
            ConflictError: no free slug found, or a concurrent create won
        """
        audit = self._owned_audit(audit_id, account_id)
        entitlement = self._entitlements.resolve(account_id)
        if not has_effective_access(audit, entitlement):
            raise ProRequiredError("share_report")

        existing = self._shares.get_by_audit(audit_id)
        if existing and existing.is_public and existing.share_slug:
            return ShareLinkResult(
                share_url=build_share_url(existing.share_slug, self._config),
                share_slug=existing.share_slug,
                created=False,
            )

        for attempt in range(1, self._config.max_slug_attempts + 1):
            slug = self._slug_factory(self._config.slug_length)
            if self._shares.slug_exists(slug):
                logger.debug("Slug collision on attempt %d for audit %s", attempt, audit_id)
                continue
            try:
                record = self._shares.publish(audit_id, slug)
            except SlugTakenError:
                logger.debug("Slug taken at insert on attempt %d for audit %s", attempt, audit_id)
                continue

            if record is None:
                raise ConflictError("Share link was created by a concurrent request")

            logger.info("Share link created audit=%s slug=%s", audit_id, slug)
            return ShareLinkResult(share_url=build_share_url(slug, self._config), share_slug=slug)

        logger.error(
            "Slug allocation exhausted after %d attempts for audit %s",
            self._config.max_slug_attempts,
            audit_id,
        )
        raise ConflictError("Could not allocate a unique share slug")

    def revoke(self, audit_id: UUID, account_id: UUID) -> bool:
        """Make the report private again. Ownership is enough; Pro is not required."""
        self._owned_audit(audit_id, account_id)
        removed = self._shares.unpublish(audit_id)
        logger.info("Share link revoked audit=%s removed=%s", audit_id, removed)
        return removed

    def fetch_public(self, slug: str) -> ReportPayload:
        """Unauthenticated view of a shared report; counts one view."""
        record = self._shares.record_view(slug)
        if record is None:
            raise NotFoundError("Report")

        audit = self._audits.get_by_id(record.audit_id)
        if audit is None:
            raise NotFoundError("Report")

        payload = full_payload(audit, self._audits.get_metrics(audit.id), record)
        return ReportPayload(
            has_pro_access=True,
            data={**payload.data, "views_count": record.views_count, "is_shared": True},
            locked_sections=(),
        )


# --- Entry Points ---


def run_create(inp: CreateShareInput, manager: ShareLinkManager) -> ShareLinkResult:
    return manager.create(inp.audit_id, inp.account_id)


def run_revoke(inp: RevokeShareInput, manager: ShareLinkManager) -> bool:
    return manager.revoke(inp.audit_id, inp.account_id)


def run_fetch_public(inp: FetchPublicInput, manager: ShareLinkManager) -> ReportPayload:
    return manager.fetch_public(inp.slug)


def load_config_from_rules(rules: Rules) -> ShareConfig:
    sharing = rules.sharing
    return ShareConfig(
        base_url=sharing.base_url,
        path_prefix=sharing.path_prefix,
        slug_length=sharing.slug_length,
        max_slug_attempts=sharing.max_slug_attempts,
    )
