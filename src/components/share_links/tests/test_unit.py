"""
Share link component unit tests.

Tests:
- Create is gated on effective access and never allocates a slug otherwise
- Repeat create returns the existing URL
- Slug collisions are retried, then fail loudly
- Revoke stops the public slug resolving
- Public fetch counts views
"""

from __future__ import annotations

from collections.abc import Iterator
from uuid import UUID, uuid4

import pytest

from src.components.entitlements import EntitlementSnapshot
from src.components.share_links import (
    SLUG_ALPHABET,
    CreateShareInput,
    FetchPublicInput,
    RevokeShareInput,
    ShareConfig,
    ShareLinkManager,
    build_share_url,
    generate_slug,
    run_create,
    run_fetch_public,
    run_revoke,
)
from src.components.usage import UsageSummary
from src.domain.entities import Audit, AuditMetrics, Recommendation, ShareRecord
from src.domain.errors import ConflictError, NotFoundError, ProRequiredError, SlugTakenError

# --- Mocks ---


class MockAuditRepo:
    def __init__(self) -> None:
        self.audits: dict[UUID, Audit] = {}

    def get_by_id(self, audit_id: UUID) -> Audit | None:
        return self.audits.get(audit_id)

    def get_metrics(self, audit_id: UUID) -> AuditMetrics | None:
        return None


class MockShareRepo:
    """In-memory share records honouring the unique-slug constraint."""

    def __init__(self) -> None:
        self.records: dict[UUID, ShareRecord] = {}
        self.publish_calls = 0
        self.race_lost = False
        self.taken_at_insert: set[str] = set()

    def get_by_audit(self, audit_id: UUID) -> ShareRecord | None:
        return self.records.get(audit_id)

    def slug_exists(self, slug: str) -> bool:
        return any(r.share_slug == slug for r in self.records.values())

    def publish(self, audit_id: UUID, slug: str) -> ShareRecord | None:
        self.publish_calls += 1
        if slug in self.taken_at_insert:
            raise SlugTakenError(slug)
        if self.race_lost:
            return None
        current = self.records.get(audit_id) or ShareRecord(audit_id=audit_id)
        record = current.model_copy(update={"is_public": True, "share_slug": slug})
        self.records[audit_id] = record
        return record

    def unpublish(self, audit_id: UUID) -> bool:
        record = self.records.get(audit_id)
        if record is None or not record.is_public:
            return False
        self.records[audit_id] = record.model_copy(update={"is_public": False, "share_slug": None})
        return True

    def record_view(self, slug: str) -> ShareRecord | None:
        for audit_id, record in self.records.items():
            if record.is_public and record.share_slug == slug:
                updated = record.model_copy(update={"views_count": record.views_count + 1})
                self.records[audit_id] = updated
                return updated
        return None


class StaticEntitlements:
    def __init__(self, is_pro: bool) -> None:
        self.is_pro = is_pro

    def resolve(self, account_id: UUID) -> EntitlementSnapshot:
        return EntitlementSnapshot(
            account_id=account_id,
            is_pro=self.is_pro,
            subscribed=self.is_pro,
            is_paid_subscriber=self.is_pro,
            has_free_audit_grant=False,
            plan_name="pro" if self.is_pro else "free",
            usage=UsageSummary(used=0, period_start="2025-01-01", limit=3, remaining=3),
        )


def scripted_slugs(*slugs: str):
    """Slug factory that hands out the given slugs in order."""
    it: Iterator[str] = iter(slugs)
    return lambda length: next(it)


# --- Fixtures ---


@pytest.fixture
def account_id() -> UUID:
    return uuid4()


@pytest.fixture
def audit(account_id: UUID) -> Audit:
    return Audit(
        account_id=account_id,
        page_name="Harbour Cafe",
        score_total=71,
        recommendations=[
            Recommendation(priority="high", category="engagement", title="Free", description="d"),
            Recommendation(priority="low", category="reach", title="Pro", description="d", is_pro=True),
        ],
    )


@pytest.fixture
def audits(audit: Audit) -> MockAuditRepo:
    repo = MockAuditRepo()
    repo.audits[audit.id] = audit
    return repo


@pytest.fixture
def shares() -> MockShareRepo:
    return MockShareRepo()


def manager_for(
    audits: MockAuditRepo,
    shares: MockShareRepo,
    *,
    is_pro: bool = True,
    slug_factory=generate_slug,
    config: ShareConfig | None = None,
) -> ShareLinkManager:
    return ShareLinkManager(
        audits=audits,
        shares=shares,
        entitlements=StaticEntitlements(is_pro),
        config=config,
        slug_factory=slug_factory,
    )


# --- Pure Functions ---


class TestSlugs:
    def test_generated_slug_shape(self) -> None:
        slug = generate_slug(8)
        assert len(slug) == 8
        assert all(ch in SLUG_ALPHABET for ch in slug)

    def test_share_url(self) -> None:
        assert build_share_url("abc12345") == "https://pagelyzer.io/r/abc12345"

    def test_share_url_without_prefix(self) -> None:
        config = ShareConfig(base_url="https://example.com/", path_prefix="")
        assert build_share_url("abc12345", config) == "https://example.com/abc12345"


# --- Create ---


class TestCreate:
    def test_free_caller_gets_pro_required(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        manager = manager_for(audits, shares, is_pro=False)
        with pytest.raises(ProRequiredError):
            manager.create(audit.id, account_id)
        assert shares.publish_calls == 0
        assert shares.records == {}

    def test_sticky_unlocked_audit_can_be_shared(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        audits.audits[audit.id] = audit.model_copy(update={"is_pro_unlocked": True})
        result = manager_for(audits, shares, is_pro=False).create(audit.id, account_id)
        assert result.created is True

    def test_create_returns_url(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        manager = manager_for(audits, shares, slug_factory=scripted_slugs("Ab3dEf7h"))
        result = run_create(CreateShareInput(audit_id=audit.id, account_id=account_id), manager)
        assert result.share_url == "https://pagelyzer.io/r/Ab3dEf7h"
        assert result.share_slug == "Ab3dEf7h"

    def test_second_create_returns_same_url(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        manager = manager_for(audits, shares)
        first = manager.create(audit.id, account_id)
        second = manager.create(audit.id, account_id)
        assert second.share_url == first.share_url
        assert second.created is False
        assert shares.publish_calls == 1

    def test_other_account_gets_not_found(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit
    ) -> None:
        with pytest.raises(NotFoundError):
            manager_for(audits, shares).create(audit.id, uuid4())

    def test_collision_is_regenerated(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        other = uuid4()
        shares.records[other] = ShareRecord(audit_id=other, is_public=True, share_slug="taken001")
        manager = manager_for(audits, shares, slug_factory=scripted_slugs("taken001", "fresh002"))

        result = manager.create(audit.id, account_id)
        assert result.share_slug == "fresh002"
        assert shares.records[other].share_slug == "taken001"

    def test_insert_time_collision_is_regenerated(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        shares.taken_at_insert.add("racy0001")
        manager = manager_for(audits, shares, slug_factory=scripted_slugs("racy0001", "fresh002"))
        assert manager.create(audit.id, account_id).share_slug == "fresh002"

    def test_exhausted_attempts_conflict(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        other = uuid4()
        shares.records[other] = ShareRecord(audit_id=other, is_public=True, share_slug="same0000")
        manager = manager_for(
            audits,
            shares,
            slug_factory=lambda length: "same0000",
            config=ShareConfig(max_slug_attempts=3),
        )
        with pytest.raises(ConflictError):
            manager.create(audit.id, account_id)
        assert audit.id not in shares.records

    def test_lost_race_conflict(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        shares.race_lost = True
        with pytest.raises(ConflictError):
            manager_for(audits, shares).create(audit.id, account_id)


# --- Revoke & Public Fetch ---


class TestRevokeAndFetch:
    def test_public_fetch_counts_views(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        manager = manager_for(audits, shares)
        slug = manager.create(audit.id, account_id).share_slug

        first = manager.fetch_public(slug).to_dict()
        second = run_fetch_public(FetchPublicInput(slug=slug), manager).to_dict()

        assert first["views_count"] == 1
        assert second["views_count"] == 2
        assert second["is_shared"] is True

    def test_public_payload_is_full_view(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        manager = manager_for(audits, shares)
        slug = manager.create(audit.id, account_id).share_slug
        data = manager.fetch_public(slug).to_dict()
        assert data["locked_sections"] == []
        assert len(data["recommendations"]) == 2

    def test_revoked_slug_not_found(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        manager = manager_for(audits, shares)
        slug = manager.create(audit.id, account_id).share_slug

        assert run_revoke(RevokeShareInput(audit_id=audit.id, account_id=account_id), manager) is True
        with pytest.raises(NotFoundError):
            manager.fetch_public(slug)

    def test_revoke_needs_only_ownership(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        manager_for(audits, shares).create(audit.id, account_id)
        lapsed = manager_for(audits, shares, is_pro=False)
        assert lapsed.revoke(audit.id, account_id) is True

    def test_revoke_without_share(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        assert manager_for(audits, shares).revoke(audit.id, account_id) is False

    def test_create_after_revoke_mints_new_slug(
        self, audits: MockAuditRepo, shares: MockShareRepo, audit: Audit, account_id: UUID
    ) -> None:
        manager = manager_for(audits, shares, slug_factory=scripted_slugs("first001", "second02"))
        manager.create(audit.id, account_id)
        manager.revoke(audit.id, account_id)
        result = manager.create(audit.id, account_id)
        assert result.share_slug == "second02"
        assert result.created is True

    def test_unknown_slug(self, audits: MockAuditRepo, shares: MockShareRepo) -> None:
        with pytest.raises(NotFoundError):
            manager_for(audits, shares).fetch_public("nope0000")
