"""
End-to-end invariants over the SQLite-backed services.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from uuid import uuid4

import pytest

from src.components.audits import AuditService, RunAuditInput
from src.components.billing import PaymentEvent
from src.components.metrics import RawPageInputs, compute
from src.domain.entities import Audit, AuditMetrics, Recommendation, ScoreBreakdown
from src.domain.errors import LimitReachedError, NotFoundError, ProRequiredError

SAMPLE_INPUTS = [
    RawPageInputs(),
    RawPageInputs(followers=0, likes=50, comments=10, posts_analyzed=4),
    RawPageInputs(followers=120, likes=900, comments=300, shares=80, posts_per_week=14),
    RawPageInputs(
        followers=2500,
        likes=60,
        comments=4,
        posts_analyzed=3,
        posts_per_week=0.5,
        has_profile_photo=True,
        has_description=True,
        top_post_type="video",
        reach=4000,
    ),
    RawPageInputs(followers=10_000_000, likes=1, posts_per_week=0),
]


def subscribe_pro(core, account, pro_plan) -> None:
    core.billing.apply_payment_event(
        PaymentEvent(
            event_type="checkout_completed",
            gateway="stripe",
            gateway_subscription_id=f"sub_{account.id.hex[:8]}",
            account_id=account.id,
            plan_id=pro_plan.id,
        )
    )


def run_audit(core, account, **raw) -> Audit:
    inputs = raw or {"followers": 800, "likes": 30, "comments": 6, "posts_analyzed": 5}
    result = core.audit_service.run_audit(
        RunAuditInput(account_id=account.id, page_name="Corner Deli", raw=RawPageInputs(**inputs))
    )
    return result.audit


# --- Scoring ---


def test_cadence_alone_scores_consistency():
    assert compute(RawPageInputs(posts_per_week=5.0)).breakdown.consistency == 85


def test_zero_followers_scores_zero_engagement():
    score = compute(RawPageInputs(followers=0, likes=500, comments=20, shares=5))
    assert score.breakdown.engagement == 0


@pytest.mark.parametrize("raw", SAMPLE_INPUTS)
def test_scores_are_bounded(raw):
    score = compute(raw)
    assert 0 <= score.overall <= 100
    for value in (score.breakdown.engagement, score.breakdown.consistency, score.breakdown.readiness):
        assert 0 <= value <= 100


@pytest.mark.parametrize("raw", SAMPLE_INPUTS)
def test_scoring_is_deterministic(raw):
    assert compute(raw).to_dict() == compute(raw).to_dict()


# --- Gating ---


def test_free_report_shows_at_most_two_free_recommendations(core, account):
    audit = run_audit(
        core,
        account,
        followers=3000,
        likes=10,
        posts_analyzed=2,
        posts_per_week=0.5,
        top_post_type="image",
        reach=900,
    )

    payload = core.reports.load_report(audit.id, account.id)

    assert payload.has_pro_access is False
    assert len(payload.data["recommendations"]) <= 2
    assert all(r["isPro"] is False for r in payload.data["recommendations"])
    assert payload.locked_sections


def test_pro_account_sees_everything(core, account, pro_plan):
    subscribe_pro(core, account, pro_plan)
    audit = run_audit(core, account, followers=3000, likes=10, posts_analyzed=2, top_post_type="image")

    payload = core.reports.load_report(audit.id, account.id)

    assert payload.has_pro_access is True
    assert payload.locked_sections == ()
    assert len(payload.data["recommendations"]) == len(audit.recommendations)


def test_sticky_unlock_opens_free_account_report(core, account):
    audit = run_audit(core, account)
    core.billing.unlock_audit(audit.id)

    payload = core.reports.load_report(audit.id, account.id)
    assert payload.has_pro_access is True
    assert payload.to_dict()["locked_sections"] == []


def test_free_grant_unlocks_audits_created_during_grant(core, account):
    core.billing.grant_free_audit(account.id, granted_by="support")
    audit = run_audit(core, account)

    core.billing.revoke_free_audit(account.id)
    payload = core.reports.load_report(audit.id, account.id)

    assert audit.is_pro_unlocked is True
    assert payload.has_pro_access is True


# --- Sharing ---


def test_free_share_is_refused_without_slug(core, account):
    audit = run_audit(core, account)

    with pytest.raises(ProRequiredError):
        core.share_links.create(audit.id, account.id)
    assert core.shares.get_by_audit(audit.id) is None


def test_share_create_twice_returns_same_url(core, account, pro_plan):
    subscribe_pro(core, account, pro_plan)
    audit = run_audit(core, account)

    first = core.share_links.create(audit.id, account.id)
    second = core.share_links.create(audit.id, account.id)

    assert second.share_url == first.share_url
    assert second.created is False
    assert first.share_url == f"https://pagelyzer.io/r/{first.share_slug}"


def test_revoked_slug_is_not_found(core, account, pro_plan):
    subscribe_pro(core, account, pro_plan)
    audit = run_audit(core, account)
    link = core.share_links.create(audit.id, account.id)

    public = core.share_links.fetch_public(link.share_slug)
    assert public.data["views_count"] == 1

    core.share_links.revoke(audit.id, account.id)
    with pytest.raises(NotFoundError):
        core.share_links.fetch_public(link.share_slug)


def test_other_account_cannot_touch_audit(core, account, pro_plan):
    audit = run_audit(core, account)
    stranger = core.accounts.save(account.model_copy(update={"id": uuid4(), "email": "x@example.com"}))
    subscribe_pro(core, stranger, pro_plan)

    with pytest.raises(NotFoundError):
        core.reports.load_report(audit.id, stranger.id)
    with pytest.raises(NotFoundError):
        core.share_links.create(audit.id, stranger.id)
    with pytest.raises(NotFoundError):
        core.share_links.revoke(audit.id, stranger.id)


# --- Billing ---


def test_late_update_for_replaced_subscription_is_applied(core, account, pro_plan):
    subscribe_pro(core, account, pro_plan)
    core.billing.apply_payment_event(
        PaymentEvent(
            event_type="checkout_completed",
            gateway="stripe",
            gateway_subscription_id="sub_new",
            account_id=account.id,
            plan_id=pro_plan.id,
        )
    )

    result = core.billing.apply_payment_event(
        PaymentEvent(
            event_type="subscription_updated",
            gateway="stripe",
            gateway_subscription_id=f"sub_{account.id.hex[:8]}",
            status="active",
        )
    )

    assert result.applied is True
    assert core.subscriptions.get_by_gateway_id("stripe", "sub_new").status == "cancelled"
    assert core.resolver.resolve(account.id).is_paid_subscriber is True


# --- Usage ---


def test_remaining_never_negative(core, account):
    for _ in range(3):
        run_audit(core, account)

    usage = core.usage.get_usage(account.id, limit=1)
    assert usage.used == 3
    assert usage.remaining == 0


class BarrierEntitlements:
    """Holds every caller after resolve() until all of them have resolved."""

    def __init__(self, resolver, parties: int) -> None:
        self._resolver = resolver
        self._barrier = threading.Barrier(parties, timeout=5)

    def resolve(self, account_id):
        snapshot = self._resolver.resolve(account_id)
        self._barrier.wait()
        return snapshot


def test_concurrent_runs_on_last_slot_count_once(core, account):
    for _ in range(2):
        run_audit(core, account)
    service = AuditService(
        repo=core.audits,
        entitlements=BarrierEntitlements(core.resolver, parties=2),
        usage=core.usage,
        time=core.clock,
    )
    inp = RunAuditInput(
        account_id=account.id, page_name="Corner Deli", raw=RawPageInputs(followers=800)
    )

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [pool.submit(service.run_audit, inp) for _ in range(2)]
    errors = [f.exception() for f in futures]

    assert errors.count(None) == 1
    assert sum(isinstance(e, LimitReachedError) for e in errors) == 1
    assert core.usage.get_usage(account.id).used == 3
    assert len(core.audits.list_for_account(account.id)) == 3


# --- Scenarios ---


def test_scenario_limit_reached_on_fourth_run(core, account):
    """Plan limit 3, nothing used: three runs succeed, the fourth is refused."""
    for expected_used in (1, 2, 3):
        run_audit(core, account)
        assert core.resolver.resolve(account.id).usage.used == expected_used

    with pytest.raises(LimitReachedError) as exc:
        run_audit(core, account)

    assert exc.value.remaining == 0
    assert exc.value.context() == {"used": 3, "limit": 3, "remaining": 0}
    assert core.resolver.resolve(account.id).usage.remaining == 0


def test_scenario_free_report_keeps_first_two_free_recommendations(core, account):
    """Five stored recommendations, three free: the free view keeps the first two in order."""
    recs = [
        Recommendation(priority="high", category="engagement", title="R1", description="d"),
        Recommendation(priority="medium", category="content", title="P1", description="d", is_pro=True),
        Recommendation(priority="high", category="consistency", title="R2", description="d"),
        Recommendation(priority="medium", category="timing", title="P2", description="d", is_pro=True),
        Recommendation(priority="medium", category="optimization", title="R3", description="d"),
    ]
    audit = Audit(
        account_id=account.id,
        page_name="Corner Deli",
        score_total=38,
        score_breakdown=ScoreBreakdown(overall=38, engagement=40, consistency=20, readiness=60),
        recommendations=recs,
    )
    core.audits.create(
        audit,
        AuditMetrics(
            audit_id=audit.id,
            computed_metrics={"engagementRate": 1.25, "followers": 800, "totalEngagements": 10},
        ),
    )

    payload = core.reports.load_report(audit.id, account.id).to_dict()

    assert [r["title"] for r in payload["recommendations"]] == ["R1", "R2"]
    assert payload["detailed_metrics_preview"] == {"engagementRate": 1.25}
    assert payload["score_breakdown"]["engagement"] == 40
    assert "detailed_metrics" not in payload


def test_scenario_revoking_share_keeps_owner_access(core, account, pro_plan):
    """Pro owner shares then revokes; the direct report is still the full view."""
    subscribe_pro(core, account, pro_plan)
    audit = run_audit(core, account)

    link = core.share_links.create(audit.id, account.id)
    assert core.share_links.revoke(audit.id, account.id) is True

    payload = core.reports.load_report(audit.id, account.id)
    assert payload.has_pro_access is True
    assert payload.locked_sections == ()
    assert payload.data["report"]["is_public"] is False
    with pytest.raises(NotFoundError):
        core.share_links.fetch_public(link.share_slug)
