from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace
from uuid import UUID

import pytest

from src.adapters.reference_time import FrozenTimeAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import (
    SQLiteAccountRepo,
    SQLiteAuditRepo,
    SQLiteGrantRepo,
    SQLiteShareRepo,
    SQLiteSubscriptionRepo,
    SQLiteUsageRepo,
)
from src.components import entitlements, metrics, report_gate, share_links
from src.components.audits import AuditService
from src.components.billing import BillingService
from src.components.entitlements import EntitlementResolver
from src.components.report_gate import ReportAccessService
from src.components.share_links import ShareLinkManager
from src.components.usage import UsageAccountant
from src.domain.entities import Account
from src.rules.loader import load_rules

# Seeded by migrations/002_seed_plans.sql
FREE_PLAN_ID = UUID("00000000-0000-4000-8000-000000000001")
PRO_MONTHLY_PLAN_ID = UUID("00000000-0000-4000-8000-000000000002")


@pytest.fixture
def db_path(tmp_path):
    """Fresh, fully migrated SQLite database."""
    path = str(tmp_path / "pagelyzer.db")
    SQLiteMigrator(path, "migrations").run_migrations()
    return path


@pytest.fixture
def rules():
    # Load REAL rules from project root; tests run from project root.
    rules_path = Path("rules.yaml").resolve()
    if not rules_path.exists():
        raise FileNotFoundError(f"Rules not found at {rules_path}")
    return load_rules(rules_path)


@pytest.fixture
def clock():
    return FrozenTimeAdapter(datetime(2025, 3, 10, 12, 0, tzinfo=UTC))


@pytest.fixture
def account(db_path):
    return SQLiteAccountRepo(db_path).save(Account(email="owner@example.com"))


@pytest.fixture
def core(db_path, rules, clock):
    """
    All services wired over the SQLite repos, the real rules and a frozen clock.
    """
    accounts = SQLiteAccountRepo(db_path)
    subscriptions = SQLiteSubscriptionRepo(db_path)
    grants = SQLiteGrantRepo(db_path)
    audits = SQLiteAuditRepo(db_path)
    shares = SQLiteShareRepo(db_path)
    usage = UsageAccountant(repo=SQLiteUsageRepo(db_path), time=clock)

    resolver = EntitlementResolver(
        accounts=accounts,
        subscriptions=subscriptions,
        grants=grants,
        usage=usage,
        time=clock,
        config=entitlements.load_config_from_rules(rules),
    )

    return SimpleNamespace(
        accounts=accounts,
        subscriptions=subscriptions,
        grants=grants,
        audits=audits,
        shares=shares,
        usage=usage,
        resolver=resolver,
        clock=clock,
        audit_service=AuditService(
            repo=audits,
            entitlements=resolver,
            usage=usage,
            time=clock,
            scoring=metrics.load_config_from_rules(rules),
        ),
        reports=ReportAccessService(
            audits=audits,
            shares=shares,
            entitlements=resolver,
            config=report_gate.load_config_from_rules(rules),
        ),
        share_links=ShareLinkManager(
            audits=audits,
            shares=shares,
            entitlements=resolver,
            config=share_links.load_config_from_rules(rules),
        ),
        billing=BillingService(
            subscriptions=subscriptions,
            grants=grants,
            audits=audits,
            accounts=accounts,
            time=clock,
        ),
    )


@pytest.fixture
def pro_plan(db_path):
    plan = SQLiteSubscriptionRepo(db_path).get_plan(PRO_MONTHLY_PLAN_ID)
    assert plan is not None
    return plan


@pytest.fixture
def free_plan(db_path):
    plan = SQLiteSubscriptionRepo(db_path).get_plan(FREE_PLAN_ID)
    assert plan is not None
    return plan
