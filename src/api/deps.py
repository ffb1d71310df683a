import hmac
import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.adapters.reference_time import ReferenceTimeAdapter
from src.adapters.sqlite.repos import (
    SQLiteAccountRepo,
    SQLiteAuditRepo,
    SQLiteGrantRepo,
    SQLiteShareRepo,
    SQLiteSubscriptionRepo,
    SQLiteUsageRepo,
)
from src.api.auth_utils import decode_access_token

# Atomic components are stateless, so we import them here for dependency injection.
# Dependencies are injected as ports/repos/adapters.
from src.components import entitlements, metrics, report_gate, share_links
from src.components.audits import AuditService
from src.components.billing import BillingService
from src.components.entitlements import EntitlementResolver
from src.components.report_gate import ReportAccessService
from src.components.share_links import ShareLinkManager
from src.components.usage import UsageAccountant
from src.rules.loader import load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(
        self,
        data_dir: str | Path | None = None,
        rules_path: str | Path | None = None,
        webhook_secret: str | None = None,
    ) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(data_dir or os.environ.get("PAGELYZER_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "pagelyzer.db")
        self.rules_path = Path(
            rules_path or os.environ.get("PAGELYZER_RULES_PATH", self.base_dir / "rules.yaml")
        )
        self.migrations_dir = self.base_dir / "migrations"
        self.webhook_secret = webhook_secret or os.environ.get("PAGELYZER_WEBHOOK_SECRET")
        self.log_level = os.environ.get("PAGELYZER_LOG_LEVEL", "INFO").upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def load_cached_rules(rules_path: Path) -> Rules:
    return load_rules(rules_path)


def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_cached_rules(settings.rules_path)


def get_time(rules: Rules = Depends(get_rules)) -> ReferenceTimeAdapter:
    return ReferenceTimeAdapter(rules.usage.reference_timezone)


# --- Repos ---
def get_account_repo(settings: Settings = Depends(get_settings)) -> SQLiteAccountRepo:
    return SQLiteAccountRepo(settings.db_path)


def get_subscription_repo(settings: Settings = Depends(get_settings)) -> SQLiteSubscriptionRepo:
    return SQLiteSubscriptionRepo(settings.db_path)


def get_grant_repo(settings: Settings = Depends(get_settings)) -> SQLiteGrantRepo:
    return SQLiteGrantRepo(settings.db_path)


def get_audit_repo(settings: Settings = Depends(get_settings)) -> SQLiteAuditRepo:
    return SQLiteAuditRepo(settings.db_path)


def get_share_repo(settings: Settings = Depends(get_settings)) -> SQLiteShareRepo:
    return SQLiteShareRepo(settings.db_path)


def get_usage_repo(settings: Settings = Depends(get_settings)) -> SQLiteUsageRepo:
    return SQLiteUsageRepo(settings.db_path)


# --- Component Services ---
def get_usage_accountant(
    repo: SQLiteUsageRepo = Depends(get_usage_repo),
    time: ReferenceTimeAdapter = Depends(get_time),
) -> UsageAccountant:
    return UsageAccountant(repo=repo, time=time)


def get_entitlement_resolver(
    accounts: SQLiteAccountRepo = Depends(get_account_repo),
    subscriptions: SQLiteSubscriptionRepo = Depends(get_subscription_repo),
    grants: SQLiteGrantRepo = Depends(get_grant_repo),
    usage: UsageAccountant = Depends(get_usage_accountant),
    time: ReferenceTimeAdapter = Depends(get_time),
    rules: Rules = Depends(get_rules),
) -> EntitlementResolver:
    """Built per request; snapshots are never cached across requests."""
    return EntitlementResolver(
        accounts=accounts,
        subscriptions=subscriptions,
        grants=grants,
        usage=usage,
        time=time,
        config=entitlements.load_config_from_rules(rules),
    )


def get_report_service(
    audits: SQLiteAuditRepo = Depends(get_audit_repo),
    shares: SQLiteShareRepo = Depends(get_share_repo),
    resolver: EntitlementResolver = Depends(get_entitlement_resolver),
    rules: Rules = Depends(get_rules),
) -> ReportAccessService:
    return ReportAccessService(
        audits=audits,
        shares=shares,
        entitlements=resolver,
        config=report_gate.load_config_from_rules(rules),
    )


def get_share_manager(
    audits: SQLiteAuditRepo = Depends(get_audit_repo),
    shares: SQLiteShareRepo = Depends(get_share_repo),
    resolver: EntitlementResolver = Depends(get_entitlement_resolver),
    rules: Rules = Depends(get_rules),
) -> ShareLinkManager:
    return ShareLinkManager(
        audits=audits,
        shares=shares,
        entitlements=resolver,
        config=share_links.load_config_from_rules(rules),
    )


def get_audit_service(
    repo: SQLiteAuditRepo = Depends(get_audit_repo),
    resolver: EntitlementResolver = Depends(get_entitlement_resolver),
    usage: UsageAccountant = Depends(get_usage_accountant),
    time: ReferenceTimeAdapter = Depends(get_time),
    rules: Rules = Depends(get_rules),
) -> AuditService:
    return AuditService(
        repo=repo,
        entitlements=resolver,
        usage=usage,
        time=time,
        scoring=metrics.load_config_from_rules(rules),
    )


def get_billing_service(
    subscriptions: SQLiteSubscriptionRepo = Depends(get_subscription_repo),
    grants: SQLiteGrantRepo = Depends(get_grant_repo),
    audits: SQLiteAuditRepo = Depends(get_audit_repo),
    accounts: SQLiteAccountRepo = Depends(get_account_repo),
    time: ReferenceTimeAdapter = Depends(get_time),
) -> BillingService:
    return BillingService(
        subscriptions=subscriptions,
        grants=grants,
        audits=audits,
        accounts=accounts,
        time=time,
    )


# --- Auth ---
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_claims(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> dict[str, Any]:
    """
    Verified token claims.

    An expired token raises AuthExpiredError (401 AUTH_EXPIRED) so clients can
    refresh and retry; anything else invalid is a plain 401.
    """
    token = credentials.credentials if credentials else None

    # Cookie fallback (HttpOnly session cookie set by the web app)
    cookie_token = request.cookies.get("access_token")
    if not token and cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ", 1)[1]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def get_current_account_id(claims: dict[str, Any] = Depends(get_token_claims)) -> UUID:
    subject = claims.get("sub")
    try:
        return UUID(str(subject))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        ) from None


def require_admin(claims: dict[str, Any] = Depends(get_token_claims)) -> str:
    """Admin caller's subject; 403 unless the token carries the admin role."""
    if claims.get("role") != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return str(claims.get("sub"))


def verify_webhook_secret(
    x_webhook_secret: Annotated[str | None, Header()] = None,
    settings: Settings = Depends(get_settings),
) -> None:
    """Shared-secret check for normalized payment events from the gateway bridge."""
    expected = settings.webhook_secret
    if not expected or not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")
