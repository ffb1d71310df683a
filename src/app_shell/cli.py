import argparse
import logging
import sys
from datetime import timedelta
from uuid import UUID

from src.adapters.reference_time import ReferenceTimeAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import (
    SQLiteAccountRepo,
    SQLiteAuditRepo,
    SQLiteGrantRepo,
    SQLiteSubscriptionRepo,
)
from src.api.auth_utils import create_access_token
from src.api.deps import Settings
from src.components.billing import BillingService
from src.domain.entities import Account
from src.domain.errors import AuditCoreError
from src.rules.loader import load_rules

logger = logging.getLogger("cli")


def get_billing_service(settings: Settings) -> BillingService:
    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)

    rules = load_rules(settings.rules_path)
    return BillingService(
        subscriptions=SQLiteSubscriptionRepo(settings.db_path),
        grants=SQLiteGrantRepo(settings.db_path),
        audits=SQLiteAuditRepo(settings.db_path),
        accounts=SQLiteAccountRepo(settings.db_path),
        time=ReferenceTimeAdapter(rules.usage.reference_timezone),
    )


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
    print(f"Applied {len(applied)} migration(s).")
    for name in applied:
        print(f"  {name}")


def handle_create_account(settings: Settings, args: argparse.Namespace) -> None:
    repo = SQLiteAccountRepo(settings.db_path)
    existing = repo.get_by_email(args.email)
    if existing:
        print(f"Account exists: {existing.id}")
        return
    account = repo.save(Account(email=args.email))
    print(f"Account created: {account.id}")


def handle_grant(settings: Settings, args: argparse.Namespace) -> None:
    result = get_billing_service(settings).grant_free_audit(
        UUID(args.account_id), args.month, granted_by=args.granted_by
    )
    state = "created" if result.created else "already present"
    print(f"Free audit grant for {result.grant.grant_month} {state}.")


def handle_revoke_grant(settings: Settings, args: argparse.Namespace) -> None:
    removed = get_billing_service(settings).revoke_free_audit(UUID(args.account_id), args.month)
    print("Grant revoked." if removed else "No grant found.")


def handle_unlock(settings: Settings, args: argparse.Namespace) -> None:
    get_billing_service(settings).unlock_audit(UUID(args.audit_id))
    print(f"Audit {args.audit_id} unlocked.")


def handle_issue_token(settings: Settings, args: argparse.Namespace) -> None:
    claims: dict[str, str] = {"sub": args.subject}
    if args.admin:
        claims["role"] = "admin"
    print(create_access_token(claims, expires_delta=timedelta(minutes=args.minutes)))


HANDLERS = {
    "migrate": handle_migrate,
    "create-account": handle_create_account,
    "grant": handle_grant,
    "revoke-grant": handle_revoke_grant,
    "unlock": handle_unlock,
    "issue-token": handle_issue_token,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pagelyzer audit core CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # create-account
    account_parser = subparsers.add_parser("create-account", help="Create an account by email")
    account_parser.add_argument("email")

    # grant / revoke-grant
    grant_parser = subparsers.add_parser("grant", help="Grant a free Pro month")
    grant_parser.add_argument("account_id")
    grant_parser.add_argument("--month", help="YYYY-MM (defaults to the current month)")
    grant_parser.add_argument("--granted-by", default="cli", help="Who issued the grant")

    revoke_parser = subparsers.add_parser("revoke-grant", help="Remove a free Pro month")
    revoke_parser.add_argument("account_id")
    revoke_parser.add_argument("--month", help="YYYY-MM (defaults to the current month)")

    # unlock
    unlock_parser = subparsers.add_parser("unlock", help="Permanently unlock an audit report")
    unlock_parser.add_argument("audit_id")

    # issue-token
    token_parser = subparsers.add_parser("issue-token", help="Issue an access token")
    token_parser.add_argument("subject", help="Account id (or operator name with --admin)")
    token_parser.add_argument("--admin", action="store_true", help="Include the admin role")
    token_parser.add_argument("--minutes", type=int, default=60, help="Token lifetime")

    return parser


def main(argv: list[str] | None = None, settings: Settings | None = None) -> None:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    settings = settings or Settings()

    try:
        HANDLERS[args.command](settings, args)
    except (AuditCoreError, ValueError) as e:
        logger.error("%s failed: %s", args.command, e)
        sys.exit(1)


if __name__ == "__main__":
    main()
