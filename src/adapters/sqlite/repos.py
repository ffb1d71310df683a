import json
import sqlite3
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from src.domain.entities import (
    Account,
    Audit,
    AuditMetrics,
    FreeAuditGrant,
    Plan,
    PlanLimits,
    Recommendation,
    ScoreBreakdown,
    ShareRecord,
    Subscription,
    SubscriptionStatus,
    utcnow,
)
from src.domain.errors import SlugTakenError

# Seconds to wait on a locked database before giving up
BUSY_TIMEOUT = 5.0


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def parse_dt(s: str | None) -> datetime | None:
    return datetime.fromisoformat(s) if s else None


def dump_dt(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def dump_json(value: Any) -> str | None:
    return json.dumps(value, sort_keys=True) if value is not None else None


def load_json(value: str | None) -> Any:
    return json.loads(value) if value else None


def is_lock_error(exc: sqlite3.OperationalError) -> bool:
    return "locked" in str(exc).lower()


class SQLiteRepo:
    """Connection handling shared by the repositories: one connection per call."""

    def __init__(self, db_path: str, timeout: float = BUSY_TIMEOUT):
        self.db_path = db_path
        self.timeout = timeout

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn


class SQLiteAccountRepo(SQLiteRepo):
    def save(self, account: Account) -> Account:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO accounts (id, email, created_at) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET email=excluded.email
            """,
                (str(account.id), account.email, account.created_at.isoformat()),
            )
            conn.commit()
            return account
        finally:
            conn.close()

    def get_by_id(self, account_id: UUID) -> Account | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM accounts WHERE id = ?", (str(account_id),)).fetchone()
            return self._map_row(row) if row else None
        finally:
            conn.close()

    def get_by_email(self, email: str) -> Account | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM accounts WHERE email = ?", (email,)).fetchone()
            return self._map_row(row) if row else None
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> Account:
        return Account(
            id=UUID(row["id"]),
            email=row["email"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteSubscriptionRepo(SQLiteRepo):
    """Plans and subscriptions."""

    def save_plan(self, plan: Plan) -> Plan:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO plans (
                    id, name, billing_type, price, currency, feature_flags_json,
                    audits_per_month, pdf_exports, history_days
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    billing_type=excluded.billing_type,
                    price=excluded.price,
                    currency=excluded.currency,
                    feature_flags_json=excluded.feature_flags_json,
                    audits_per_month=excluded.audits_per_month,
                    pdf_exports=excluded.pdf_exports,
                    history_days=excluded.history_days
            """,
                (
                    str(plan.id),
                    plan.name,
                    plan.billing_type,
                    plan.price,
                    plan.currency,
                    json.dumps(plan.feature_flags, sort_keys=True),
                    plan.limits.audits_per_month,
                    plan.limits.pdf_exports,
                    plan.limits.history_days,
                ),
            )
            conn.commit()
            return plan
        finally:
            conn.close()

    def get_plan(self, plan_id: UUID) -> Plan | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM plans WHERE id = ?", (str(plan_id),)).fetchone()
            return self._map_plan(row) if row else None
        finally:
            conn.close()

    def list_plans(self) -> list[Plan]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM plans ORDER BY price ASC, name ASC").fetchall()
            return [self._map_plan(row) for row in rows]
        finally:
            conn.close()

    def get_active(self, account_id: UUID) -> Subscription | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE account_id = ? AND status = 'active'",
                (str(account_id),),
            ).fetchone()
            return self._map_subscription(conn, row) if row else None
        except sqlite3.OperationalError as e:
            if is_lock_error(e):
                raise TimeoutError("subscription lookup timed out") from e
            raise
        finally:
            conn.close()

    def get_by_gateway_id(self, gateway: str, gateway_subscription_id: str) -> Subscription | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT * FROM subscriptions
                WHERE gateway = ? AND gateway_subscription_id = ?
                ORDER BY started_at DESC LIMIT 1
            """,
                (gateway, gateway_subscription_id),
            ).fetchone()
            return self._map_subscription(conn, row) if row else None
        finally:
            conn.close()

    def activate(self, subscription: Subscription) -> Subscription:
        """Insert an active subscription, cancelling the account's previous one."""
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE subscriptions SET status = 'cancelled', expires_at = ? "
                "WHERE account_id = ? AND status = 'active'",
                (subscription.started_at.isoformat(), str(subscription.account_id)),
            )
            conn.execute(
                """
                INSERT INTO subscriptions (
                    id, account_id, plan_id, status, gateway, gateway_subscription_id,
                    started_at, renews_at, expires_at
                ) VALUES (?, ?, ?, 'active', ?, ?, ?, ?, ?)
            """,
                (
                    str(subscription.id),
                    str(subscription.account_id),
                    str(subscription.plan.id),
                    subscription.gateway,
                    subscription.gateway_subscription_id,
                    subscription.started_at.isoformat(),
                    dump_dt(subscription.renews_at),
                    dump_dt(subscription.expires_at),
                ),
            )
            conn.commit()
            return subscription.model_copy(update={"status": "active"})
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def update_status(
        self,
        subscription_id: UUID,
        status: SubscriptionStatus,
        renews_at: datetime | None = None,
        expires_at: datetime | None = None,
    ) -> None:
        """
        Change status, keeping unset dates. Reactivating a subscription cancels
        any other active one for the account in the same transaction.
        """
        conn = self._get_conn()
        try:
            if status == "active":
                conn.execute(
                    """
                    UPDATE subscriptions SET status = 'cancelled', expires_at = ?
                    WHERE status = 'active' AND id != ?
                      AND account_id = (SELECT account_id FROM subscriptions WHERE id = ?)
                """,
                    (utcnow().isoformat(), str(subscription_id), str(subscription_id)),
                )
            conn.execute(
                """
                UPDATE subscriptions SET
                    status = ?,
                    renews_at = COALESCE(?, renews_at),
                    expires_at = COALESCE(?, expires_at)
                WHERE id = ?
            """,
                (status, dump_dt(renews_at), dump_dt(expires_at), str(subscription_id)),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _map_plan(self, row: dict[str, Any]) -> Plan:
        return Plan(
            id=UUID(row["id"]),
            name=row["name"],
            billing_type=row["billing_type"],
            price=row["price"],
            currency=row["currency"],
            feature_flags=json.loads(row["feature_flags_json"] or "{}"),
            limits=PlanLimits(
                audits_per_month=row["audits_per_month"],
                pdf_exports=row["pdf_exports"],
                history_days=row["history_days"],
            ),
        )

    def _map_subscription(self, conn: sqlite3.Connection, row: dict[str, Any]) -> Subscription:
        plan_row = conn.execute("SELECT * FROM plans WHERE id = ?", (row["plan_id"],)).fetchone()
        return Subscription(
            id=UUID(row["id"]),
            account_id=UUID(row["account_id"]),
            plan=self._map_plan(plan_row),
            status=row["status"],
            gateway=row["gateway"],
            gateway_subscription_id=row["gateway_subscription_id"],
            started_at=datetime.fromisoformat(row["started_at"]),
            renews_at=parse_dt(row["renews_at"]),
            expires_at=parse_dt(row["expires_at"]),
        )


class SQLiteGrantRepo(SQLiteRepo):
    def has_grant(self, account_id: UUID, grant_month: str) -> bool:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT 1 AS found FROM free_audit_grants WHERE account_id = ? AND grant_month = ?",
                (str(account_id), grant_month),
            ).fetchone()
            return row is not None
        except sqlite3.OperationalError as e:
            if is_lock_error(e):
                raise TimeoutError("grant lookup timed out") from e
            raise
        finally:
            conn.close()

    def add_grant(self, grant: FreeAuditGrant) -> tuple[FreeAuditGrant, bool]:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                INSERT INTO free_audit_grants (id, account_id, grant_month, granted_by, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(account_id, grant_month) DO NOTHING
            """,
                (
                    str(grant.id),
                    str(grant.account_id),
                    grant.grant_month,
                    grant.granted_by,
                    grant.created_at.isoformat(),
                ),
            )
            created = cursor.rowcount == 1
            row = conn.execute(
                "SELECT * FROM free_audit_grants WHERE account_id = ? AND grant_month = ?",
                (str(grant.account_id), grant.grant_month),
            ).fetchone()
            conn.commit()
            return self._map_row(row), created
        finally:
            conn.close()

    def remove_grant(self, account_id: UUID, grant_month: str) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "DELETE FROM free_audit_grants WHERE account_id = ? AND grant_month = ?",
                (str(account_id), grant_month),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> FreeAuditGrant:
        return FreeAuditGrant(
            id=UUID(row["id"]),
            account_id=UUID(row["account_id"]),
            grant_month=row["grant_month"],
            granted_by=row["granted_by"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteAuditRepo(SQLiteRepo):
    """Append-only audits; only ``is_pro_unlocked`` changes after insert."""

    def create(self, audit: Audit, metrics: AuditMetrics) -> tuple[Audit, bool]:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                INSERT INTO audits (
                    id, account_id, page_name, page_url, audit_type, input_data_json,
                    score_total, score_breakdown_json, recommendations_json,
                    is_pro_unlocked, request_key, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(account_id, request_key) DO NOTHING
            """,
                (
                    str(audit.id),
                    str(audit.account_id),
                    audit.page_name,
                    audit.page_url,
                    audit.audit_type,
                    json.dumps(audit.input_data, sort_keys=True),
                    audit.score_total,
                    json.dumps(audit.score_breakdown.model_dump(), sort_keys=True),
                    json.dumps([r.to_dict() for r in audit.recommendations]),
                    int(audit.is_pro_unlocked),
                    audit.request_key,
                    audit.created_at.isoformat(),
                ),
            )

            if cursor.rowcount == 0:
                # Same request key already stored for this account
                row = conn.execute(
                    "SELECT * FROM audits WHERE account_id = ? AND request_key = ?",
                    (str(audit.account_id), audit.request_key),
                ).fetchone()
                conn.rollback()
                return self._map_row(row), False

            conn.execute(
                """
                INSERT INTO audit_metrics (
                    audit_id, computed_metrics_json, raw_metrics_json,
                    data_availability_json, ai_insights_json, demographics_json
                ) VALUES (?, ?, ?, ?, ?, ?)
            """,
                (
                    str(audit.id),
                    dump_json(metrics.computed_metrics),
                    dump_json(metrics.raw_metrics),
                    dump_json(metrics.data_availability),
                    dump_json(metrics.ai_insights),
                    dump_json(metrics.demographics),
                ),
            )
            conn.commit()
            return audit, True
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_by_id(self, audit_id: UUID) -> Audit | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM audits WHERE id = ?", (str(audit_id),)).fetchone()
            return self._map_row(row) if row else None
        finally:
            conn.close()

    def get_by_request_key(self, account_id: UUID, request_key: str) -> Audit | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM audits WHERE account_id = ? AND request_key = ?",
                (str(account_id), request_key),
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            conn.close()

    def get_metrics(self, audit_id: UUID) -> AuditMetrics | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM audit_metrics WHERE audit_id = ?", (str(audit_id),)
            ).fetchone()
            if not row:
                return None
            return AuditMetrics(
                audit_id=UUID(row["audit_id"]),
                computed_metrics=load_json(row["computed_metrics_json"]),
                raw_metrics=load_json(row["raw_metrics_json"]),
                data_availability=load_json(row["data_availability_json"]),
                ai_insights=load_json(row["ai_insights_json"]),
                demographics=load_json(row["demographics_json"]),
            )
        finally:
            conn.close()

    def list_for_account(self, account_id: UUID, since: datetime | None = None) -> list[Audit]:
        conn = self._get_conn()
        try:
            if since is not None:
                rows = conn.execute(
                    "SELECT * FROM audits WHERE account_id = ? AND created_at >= ? "
                    "ORDER BY created_at DESC",
                    (str(account_id), since.isoformat()),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM audits WHERE account_id = ? ORDER BY created_at DESC",
                    (str(account_id),),
                ).fetchall()
            return [self._map_row(row) for row in rows]
        finally:
            conn.close()

    def set_unlocked(self, audit_id: UUID) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "UPDATE audits SET is_pro_unlocked = 1 WHERE id = ?", (str(audit_id),)
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> Audit:
        return Audit(
            id=UUID(row["id"]),
            account_id=UUID(row["account_id"]),
            page_name=row["page_name"],
            page_url=row["page_url"],
            audit_type=row["audit_type"],
            input_data=json.loads(row["input_data_json"] or "{}"),
            score_total=row["score_total"],
            score_breakdown=ScoreBreakdown(**json.loads(row["score_breakdown_json"])),
            recommendations=[
                Recommendation.model_validate(r) for r in json.loads(row["recommendations_json"])
            ],
            is_pro_unlocked=bool(row["is_pro_unlocked"]),
            request_key=row["request_key"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteShareRepo(SQLiteRepo):
    """Share state in ``reports``; unique indexes guard audit and slug."""

    def get_by_audit(self, audit_id: UUID) -> ShareRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM reports WHERE audit_id = ?", (str(audit_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            conn.close()

    def slug_exists(self, slug: str) -> bool:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT 1 AS found FROM reports WHERE share_slug = ?", (slug,)
            ).fetchone()
            return row is not None
        finally:
            conn.close()

    def publish(self, audit_id: UUID, slug: str) -> ShareRecord | None:
        now = utcnow().isoformat()
        conn = self._get_conn()
        try:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO reports (
                        id, audit_id, is_public, share_slug, views_count, created_at, updated_at
                    ) VALUES (?, ?, 1, ?, 0, ?, ?)
                    ON CONFLICT(audit_id) DO UPDATE SET
                        is_public=1,
                        share_slug=excluded.share_slug,
                        updated_at=excluded.updated_at
                    WHERE reports.is_public = 0
                """,
                    (str(uuid4()), str(audit_id), slug, now, now),
                )
            except sqlite3.IntegrityError as e:
                conn.rollback()
                if "share_slug" in str(e):
                    raise SlugTakenError(slug) from e
                raise

            if cursor.rowcount == 0:
                # Already public; a concurrent create got there first
                conn.rollback()
                return None

            row = conn.execute(
                "SELECT * FROM reports WHERE audit_id = ?", (str(audit_id),)
            ).fetchone()
            conn.commit()
            return self._map_row(row)
        finally:
            conn.close()

    def unpublish(self, audit_id: UUID) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                UPDATE reports SET is_public = 0, share_slug = NULL, updated_at = ?
                WHERE audit_id = ? AND is_public = 1
            """,
                (utcnow().isoformat(), str(audit_id)),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def record_view(self, slug: str) -> ShareRecord | None:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "UPDATE reports SET views_count = views_count + 1 "
                "WHERE share_slug = ? AND is_public = 1",
                (slug,),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                return None
            row = conn.execute("SELECT * FROM reports WHERE share_slug = ?", (slug,)).fetchone()
            conn.commit()
            return self._map_row(row)
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> ShareRecord:
        return ShareRecord(
            id=UUID(row["id"]),
            audit_id=UUID(row["audit_id"]),
            is_public=bool(row["is_public"]),
            share_slug=row["share_slug"],
            views_count=row["views_count"],
            pdf_url=row["pdf_url"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteUsageRepo(SQLiteRepo):
    def record_run(
        self,
        account_id: UUID,
        audit_id: UUID,
        period_start: str,
        limit: int | None = None,
    ) -> int | None:
        """
        Count the audit against the bucket, at most once per audit id.

        With a limit the counter only moves while it is below the limit, checked
        by the upsert itself. A refused run leaves no usage event and returns None.
        """
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                INSERT INTO usage_events (audit_id, account_id, period_start, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(audit_id) DO NOTHING
            """,
                (str(audit_id), str(account_id), period_start, utcnow().isoformat()),
            )
            if cursor.rowcount == 1:
                if limit is None:
                    conn.execute(
                        """
                        INSERT INTO usage_counters (account_id, period_start, count)
                        VALUES (?, ?, 1)
                        ON CONFLICT(account_id, period_start) DO UPDATE SET count = count + 1
                    """,
                        (str(account_id), period_start),
                    )
                else:
                    counted = conn.execute(
                        """
                        INSERT INTO usage_counters (account_id, period_start, count)
                        SELECT ?, ?, 1 WHERE ? > 0
                        ON CONFLICT(account_id, period_start) DO UPDATE
                        SET count = usage_counters.count + 1
                        WHERE usage_counters.count < ?
                    """,
                        (str(account_id), period_start, limit, limit),
                    )
                    if counted.rowcount != 1:
                        conn.rollback()
                        return None
            row = conn.execute(
                "SELECT count FROM usage_counters WHERE account_id = ? AND period_start = ?",
                (str(account_id), period_start),
            ).fetchone()
            conn.commit()
            return row["count"] if row else 0
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def release_run(self, audit_id: UUID) -> bool:
        """Undo a counted run whose audit was never stored."""
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT account_id, period_start FROM usage_events WHERE audit_id = ?",
                (str(audit_id),),
            ).fetchone()
            if row is None:
                return False
            cursor = conn.execute("DELETE FROM usage_events WHERE audit_id = ?", (str(audit_id),))
            if cursor.rowcount == 1:
                conn.execute(
                    """
                    UPDATE usage_counters SET count = count - 1
                    WHERE account_id = ? AND period_start = ? AND count > 0
                """,
                    (row["account_id"], row["period_start"]),
                )
            conn.commit()
            return cursor.rowcount == 1
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_count(self, account_id: UUID, period_start: str) -> int:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT count FROM usage_counters WHERE account_id = ? AND period_start = ?",
                (str(account_id), period_start),
            ).fetchone()
            return row["count"] if row else 0
        finally:
            conn.close()
