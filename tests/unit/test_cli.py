from uuid import UUID, uuid4

import pytest

from src.adapters.sqlite.repos import SQLiteAuditRepo, SQLiteGrantRepo
from src.api.auth_utils import decode_access_token
from src.api.deps import Settings
from src.app_shell.cli import main
from src.domain.entities import Audit, AuditMetrics


@pytest.fixture
def settings(tmp_path):
    settings = Settings(data_dir=tmp_path / "data")
    main(["migrate"], settings=settings)
    return settings


def last_line(capsys) -> str:
    return capsys.readouterr().out.strip().splitlines()[-1]


def create_account(settings, capsys, email="cli@example.com") -> UUID:
    main(["create-account", email], settings=settings)
    return UUID(last_line(capsys).rsplit(" ", 1)[-1])


def test_migrate_is_repeatable(settings, capsys):
    capsys.readouterr()
    main(["migrate"], settings=settings)
    assert "Applied 0 migration(s)." in capsys.readouterr().out


def test_create_account_is_idempotent(settings, capsys):
    first = create_account(settings, capsys)
    main(["create-account", "cli@example.com"], settings=settings)
    assert last_line(capsys) == f"Account exists: {first}"


def test_grant_and_revoke(settings, capsys):
    account_id = create_account(settings, capsys)

    main(["grant", str(account_id), "--month", "2025-05"], settings=settings)
    assert "2025-05-01 created" in last_line(capsys)
    assert SQLiteGrantRepo(settings.db_path).has_grant(account_id, "2025-05-01")

    main(["revoke-grant", str(account_id), "--month", "2025-05"], settings=settings)
    assert last_line(capsys) == "Grant revoked."


def test_grant_unknown_account_exits(settings):
    with pytest.raises(SystemExit) as exc:
        main(["grant", str(uuid4())], settings=settings)
    assert exc.value.code == 1


def test_unlock(settings, capsys):
    account_id = create_account(settings, capsys)
    audit = Audit(account_id=account_id, page_name="Deli")
    repo = SQLiteAuditRepo(settings.db_path)
    repo.create(audit, AuditMetrics(audit_id=audit.id))

    main(["unlock", str(audit.id)], settings=settings)
    assert repo.get_by_id(audit.id).is_pro_unlocked is True

    with pytest.raises(SystemExit):
        main(["unlock", str(uuid4())], settings=settings)


def test_issue_admin_token(settings, capsys):
    main(["issue-token", "support", "--admin", "--minutes", "5"], settings=settings)
    claims = decode_access_token(last_line(capsys))
    assert claims["sub"] == "support"
    assert claims["role"] == "admin"
