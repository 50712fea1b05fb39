"""Tests for the maintenance CLI, run against the test database."""

from __future__ import annotations

import pytest

from cli import manage
from conftest import TENANT, add_order
from laundrypos.models import License, Payment


@pytest.fixture
def cli_db(monkeypatch, engine, session_factory):
    monkeypatch.setattr(manage, "SessionLocal", session_factory)
    monkeypatch.setattr(manage, "engine", engine)
    return session_factory


def test_grant_then_status(cli_db, capsys) -> None:
    assert manage.main(["grant", "--tenant", TENANT, "--package", "yearly"]) == 0
    assert "License granted to: tenant-a" in capsys.readouterr().out

    assert manage.main(["status", "--tenant", TENANT]) == 0
    out = capsys.readouterr().out
    assert "Verdict: active" in out
    assert "Package: yearly" in out


def test_status_without_license(cli_db, capsys) -> None:
    assert manage.main(["status", "--tenant", "nobody"]) == 0
    assert "Verdict: expired" in capsys.readouterr().out


def test_approve_and_double_approve(cli_db, db, capsys) -> None:
    payment = Payment(tenant_id=TENANT, amount_idr=50_000, package="monthly")
    db.add(payment)
    db.commit()

    assert manage.main(["approve", "--payment", str(payment.id)]) == 0
    assert f"Payment {payment.id} approved" in capsys.readouterr().out
    assert db.query(License).filter(License.active.is_(True)).count() == 1

    assert manage.main(["approve", "--payment", str(payment.id)]) == 1


def test_reject_unknown_payment(cli_db) -> None:
    assert manage.main(["reject", "--payment", "77"]) == 1


def test_repair_history(cli_db, db, capsys) -> None:
    add_order(db, status="ready", code="LND-R")
    assert manage.main(["repair-history", "--tenant", TENANT]) == 0
    out = capsys.readouterr().out
    assert "Repaired 1 order(s)" in out
    assert "LND-R" in out


@pytest.mark.parametrize("argv", [["grant"], ["status"], ["approve"], ["reject"]])
def test_missing_arguments(cli_db, argv, capsys) -> None:
    assert manage.main(argv) == 2
    assert "required" in capsys.readouterr().out


def test_unknown_package_is_argparse_error(cli_db) -> None:
    with pytest.raises(SystemExit):
        manage.main(["grant", "--tenant", TENANT, "--package", "weekly"])
