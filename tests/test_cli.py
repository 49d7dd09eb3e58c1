"""Tests for the admin CLI."""
import pytest
from click.testing import CliRunner
from sqlalchemy import update

from aidcrm import cli as cli_module
from aidcrm.cli import cli
from aidcrm.core.security import decode_session_token
from aidcrm.db.models import AuditLog
from aidcrm.db.sql_store import SqlEntityStore


@pytest.fixture
def runner(sql_session_factory, monkeypatch) -> CliRunner:
    monkeypatch.setattr(cli_module, "SessionLocal", sql_session_factory)
    return CliRunner()


def _store(sql_session_factory) -> SqlEntityStore:
    return SqlEntityStore(sql_session_factory())


def test_create_user(runner, sql_session_factory):
    result = runner.invoke(cli, ["create-user", "--email", "Admin@Example.org", "--name", "Admin", "--role", "admin"])
    assert result.exit_code == 0, result.output
    assert "Created user: admin@example.org" in result.output

    user = _store(sql_session_factory).get_user_by_email("admin@example.org")
    assert user.role.value == "ADMIN"


def test_create_user_twice_fails(runner):
    args = ["create-user", "--email", "a@example.org", "--name", "A", "--role", "STAFF"]
    assert runner.invoke(cli, args).exit_code == 0
    result = runner.invoke(cli, args)
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_create_user_rejects_unknown_role(runner):
    result = runner.invoke(cli, ["create-user", "--email", "a@example.org", "--name", "A", "--role", "OWNER"])
    assert result.exit_code == 2


def test_issue_token_and_revoke(runner, sql_session_factory):
    runner.invoke(cli, ["create-user", "--email", "w@example.org", "--name", "W", "--role", "FIELD_WORKER"])

    result = runner.invoke(cli, ["issue-token", "--email", "w@example.org"])
    assert result.exit_code == 0
    payload = decode_session_token(result.output.strip())
    assert payload.role == "FIELD_WORKER"
    assert payload.token_version == 1

    result = runner.invoke(cli, ["revoke-sessions", "--email", "W@example.org"])
    assert result.exit_code == 0
    assert "1 → 2" in result.output
    assert _store(sql_session_factory).get_user_by_email("w@example.org").token_version == 2


def test_issue_token_unknown_user(runner):
    result = runner.invoke(cli, ["issue-token", "--email", "ghost@example.org"])
    assert result.exit_code == 1


def test_seed_demo_is_idempotent(runner, sql_session_factory):
    result = runner.invoke(cli, ["seed-demo"])
    assert result.exit_code == 0, result.output
    assert "Created 3 users" in result.output
    assert "Created 2 beneficiaries" in result.output

    again = runner.invoke(cli, ["seed-demo"])
    assert again.exit_code == 0
    assert "nothing to do" in again.output
    assert len(_store(sql_session_factory).all_audit_entries()) == 6


def test_verify_audit_chain(runner, sql_session_factory):
    runner.invoke(cli, ["seed-demo"])

    result = runner.invoke(cli, ["verify-audit-chain"])
    assert result.exit_code == 0
    assert "intact (6 entries)" in result.output

    db = sql_session_factory()
    db.execute(update(AuditLog).where(AuditLog.id == 4).values(action="CASE_UPDATED"))
    db.commit()
    db.close()

    result = runner.invoke(cli, ["verify-audit-chain"])
    assert result.exit_code == 1
    assert "broken at entry 4" in result.output
