"""CLI tests: drive the click commands end to end against a temp file.

Learn: CliRunner runs each command in-process. Every invocation connects,
runs one operation and disconnects, exactly like a real shell session.
"""

import json

import pytest
from click.testing import CliRunner

from controlcards.cli.main import main


@pytest.fixture()
def cli(db_path):
    runner = CliRunner()

    def invoke(*args, token=None):
        env = {"CONTROLCARDS_TOKEN": token} if token else {}
        return runner.invoke(main, ["--db", db_path, *args], env=env)

    return invoke


def _login(cli, username, password) -> str:
    result = cli("login", username, "--password", password)
    assert result.exit_code == 0, result.output
    return result.output.strip().splitlines()[-1]


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


def test_full_flow(cli):
    assert _json(cli("has-accounts")) is False

    result = cli("init-admin", "admin", "--password", "admin-secret")
    assert result.exit_code == 0, result.output
    assert "created" in result.output

    admin = _login(cli, "admin", "admin-secret")
    me = _json(cli("whoami", token=admin))
    assert me["username"] == "admin"
    assert "password_hash" not in me

    result = cli("users", "add", "alice", "--role", "user", "--password", "alice-pass", token=admin)
    assert result.exit_code == 0, result.output
    executors = _json(cli("users", "list", "--pick", "executor", token=admin))
    alice_id = executors[0]["id"]

    assert cli("cards", "next-number", "2024").output.strip() == "1"
    card = _json(cli(
        "cards", "add",
        "--year", "2024",
        "--executor-id", str(alice_id),
        "--reporter", "Director",
        "--summary", "Check the archive",
        "--document-ref", "A-1",
        "--deadline", "2024-06-01",
        token=admin,
    ))
    assert card["card_number"] == 1
    assert card["executor"] == "alice"
    assert card["execution_deadline"] == "2024-06-01"

    alice = _login(cli, "alice", "alice-pass")
    cards = _json(cli("cards", "list", token=alice))
    assert [c["id"] for c in cards] == [card["id"]]

    info = _json(cli("db", "info"))
    assert info["state"] == "connected"
    assert info["accounts"] == 2
    assert info["control_cards"] == 1


def test_errors_exit_with_kind(cli):
    cli("init-admin", "admin", "--password", "admin-secret")

    result = cli("login", "admin", "--password", "wrong-password")
    assert result.exit_code == 1
    assert "authentication" in result.output

    result = cli("cards", "list")
    assert result.exit_code == 1
    assert "Authentication required" in result.output

    result = cli("init-admin", "again", "--password", "admin-secret")
    assert result.exit_code == 1
    assert "conflict" in result.output


def test_user_cannot_manage_accounts(cli):
    cli("init-admin", "admin", "--password", "admin-secret")
    admin = _login(cli, "admin", "admin-secret")
    cli("users", "add", "bob", "--role", "user", "--password", "bob-pass", token=admin)
    bob = _login(cli, "bob", "bob-pass")

    result = cli("users", "list", token=bob)
    assert result.exit_code == 1
    assert "authorization" in result.output


def test_invalid_role_rejected_by_cli(cli):
    result = cli("users", "add", "eve", "--role", "root", "--password", "eve-pass", token="x")
    assert result.exit_code == 2


def test_log_level_is_validated(cli):
    result = cli("--log-level", "bogus", "has-accounts")
    assert result.exit_code == 2
    assert "bogus" in result.output

    assert cli("--log-level", "error", "has-accounts").exit_code == 0


def test_explicit_card_number_zero_is_rejected(cli):
    cli("init-admin", "admin", "--password", "admin-secret")
    admin = _login(cli, "admin", "admin-secret")
    cli("users", "add", "alice", "--role", "user", "--password", "alice-pass", token=admin)
    alice_id = _json(cli("users", "list", "--pick", "executor", token=admin))[0]["id"]

    result = cli(
        "cards", "add",
        "--number", "0",
        "--year", "2024",
        "--executor-id", str(alice_id),
        "--reporter", "Director",
        "--summary", "Check the archive",
        "--document-ref", "A-1",
        token=admin,
    )
    assert result.exit_code == 1
    assert "validation" in result.output
    assert cli("cards", "next-number", "2024").output.strip() == "1"
