"""Test fixtures: a fresh SQLite file per test.

Learn: Every test gets its own database file under tmp_path, connected
through the same create_app() composition root the CLI uses. Nothing is
shared between tests, so there is no rollback trickery to maintain.

bcrypt's cost is lowered through the environment before the package is
imported; the hashing code path is otherwise identical.
"""

import os

os.environ.setdefault("CONTROLCARDS_BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from controlcards.main import create_app  # noqa: E402

ADMIN_PASSWORD = "admin-secret"
PASSWORD = "password-123"


@pytest.fixture()
def db_path(tmp_path):
    """Path inside a not-yet-existing directory, to exercise mkdir."""
    return str(tmp_path / "data" / "cards.db")


@pytest_asyncio.fixture()
async def app(db_path):
    app = create_app()
    await app.connect(db_path)
    try:
        yield app
    finally:
        await app.disconnect()


@pytest_asyncio.fixture()
async def admin_token(app):
    """Bootstrap the first admin and log in."""
    await app.accounts.create_first_admin("admin", ADMIN_PASSWORD)
    return await app.accounts.login("admin", ADMIN_PASSWORD)


@pytest_asyncio.fixture()
async def people(app, admin_token):
    """A controller and two executors, with ids and tokens.

    Returns {"admin": {...}, "ctrl": {...}, "alice": {...}, "bob": {...}}
    where each value has "id" and "token".
    """
    admin = await app.accounts.current_account(admin_token)
    result = {"admin": {"id": admin.id, "token": admin_token}}
    for username, role in (("ctrl", "controller"), ("alice", "user"), ("bob", "user")):
        account_id = await app.accounts.register(username, PASSWORD, role, admin_token)
        token = await app.accounts.login(username, PASSWORD)
        result[username] = {"id": account_id, "token": token}
    return result


@pytest.fixture()
def card_fields():
    """Build a valid card payload; override any field by keyword."""

    def _build(executor_id: int, **overrides) -> dict:
        fields = {
            "card_number": 1,
            "year": 2024,
            "executor_id": executor_id,
            "reporter": "Head of Office",
            "summary": "Prepare quarterly report",
            "document_reference": "DOC-17/2024",
        }
        fields.update(overrides)
        return fields

    return _build
