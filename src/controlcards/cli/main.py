"""controlcards CLI: operate on a control card database from the shell.

Usage:
    controlcards --db cards.db init-admin admin          # First admin on an empty file
    controlcards --db cards.db login admin               # Prints a 24h token
    export CONTROLCARDS_TOKEN=...
    controlcards --db cards.db users add alice --role user
    controlcards --db cards.db cards add --executor-id 2 --reporter ... --summary ... --document-ref ...
    controlcards --db cards.db cards list                # Scoped by your role
    controlcards --db cards.db db info                   # Path, state, row counts
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import datetime
import json
import logging
import sys
from typing import Awaitable, Callable, Optional, TypeVar

import click
import structlog

from controlcards import __version__
from controlcards.auth.policy import Role
from controlcards.config import settings
from controlcards.errors import ControlCardsError
from controlcards.main import ControlCardsApp, create_app

T = TypeVar("T")

ROLE_CHOICES = click.Choice([r.value for r in Role])
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _configure_logging(level: str) -> None:
    """Send structlog output to stderr so stdout stays machine-readable."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=lambda *args: structlog.PrintLogger(sys.stderr),
    )


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop, normal CLI invocation
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _call(ctx: click.Context, op: Callable[[ControlCardsApp], Awaitable[T]]) -> T:
    """Connect, run one operation, disconnect. Errors exit with status 1."""

    async def _impl() -> T:
        app = create_app()
        await app.connect(ctx.obj["db_path"])
        try:
            return await op(app)
        finally:
            await app.disconnect()

    try:
        return _run(_impl())
    except ControlCardsError as e:
        click.secho(f"{e.kind.value}: {e.message}", fg="red", err=True)
        sys.exit(1)


def _pretty_json(data) -> str:
    if isinstance(data, list):
        data = [_dump(d) for d in data]
    else:
        data = _dump(data)
    return json.dumps(data, indent=2, default=str, ensure_ascii=False)


def _dump(item):
    return item.model_dump(mode="json") if hasattr(item, "model_dump") else item


token_option = click.option(
    "--token",
    envvar="CONTROLCARDS_TOKEN",
    default=None,
    help="Bearer token from `controlcards login` (or set CONTROLCARDS_TOKEN)",
)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="controlcards")
@click.option(
    "--db",
    "db_path",
    default=None,
    help="Database file (default: CONTROLCARDS_DATABASE_PATH or ./controlcards.db)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="structlog level (default: WARNING)",
)
@click.pass_context
def main(ctx: click.Context, db_path: Optional[str], log_level: Optional[str]):
    """controlcards: track control cards with role-based access."""
    _configure_logging(log_level or settings.log_level)
    ctx.obj = {"db_path": db_path or settings.database_path}


# ---------------------------------------------------------------------------
# Bootstrap and authentication
# ---------------------------------------------------------------------------


@main.command("init-admin")
@click.argument("username")
@click.password_option("--password", help="Password for the first admin")
@click.pass_context
def init_admin(ctx: click.Context, username: str, password: str):
    """Create the first admin account. Only works on an empty database."""
    account_id = _call(ctx, lambda app: app.accounts.create_first_admin(username, password))
    click.secho(f"Admin '{username}' created (id={account_id})", fg="green")


@main.command("has-accounts")
@click.pass_context
def has_accounts(ctx: click.Context):
    """Print whether any account exists yet."""
    click.echo(json.dumps(_call(ctx, lambda app: app.accounts.has_any_accounts())))


@main.command()
@click.argument("username")
@click.option("--password", prompt=True, hide_input=True)
@click.pass_context
def login(ctx: click.Context, username: str, password: str):
    """Log in and print a token valid for 24 hours."""
    click.echo(_call(ctx, lambda app: app.accounts.login(username, password)))


@main.command()
@token_option
@click.pass_context
def whoami(ctx: click.Context, token: Optional[str]):
    """Show the account the token belongs to."""
    click.echo(_pretty_json(_call(ctx, lambda app: app.accounts.current_account(token))))


# ---------------------------------------------------------------------------
# controlcards users ...
# ---------------------------------------------------------------------------


@main.group()
def users():
    """Account administration."""


@users.command("list")
@click.option(
    "--pick",
    type=click.Choice(["executor", "controller"]),
    default=None,
    help="Only accounts selectable as executor (role user) or controller",
)
@token_option
@click.pass_context
def users_list(ctx: click.Context, pick: Optional[str], token: Optional[str]):
    """List accounts, newest first."""
    if pick == "executor":
        op = lambda app: app.accounts.list_accounts_for_executor_pick(token)  # noqa: E731
    elif pick == "controller":
        op = lambda app: app.accounts.list_accounts_for_controller_pick(token)  # noqa: E731
    else:
        op = lambda app: app.accounts.list_accounts(token)  # noqa: E731
    click.echo(_pretty_json(_call(ctx, op)))


@users.command("add")
@click.argument("username")
@click.option("--role", type=ROLE_CHOICES, required=True)
@click.password_option("--password")
@token_option
@click.pass_context
def users_add(ctx: click.Context, username: str, role: str, password: str, token: Optional[str]):
    """Register a new account (admin only)."""
    account_id = _call(ctx, lambda app: app.accounts.register(username, password, role, token))
    click.secho(f"Account '{username}' created (id={account_id})", fg="green")


@users.command("update")
@click.argument("account_id", type=int)
@click.option("--username", required=True)
@click.option("--role", type=ROLE_CHOICES, required=True)
@token_option
@click.pass_context
def users_update(ctx: click.Context, account_id: int, username: str, role: str, token: Optional[str]):
    """Change an account's username and role (admin only)."""
    account = _call(
        ctx, lambda app: app.accounts.update_account(account_id, username, role, token)
    )
    click.echo(_pretty_json(account))


@users.command("delete")
@click.argument("account_id", type=int)
@token_option
@click.pass_context
def users_delete(ctx: click.Context, account_id: int, token: Optional[str]):
    """Delete an account (admin only). Cards keep their references."""
    _call(ctx, lambda app: app.accounts.delete_account(account_id, token))
    click.secho(f"Account {account_id} deleted", fg="green")


@users.command("passwd")
@click.argument("account_id", type=int)
@click.password_option("--password")
@token_option
@click.pass_context
def users_passwd(ctx: click.Context, account_id: int, password: str, token: Optional[str]):
    """Set a new password for an account (admin only)."""
    _call(ctx, lambda app: app.accounts.change_password(account_id, password, token))
    click.secho(f"Password for account {account_id} changed", fg="green")


# ---------------------------------------------------------------------------
# controlcards cards ...
# ---------------------------------------------------------------------------


def _card_options(f):
    """Options shared by `cards add` and `cards update`."""
    options = [
        click.option("--year", type=int, default=lambda: datetime.date.today().year, show_default="current year"),
        click.option("--executor-id", type=int, required=True, help="Account id with role user"),
        click.option("--reporter", required=True),
        click.option("--summary", required=True),
        click.option("--document-ref", "document_reference", required=True),
        click.option("--return-to", default=None),
        click.option("--deadline", "execution_deadline", default=None),
        click.option("--period", "execution_period_type", default=None, help="e.g. daily, weekly, monthly"),
        click.option("--extended-deadline", default=None),
        click.option("--resolution", default=None),
        click.option("--department", default=None),
        click.option("--controller", default=None, help="Free-text controller name"),
        click.option("--controller-id", type=int, default=None, help="Account id with role controller"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@main.group()
def cards():
    """Control card operations."""


@cards.command("next-number")
@click.argument("year", type=int)
@click.pass_context
def cards_next_number(ctx: click.Context, year: int):
    """Suggest the next card number for YEAR."""
    click.echo(_call(ctx, lambda app: app.cards.next_card_number(year)))


@cards.command("list")
@token_option
@click.pass_context
def cards_list(ctx: click.Context, token: Optional[str]):
    """List cards visible to you, newest first."""
    click.echo(_pretty_json(_call(ctx, lambda app: app.cards.list_cards(token))))


@cards.command("show")
@click.argument("card_id", type=int)
@token_option
@click.pass_context
def cards_show(ctx: click.Context, card_id: int, token: Optional[str]):
    """Show one card."""
    click.echo(_pretty_json(_call(ctx, lambda app: app.cards.get_card(card_id, token))))


@cards.command("add")
@click.option("--number", "card_number", type=int, default=None, help="Defaults to the next free number")
@_card_options
@token_option
@click.pass_context
def cards_add(ctx: click.Context, card_number: Optional[int], token: Optional[str], **fields):
    """Create a card (admin or controller)."""

    async def op(app: ControlCardsApp):
        number = card_number
        if number is None:
            number = await app.cards.next_card_number(fields["year"])
        return await app.cards.create_card({"card_number": number, **fields}, token)

    click.echo(_pretty_json(_call(ctx, op)))


@cards.command("update")
@click.argument("card_id", type=int)
@click.option("--number", "card_number", type=int, required=True)
@_card_options
@token_option
@click.pass_context
def cards_update(ctx: click.Context, card_id: int, card_number: int, token: Optional[str], **fields):
    """Overwrite a card (admin or controller)."""
    data = {"card_number": card_number, **fields}
    click.echo(_pretty_json(_call(ctx, lambda app: app.cards.update_card(card_id, data, token))))


@cards.command("delete")
@click.argument("card_id", type=int)
@token_option
@click.pass_context
def cards_delete(ctx: click.Context, card_id: int, token: Optional[str]):
    """Delete a card (admin or controller)."""
    _call(ctx, lambda app: app.cards.delete_card(card_id, token))
    click.secho(f"Card {card_id} deleted", fg="green")


# ---------------------------------------------------------------------------
# controlcards db ...
# ---------------------------------------------------------------------------


@main.group()
def db():
    """Database inspection."""


@db.command("info")
@click.pass_context
def db_info(ctx: click.Context):
    """Show database path, connection state and row counts."""

    async def op(app: ControlCardsApp):
        async with app.db.session() as repo:
            return {
                "path": app.current_path(),
                "state": app.db.state.value,
                "accounts": await repo.count_accounts(),
                "control_cards": await repo.count_cards(),
            }

    click.echo(_pretty_json(_call(ctx, op)))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
