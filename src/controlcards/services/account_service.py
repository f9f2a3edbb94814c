"""Account service: bootstrap, login and account administration."""

from typing import Optional

import structlog

from controlcards.auth.identity import authenticate
from controlcards.auth.jwt import TokenError, issue_token
from controlcards.auth.password import (
    PasswordHashError,
    hash_password,
    verify_password,
)
from controlcards.auth.policy import Action, Role
from controlcards.config import Settings, settings as default_settings
from controlcards.db.engine import Database
from controlcards.errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    ValidationError,
)
from controlcards.schemas.account import AccountRead

logger = structlog.get_logger()

# Same message for unknown username and wrong password
INVALID_CREDENTIALS = "Invalid username or password"


def _clean_username(username: str) -> str:
    if not username or not username.strip():
        raise ValidationError("Username must not be empty")
    return username


class AccountService:
    """Business logic for accounts and authentication."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings

    # ─── Bootstrap ──────────────────────────────────────

    async def has_any_accounts(self) -> bool:
        """True once at least one account exists. False while disconnected."""
        if not self.db.is_connected:
            return False
        async with self.db.session() as repo:
            return await repo.has_any_accounts()

    async def create_first_admin(self, username: str, password: str) -> int:
        """Create the initial admin account on an empty store.

        Learn: This is the only way in without a token. It refuses to run
        once any account exists, whatever the arguments.
        """
        username = _clean_username(username)
        password_hash = hash_password(password, self.settings)

        async with self.db.session() as repo:
            if await repo.has_any_accounts():
                raise ConflictError("Accounts already exist; bootstrap is closed")
            account = await repo.create_account(username, password_hash, Role.ADMIN)

        logger.info("controlcards.admin_bootstrapped", account_id=account.id)
        return account.id

    # ─── Authentication ─────────────────────────────────

    async def login(self, username: str, password: str) -> str:
        """Check credentials and issue a 24h token."""
        async with self.db.session() as repo:
            account = await repo.find_account_by_username(username)

        if account is None:
            logger.info("controlcards.login_failed")
            raise AuthenticationError(INVALID_CREDENTIALS)

        try:
            valid = verify_password(password, account.password_hash)
        except PasswordHashError as e:
            # Same answer as a wrong password; the cause goes to the log only
            logger.warning("controlcards.login_bad_hash", account_id=account.id, error=str(e))
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not valid:
            logger.info("controlcards.login_failed")
            raise AuthenticationError(INVALID_CREDENTIALS)

        try:
            token = issue_token(account.id, account.role, cfg=self.settings)
        except TokenError as e:
            raise InternalError(str(e))
        logger.info("controlcards.login", account_id=account.id, role=account.role.value)
        return token

    async def current_account(self, token: str) -> AccountRead:
        identity = authenticate(token, self.settings)
        async with self.db.session() as repo:
            account = await repo.get_account(identity.account_id)
        return AccountRead.model_validate(account)

    # ─── Administration ─────────────────────────────────

    async def register(
        self, username: str, password: str, role: str, token: str
    ) -> int:
        identity = authenticate(token, self.settings)
        identity.require(Action.ACCOUNT_REGISTER)
        parsed_role = Role.parse(role)
        username = _clean_username(username)
        password_hash = hash_password(password, self.settings)

        async with self.db.session() as repo:
            account = await repo.create_account(username, password_hash, parsed_role)

        logger.info(
            "controlcards.account_registered",
            account_id=account.id,
            role=parsed_role.value,
            by=identity.account_id,
        )
        return account.id

    async def list_accounts(self, token: str) -> list[AccountRead]:
        identity = authenticate(token, self.settings)
        identity.require(Action.ACCOUNT_LIST)
        return await self._list(None)

    async def list_accounts_for_executor_pick(self, token: str) -> list[AccountRead]:
        """Accounts eligible to execute a card (role = user)."""
        identity = authenticate(token, self.settings)
        identity.require(Action.ACCOUNT_LIST_EXECUTORS)
        return await self._list(Role.USER)

    async def list_accounts_for_controller_pick(self, token: str) -> list[AccountRead]:
        """Accounts eligible to oversee a card (role = controller)."""
        identity = authenticate(token, self.settings)
        identity.require(Action.ACCOUNT_LIST_CONTROLLERS)
        return await self._list(Role.CONTROLLER)

    async def _list(self, role: Optional[Role]) -> list[AccountRead]:
        async with self.db.session() as repo:
            accounts = await repo.list_accounts(role)
        return [AccountRead.model_validate(a) for a in accounts]

    async def update_account(
        self, account_id: int, username: str, role: str, token: str
    ) -> AccountRead:
        """Rename and/or re-role an account.

        Cards keep the executor/controller names they were written with.
        """
        identity = authenticate(token, self.settings)
        identity.require(Action.ACCOUNT_UPDATE)
        parsed_role = Role.parse(role)
        username = _clean_username(username)

        async with self.db.session() as repo:
            await repo.get_account(account_id)
            holder = await repo.find_account_by_username(username)
            if holder is not None and holder.id != account_id:
                raise ConflictError("Username already exists")
            await repo.update_account(account_id, username, parsed_role)
            account = await repo.get_account(account_id)

        logger.info(
            "controlcards.account_updated",
            account_id=account_id,
            role=parsed_role.value,
            by=identity.account_id,
        )
        return AccountRead.model_validate(account)

    async def delete_account(self, account_id: int, token: str) -> None:
        identity = authenticate(token, self.settings)
        identity.require(Action.ACCOUNT_DELETE)

        async with self.db.session() as repo:
            await repo.get_account(account_id)
            await repo.delete_account(account_id)

        logger.info("controlcards.account_deleted", account_id=account_id, by=identity.account_id)

    async def change_password(
        self, account_id: int, new_password: str, token: str
    ) -> None:
        identity = authenticate(token, self.settings)
        identity.require(Action.ACCOUNT_CHANGE_PASSWORD)
        password_hash = hash_password(new_password, self.settings)

        async with self.db.session() as repo:
            await repo.get_account(account_id)
            await repo.update_account_password(account_id, password_hash)

        logger.info("controlcards.password_changed", account_id=account_id, by=identity.account_id)
