"""Query surface over one AsyncSession.

Learn: Each method is one atomic statement (plus a commit for writes).
Nothing here checks roles; that is the service layer's job. What does
live here is translating SQLAlchemy failures into the error taxonomy:

- UNIQUE constraint violations → ConflictError
- OperationalError (locked file, disk I/O, ...) → StoreUnavailableError
- anything else from the driver → InternalError
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from controlcards.auth.policy import Role
from controlcards.db.models import Account, ControlCard
from controlcards.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    StoreUnavailableError,
)


def _reason(e: DBAPIError) -> str:
    return str(e.orig) if e.orig is not None else str(e)


class Repository:
    """All record and account queries, bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _guard(self, action: str, conflict: Optional[str] = None):
        try:
            yield
        except IntegrityError as e:
            await self.session.rollback()
            if "UNIQUE" in _reason(e).upper():
                raise ConflictError(conflict or f"{action}: {_reason(e)}")
            raise InternalError(f"{action}: {_reason(e)}")
        except OperationalError as e:
            await self.session.rollback()
            raise StoreUnavailableError(f"{action}: {_reason(e)}")
        except DBAPIError as e:
            await self.session.rollback()
            raise InternalError(f"{action}: {_reason(e)}")

    # ═══════════════════════════════════════════════════════
    # Control cards
    # ═══════════════════════════════════════════════════════

    async def next_card_number(self, year: int) -> int:
        """Suggest the next number for ``year``.

        Only a hint: two callers may get the same value, and the
        (year, card_number) constraint rejects whichever inserts second.
        """
        async with self._guard("Failed to get next card number"):
            result = await self.session.execute(
                select(func.max(ControlCard.card_number)).where(ControlCard.year == year)
            )
            current = result.scalar()
        return (current or 0) + 1

    async def create_card(self, **fields: Any) -> ControlCard:
        card = ControlCard(**fields)
        async with self._guard(
            "Failed to create control card",
            conflict=f"Card {fields.get('card_number')}/{fields.get('year')} already exists",
        ):
            self.session.add(card)
            await self.session.commit()
            await self.session.refresh(card)
        return card

    async def get_card(self, card_id: int) -> ControlCard:
        async with self._guard("Failed to get control card"):
            result = await self.session.execute(
                select(ControlCard)
                .where(ControlCard.id == card_id)
                .execution_options(populate_existing=True)
            )
            card = result.scalars().first()
        if card is None:
            raise NotFoundError(f"Control card {card_id} not found")
        return card

    async def list_cards(self) -> list[ControlCard]:
        async with self._guard("Failed to get control cards"):
            result = await self.session.execute(
                select(ControlCard).order_by(
                    ControlCard.year.desc(), ControlCard.card_number.desc()
                )
            )
            return list(result.scalars().all())

    async def list_cards_by_executor(self, account_id: int) -> list[ControlCard]:
        async with self._guard("Failed to get control cards by executor"):
            result = await self.session.execute(
                select(ControlCard)
                .where(ControlCard.executor_id == account_id)
                .order_by(ControlCard.year.desc(), ControlCard.card_number.desc())
            )
            return list(result.scalars().all())

    async def update_card(self, card_id: int, **fields: Any) -> ControlCard:
        """Overwrite a card in place. No versioning."""
        async with self._guard(
            "Failed to update control card",
            conflict=f"Card {fields.get('card_number')}/{fields.get('year')} already exists",
        ):
            result = await self.session.execute(
                update(ControlCard).where(ControlCard.id == card_id).values(**fields)
            )
            await self.session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Control card {card_id} not found")
        return await self.get_card(card_id)

    async def delete_card(self, card_id: int) -> None:
        async with self._guard("Failed to delete control card"):
            result = await self.session.execute(
                delete(ControlCard).where(ControlCard.id == card_id)
            )
            await self.session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Control card {card_id} not found")

    async def count_cards(self) -> int:
        async with self._guard("Failed to count control cards"):
            result = await self.session.execute(select(func.count(ControlCard.id)))
            return result.scalar_one()

    # ═══════════════════════════════════════════════════════
    # Accounts
    # ═══════════════════════════════════════════════════════

    async def create_account(
        self, username: str, password_hash: str, role: Role
    ) -> Account:
        account = Account(username=username, password_hash=password_hash, role=role)
        async with self._guard(
            "Failed to create account", conflict="Username already exists"
        ):
            self.session.add(account)
            await self.session.commit()
            await self.session.refresh(account)
        return account

    async def find_account_by_username(self, username: str) -> Optional[Account]:
        async with self._guard("Failed to get account by username"):
            result = await self.session.execute(
                select(Account).where(Account.username == username)
            )
            return result.scalars().first()

    async def find_account(self, account_id: int) -> Optional[Account]:
        """Probe for an account; None when the id does not resolve."""
        async with self._guard("Failed to get account by id"):
            result = await self.session.execute(
                select(Account)
                .where(Account.id == account_id)
                .execution_options(populate_existing=True)
            )
            return result.scalars().first()

    async def get_account(self, account_id: int) -> Account:
        account = await self.find_account(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    async def list_accounts(self, role: Optional[Role] = None) -> list[Account]:
        """All accounts, newest first, optionally narrowed to one role."""
        q = select(Account).order_by(Account.created_at.desc(), Account.id.desc())
        if role is not None:
            q = q.where(Account.role == role)
        async with self._guard("Failed to get accounts"):
            result = await self.session.execute(q)
            return list(result.scalars().all())

    async def update_account(self, account_id: int, username: str, role: Role) -> None:
        async with self._guard(
            "Failed to update account", conflict="Username already exists"
        ):
            result = await self.session.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(username=username, role=role)
            )
            await self.session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Account {account_id} not found")

    async def update_account_password(self, account_id: int, password_hash: str) -> None:
        async with self._guard("Failed to update account password"):
            result = await self.session.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(password_hash=password_hash)
            )
            await self.session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Account {account_id} not found")

    async def delete_account(self, account_id: int) -> None:
        """Delete immediately. Cards referencing the account are left as-is."""
        async with self._guard("Failed to delete account"):
            result = await self.session.execute(
                delete(Account).where(Account.id == account_id)
            )
            await self.session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Account {account_id} not found")

    async def has_any_accounts(self) -> bool:
        async with self._guard("Failed to check if accounts exist"):
            result = await self.session.execute(select(func.count(Account.id)))
            return result.scalar_one() > 0

    async def count_accounts(self) -> int:
        async with self._guard("Failed to count accounts"):
            result = await self.session.execute(select(func.count(Account.id)))
            return result.scalar_one()
