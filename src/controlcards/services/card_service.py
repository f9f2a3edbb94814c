"""Card service: control card CRUD behind the role policy.

Learn: Reads are role-scoped rather than simply allowed/denied:

- admin and controller see every card
- user sees only cards where they are the executor

Writes resolve the executor (and optional controller) account inside the
same locked session as the insert/update, so nobody can re-role the
account between the check and the write.
"""

from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from controlcards.auth.identity import authenticate
from controlcards.auth.policy import Action, Role
from controlcards.config import Settings, settings as default_settings
from controlcards.db.engine import Database
from controlcards.db.repository import Repository
from controlcards.errors import AuthorizationError, NotFoundError, ValidationError
from controlcards.schemas.card import CardInput, CardRead

logger = structlog.get_logger()


def _coerce_input(data: Union[CardInput, dict]) -> CardInput:
    if isinstance(data, CardInput):
        return data
    try:
        return CardInput.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid card fields: {problems}")


async def _resolve_references(repo: Repository, card: CardInput) -> dict[str, Any]:
    """Check executor/controller accounts and snapshot their usernames.

    Returns the column values to write.
    """
    executor = await repo.find_account(card.executor_id)
    if executor is None:
        raise NotFoundError(f"Executor account {card.executor_id} not found")
    if executor.role != Role.USER:
        raise ValidationError("Executor must be an account with role 'user'")

    fields = card.model_dump()
    fields["executor"] = executor.username

    if card.controller_id is not None:
        controller = await repo.find_account(card.controller_id)
        if controller is None:
            raise NotFoundError(f"Controller account {card.controller_id} not found")
        if controller.role != Role.CONTROLLER:
            raise ValidationError("Controller must be an account with role 'controller'")
        fields["controller"] = controller.username

    return fields


class CardService:
    """Business logic for control cards."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings

    async def next_card_number(self, year: int) -> int:
        async with self.db.session() as repo:
            return await repo.next_card_number(year)

    # ─── Writes ─────────────────────────────────────────

    async def create_card(
        self, data: Union[CardInput, dict], token: str
    ) -> CardRead:
        identity = authenticate(token, self.settings)
        identity.require(Action.CARD_CREATE)
        card_in = _coerce_input(data)

        async with self.db.session() as repo:
            fields = await _resolve_references(repo, card_in)
            card = await repo.create_card(created_by_id=identity.account_id, **fields)

        logger.info(
            "controlcards.card_created",
            card_id=card.id,
            year=card.year,
            card_number=card.card_number,
            by=identity.account_id,
        )
        return CardRead.model_validate(card)

    async def update_card(
        self, card_id: int, data: Union[CardInput, dict], token: str
    ) -> CardRead:
        """Overwrite every editable field. The creator reference is kept."""
        identity = authenticate(token, self.settings)
        identity.require(Action.CARD_UPDATE)
        card_in = _coerce_input(data)

        async with self.db.session() as repo:
            fields = await _resolve_references(repo, card_in)
            card = await repo.update_card(card_id, **fields)

        logger.info("controlcards.card_updated", card_id=card_id, by=identity.account_id)
        return CardRead.model_validate(card)

    async def delete_card(self, card_id: int, token: str) -> None:
        identity = authenticate(token, self.settings)
        identity.require(Action.CARD_DELETE)

        async with self.db.session() as repo:
            await repo.delete_card(card_id)

        logger.info("controlcards.card_deleted", card_id=card_id, by=identity.account_id)

    # ─── Reads ──────────────────────────────────────────

    async def get_card(self, card_id: int, token: str) -> CardRead:
        identity = authenticate(token, self.settings)
        identity.require(Action.CARD_READ)

        async with self.db.session() as repo:
            card = await repo.get_card(card_id)

        # A card without an executor is never visible to a user
        if not identity.sees_all_cards and (
            card.executor_id is None or card.executor_id != identity.account_id
        ):
            raise AuthorizationError(
                "Access denied: you can only view cards where you are the executor"
            )
        return CardRead.model_validate(card)

    async def list_cards(self, token: str) -> list[CardRead]:
        identity = authenticate(token, self.settings)
        identity.require(Action.CARD_LIST)

        async with self.db.session() as repo:
            if identity.sees_all_cards:
                cards = await repo.list_cards()
            else:
                cards = await repo.list_cards_by_executor(identity.account_id)
        return [CardRead.model_validate(c) for c in cards]
