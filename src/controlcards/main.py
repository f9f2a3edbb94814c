"""Application factory: the process-level composition root.

Learn: create_app() builds one Database and hands it to every service,
so all operations share the same connection state and the same lock.
The shell (or the CLI) keeps the returned ControlCardsApp for the life
of the process.
"""

from typing import Optional

import structlog

from controlcards import __version__
from controlcards.config import Settings, settings as default_settings
from controlcards.db.engine import Database
from controlcards.services.account_service import AccountService
from controlcards.services.card_service import CardService

logger = structlog.get_logger()


class ControlCardsApp:
    """Everything the shell can invoke."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings
        self.accounts = AccountService(db, self.settings)
        self.cards = CardService(db, self.settings)

    # ─── Connection management ──────────────────────────

    async def connect(self, path: str) -> None:
        await self.db.connect(path)

    async def disconnect(self) -> None:
        await self.db.disconnect()

    def is_connected(self) -> bool:
        return self.db.is_connected

    def current_path(self) -> Optional[str]:
        return self.db.path


def create_app(settings: Optional[Settings] = None) -> ControlCardsApp:
    """Build and return the application."""
    cfg = settings or default_settings
    logger.debug(
        "controlcards.starting",
        version=__version__,
        environment=cfg.environment,
    )
    db = Database(busy_timeout_seconds=cfg.busy_timeout_seconds, echo=cfg.debug)
    return ControlCardsApp(db, cfg)
