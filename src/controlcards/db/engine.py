"""Database connection lifecycle and the store lock.

Learn: Unlike a server app with one engine created at import time, the
database file here is chosen at runtime (the shell lets the user pick it),
so the engine lives inside a Database object with a small state machine:

    DISCONNECTED → CONNECTING → CONNECTED → DISCONNECTED

SQLite is single-writer. To avoid tripping over our own write locks, a
single asyncio.Lock serializes every store call in the process, and the
connection's busy timeout absorbs contention from anything outside it.
"""

import asyncio
import enum
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import structlog
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from controlcards.config import settings
from controlcards.db.repository import Repository
from controlcards.db.schema import init_schema
from controlcards.errors import StoreUnavailableError

logger = structlog.get_logger()


class StoreState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Database:
    """The process-wide store: one engine, one lock, one path."""

    def __init__(
        self,
        busy_timeout_seconds: Optional[float] = None,
        echo: Optional[bool] = None,
    ):
        self.busy_timeout_seconds = (
            settings.busy_timeout_seconds
            if busy_timeout_seconds is None
            else busy_timeout_seconds
        )
        self.echo = settings.debug if echo is None else echo
        self.state = StoreState.DISCONNECTED
        self._lock = asyncio.Lock()
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._path: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.state == StoreState.CONNECTED

    @property
    def path(self) -> Optional[str]:
        return self._path

    # ─── Lifecycle ──────────────────────────────────────

    async def connect(self, path: str) -> None:
        """Open ``path`` (creating it if needed) and bring its schema current.

        An existing connection is torn down first, so a process never holds
        two live engines.
        """
        async with self._lock:
            await self._teardown()
            self.state = StoreState.CONNECTING
            db_file = Path(path).expanduser()
            engine: Optional[AsyncEngine] = None
            try:
                db_file.parent.mkdir(parents=True, exist_ok=True)
                if not db_file.exists():
                    db_file.touch()

                engine = create_async_engine(
                    URL.create("sqlite+aiosqlite", database=str(db_file)),
                    echo=self.echo,
                    connect_args={"timeout": self.busy_timeout_seconds},
                )
                async with engine.begin() as conn:
                    added = await init_schema(conn)
            except (OSError, SQLAlchemyError) as e:
                if engine is not None:
                    await engine.dispose()
                self.state = StoreState.DISCONNECTED
                logger.warning("controlcards.db_connect_failed", path=str(db_file), error=str(e))
                raise StoreUnavailableError(f"Failed to connect to database: {e}")

            self._engine = engine
            self._session_factory = async_sessionmaker(
                engine, class_=AsyncSession, expire_on_commit=False
            )
            self._path = str(db_file)
            self.state = StoreState.CONNECTED
            logger.info("controlcards.db_connected", path=self._path, migrated=added)

    async def disconnect(self) -> None:
        """Close the pool and clear connection state. No-op when disconnected."""
        async with self._lock:
            await self._teardown()

    async def _teardown(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("controlcards.db_disconnected", path=self._path)
        self._engine = None
        self._session_factory = None
        self._path = None
        self.state = StoreState.DISCONNECTED

    # ─── Access ─────────────────────────────────────────

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Repository]:
        """Hold the store lock and yield a Repository for one operation.

        Everything inside the ``async with`` block (lookups and writes)
        runs without interleaving with any other caller.
        """
        async with self._lock:
            if self._session_factory is None:
                raise StoreUnavailableError("Database not connected")
            async with self._session_factory() as session:
                yield Repository(session)
