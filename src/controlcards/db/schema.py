"""Schema creation and additive migration.

Learn: Desktop installs carry their database file across upgrades, so the
schema only ever grows. On every connect we:

1. Note whether control_cards already existed.
2. CREATE TABLE IF NOT EXISTS for every model (create_all with checkfirst).
3. For a pre-existing control_cards table only, inspect its columns and
   ADD COLUMN whatever from ADDITIVE_COLUMNS is missing.

A freshly created table already has every column, so step 3 is skipped.
"""

import structlog
from sqlalchemy import inspect, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection

from controlcards.db.models import Base, ControlCard

logger = structlog.get_logger()

# Columns added to control_cards after its first release, oldest first.
ADDITIVE_COLUMNS: tuple[tuple[str, str], ...] = (
    ("created_by_id", "INTEGER"),
    ("executor_id", "INTEGER"),
    ("return_to", "TEXT"),
    ("execution_deadline", "TEXT"),
    ("execution_period_type", "TEXT"),
    ("extended_deadline", "TEXT"),
    ("resolution", "TEXT"),
    ("department", "TEXT"),
    ("controller", "TEXT"),
    ("controller_id", "INTEGER"),
)


def _has_table(sync_conn, table_name: str) -> bool:
    return inspect(sync_conn).has_table(table_name)


def _column_names(sync_conn, table_name: str) -> set[str]:
    return {c["name"] for c in inspect(sync_conn).get_columns(table_name)}


async def init_schema(conn: AsyncConnection) -> list[str]:
    """Create missing tables and apply pending column additions.

    Returns the names of columns added to an existing control_cards table.
    """
    table = ControlCard.__tablename__
    existed = await conn.run_sync(_has_table, table)

    await conn.run_sync(Base.metadata.create_all)

    if not existed:
        logger.info("controlcards.schema_created", tables=sorted(Base.metadata.tables))
        return []

    present = await conn.run_sync(_column_names, table)
    added: list[str] = []
    for name, sql_type in ADDITIVE_COLUMNS:
        if name in present:
            continue
        try:
            await conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {sql_type}"))
        except OperationalError as e:
            # Applied by someone else between inspection and ALTER
            if "duplicate column name" not in str(e.orig).lower():
                raise
            continue
        added.append(name)

    if added:
        logger.info("controlcards.schema_migrated", table=table, columns=added)
    return added
