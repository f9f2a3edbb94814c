"""SQLAlchemy ORM models: single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Two tables only:

- accounts: who can log in, and with which role
- control_cards: the tracked records

Foreign keys are declared for documentation, but SQLite only enforces them
with PRAGMA foreign_keys=ON, which we never set: deleting an account leaves
cards pointing at the old id.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from controlcards.auth.policy import Role


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Account(Base):
    """A login. Roles: admin, user (executor), controller."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(
            Role,
            native_enum=False,
            create_constraint=True,
            name="ck_accounts_role",
            values_callable=lambda roles: [r.value for r in roles],
            length=20,
        ),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )


class ControlCard(Base):
    """A control card, identified naturally by (year, card_number).

    Learn: ``executor`` and ``controller`` are display snapshots copied from
    the referenced accounts at write time, not a live join. Renaming an
    account does not rewrite cards that already carry the old name.
    """

    __tablename__ = "control_cards"
    __table_args__ = (
        UniqueConstraint("year", "card_number", name="uq_control_cards_year_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_number: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    executor: Mapped[str] = mapped_column(Text, nullable=False)
    reporter: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    document_reference: Mapped[str] = mapped_column(Text, nullable=False)

    # References (see ADDITIVE_COLUMNS in db.schema for older files)
    created_by_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=True
    )
    executor_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=True
    )
    controller_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=True
    )
    controller: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Workflow
    return_to: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    execution_deadline: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    execution_period_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    extended_deadline: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    department: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
