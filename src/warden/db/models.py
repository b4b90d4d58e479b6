"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. The rows never leave warden.storage.sql; services
work with the dataclasses in warden.models.

Key concepts:
- UUID primary keys (generic Uuid type: native on PostgreSQL, CHAR(32) on SQLite)
- ON DELETE CASCADE from challenges to users, so a set-based delete of
  users also removes their pending challenges
- UNIQUE on the ledger token, which turns an INSERT into an atomic
  insert-if-absent for refresh-token rotation
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from warden.models import UserStatus


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class UserRecord(Base):
    """An account row. Reset token columns are set and cleared together."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, name="user_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserStatus.PENDING,
    )
    confirmation_code: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )
    password_reset_token: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    password_reset_token_issued_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    challenges: Mapped[list["TwoFactorChallengeRecord"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class TwoFactorChallengeRecord(Base):
    """A pending emailed 2FA code.

    Learn: Lookups go by (code, created_at), never by id: the client only
    holds a bcrypt hash of the id.
    """

    __tablename__ = "two_factor_challenges"
    __table_args__ = (
        Index("ix_two_factor_challenges_code_created", "code", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    code: Mapped[str] = mapped_column(String(12), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    user: Mapped["UserRecord"] = relationship(back_populates="challenges")


class RevokedRefreshTokenRecord(Base):
    """Ledger of spent refresh tokens (SHA-256 fingerprints)."""

    __tablename__ = "revoked_refresh_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
