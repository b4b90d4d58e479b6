"""SQLAlchemy-backed stores.

Learn: Each method opens its own session from the factory and commits
before returning. Bulk removals are single DELETE ... WHERE statements
(no fetch-then-delete loop), so a sweep is one round trip regardless of
how many rows match.

Unique constraints do the concurrency work:
- users.email / users.username → ConflictError on a racing duplicate
- revoked_refresh_tokens.token → the losing INSERT of two concurrent
  rotations fails, so only one of them can mint a new pair
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from warden.db.models import (
    RevokedRefreshTokenRecord,
    TwoFactorChallengeRecord,
    UserRecord,
)
from warden.errors import ConflictError, NotFoundError
from warden.models import RevokedRefreshToken, TwoFactorChallenge, User, UserStatus
from warden.storage.base import token_fingerprint


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored here is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_user(row: UserRecord) -> User:
    return User(
        id=row.id,
        email=row.email,
        username=row.username,
        password_hash=row.password_hash,
        status=UserStatus(row.status),
        confirmation_code=row.confirmation_code,
        password_reset_token=row.password_reset_token,
        password_reset_token_issued_at=_aware(row.password_reset_token_issued_at),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _apply_user(row: UserRecord, user: User) -> None:
    row.email = user.email
    row.username = user.username
    row.password_hash = user.password_hash
    row.status = user.status
    row.confirmation_code = user.confirmation_code
    row.password_reset_token = user.password_reset_token
    row.password_reset_token_issued_at = user.password_reset_token_issued_at
    row.created_at = user.created_at
    row.updated_at = user.updated_at


class SqlUserStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _ensure_unique(self, db: AsyncSession, user: User) -> None:
        q = select(UserRecord).where(
            UserRecord.id != user.id,
            or_(UserRecord.email == user.email, UserRecord.username == user.username),
        )
        other = (await db.execute(q)).scalars().first()
        if other is None:
            return
        if other.email == user.email:
            raise ConflictError("Email already registered")
        raise ConflictError("Username already taken")

    async def _commit(self, db: AsyncSession) -> None:
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same email/username
            await db.rollback()
            raise ConflictError("Email or username already taken")

    async def add(self, user: User) -> User:
        async with self.session_factory() as db:
            await self._ensure_unique(db, user)
            row = UserRecord(id=user.id)
            _apply_user(row, user)
            db.add(row)
            await self._commit(db)
        return user

    async def save(self, user: User) -> User:
        async with self.session_factory() as db:
            row = await db.get(UserRecord, user.id)
            if row is None:
                raise NotFoundError(f"User with id {user.id} not found")
            await self._ensure_unique(db, user)
            _apply_user(row, user)
            await self._commit(db)
        return user

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        async with self.session_factory() as db:
            row = await db.get(UserRecord, user_id)
            return _to_user(row) if row else None

    async def _get_where(self, clause) -> Optional[User]:
        async with self.session_factory() as db:
            row = (await db.execute(select(UserRecord).where(clause))).scalars().first()
            return _to_user(row) if row else None

    async def get_by_email(self, email: str) -> Optional[User]:
        return await self._get_where(UserRecord.email == email)

    async def get_by_confirmation_code(self, code: str) -> Optional[User]:
        return await self._get_where(UserRecord.confirmation_code == code)

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        return await self._get_where(UserRecord.password_reset_token == token)

    async def delete(self, user_id: uuid.UUID) -> bool:
        async with self.session_factory() as db:
            result = await db.execute(delete(UserRecord).where(UserRecord.id == user_id))
            await db.commit()
            return result.rowcount > 0

    async def delete_pending_created_before(self, threshold: datetime) -> int:
        async with self.session_factory() as db:
            result = await db.execute(
                delete(UserRecord).where(
                    UserRecord.status == UserStatus.PENDING,
                    UserRecord.created_at < threshold,
                )
            )
            await db.commit()
            return result.rowcount


class SqlChallengeStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def add(self, challenge: TwoFactorChallenge) -> TwoFactorChallenge:
        async with self.session_factory() as db:
            db.add(
                TwoFactorChallengeRecord(
                    id=challenge.id,
                    user_id=challenge.user_id,
                    code=challenge.code,
                    created_at=challenge.created_at,
                )
            )
            await db.commit()
        return challenge

    async def find_active(
        self, code: str, created_since: datetime
    ) -> list[TwoFactorChallenge]:
        async with self.session_factory() as db:
            q = (
                select(TwoFactorChallengeRecord)
                .where(
                    TwoFactorChallengeRecord.code == code,
                    TwoFactorChallengeRecord.created_at >= created_since,
                )
                .options(selectinload(TwoFactorChallengeRecord.user))
            )
            rows = (await db.execute(q)).scalars().all()
            return [
                TwoFactorChallenge(
                    id=row.id,
                    user_id=row.user_id,
                    code=row.code,
                    created_at=_aware(row.created_at),
                    user=_to_user(row.user) if row.user else None,
                )
                for row in rows
            ]

    async def delete(self, challenge_id: uuid.UUID) -> bool:
        async with self.session_factory() as db:
            result = await db.execute(
                delete(TwoFactorChallengeRecord).where(
                    TwoFactorChallengeRecord.id == challenge_id
                )
            )
            await db.commit()
            return result.rowcount > 0

    async def delete_created_before(self, threshold: datetime) -> int:
        async with self.session_factory() as db:
            result = await db.execute(
                delete(TwoFactorChallengeRecord).where(
                    TwoFactorChallengeRecord.created_at < threshold
                )
            )
            await db.commit()
            return result.rowcount


class SqlRefreshTokenLedger:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def contains(self, token: str) -> bool:
        return await self.get(token) is not None

    async def claim(self, token: str, at: datetime) -> bool:
        async with self.session_factory() as db:
            db.add(
                RevokedRefreshTokenRecord(
                    id=uuid.uuid4(), token=token_fingerprint(token), created_at=at
                )
            )
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                return False
            return True

    async def get(self, token: str) -> Optional[RevokedRefreshToken]:
        async with self.session_factory() as db:
            q = select(RevokedRefreshTokenRecord).where(
                RevokedRefreshTokenRecord.token == token_fingerprint(token)
            )
            row = (await db.execute(q)).scalars().first()
            if row is None:
                return None
            return RevokedRefreshToken(
                id=row.id, token=row.token, created_at=_aware(row.created_at)
            )

    async def delete_created_before(self, threshold: datetime) -> int:
        async with self.session_factory() as db:
            result = await db.execute(
                delete(RevokedRefreshTokenRecord).where(
                    RevokedRefreshTokenRecord.created_at < threshold
                )
            )
            await db.commit()
            return result.rowcount
