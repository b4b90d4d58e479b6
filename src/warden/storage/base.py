"""Store protocols consumed by the services.

Learn: Services depend on these protocols, never on a concrete backend.
Every bulk removal is a delete-by-predicate that returns the affected row
count, which is what the reaper logs.
"""

import hashlib
import uuid
from datetime import datetime
from typing import Optional, Protocol

from warden.models import RevokedRefreshToken, TwoFactorChallenge, User


def token_fingerprint(token: str) -> str:
    """SHA-256 hex digest stored in the ledger instead of the bearer string.

    Learn: A deterministic digest keeps lookups O(1) (unique index), while
    a dump of the ledger no longer hands out usable refresh tokens.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class UserStore(Protocol):
    async def add(self, user: User) -> User:
        """Insert a new user. Raises ConflictError on duplicate email/username."""
        ...

    async def save(self, user: User) -> User:
        """Persist changes to an existing user. Raises ConflictError on duplicates."""
        ...

    async def get(self, user_id: uuid.UUID) -> Optional[User]: ...

    async def get_by_email(self, email: str) -> Optional[User]: ...

    async def get_by_confirmation_code(self, code: str) -> Optional[User]: ...

    async def get_by_reset_token(self, token: str) -> Optional[User]: ...

    async def delete(self, user_id: uuid.UUID) -> bool:
        """Remove a user and, by cascade, their pending challenges."""
        ...

    async def delete_pending_created_before(self, threshold: datetime) -> int: ...


class ChallengeStore(Protocol):
    async def add(self, challenge: TwoFactorChallenge) -> TwoFactorChallenge: ...

    async def find_active(
        self, code: str, created_since: datetime
    ) -> list[TwoFactorChallenge]:
        """Challenges with this code created at or after `created_since`,
        each with `.user` populated."""
        ...

    async def delete(self, challenge_id: uuid.UUID) -> bool: ...

    async def delete_created_before(self, threshold: datetime) -> int: ...


class RefreshTokenLedger(Protocol):
    async def contains(self, token: str) -> bool: ...

    async def claim(self, token: str, at: datetime) -> bool:
        """Atomically record `token` as spent.

        Returns True if this call inserted the entry, False if the token
        was already in the ledger (someone else spent it first).
        """
        ...

    async def get(self, token: str) -> Optional[RevokedRefreshToken]: ...

    async def delete_created_before(self, threshold: datetime) -> int: ...
