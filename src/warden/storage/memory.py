"""In-process stores backed by dicts.

Learn: Used by the unit tests and for running the API without a
database. Each method body runs without awaiting, so on a single event
loop every operation is atomic; that is what makes `claim` a real
insert-if-absent here.
"""

import copy
import uuid
from datetime import datetime
from typing import Optional

from warden.errors import ConflictError, NotFoundError
from warden.models import RevokedRefreshToken, TwoFactorChallenge, User, UserStatus
from warden.storage.base import token_fingerprint


class MemoryUserStore:
    def __init__(self):
        self.users: dict[uuid.UUID, User] = {}
        # Set by MemoryChallengeStore so user deletes cascade to challenges
        self.challenges: Optional["MemoryChallengeStore"] = None

    def _check_unique(self, user: User) -> None:
        for other in self.users.values():
            if other.id == user.id:
                continue
            if other.email == user.email:
                raise ConflictError("Email already registered")
            if other.username == user.username:
                raise ConflictError("Username already taken")

    async def add(self, user: User) -> User:
        if user.id in self.users:
            raise ConflictError("User already exists")
        self._check_unique(user)
        self.users[user.id] = copy.copy(user)
        return user

    async def save(self, user: User) -> User:
        if user.id not in self.users:
            raise NotFoundError(f"User with id {user.id} not found")
        self._check_unique(user)
        self.users[user.id] = copy.copy(user)
        return user

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        user = self.users.get(user_id)
        return copy.copy(user) if user else None

    def _find(self, **criteria) -> Optional[User]:
        for user in self.users.values():
            if all(getattr(user, k) == v for k, v in criteria.items()):
                return copy.copy(user)
        return None

    async def get_by_email(self, email: str) -> Optional[User]:
        return self._find(email=email)

    async def get_by_confirmation_code(self, code: str) -> Optional[User]:
        return self._find(confirmation_code=code)

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        return self._find(password_reset_token=token)

    async def delete(self, user_id: uuid.UUID) -> bool:
        removed = self.users.pop(user_id, None) is not None
        if removed and self.challenges is not None:
            self.challenges.drop_for_users({user_id})
        return removed

    async def delete_pending_created_before(self, threshold: datetime) -> int:
        expired = {
            user.id
            for user in self.users.values()
            if user.status is UserStatus.PENDING and user.created_at < threshold
        }
        for user_id in expired:
            del self.users[user_id]
        if expired and self.challenges is not None:
            self.challenges.drop_for_users(expired)
        return len(expired)


class MemoryChallengeStore:
    def __init__(self, users: MemoryUserStore):
        self.users = users
        self.challenges: dict[uuid.UUID, TwoFactorChallenge] = {}
        users.challenges = self

    def drop_for_users(self, user_ids: set[uuid.UUID]) -> None:
        for challenge_id in [
            c.id for c in self.challenges.values() if c.user_id in user_ids
        ]:
            del self.challenges[challenge_id]

    async def add(self, challenge: TwoFactorChallenge) -> TwoFactorChallenge:
        if challenge.user_id not in self.users.users:
            raise LookupError(f"User {challenge.user_id} not found")
        self.challenges[challenge.id] = copy.copy(challenge)
        return challenge

    async def find_active(
        self, code: str, created_since: datetime
    ) -> list[TwoFactorChallenge]:
        found = []
        for challenge in self.challenges.values():
            if challenge.code != code or challenge.created_at < created_since:
                continue
            match = copy.copy(challenge)
            match.user = await self.users.get(challenge.user_id)
            found.append(match)
        return found

    async def delete(self, challenge_id: uuid.UUID) -> bool:
        return self.challenges.pop(challenge_id, None) is not None

    async def delete_created_before(self, threshold: datetime) -> int:
        expired = [c.id for c in self.challenges.values() if c.created_at < threshold]
        for challenge_id in expired:
            del self.challenges[challenge_id]
        return len(expired)


class MemoryRefreshTokenLedger:
    def __init__(self):
        self.entries: dict[str, RevokedRefreshToken] = {}

    async def contains(self, token: str) -> bool:
        return token_fingerprint(token) in self.entries

    async def claim(self, token: str, at: datetime) -> bool:
        key = token_fingerprint(token)
        if key in self.entries:
            return False
        self.entries[key] = RevokedRefreshToken(token=key, created_at=at)
        return True

    async def get(self, token: str) -> Optional[RevokedRefreshToken]:
        return self.entries.get(token_fingerprint(token))

    async def delete_created_before(self, threshold: datetime) -> int:
        expired = [k for k, e in self.entries.items() if e.created_at < threshold]
        for key in expired:
            del self.entries[key]
        return len(expired)
