"""Plain data records passed between services and stores.

Learn: Services never see ORM rows. Each store maps its own storage
representation to these dataclasses, which keeps the services free of
any particular database engine (see warden.storage).
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


class UserStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    BLOCKED = "blocked"


@dataclass
class User:
    """An account. Created PENDING, becomes ACTIVE once confirmed.

    The reset token and its issue time travel together: both set by
    a reset request, both cleared when the reset is confirmed.
    """

    email: str
    username: str
    password_hash: str
    confirmation_code: str
    created_at: datetime
    updated_at: datetime
    status: UserStatus = UserStatus.PENDING
    password_reset_token: Optional[str] = None
    password_reset_token_issued_at: Optional[datetime] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def is_active(self) -> bool:
        return self.status is UserStatus.ACTIVE

    def set_reset_token(self, token: str, issued_at: datetime) -> None:
        self.password_reset_token = token
        self.password_reset_token_issued_at = issued_at

    def clear_reset_token(self) -> None:
        self.password_reset_token = None
        self.password_reset_token_issued_at = None


@dataclass
class TwoFactorChallenge:
    """A pending second factor, consumed by the matching emailed code."""

    user_id: uuid.UUID
    code: str
    created_at: datetime
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    # Populated by stores that join the owning user on lookup
    user: Optional[User] = None


@dataclass
class RevokedRefreshToken:
    """Ledger entry for a refresh token that may never be used again."""

    token: str
    created_at: datetime
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
