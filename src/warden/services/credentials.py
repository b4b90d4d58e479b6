"""Step one of login: email + password → emailed 2FA code.

Learn: Every failure raises the same AuthenticationError, whether the
email is unknown, the account is PENDING or BLOCKED, or the password is
wrong. The password is bcrypt-compared in all of those cases (against a
dummy hash when there is no user), so response time does not give the
answer away either.

The value returned to the client is bcrypt(challenge.id). It is not a
lookup key; TwoFactorVerifier has to compare it against candidates.
"""

from typing import Optional

import structlog

from warden.auth.password import PasswordHasher, generate_numeric_code
from warden.clock import Clock
from warden.email.mailer import EmailService, ensure_supported_language
from warden.errors import AuthenticationError
from warden.models import TwoFactorChallenge
from warden.storage.base import ChallengeStore, UserStore

logger = structlog.get_logger()


class CredentialValidator:
    """Validate credentials and issue a two-factor challenge."""

    def __init__(
        self,
        users: UserStore,
        challenges: ChallengeStore,
        hasher: PasswordHasher,
        email: EmailService,
        clock: Clock,
        code_length: int = 6,
    ):
        self.users = users
        self.challenges = challenges
        self.hasher = hasher
        self.email = email
        self.clock = clock
        self.code_length = code_length
        self._dummy_hash: Optional[str] = None

    async def _timing_dummy(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await self.hasher.hash_async("warden-timing-dummy")
        return self._dummy_hash

    async def validate(self, email: str, password: str, language: str = "en") -> str:
        """Check credentials, email a fresh code, return the opaque challenge token."""
        ensure_supported_language(language)

        user = await self.users.get_by_email(email)
        hashed = user.password_hash if user else await self._timing_dummy()
        password_ok = await self.hasher.compare_async(password, hashed)

        if user is None or not user.is_active or not password_ok:
            logger.info("auth.credentials_rejected")
            raise AuthenticationError()

        challenge = TwoFactorChallenge(
            user_id=user.id,
            code=generate_numeric_code(self.code_length),
            created_at=self.clock.now(),
        )
        await self.challenges.add(challenge)
        await self.email.send_two_factor_code_email(user.email, challenge.code, language)

        logger.info("auth.challenge_issued", user_id=str(user.id))
        return await self.hasher.hash_async(str(challenge.id))
