"""Step two of login: challenge token + emailed code → user.

Learn: The client holds bcrypt(challenge.id), not the id, so there is
nothing to look up by. Instead we load every unexpired challenge with
the submitted code and bcrypt-compare each id against the token. Codes
are 6 digits, so the candidate list is almost always one entry; the
comparisons still run concurrently in worker threads and the first
positive result wins. Slower comparisons are cancelled and their
results ignored.
"""

import asyncio
from datetime import timedelta
from typing import Optional

import structlog

from warden.auth.password import PasswordHasher
from warden.clock import Clock
from warden.errors import AuthenticationError
from warden.models import TwoFactorChallenge, User
from warden.storage.base import ChallengeStore

logger = structlog.get_logger()

_FAILURE = "Invalid two-factor authentication code or id"


async def first_match(
    hasher: PasswordHasher,
    candidates: list[TwoFactorChallenge],
    challenge_token: str,
) -> Optional[TwoFactorChallenge]:
    """Return the first candidate whose id hashes to `challenge_token`.

    A comparison that errors counts as a miss. Returns None when every
    comparison misses or there are no candidates.
    """
    if not candidates:
        return None

    async def check(candidate: TwoFactorChallenge) -> Optional[TwoFactorChallenge]:
        if await hasher.compare_async(str(candidate.id), challenge_token):
            return candidate
        return None

    tasks = [asyncio.create_task(check(c)) for c in candidates]
    try:
        for next_done in asyncio.as_completed(tasks):
            try:
                match = await next_done
            except Exception:
                logger.warning("auth.challenge_compare_failed", exc_info=True)
                continue
            if match is not None:
                return match
        return None
    finally:
        for task in tasks:
            task.cancel()


class TwoFactorVerifier:
    """Consume a two-factor challenge and return its user."""

    def __init__(
        self,
        challenges: ChallengeStore,
        hasher: PasswordHasher,
        clock: Clock,
        code_ttl: timedelta = timedelta(minutes=15),
    ):
        self.challenges = challenges
        self.hasher = hasher
        self.clock = clock
        self.code_ttl = code_ttl

    async def verify(self, challenge_token: str, code: str) -> User:
        if not challenge_token:
            raise AuthenticationError(_FAILURE)

        created_since = self.clock.now() - self.code_ttl
        candidates = await self.challenges.find_active(code, created_since)
        match = await first_match(self.hasher, candidates, challenge_token)

        if match is None or match.user is None:
            logger.info("auth.two_factor_rejected", candidates=len(candidates))
            raise AuthenticationError(_FAILURE)

        # Single use: if a concurrent request already consumed it, this one loses
        if not await self.challenges.delete(match.id):
            raise AuthenticationError(_FAILURE)

        logger.info("auth.two_factor_verified", user_id=str(match.user.id))
        return match.user
