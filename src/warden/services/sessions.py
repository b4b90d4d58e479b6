"""Session tokens: issue, rotate on use, revoke.

Learn: JWTs are stateless, so a refresh token cannot be invalidated by
its signature alone. Every refresh token is good for exactly one
rotation; spending it writes it to the ledger, and a ledger hit on a
later presentation rejects it.

rotate() checks, in order:
1. ledger already holds the token → rejected
2. signature / expiry / type against the refresh secret → rejected
3. subject resolves to a user → rejected if not
4. claim the token in the ledger (atomic insert-if-absent)
5. mint a fresh pair

Step 4 is what makes two concurrent rotations of the same token safe:
both may pass step 1, but only one INSERT wins the unique constraint.
All failures surface as the same InvalidSessionError.
"""

import uuid
from datetime import timedelta
from typing import Optional

import structlog

from warden.auth.jwt import TokenError, TokenSigner
from warden.clock import Clock
from warden.errors import InvalidSessionError
from warden.models import TokenPair, User
from warden.storage.base import RefreshTokenLedger, UserStore

logger = structlog.get_logger()

ACCESS = "access"
REFRESH = "refresh"


class SessionIssuer:
    """Mint access/refresh token pairs and rotate refresh tokens."""

    def __init__(
        self,
        users: UserStore,
        ledger: RefreshTokenLedger,
        signer: TokenSigner,
        clock: Clock,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ):
        self.users = users
        self.ledger = ledger
        self.signer = signer
        self.clock = clock
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def issue_access_token(self, user: User) -> str:
        return self.signer.sign(
            {"sub": str(user.id), "type": ACCESS}, self.access_secret, self.access_ttl
        )

    def issue_refresh_token(self, user: User) -> str:
        return self.signer.sign(
            {"sub": str(user.id), "type": REFRESH}, self.refresh_secret, self.refresh_ttl
        )

    def issue_pair(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(user),
            refresh_token=self.issue_refresh_token(user),
        )

    def verify_access_token(self, token: str) -> uuid.UUID:
        """Return the user id an access token was issued for.

        Raises TokenError for anything that is not a live access token.
        """
        payload = self.signer.verify(token, self.access_secret)
        if payload.get("type") != ACCESS:
            raise TokenError("Not an access token")
        try:
            return uuid.UUID(payload["sub"])
        except ValueError:
            raise TokenError("Invalid subject")

    def _refresh_subject(self, token: str) -> uuid.UUID:
        payload = self.signer.verify(token, self.refresh_secret)
        if payload.get("type") != REFRESH:
            raise TokenError("Not a refresh token")
        try:
            return uuid.UUID(payload["sub"])
        except ValueError:
            raise TokenError("Invalid subject")

    async def rotate(self, presented: str) -> TokenPair:
        if not presented:
            raise InvalidSessionError()

        if await self.ledger.contains(presented):
            logger.warning("auth.refresh_token_replayed")
            raise InvalidSessionError()

        try:
            user_id = self._refresh_subject(presented)
        except TokenError as e:
            logger.info("auth.refresh_token_invalid", reason=str(e))
            raise InvalidSessionError()

        user = await self.users.get(user_id)
        if user is None:
            logger.info("auth.refresh_token_unknown_subject", user_id=str(user_id))
            raise InvalidSessionError()

        if not await self.ledger.claim(presented, self.clock.now()):
            logger.warning("auth.refresh_token_race_lost", user_id=str(user_id))
            raise InvalidSessionError()

        logger.info("auth.refresh_token_rotated", user_id=str(user_id))
        return self.issue_pair(user)

    async def revoke(self, refresh_token: str, user_id: Optional[uuid.UUID] = None) -> bool:
        """Spend a refresh token without issuing a new pair (logout).

        Tokens that do not verify, or that belong to someone other than
        `user_id`, are ignored. Returns True if this call revoked it.
        """
        if not refresh_token:
            return False
        try:
            subject = self._refresh_subject(refresh_token)
        except TokenError:
            return False
        if user_id is not None and subject != user_id:
            return False
        revoked = await self.ledger.claim(refresh_token, self.clock.now())
        if revoked:
            logger.info("auth.refresh_token_revoked", user_id=str(subject))
        return revoked
