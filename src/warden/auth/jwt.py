"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (15min), sent with every API call
- Refresh token: 7 days, exchanged exactly once for a new pair

Access and refresh tokens are signed with different secrets, so a
refresh token can never pass as an access token and vice versa.

Expiry is checked against the injected Clock instead of PyJWT's own
wall-clock check, which keeps every expiry decision in the service
testable with a frozen clock.
"""

import secrets
from datetime import timedelta
from typing import Any, Optional

import jwt

from warden.clock import Clock, SystemClock


class TokenError(Exception):
    """Raised when token creation/verification fails."""


class TokenSigner:
    """Sign and verify HMAC JWTs."""

    def __init__(self, algorithm: str = "HS256", clock: Optional[Clock] = None):
        self.algorithm = algorithm
        self.clock = clock or SystemClock()

    def sign(self, claims: dict[str, Any], secret: str, ttl: timedelta) -> str:
        """Create a signed token carrying `claims`, valid for `ttl`.

        A random jti makes every token unique, even two issued for the
        same user within the same second.
        """
        now = self.clock.now()
        payload = {
            **claims,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def verify(self, token: str, secret: str) -> dict[str, Any]:
        """Verify and decode a token.

        Returns the payload dict on success.
        Raises TokenError on failure.
        """
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                # exp/iat are checked against self.clock below
                options={
                    "require": ["exp", "sub"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            raise TokenError(f"Invalid token: {e}")

        if payload["exp"] <= self.clock.now().timestamp():
            raise TokenError("Token has expired")
        return payload
