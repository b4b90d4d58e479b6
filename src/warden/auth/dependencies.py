"""FastAPI auth dependencies.

Learn: Every route states its access level explicitly by depending on
one of two guards built from the same factory:

    Access.PUBLIC    → no credentials needed (login, register, reset)
    Access.PROTECTED → Bearer access token required

There is no decorator metadata and no reflection: the guard a route
depends on is the whole access policy for that route.
"""

import enum
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from warden.auth.jwt import TokenError
from warden.services.wiring import Services


class Access(str, enum.Enum):
    PUBLIC = "public"
    PROTECTED = "protected"


@dataclass
class CurrentIdentity:
    """The authenticated caller of a protected route."""

    user_id: uuid.UUID


def get_services(request: Request) -> Services:
    """The service graph built at startup (see warden.main)."""
    return request.app.state.services


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def access(level: Access):
    """Build the guard dependency for an access level."""

    async def guard(
        authorization: Optional[str] = Header(None),
        services: Services = Depends(get_services),
    ) -> Optional[CurrentIdentity]:
        if level is Access.PUBLIC:
            return None

        if not authorization or not authorization.startswith("Bearer "):
            raise _unauthorized("Authentication required")

        try:
            user_id = services.sessions.verify_access_token(authorization[7:])
        except TokenError:
            raise _unauthorized("Invalid or expired access token")
        return CurrentIdentity(user_id=user_id)

    guard.__name__ = f"require_{level.value}"
    return guard


public = access(Access.PUBLIC)
protected = access(Access.PROTECTED)
