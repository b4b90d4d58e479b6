"""Auth API — two-step login, token refresh, logout.

Learn: Routes for the session lifecycle:
- POST /auth/login/credentials → email/password → challenge token (code is emailed)
- POST /auth/login/2fa → challenge token + code → access/refresh tokens
- POST /auth/refresh → refresh token → new pair (old one is spent)
- POST /auth/logout → spend the refresh token without a new pair

Tokens travel in JSON bodies; cookies are the caller's business.
"""

from fastapi import APIRouter, Depends

from warden.auth.dependencies import CurrentIdentity, get_services, protected, public
from warden.schemas.auth import (
    ChallengeResponse,
    LoginCredentialsRequest,
    LoginTwoFactorRequest,
    RefreshRequest,
    TokenResponse,
)
from warden.services.wiring import Services

router = APIRouter(prefix="/auth")


# ─── Login ───────────────────────────────────────────────


@router.post(
    "/login/credentials",
    response_model=ChallengeResponse,
    dependencies=[Depends(public)],
)
async def login_credentials(
    body: LoginCredentialsRequest,
    services: Services = Depends(get_services),
):
    """Validate credentials and email a 2FA code."""
    token = await services.credentials.validate(body.email, body.password, body.language)
    return ChallengeResponse(challenge_token=token)


@router.post(
    "/login/2fa",
    response_model=TokenResponse,
    dependencies=[Depends(public)],
)
async def login_two_factor(
    body: LoginTwoFactorRequest,
    services: Services = Depends(get_services),
):
    """Verify the emailed code and issue session tokens."""
    user = await services.two_factor.verify(body.challenge_token, body.code)
    pair = services.sessions.issue_pair(user)
    return TokenResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


# ─── Refresh / logout ───────────────────────────────────


@router.post(
    "/refresh",
    response_model=TokenResponse,
    dependencies=[Depends(public)],
)
async def refresh(
    body: RefreshRequest,
    services: Services = Depends(get_services),
):
    """Exchange a refresh token for a new pair. Each refresh token works once."""
    pair = await services.sessions.rotate(body.refresh_token)
    return TokenResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/logout")
async def logout(
    body: RefreshRequest,
    identity: CurrentIdentity = Depends(protected),
    services: Services = Depends(get_services),
):
    """Revoke the caller's refresh token."""
    revoked = await services.sessions.revoke(body.refresh_token, identity.user_id)
    return {"revoked": revoked}
