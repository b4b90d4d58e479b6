"""Users API — registration, confirmation, password reset, self-service.

Learn: Public routes never reveal whether an email is registered:
reset requests answer 200 either way. Protected routes act on the
caller only; the user id comes from the access token, never the URL.
"""

from fastapi import APIRouter, Depends

from warden.auth.dependencies import CurrentIdentity, get_services, protected, public
from warden.schemas.users import (
    CreateUserRequest,
    MeRead,
    ResetPasswordConfirm,
    ResetPasswordRequest,
    UpdateUserRequest,
    UserRead,
)
from warden.services.wiring import Services

router = APIRouter(prefix="/users")


@router.get("/me", response_model=MeRead)
async def get_me(
    identity: CurrentIdentity = Depends(protected),
    services: Services = Depends(get_services),
):
    """Get the current authenticated user's info."""
    return await services.accounts.get_user(identity.user_id)


@router.post(
    "",
    response_model=UserRead,
    status_code=201,
    dependencies=[Depends(public)],
)
async def create_user(
    body: CreateUserRequest,
    services: Services = Depends(get_services),
):
    """Register a PENDING account and email the confirmation link."""
    return await services.accounts.register(
        body.email, body.password, body.username, body.language
    )


@router.post(
    "/confirm/{confirmation_code}",
    response_model=UserRead,
    dependencies=[Depends(public)],
)
async def confirm_user(
    confirmation_code: str,
    services: Services = Depends(get_services),
):
    return await services.accounts.confirm(confirmation_code)


@router.post("/reset-password/request", dependencies=[Depends(public)])
async def request_password_reset(
    body: ResetPasswordRequest,
    services: Services = Depends(get_services),
):
    await services.accounts.request_password_reset(body.email, body.language)
    return {"requested": True}


@router.post("/reset-password/confirm", dependencies=[Depends(public)])
async def confirm_password_reset(
    body: ResetPasswordConfirm,
    services: Services = Depends(get_services),
):
    await services.accounts.confirm_password_reset(body.token, body.password)
    return {"reset": True}


@router.patch("", response_model=UserRead)
async def update_user(
    body: UpdateUserRequest,
    identity: CurrentIdentity = Depends(protected),
    services: Services = Depends(get_services),
):
    """Update email, username and/or password of the current user."""
    return await services.accounts.update_user(
        identity.user_id,
        email=body.email,
        username=body.username,
        password=body.password,
    )


@router.delete("")
async def delete_user(
    identity: CurrentIdentity = Depends(protected),
    services: Services = Depends(get_services),
):
    """Delete the current user."""
    await services.accounts.delete_user(identity.user_id)
    return {"deleted": True}
