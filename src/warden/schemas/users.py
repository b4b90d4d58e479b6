"""Request/response bodies for the user routes."""

import re
import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field

from warden.models import UserStatus

_SYMBOL = re.compile(r"[^A-Za-z0-9]")


def check_strong_password(value: str) -> str:
    """At least 8 chars with a lowercase, an uppercase, a digit and a symbol."""
    if (
        len(value) < 8
        or not any(c.islower() for c in value)
        or not any(c.isupper() for c in value)
        or not any(c.isdigit() for c in value)
        or not _SYMBOL.search(value)
    ):
        raise ValueError(
            "Password must be at least 8 characters and contain lowercase, "
            "uppercase, digit and symbol characters"
        )
    return value


def check_email(value: str) -> str:
    local, sep, domain = value.partition("@")
    if not sep or not local or "." not in domain:
        raise ValueError("Invalid email address")
    return value


Email = Annotated[str, Field(max_length=100), AfterValidator(check_email)]
StrongPassword = Annotated[str, Field(max_length=128), AfterValidator(check_strong_password)]
Username = Annotated[str, Field(min_length=4, max_length=20)]


class CreateUserRequest(BaseModel):
    email: Email
    password: StrongPassword
    username: Username
    language: str = "en"


class UpdateUserRequest(BaseModel):
    email: Optional[Email] = None
    password: Optional[StrongPassword] = None
    username: Optional[Username] = None


class ResetPasswordRequest(BaseModel):
    email: str = Field(max_length=100)
    language: str = "en"


class ResetPasswordConfirm(BaseModel):
    token: str = Field(min_length=1)
    password: StrongPassword


class UserRead(BaseModel):
    id: uuid.UUID
    email: str
    username: str
    status: UserStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MeRead(BaseModel):
    id: uuid.UUID
    email: str
    username: str

    model_config = {"from_attributes": True}
