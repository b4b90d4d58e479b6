"""Request/response bodies for the login and token routes."""

from pydantic import BaseModel, Field

from warden.config import MAX_CODE_LENGTH, MIN_CODE_LENGTH


class LoginCredentialsRequest(BaseModel):
    email: str = Field(max_length=100)
    password: str = Field(max_length=128)
    language: str = "en"


class ChallengeResponse(BaseModel):
    """Opaque token to send back with the emailed code."""

    challenge_token: str


class LoginTwoFactorRequest(BaseModel):
    challenge_token: str
    code: str = Field(pattern=rf"^\d{{{MIN_CODE_LENGTH},{MAX_CODE_LENGTH}}}$")


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str
