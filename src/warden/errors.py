"""Domain errors raised by the services.

Learn: The HTTP layer maps each class to one status code (see
warden.api.errors). The messages are deliberately generic for the
authentication and session kinds: a caller must not learn whether an
email exists or which token check failed.
"""


class WardenError(Exception):
    """Base class for every error a service raises on purpose."""

    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class AuthenticationError(WardenError):
    """Bad credentials, inactive account, or a wrong/expired 2FA code."""

    status_code = 401
    default_message = "Invalid credentials"


class InvalidSessionError(WardenError):
    """Refresh token replayed, expired, malformed, or for an unknown user."""

    status_code = 403
    default_message = "Invalid refresh token"


class ResourceExpiredError(WardenError):
    status_code = 410
    default_message = "Resource expired"


class NotFoundError(WardenError):
    status_code = 404
    default_message = "Not found"


class ConflictError(WardenError):
    """Email or username already taken."""

    status_code = 409
    default_message = "Already exists"


class UnsupportedLanguageError(WardenError):
    status_code = 406
    default_message = "Language not supported"
