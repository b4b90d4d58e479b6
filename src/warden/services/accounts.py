"""Account lifecycle — registration, confirmation, password reset.

Learn: The two emailed tokens expire differently on purpose:
- an expired confirmation code deletes the PENDING account (the email
  address becomes free to register again)
- an expired reset token only fails; the account and its current
  password stay as they were

Reset requests for unknown emails succeed silently so the endpoint
cannot be used to probe which addresses are registered.
"""

import uuid
from datetime import timedelta
from typing import Optional

import structlog

from warden.auth.password import PasswordHasher, generate_opaque_token
from warden.clock import Clock
from warden.email.mailer import EmailService, ensure_supported_language
from warden.errors import NotFoundError, ResourceExpiredError
from warden.models import User, UserStatus
from warden.storage.base import UserStore

logger = structlog.get_logger()


class AccountLifecycleManager:
    """Business logic for user accounts."""

    def __init__(
        self,
        users: UserStore,
        hasher: PasswordHasher,
        email: EmailService,
        clock: Clock,
        frontend_host: str,
        confirmation_window: timedelta = timedelta(hours=24),
        reset_window: timedelta = timedelta(hours=2),
    ):
        self.users = users
        self.hasher = hasher
        self.email = email
        self.clock = clock
        self.frontend_host = frontend_host.rstrip("/")
        self.confirmation_window = confirmation_window
        self.reset_window = reset_window

    # ─── Registration ───────────────────────────────────

    async def register(
        self, email: str, password: str, username: str, language: str = "en"
    ) -> User:
        """Create a PENDING user and email the confirmation link."""
        ensure_supported_language(language)

        now = self.clock.now()
        user = User(
            email=email,
            username=username,
            password_hash=await self.hasher.hash_async(password),
            confirmation_code=await generate_opaque_token(self.hasher),
            created_at=now,
            updated_at=now,
        )
        await self.users.add(user)

        link = f"{self.frontend_host}/confirm?token={user.confirmation_code}"
        await self.email.send_confirm_email(user.email, user.username, link, language)

        logger.info("users.registered", user_id=str(user.id))
        return user

    async def confirm(self, code: str) -> User:
        user = await self.users.get_by_confirmation_code(code)
        if user is None:
            raise NotFoundError("Confirmation code not found")

        # Only PENDING accounts confirm; ACTIVE and BLOCKED come back unchanged
        if user.status is not UserStatus.PENDING:
            return user

        if self.clock.now() - user.created_at > self.confirmation_window:
            await self.users.delete(user.id)
            logger.info("users.confirmation_expired", user_id=str(user.id))
            raise ResourceExpiredError("Confirmation code expired")

        user.status = UserStatus.ACTIVE
        user.updated_at = self.clock.now()
        await self.users.save(user)
        logger.info("users.confirmed", user_id=str(user.id))
        return user

    # ─── Password reset ─────────────────────────────────

    async def request_password_reset(self, email: str, language: str = "en") -> None:
        """Issue a new reset token, superseding any earlier one."""
        ensure_supported_language(language)

        user = await self.users.get_by_email(email)
        if user is None:
            return  # don't leak user existence

        now = self.clock.now()
        user.set_reset_token(await generate_opaque_token(self.hasher), now)
        user.updated_at = now

        link = f"{self.frontend_host}/reset-password?token={user.password_reset_token}"
        await self.email.send_password_reset_email(user.email, user.username, link, language)

        await self.users.save(user)
        logger.info("users.password_reset_requested", user_id=str(user.id))

    async def confirm_password_reset(self, token: str, new_password: str) -> None:
        user = await self.users.get_by_reset_token(token)
        if user is None:
            raise NotFoundError("Reset token not found")

        issued_at = user.password_reset_token_issued_at
        if issued_at is None or self.clock.now() - issued_at > self.reset_window:
            raise ResourceExpiredError("Reset token expired")

        user.clear_reset_token()
        user.password_hash = await self.hasher.hash_async(new_password)
        user.updated_at = self.clock.now()
        await self.users.save(user)
        logger.info("users.password_reset", user_id=str(user.id))

    # ─── Direct lookups by id ───────────────────────────

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError(f"User with id {user_id} not found")
        return user

    async def update_user(
        self,
        user_id: uuid.UUID,
        email: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> User:
        """Apply only the supplied fields; a new password is re-hashed."""
        user = await self.get_user(user_id)

        if email is not None:
            user.email = email
        if username is not None:
            user.username = username
        if password is not None:
            user.password_hash = await self.hasher.hash_async(password)

        user.updated_at = self.clock.now()
        await self.users.save(user)
        return user

    async def delete_user(self, user_id: uuid.UUID) -> None:
        user = await self.get_user(user_id)
        await self.users.delete(user.id)
        logger.info("users.deleted", user_id=str(user.id))
