"""Build the service graph once at process start.

Learn: No container, no globals: every service gets its collaborators
as constructor arguments here. The API (app.state.services) and the CLI
both call build_services(); tests call it with in-memory stores, a
frozen clock and a recording mailer.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from warden.auth.jwt import TokenSigner
from warden.auth.password import PasswordHasher
from warden.clock import Clock, SystemClock
from warden.config import Settings
from warden.email.mailer import EmailService, Mailer, SmtpMailer
from warden.services.accounts import AccountLifecycleManager
from warden.services.credentials import CredentialValidator
from warden.services.reaper import ExpiryReaper
from warden.services.sessions import SessionIssuer
from warden.services.two_factor import TwoFactorVerifier
from warden.storage.base import ChallengeStore, RefreshTokenLedger, UserStore
from warden.storage.memory import (
    MemoryChallengeStore,
    MemoryRefreshTokenLedger,
    MemoryUserStore,
)
from warden.storage.sql import SqlChallengeStore, SqlRefreshTokenLedger, SqlUserStore


@dataclass
class Stores:
    users: UserStore
    challenges: ChallengeStore
    ledger: RefreshTokenLedger


def sql_stores(session_factory: async_sessionmaker[AsyncSession]) -> Stores:
    return Stores(
        users=SqlUserStore(session_factory),
        challenges=SqlChallengeStore(session_factory),
        ledger=SqlRefreshTokenLedger(session_factory),
    )


def memory_stores() -> Stores:
    users = MemoryUserStore()
    return Stores(
        users=users,
        challenges=MemoryChallengeStore(users),
        ledger=MemoryRefreshTokenLedger(),
    )


def smtp_mailer(settings: Settings) -> SmtpMailer:
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        from_address=settings.mail_from,
    )


@dataclass
class Services:
    credentials: CredentialValidator
    two_factor: TwoFactorVerifier
    sessions: SessionIssuer
    accounts: AccountLifecycleManager
    reaper: ExpiryReaper
    stores: Stores
    clock: Clock


def build_services(
    settings: Settings,
    stores: Stores,
    mailer: Optional[Mailer] = None,
    clock: Optional[Clock] = None,
) -> Services:
    clock = clock or SystemClock()
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    signer = TokenSigner(algorithm=settings.jwt_algorithm, clock=clock)
    email = EmailService(mailer or smtp_mailer(settings))

    challenge_ttl = timedelta(minutes=settings.two_factor_code_ttl_minutes)
    confirmation_window = timedelta(hours=settings.confirmation_window_hours)

    return Services(
        credentials=CredentialValidator(
            stores.users,
            stores.challenges,
            hasher,
            email,
            clock,
            code_length=settings.two_factor_code_length,
        ),
        two_factor=TwoFactorVerifier(
            stores.challenges, hasher, clock, code_ttl=challenge_ttl
        ),
        sessions=SessionIssuer(
            stores.users,
            stores.ledger,
            signer,
            clock,
            access_secret=settings.jwt_access_secret,
            refresh_secret=settings.jwt_refresh_secret,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        ),
        accounts=AccountLifecycleManager(
            stores.users,
            hasher,
            email,
            clock,
            frontend_host=settings.frontend_host,
            confirmation_window=confirmation_window,
            reset_window=timedelta(hours=settings.password_reset_window_hours),
        ),
        reaper=ExpiryReaper(
            stores.users,
            stores.challenges,
            stores.ledger,
            clock,
            challenge_ttl=challenge_ttl,
            ledger_retention=timedelta(days=settings.revoked_token_retention_days),
            confirmation_window=confirmation_window,
        ),
        stores=stores,
        clock=clock,
    )
