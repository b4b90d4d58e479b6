"""Test fixtures — in-memory services with a frozen clock and captured mail.

Learn: Every expiry rule reads time from the injected clock, so tests
move time forward with `clock.advance(...)` instead of sleeping. Mail
never leaves the process: RecordingMailer keeps each message so tests
can pull the 2FA code or the confirmation link out of it.

Three layers of fixtures:
1. `services` → service graph over in-memory stores (unit tests)
2. `sql_stores` → SQLAlchemy stores on a SQLite file (store tests)
3. `client` → httpx AsyncClient over the ASGI app (API tests)
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from warden.config import get_settings
from warden.db.engine import build_engine, build_session_factory, create_schema
from warden.main import create_app
from warden.models import User
from warden.services.wiring import build_services, memory_stores, sql_stores as make_sql_stores

STRONG_PASSWORD = "Str0ngP@ssw0rd!"


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@dataclass
class SentMail:
    to: str
    template_id: str
    context: dict


@dataclass
class RecordingMailer:
    sent: list[SentMail] = field(default_factory=list)

    async def send(self, to_address: str, template_id: str, context: dict) -> None:
        self.sent.append(SentMail(to_address, template_id, context))

    def last(self, template_prefix: str) -> SentMail:
        for mail in reversed(self.sent):
            if mail.template_id.startswith(template_prefix):
                return mail
        raise AssertionError(f"no {template_prefix} mail sent")

    def last_code(self) -> str:
        return self.last("two-factor-auth-code").context["code"]


@pytest.fixture()
def clock():
    return FrozenClock()


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def settings():
    # Minimum bcrypt cost keeps the suite fast
    return get_settings(
        bcrypt_rounds=4,
        jwt_access_secret="test-access-secret-0123456789abcdef",
        jwt_refresh_secret="test-refresh-secret-0123456789abcdef",
        frontend_host="https://app.example.com",
        reaper_enabled=False,
    )


@pytest.fixture()
def stores():
    return memory_stores()


@pytest.fixture()
def services(settings, stores, mailer, clock):
    return build_services(settings, stores, mailer=mailer, clock=clock)


@pytest.fixture()
def make_user(services):
    """Factory: register and confirm a user, returning the ACTIVE record."""

    async def _make(
        email: str = "alice@example.com",
        password: str = STRONG_PASSWORD,
        username: str = "alice",
        confirm: bool = True,
    ) -> User:
        user = await services.accounts.register(email, password, username)
        if confirm:
            user = await services.accounts.confirm(user.confirmation_code)
        return user

    return _make


@pytest_asyncio.fixture()
async def sql_session_factory(tmp_path):
    """Fresh file-backed SQLite database per test.

    A file (not :memory:) gives every session its own connection, the way
    PostgreSQL does, so concurrent transactions really are isolated.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'warden.db'}")
    await create_schema(engine)
    try:
        yield build_session_factory(engine)
    finally:
        await engine.dispose()


@pytest.fixture()
def sql_stores(sql_session_factory):
    return make_sql_stores(sql_session_factory)


@pytest.fixture()
def sql_services(settings, sql_stores, mailer, clock):
    return build_services(settings, sql_stores, mailer=mailer, clock=clock)


@pytest_asyncio.fixture()
async def client(settings, services):
    """HTTP client for the app, wired to the in-memory services."""
    app = create_app(settings=settings, services=services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
