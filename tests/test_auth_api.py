"""HTTP API tests — registration, two-step login, refresh, self-service.

Learn: Tests cover:
1. Registration + confirmation + duplicate prevention
2. Login → emailed code → JWT tokens
3. Token refresh (each refresh token works once)
4. Protected routes: /me, update, delete, logout
5. Password reset over HTTP
6. Domain errors mapped to status codes
"""

import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from tests.conftest import STRONG_PASSWORD
from warden.main import create_app
from warden.services.wiring import build_services


async def register(client, email=None, username=None, password=STRONG_PASSWORD):
    tag = uuid.uuid4().hex[:8]
    r = await client.post(
        "/api/v1/users",
        json={
            "email": email or f"user-{tag}@example.com",
            "username": username or f"user{tag}",
            "password": password,
        },
    )
    return r


async def register_confirmed(client, services, **kwargs) -> dict:
    r = await register(client, **kwargs)
    assert r.status_code == 201
    user = r.json()
    stored = await services.accounts.get_user(uuid.UUID(user["id"]))
    r = await client.post(f"/api/v1/users/confirm/{stored.confirmation_code}")
    assert r.status_code == 200
    return r.json()


async def login(client, mailer, email, password=STRONG_PASSWORD) -> dict:
    r = await client.post(
        "/api/v1/auth/login/credentials",
        json={"email": email, "password": password},
    )
    assert r.status_code == 200
    challenge_token = r.json()["challenge_token"]

    r = await client.post(
        "/api/v1/auth/login/2fa",
        json={"challenge_token": challenge_token, "code": mailer.last_code()},
    )
    assert r.status_code == 200
    return r.json()


def bearer(tokens: dict) -> dict:
    return {"Authorization": f"Bearer {tokens['access_token']}"}


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(client, mailer):
    r = await register(client, email="new@example.com", username="newbie")
    assert r.status_code == 201
    user = r.json()
    assert user["email"] == "new@example.com"
    assert user["username"] == "newbie"
    assert user["status"] == "pending"
    assert "password_hash" not in user
    assert mailer.last("confirm-user").to == "new@example.com"


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    r1 = await register(client, email="dup@example.com")
    assert r1.status_code == 201
    r2 = await register(client, email="dup@example.com")
    assert r2.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize("password", ["abc", "alllowercase1!", "NoDigits!!", "NoSymbol123"])
async def test_register_weak_password(client, password):
    r = await register(client, password=password)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_register_unsupported_language(client):
    r = await client.post(
        "/api/v1/users",
        json={
            "email": "fr@example.com",
            "username": "french",
            "password": STRONG_PASSWORD,
            "language": "fr",
        },
    )
    assert r.status_code == 406


@pytest.mark.asyncio
async def test_confirm_activates(client, services):
    user = await register_confirmed(client, services)
    assert user["status"] == "active"


@pytest.mark.asyncio
async def test_confirm_unknown_code(client):
    r = await client.post("/api/v1/users/confirm/nope")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_confirm_expired(client, services, clock):
    r = await register(client)
    stored = await services.accounts.get_user(uuid.UUID(r.json()["id"]))
    clock.advance(hours=25)

    r = await client.post(f"/api/v1/users/confirm/{stored.confirmation_code}")
    assert r.status_code == 410
    r = await client.post(f"/api/v1/users/confirm/{stored.confirmation_code}")
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client, services, mailer):
    user = await register_confirmed(client, services)
    tokens = await login(client, mailer, user["email"])
    assert tokens["token_type"] == "bearer"
    assert tokens["access_token"]
    assert tokens["refresh_token"]


@pytest.mark.asyncio
async def test_login_pending_user_rejected(client):
    r = await register(client, email="pending@example.com")
    assert r.status_code == 201
    r = await client.post(
        "/api/v1/auth/login/credentials",
        json={"email": "pending@example.com", "password": STRONG_PASSWORD},
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_wrong_password(client, services):
    user = await register_confirmed(client, services)
    r = await client.post(
        "/api/v1/auth/login/credentials",
        json={"email": user["email"], "password": "wrong"},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_login_wrong_code(client, services, mailer):
    user = await register_confirmed(client, services)
    r = await client.post(
        "/api/v1/auth/login/credentials",
        json={"email": user["email"], "password": STRONG_PASSWORD},
    )
    code = mailer.last_code()
    r = await client.post(
        "/api/v1/auth/login/2fa",
        json={
            "challenge_token": r.json()["challenge_token"],
            "code": "000000" if code != "000000" else "111111",
        },
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_login_code_must_be_digits(client):
    r = await client.post(
        "/api/v1/auth/login/2fa",
        json={"challenge_token": "x", "code": "12ab"},
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_login_with_configured_code_length(settings, stores, mailer, clock):
    """An 8-digit code setting works end to end through the 2FA route."""
    settings = settings.model_copy(update={"two_factor_code_length": 8})
    services = build_services(settings, stores, mailer=mailer, clock=clock)
    app = create_app(settings=settings, services=services)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        user = await register_confirmed(ac, services)
        tokens = await login(ac, mailer, user["email"])

    assert len(mailer.last_code()) == 8
    assert tokens["access_token"]


# ═══════════════════════════════════════════════════════════
# Refresh / logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_refresh_once(client, services, mailer):
    user = await register_confirmed(client, services)
    tokens = await login(client, mailer, user["email"])

    r = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert r.status_code == 200
    assert r.json()["refresh_token"] != tokens["refresh_token"]

    r = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert r.status_code == 403
    assert r.json()["detail"] == "Invalid refresh token"


@pytest.mark.asyncio
async def test_refresh_invalid_token(client):
    r = await client.post("/api/v1/auth/refresh", json={"refresh_token": "bad-token"})
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_logout_spends_refresh_token(client, services, mailer):
    user = await register_confirmed(client, services)
    tokens = await login(client, mailer, user["email"])

    r = await client.post(
        "/api/v1/auth/logout",
        json={"refresh_token": tokens["refresh_token"]},
        headers=bearer(tokens),
    )
    assert r.status_code == 200
    assert r.json() == {"revoked": True}

    r = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert r.status_code == 403


# ═══════════════════════════════════════════════════════════
# Protected routes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me(client, services, mailer):
    user = await register_confirmed(client, services)
    tokens = await login(client, mailer, user["email"])

    r = await client.get("/api/v1/users/me", headers=bearer(tokens))
    assert r.status_code == 200
    assert r.json() == {"id": user["id"], "email": user["email"], "username": user["username"]}


@pytest.mark.asyncio
async def test_me_requires_token(client):
    r = await client.get("/api/v1/users/me")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_me_rejects_refresh_token(client, services, mailer):
    user = await register_confirmed(client, services)
    tokens = await login(client, mailer, user["email"])
    r = await client.get(
        "/api/v1/users/me",
        headers={"Authorization": f"Bearer {tokens['refresh_token']}"},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_expired_access_token(client, services, mailer, clock):
    user = await register_confirmed(client, services)
    tokens = await login(client, mailer, user["email"])
    clock.advance(minutes=16)
    r = await client.get("/api/v1/users/me", headers=bearer(tokens))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_update_me(client, services, mailer):
    user = await register_confirmed(client, services)
    tokens = await login(client, mailer, user["email"])

    r = await client.patch(
        "/api/v1/users", json={"username": "renamed"}, headers=bearer(tokens)
    )
    assert r.status_code == 200
    assert r.json()["username"] == "renamed"
    assert r.json()["email"] == user["email"]


@pytest.mark.asyncio
async def test_delete_me(client, services, mailer):
    user = await register_confirmed(client, services)
    tokens = await login(client, mailer, user["email"])

    r = await client.delete("/api/v1/users", headers=bearer(tokens))
    assert r.status_code == 200
    assert r.json() == {"deleted": True}

    # Token still verifies, but its user is gone
    r = await client.get("/api/v1/users/me", headers=bearer(tokens))
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Password reset
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_password_reset_flow(client, services, mailer, clock):
    user = await register_confirmed(client, services)

    r = await client.post(
        "/api/v1/users/reset-password/request", json={"email": user["email"]}
    )
    assert r.status_code == 200
    link = mailer.last("request-password-reset").context["password_reset_link"]
    token = link.split("token=", 1)[1]

    clock.advance(minutes=90)
    r = await client.post(
        "/api/v1/users/reset-password/confirm",
        json={"token": token, "password": "NewPass1!"},
    )
    assert r.status_code == 200

    tokens = await login(client, mailer, user["email"], password="NewPass1!")
    assert tokens["access_token"]


@pytest.mark.asyncio
async def test_password_reset_unknown_email_looks_the_same(client, mailer):
    r = await client.post(
        "/api/v1/users/reset-password/request", json={"email": "ghost@example.com"}
    )
    assert r.status_code == 200
    assert r.json() == {"requested": True}
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_password_reset_expired(client, services, mailer, clock):
    user = await register_confirmed(client, services)
    await client.post("/api/v1/users/reset-password/request", json={"email": user["email"]})
    token = mailer.last("request-password-reset").context["password_reset_link"].split("token=")[1]

    clock.advance(hours=3)
    r = await client.post(
        "/api/v1/users/reset-password/confirm",
        json={"token": token, "password": "NewPass1!"},
    )
    assert r.status_code == 410
