"""Login step one: credentials → emailed code + opaque challenge token."""

import pytest

from tests.conftest import STRONG_PASSWORD
from warden.auth.password import PasswordHasher
from warden.errors import AuthenticationError, UnsupportedLanguageError
from warden.models import UserStatus


@pytest.mark.asyncio
async def test_valid_credentials_issue_challenge(services, stores, mailer, make_user, clock):
    user = await make_user()

    token = await services.credentials.validate(user.email, STRONG_PASSWORD)

    challenges = list(stores.challenges.challenges.values())
    assert len(challenges) == 1
    challenge = challenges[0]
    assert challenge.user_id == user.id
    assert challenge.created_at == clock.now()

    # The client gets bcrypt(challenge.id), never the id itself
    assert str(challenge.id) not in token
    assert PasswordHasher().compare(str(challenge.id), token)

    mail = mailer.last("two-factor-auth-code")
    assert mail.to == user.email
    assert mail.template_id == "two-factor-auth-code_en"
    assert mail.context["code"] == challenge.code


@pytest.mark.asyncio
async def test_language_selects_template(services, mailer, make_user):
    user = await make_user()
    await services.credentials.validate(user.email, STRONG_PASSWORD, language="de")
    assert mailer.last("two-factor-auth-code").template_id == "two-factor-auth-code_de"


@pytest.mark.asyncio
async def test_each_login_creates_new_challenge(services, stores, make_user):
    user = await make_user()
    first = await services.credentials.validate(user.email, STRONG_PASSWORD)
    second = await services.credentials.validate(user.email, STRONG_PASSWORD)
    assert first != second
    assert len(stores.challenges.challenges) == 2


@pytest.mark.asyncio
async def test_wrong_password(services, stores, make_user):
    user = await make_user()
    with pytest.raises(AuthenticationError, match="Invalid credentials"):
        await services.credentials.validate(user.email, "WrongP@ssw0rd!")
    assert stores.challenges.challenges == {}


@pytest.mark.asyncio
async def test_unknown_email(services, mailer):
    with pytest.raises(AuthenticationError, match="Invalid credentials"):
        await services.credentials.validate("nobody@example.com", STRONG_PASSWORD)
    assert mailer.sent == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [UserStatus.PENDING, UserStatus.BLOCKED])
async def test_inactive_user_rejected_even_with_right_password(
    services, stores, mailer, make_user, status
):
    user = await make_user(confirm=False)
    user.status = status
    await stores.users.save(user)
    mailer.sent.clear()

    with pytest.raises(AuthenticationError):
        await services.credentials.validate(user.email, STRONG_PASSWORD)
    assert stores.challenges.challenges == {}
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_unsupported_language(services, make_user):
    user = await make_user()
    with pytest.raises(UnsupportedLanguageError):
        await services.credentials.validate(user.email, STRONG_PASSWORD, language="fr")
