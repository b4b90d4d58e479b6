"""Password hashing and secret generation.

Learn: These are synchronous helpers, so most tests are plain functions;
only the async wrappers need the event loop.
"""

import base64

import pytest

from warden.auth.password import PasswordHasher, generate_numeric_code, generate_opaque_token


@pytest.fixture()
def hasher():
    return PasswordHasher(rounds=4)


def test_hash_and_compare(hasher):
    hashed = hasher.hash("correct horse")
    assert hashed != "correct horse"
    assert hasher.compare("correct horse", hashed)
    assert not hasher.compare("wrong horse", hashed)


def test_same_input_hashes_differently(hasher):
    """Fresh salt per hash."""
    assert hasher.hash("same") != hasher.hash("same")


def test_compare_malformed_hash_is_mismatch(hasher):
    assert hasher.compare("anything", "not-a-bcrypt-hash") is False
    assert hasher.compare("anything", "") is False


def test_rounds_are_encoded_in_hash(hasher):
    assert hasher.hash("x").startswith("$2b$04$")


@pytest.mark.asyncio
async def test_async_wrappers(hasher):
    hashed = await hasher.hash_async("secret")
    assert await hasher.compare_async("secret", hashed)
    assert not await hasher.compare_async("other", hashed)


def test_numeric_code_shape():
    for _ in range(50):
        code = generate_numeric_code()
        assert len(code) == 6
        assert code.isdigit()
    assert len(generate_numeric_code(8)) == 8


@pytest.mark.asyncio
async def test_opaque_token_is_url_safe_and_unique(hasher):
    first = await generate_opaque_token(hasher)
    second = await generate_opaque_token(hasher)
    assert first != second
    for token in (first, second):
        assert "=" not in token
        assert "/" not in token and "+" not in token
        # Decodes back to a bcrypt string once padding is restored
        padded = token + "=" * (-len(token) % 4)
        assert base64.urlsafe_b64decode(padded).startswith(b"$2b$")
