"""Password hashing and secret generation.

Learn: Uses bcrypt for one-way hashing. bcrypt salts automatically and
its work factor makes brute force expensive. The same hasher serves two
purposes:
- account passwords
- opaque identifiers handed to clients (a 2FA challenge token is the
  bcrypt hash of the challenge id, so it cannot be reversed to the id)

bcrypt is CPU-bound (~50ms at 10 rounds), so the async variants run it
in a worker thread and keep the event loop free for other requests.
"""

import asyncio
import base64
import secrets
import uuid

import bcrypt

# bcrypt only looks at the first 72 bytes of its input
_MAX_BYTES = 72


class PasswordHasher:
    """bcrypt hash/compare with a configurable cost factor."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash(self, value: str) -> str:
        """Hash a value with a fresh random salt."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(value.encode("utf-8")[:_MAX_BYTES], salt).decode("utf-8")

    def compare(self, value: str, hashed: str) -> bool:
        """Check a value against a bcrypt hash.

        Malformed hashes compare as a mismatch instead of raising, since
        the hash string may come straight from a client.
        """
        try:
            return bcrypt.checkpw(
                value.encode("utf-8")[:_MAX_BYTES], hashed.encode("utf-8")
            )
        except (ValueError, TypeError):
            return False

    async def hash_async(self, value: str) -> str:
        return await asyncio.to_thread(self.hash, value)

    async def compare_async(self, value: str, hashed: str) -> bool:
        return await asyncio.to_thread(self.compare, value, hashed)


def generate_numeric_code(length: int = 6) -> str:
    """Random digit string from the OS CSPRNG, leading zeros allowed."""
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


async def generate_opaque_token(hasher: PasswordHasher) -> str:
    """Unguessable URL-safe token: bcrypt of a fresh uuid4, base64url-encoded.

    Learn: The raw bcrypt string contains "/" and "." which would need
    escaping in links, so it is base64url-encoded (padding stripped).
    The random salt plus the uuid make collisions practically impossible.
    """
    digest = await hasher.hash_async(str(uuid.uuid4()))
    return base64.urlsafe_b64encode(digest.encode("utf-8")).decode("ascii").rstrip("=")
