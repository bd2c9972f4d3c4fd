"""Password hashing with bcrypt."""

import bcrypt
from fastapi.concurrency import run_in_threadpool

from storefront.config import settings

# bcrypt only looks at the first 72 bytes of the input
BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password_sync(password: str, rounds: int | None = None) -> str:
    """Hash a password with a fixed work factor."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password_sync(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash in constant time."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


async def hash_password(password: str) -> str:
    """Hash a password without blocking the event loop."""
    return await run_in_threadpool(hash_password_sync, password)


async def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password without blocking the event loop."""
    return await run_in_threadpool(verify_password_sync, password, password_hash)
