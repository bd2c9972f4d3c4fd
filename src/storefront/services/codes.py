"""Verification code storage.

Codes live in a key-value store with per-key expiration. At most one live
code exists per key: writing a new code overwrites the previous one and
resets its TTL. Consumption is an atomic compare-and-delete, so a valid
code can be redeemed at most once even under concurrent confirmations.
"""

import asyncio
import logging
import secrets
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum

import redis.asyncio as redis

from storefront.config import settings

logger = logging.getLogger(__name__)

CodeGenerator = Callable[[], str]

# Delete the key only if it still holds the submitted code
CONSUME_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


class CodePurpose(str, Enum):
    """What a code sent to the account's current email unlocks."""

    PASSWORD = "password"
    EMAIL = "email"


# Key segments kept compatible with codes already issued in production
_KEY_SEGMENTS: dict[CodePurpose, str] = {
    CodePurpose.PASSWORD: "senha",
    CodePurpose.EMAIL: "email",
}


def code_key(account_id: int, purpose: CodePurpose) -> str:
    """Key for a code delivered to the account's current email."""
    return f"codigo:{account_id}:{_KEY_SEGMENTS[purpose]}"


def email_change_key(account_id: int, target_email: str) -> str:
    """Key for an email-change code; one in-flight request per target."""
    return f"verificar-email:{account_id}:{target_email}"


def numeric_code(length: int | None = None) -> str:
    """Generate a random numeric code using a CSPRNG."""
    length = length or settings.verification_code_length
    return "".join(secrets.choice("0123456789") for _ in range(length))


class VerificationCodeStore(ABC):
    """Key-value store for short-lived verification codes."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a code, replacing any existing one and resetting its TTL."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the live code for a key, or None if absent or expired."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a code unconditionally."""

    @abstractmethod
    async def consume(self, key: str, value: str) -> bool:
        """Delete the code only if it equals ``value``.

        Returns:
            True if this call removed a matching code
        """

    @abstractmethod
    async def ttl(self, key: str) -> int | None:
        """Remaining lifetime in seconds, or None if the key is absent."""

    async def close(self) -> None:
        """Release connections held by the store."""
        return None


class RedisCodeStore(VerificationCodeStore):
    """Code store backed by Redis key expiration."""

    def __init__(self, client: redis.Redis):
        self._redis = client
        self._consume = client.register_script(CONSUME_SCRIPT)

    @classmethod
    def from_url(cls, url: str) -> "RedisCodeStore":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return cls(client)

    @property
    def client(self) -> redis.Redis:
        return self._redis

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.set(key, value, ex=ttl_seconds)

    async def get(self, key: str) -> str | None:
        return await self._redis.get(key)

    async def delete(self, key: str) -> None:
        await self._redis.delete(key)

    async def consume(self, key: str, value: str) -> bool:
        removed = await self._consume(keys=[key], args=[value])
        return bool(removed)

    async def ttl(self, key: str) -> int | None:
        remaining = await self._redis.ttl(key)
        # -2: no such key, -1: key without expiry
        if remaining == -2:
            return None
        return remaining

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("Redis code store closed")


class InMemoryCodeStore(VerificationCodeStore):
    """Process-local code store for tests and single-instance development.

    Not shared between workers; use Redis for anything multi-process.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # key -> (value, expires_at)
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        async with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds)

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._live(key)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def consume(self, key: str, value: str) -> bool:
        async with self._lock:
            stored = self._live(key)
            if stored is None or not secrets.compare_digest(
                stored.encode("utf-8"), value.encode("utf-8")
            ):
                return False
            del self._entries[key]
            return True

    async def ttl(self, key: str) -> int | None:
        async with self._lock:
            if self._live(key) is None:
                return None
            _, expires_at = self._entries[key]
            return max(0, round(expires_at - self._clock()))

    def reset(self) -> None:
        """Drop all codes. Useful for testing."""
        self._entries.clear()


def create_code_store() -> VerificationCodeStore:
    """Create the configured code store."""
    if settings.code_store_backend == "memory":
        return InMemoryCodeStore()
    elif settings.code_store_backend == "redis":
        return RedisCodeStore.from_url(settings.redis_url)
    else:
        raise ValueError(f"Unknown code store backend: {settings.code_store_backend}")
