"""Rate limiting service using sliding window algorithm."""

import asyncio
import time
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum

from fastapi import Request

from storefront.config import settings


class RateLimitType(str, Enum):
    """Rate limit types for different endpoint categories."""

    AUTH = "auth"
    VERIFICATION = "verification"
    CODE_ATTEMPT = "code_attempt"


@dataclass
class RateLimitConfig:
    """Configuration for a rate limit type."""

    requests: int
    window_seconds: int


# Code guesses are also counted per target account over the code lifetime,
# so rotating client addresses does not reset the budget.
RATE_LIMIT_CONFIG: dict[RateLimitType, RateLimitConfig] = {
    RateLimitType.AUTH: RateLimitConfig(requests=10, window_seconds=60),
    RateLimitType.VERIFICATION: RateLimitConfig(requests=5, window_seconds=60),
    RateLimitType.CODE_ATTEMPT: RateLimitConfig(requests=10, window_seconds=600),
}

# Seconds between sweeps of idle keys
CLEANUP_INTERVAL = 60.0


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""

    success: bool
    limit: int
    remaining: int
    reset: int  # Unix timestamp in seconds


class InMemoryRateLimiter:
    """Simple in-memory rate limiter using sliding window.

    Note: counters are per process. Behind several workers each one
    enforces its own window.
    """

    def __init__(self, cleanup_interval: float = CLEANUP_INTERVAL) -> None:
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self.cleanup_interval = cleanup_interval
        self._last_cleanup = time.time()

    async def check(
        self,
        identifier: str,
        limit_type: RateLimitType,
    ) -> RateLimitResult:
        """Check rate limit for an identifier.

        Args:
            identifier: Unique identifier (e.g., "ip:1.2.3.4" or "account:123")
            limit_type: Type of rate limit to apply

        Returns:
            RateLimitResult with success status and limit info
        """
        config = RATE_LIMIT_CONFIG[limit_type]
        key = f"{limit_type.value}:{identifier}"
        now = time.time()
        window_start = now - config.window_seconds

        async with self._lock:
            if now - self._last_cleanup >= self.cleanup_interval:
                self._sweep(now)

            timestamps = [t for t in self._requests[key] if t > window_start]
            self._requests[key] = timestamps

            current_count = len(timestamps)
            remaining = max(0, config.requests - current_count)

            if current_count >= config.requests:
                oldest = min(timestamps) if timestamps else now
                return RateLimitResult(
                    success=False,
                    limit=config.requests,
                    remaining=0,
                    reset=int(oldest + config.window_seconds),
                )

            timestamps.append(now)

            return RateLimitResult(
                success=True,
                limit=config.requests,
                remaining=remaining - 1,  # Account for this request
                reset=int(now + config.window_seconds),
            )

    def _sweep(self, now: float) -> int:
        """Drop timestamps outside their window and keys left empty. Caller holds the lock."""
        keys_to_remove = []
        for key, timestamps in self._requests.items():
            limit_type = RateLimitType(key.split(":", 1)[0])
            window = RATE_LIMIT_CONFIG[limit_type].window_seconds

            valid_timestamps = [t for t in timestamps if t > now - window]
            if valid_timestamps:
                self._requests[key] = valid_timestamps
            else:
                keys_to_remove.append(key)

        for key in keys_to_remove:
            del self._requests[key]

        self._last_cleanup = now
        return len(keys_to_remove)

    async def cleanup_old_entries(self) -> int:
        """Remove expired entries from memory.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            return self._sweep(time.time())

    def reset(self) -> None:
        """Reset all rate limit entries. Useful for testing."""
        self._requests.clear()


# Global rate limiter instance
_rate_limiter = InMemoryRateLimiter()


def get_rate_limiter() -> InMemoryRateLimiter:
    """Get the global rate limiter instance."""
    return _rate_limiter


def get_client_ip(request: Request) -> str | None:
    """Extract the client IP for a request.

    Proxy headers are client-controlled unless a trusted proxy sets them,
    so they are only read when ``trust_proxy_headers`` is enabled.
    """
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # x-forwarded-for can be a comma-separated list, take the first IP
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

    if request.client:
        return request.client.host

    return None


def get_identifier(ip: str | None, account_id: int | None = None) -> str:
    """Prefer the account ID for authenticated requests, fall back to IP."""
    if account_id:
        return f"account:{account_id}"
    return f"ip:{ip or 'unknown'}"


async def check_rate_limit(
    request: Request,
    limit_type: RateLimitType,
    account_id: int | None = None,
) -> RateLimitResult:
    """Check rate limit for a request.

    Args:
        request: FastAPI request
        limit_type: Type of rate limit to apply
        account_id: Optional account ID for authenticated requests

    Returns:
        RateLimitResult with success status and limit info
    """
    identifier = get_identifier(get_client_ip(request), account_id)
    return await get_rate_limiter().check(identifier, limit_type)


async def check_code_attempt(target: str) -> RateLimitResult:
    """Count a verification code guess against the account it targets.

    Args:
        target: Stable identifier of the target, e.g. "email:a@b.com" or "account:7"

    Returns:
        RateLimitResult with success status and limit info
    """
    return await get_rate_limiter().check(target, RateLimitType.CODE_ATTEMPT)


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Generate rate limit headers for response.

    Args:
        result: Rate limit check result

    Returns:
        Dictionary of headers to add to response
    """
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }

    if not result.success:
        retry_after = max(0, result.reset - int(time.time()))
        headers["Retry-After"] = str(retry_after)

    return headers
