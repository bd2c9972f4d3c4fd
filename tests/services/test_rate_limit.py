"""Rate limiter tests."""

from unittest.mock import patch

import pytest
from starlette.requests import Request

from storefront.services.rate_limit import (
    InMemoryRateLimiter,
    RateLimitResult,
    RateLimitType,
    get_client_ip,
    rate_limit_headers,
)


def make_request(headers: dict[str, str] | None = None, client=("127.0.0.1", 5000)) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "POST", "path": "/", "headers": raw, "client": client})


class TestGetClientIp:
    def test_ignores_forwarded_headers_by_default(self):
        request = make_request({"X-Forwarded-For": "203.0.113.9", "X-Real-IP": "203.0.113.10"})

        with patch("storefront.services.rate_limit.settings") as mock_settings:
            mock_settings.trust_proxy_headers = False
            assert get_client_ip(request) == "127.0.0.1"

    def test_uses_first_forwarded_address_when_trusted(self):
        request = make_request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

        with patch("storefront.services.rate_limit.settings") as mock_settings:
            mock_settings.trust_proxy_headers = True
            assert get_client_ip(request) == "203.0.113.9"

    def test_falls_back_to_real_ip_when_trusted(self):
        request = make_request({"X-Real-IP": " 203.0.113.10 "})

        with patch("storefront.services.rate_limit.settings") as mock_settings:
            mock_settings.trust_proxy_headers = True
            assert get_client_ip(request) == "203.0.113.10"

    def test_no_client(self):
        request = make_request(client=None)

        with patch("storefront.services.rate_limit.settings") as mock_settings:
            mock_settings.trust_proxy_headers = False
            assert get_client_ip(request) is None


class TestInMemoryRateLimiter:
    @pytest.mark.asyncio
    async def test_blocks_after_limit(self):
        limiter = InMemoryRateLimiter()

        for _ in range(5):
            assert (await limiter.check("ip:1.2.3.4", RateLimitType.VERIFICATION)).success

        result = await limiter.check("ip:1.2.3.4", RateLimitType.VERIFICATION)
        assert result.success is False
        assert result.remaining == 0

        # Other identifiers have their own window
        assert (await limiter.check("ip:5.6.7.8", RateLimitType.VERIFICATION)).success

    @pytest.mark.asyncio
    async def test_cleanup_old_entries_drops_expired_keys(self):
        with patch("storefront.services.rate_limit.time") as mock_time:
            mock_time.time.return_value = 1000.0
            limiter = InMemoryRateLimiter()
            await limiter.check("ip:1.2.3.4", RateLimitType.AUTH)
            await limiter.check("account:7", RateLimitType.CODE_ATTEMPT)

            # Past the auth window, still inside the code attempt window
            mock_time.time.return_value = 1000.0 + 61
            assert await limiter.cleanup_old_entries() == 1
            assert list(limiter._requests) == ["code_attempt:account:7"]

            mock_time.time.return_value = 1000.0 + 601
            assert await limiter.cleanup_old_entries() == 1
            assert not limiter._requests

    @pytest.mark.asyncio
    async def test_check_sweeps_idle_keys(self):
        with patch("storefront.services.rate_limit.time") as mock_time:
            mock_time.time.return_value = 1000.0
            limiter = InMemoryRateLimiter(cleanup_interval=60)
            for i in range(20):
                await limiter.check(f"ip:10.0.0.{i}", RateLimitType.AUTH)
            assert len(limiter._requests) == 20

            mock_time.time.return_value = 1000.0 + 61
            await limiter.check("ip:10.0.1.1", RateLimitType.AUTH)

        assert list(limiter._requests) == ["auth:ip:10.0.1.1"]

    @pytest.mark.asyncio
    async def test_check_does_not_sweep_before_interval(self):
        with patch("storefront.services.rate_limit.time") as mock_time:
            mock_time.time.return_value = 1000.0
            limiter = InMemoryRateLimiter(cleanup_interval=600)
            await limiter.check("ip:10.0.0.1", RateLimitType.AUTH)

            mock_time.time.return_value = 1000.0 + 61
            await limiter.check("ip:10.0.0.2", RateLimitType.AUTH)

        assert len(limiter._requests) == 2


class TestRateLimitHeaders:
    def test_allowed(self):
        headers = rate_limit_headers(RateLimitResult(success=True, limit=10, remaining=9, reset=2000))

        assert headers == {
            "X-RateLimit-Limit": "10",
            "X-RateLimit-Remaining": "9",
            "X-RateLimit-Reset": "2000",
        }

    def test_blocked_includes_retry_after(self):
        with patch("storefront.services.rate_limit.time") as mock_time:
            mock_time.time.return_value = 1970.0
            headers = rate_limit_headers(
                RateLimitResult(success=False, limit=10, remaining=0, reset=2000)
            )

        assert headers["Retry-After"] == "30"
        assert headers["X-RateLimit-Remaining"] == "0"
