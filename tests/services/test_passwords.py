"""Password hashing tests."""

import pytest

from storefront.services.passwords import (
    hash_password,
    hash_password_sync,
    verify_password,
    verify_password_sync,
)


def test_hash_is_salted():
    first = hash_password_sync("Secret123", rounds=4)
    second = hash_password_sync("Secret123", rounds=4)

    assert first != second
    assert first.startswith("$2b$04$")
    assert verify_password_sync("Secret123", first)
    assert verify_password_sync("Secret123", second)


def test_wrong_password():
    hashed = hash_password_sync("Secret123", rounds=4)

    assert verify_password_sync("Secret124", hashed) is False


def test_malformed_hash():
    assert verify_password_sync("Secret123", "plaintext") is False


def test_long_passwords_are_truncated_consistently():
    long_password = "a" * 100
    hashed = hash_password_sync(long_password, rounds=4)

    assert verify_password_sync(long_password, hashed)
    assert verify_password_sync("a" * 72, hashed)


@pytest.mark.asyncio
async def test_async_helpers():
    hashed = await hash_password("Secret123")

    assert await verify_password("Secret123", hashed) is True
    assert await verify_password("nope", hashed) is False
