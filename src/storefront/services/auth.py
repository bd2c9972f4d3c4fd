"""Authentication service: login and JWT session tokens."""

import logging
from datetime import datetime, timedelta

from jose import JWTError, jwt

from storefront.config import settings
from storefront.models import Account, utcnow
from storefront.services.accounts import AccountStore, normalize_email
from storefront.services.errors import (
    InvalidCredentialsError,
    InvalidInputError,
    ServiceResult,
    service_boundary,
)
from storefront.services.passwords import verify_password

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Authentication error."""

    pass


def create_token(account_id: int, issued_at: datetime | None = None) -> str:
    """Create a signed session token valid for `session_expiration_minutes`."""
    issued_at = (issued_at or utcnow()).replace(microsecond=0)
    expires = issued_at + timedelta(minutes=settings.session_expiration_minutes)
    payload = {
        "sub": str(account_id),
        "iat": int(issued_at.timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError as e:
        raise AuthError(f"Invalid token: {e}") from e


async def verify_token(accounts: AccountStore, token: str) -> Account:
    """Verify a JWT token and return the associated account."""
    payload = decode_token(token)

    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise AuthError("Invalid token: missing account ID")

    account = await accounts.find_by_id(int(subject))
    if not account:
        raise AuthError("Account not found")

    return account


class SessionIssuer:
    """Checks credentials and issues session tokens.

    Unknown emails and wrong passwords produce the same failure. The
    last-login timestamp and the token are only reached after the password
    has been verified.
    """

    def __init__(self, accounts: AccountStore):
        self.accounts = accounts

    @service_boundary("login")
    async def login(self, email: str | None, password: str | None) -> ServiceResult:
        if not email or not password:
            raise InvalidInputError("All fields are required")

        account = await self.accounts.find_by_email(normalize_email(email))
        if not account:
            raise InvalidCredentialsError()

        if not await verify_password(password, account.password_hash):
            raise InvalidCredentialsError()

        now = utcnow()
        account_id: int = account.id  # type: ignore[assignment]
        if not await self.accounts.update_last_login(account_id, now):
            # Account vanished between lookup and update
            raise InvalidCredentialsError()

        token = create_token(account_id, issued_at=now)
        logger.info(f"Account {account_id} logged in")
        return ServiceResult(
            success=True,
            message="Login successful",
            data={"token": token},
        )
