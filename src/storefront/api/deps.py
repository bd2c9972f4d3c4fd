"""FastAPI dependencies for dependency injection."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.database import get_session
from storefront.models import Account
from storefront.services.accounts import AccountService, AccountStore, SQLAccountStore
from storefront.services.addresses import AddressService
from storefront.services.auth import AuthError, SessionIssuer, verify_token
from storefront.services.codes import VerificationCodeStore
from storefront.services.email import EmailService, email_service
from storefront.services.rate_limit import (
    RateLimitResult,
    RateLimitType,
    check_code_attempt,
    check_rate_limit,
    rate_limit_headers,
)
from storefront.services.verification import VerificationWorkflow

logger = logging.getLogger(__name__)

# Type alias for database session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]

# Security scheme
security = HTTPBearer(auto_error=False)


def get_account_store(session: SessionDep) -> AccountStore:
    return SQLAccountStore(session)


def get_code_store(request: Request) -> VerificationCodeStore:
    """Process-wide code store created in the application lifespan."""
    return request.app.state.code_store


def get_email_service() -> EmailService:
    return email_service


AccountStoreDep = Annotated[AccountStore, Depends(get_account_store)]
CodeStoreDep = Annotated[VerificationCodeStore, Depends(get_code_store)]
EmailServiceDep = Annotated[EmailService, Depends(get_email_service)]


def get_verification_workflow(
    accounts: AccountStoreDep,
    codes: CodeStoreDep,
    notifier: EmailServiceDep,
) -> VerificationWorkflow:
    return VerificationWorkflow(accounts=accounts, codes=codes, notifier=notifier)


def get_session_issuer(accounts: AccountStoreDep) -> SessionIssuer:
    return SessionIssuer(accounts)


def get_account_service(accounts: AccountStoreDep) -> AccountService:
    return AccountService(accounts)


def get_address_service(session: SessionDep) -> AddressService:
    return AddressService(session)


WorkflowDep = Annotated[VerificationWorkflow, Depends(get_verification_workflow)]
SessionIssuerDep = Annotated[SessionIssuer, Depends(get_session_issuer)]
AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]
AddressServiceDep = Annotated[AddressService, Depends(get_address_service)]


async def get_current_account(
    accounts: AccountStoreDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Account:
    """Get current authenticated account or raise 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return await verify_token(accounts, credentials.credentials)
    except AuthError as e:
        logger.debug(f"Token verification failed: {e!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


CurrentAccount = Annotated[Account, Depends(get_current_account)]


def raise_if_limited(result: RateLimitResult) -> None:
    """Raise 429 with the standard rate limit headers if the check failed."""
    if result.success:
        return
    headers = rate_limit_headers(result)
    retry_after = headers.get("Retry-After", "60")
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=f"Rate limit exceeded. Please try again in {retry_after} seconds.",
        headers=headers,
    )


async def enforce_code_attempt_limit(target: str) -> None:
    """Limit code guesses per target account regardless of client address."""
    raise_if_limited(await check_code_attempt(target))


class RateLimitDependency:
    """Dependency class for rate limiting endpoints.

    Usage:
        @router.post("/endpoint")
        async def endpoint(
            rate_limit: Annotated[None, Depends(RateLimitDependency(RateLimitType.AUTH))]
        ):
            ...
    """

    def __init__(self, limit_type: RateLimitType) -> None:
        self.limit_type = limit_type

    async def __call__(self, request: Request) -> None:
        """Check rate limit and raise 429 if exceeded."""
        raise_if_limited(await check_rate_limit(request, self.limit_type))


# Pre-configured rate limit dependencies
AuthRateLimit = Annotated[None, Depends(RateLimitDependency(RateLimitType.AUTH))]
VerificationRateLimit = Annotated[None, Depends(RateLimitDependency(RateLimitType.VERIFICATION))]
