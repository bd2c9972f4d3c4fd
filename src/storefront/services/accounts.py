"""Account persistence and profile operations."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from storefront.models import Account, AccountRead
from storefront.services.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    ServiceResult,
    UpdateFailedError,
    service_boundary,
)
from storefront.services.passwords import hash_password

logger = logging.getLogger(__name__)

_email_adapter: TypeAdapter[str] = TypeAdapter(EmailStr)


def normalize_email(email: str) -> str:
    """Canonical form used for storage, lookups and code keys."""
    return email.strip().lower()


def validate_email(email: str | None) -> str:
    """Validate an email address and return its canonical form."""
    if not email:
        raise InvalidInputError("Email is required")
    try:
        _email_adapter.validate_python(email.strip())
    except PydanticValidationError as e:
        raise InvalidInputError("Invalid email") from e
    return normalize_email(email)


def validate_new_password(password: str | None, confirmation: str | None) -> str:
    if not password or not confirmation:
        raise InvalidInputError("All fields are required")
    if password != confirmation:
        raise InvalidInputError("Passwords do not match")
    return password


class AccountStore(ABC):
    """Credential store contract.

    Lookups return None when nothing matches. Updates return whether a row
    was affected and are safe to retry with the same arguments.
    """

    @abstractmethod
    async def find_by_email(self, email: str) -> Account | None: ...

    @abstractmethod
    async def find_by_id(self, account_id: int) -> Account | None: ...

    @abstractmethod
    async def create(
        self, *, username: str, email: str, phone: str, password_hash: str
    ) -> Account:
        """Insert an account.

        Raises:
            ConflictError: If the email is already registered
        """

    @abstractmethod
    async def update_password_hash(self, account_id: int, password_hash: str) -> bool: ...

    @abstractmethod
    async def update_email(self, account_id: int, email: str) -> bool:
        """Change the email address.

        Raises:
            ConflictError: If another account already uses the email
        """

    @abstractmethod
    async def update_username(self, account_id: int, username: str) -> bool: ...

    @abstractmethod
    async def update_last_login(self, account_id: int, when: datetime) -> bool: ...

    @abstractmethod
    async def list_all(self) -> list[Account]: ...


class SQLAccountStore(AccountStore):
    """Account store backed by the relational database.

    Email uniqueness is enforced by the unique index on ``account.email``;
    an integrity violation is the authoritative conflict signal.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_email(self, email: str) -> Account | None:
        stmt = (
            select(Account)
            .where(Account.email == email)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_id(self, account_id: int) -> Account | None:
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self, *, username: str, email: str, phone: str, password_hash: str
    ) -> Account:
        account = Account(
            username=username,
            email=email,
            phone=phone,
            password_hash=password_hash,
        )
        self.session.add(account)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError() from e
        await self.session.refresh(account)
        return account

    async def _update(self, account_id: int, **values: object) -> bool:
        stmt = update(Account).where(Account.id == account_id).values(**values)
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def update_password_hash(self, account_id: int, password_hash: str) -> bool:
        return await self._update(account_id, password_hash=password_hash)

    async def update_email(self, account_id: int, email: str) -> bool:
        try:
            return await self._update(account_id, email=email)
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("This email is already in use") from e

    async def update_username(self, account_id: int, username: str) -> bool:
        return await self._update(account_id, username=username)

    async def update_last_login(self, account_id: int, when: datetime) -> bool:
        return await self._update(account_id, last_login_at=when)

    async def list_all(self) -> list[Account]:
        result = await self.session.execute(select(Account).order_by(Account.id))
        return list(result.scalars().all())


class AccountService:
    """Registration and profile management."""

    def __init__(self, accounts: AccountStore):
        self.accounts = accounts

    @service_boundary("register")
    async def register(
        self,
        username: str | None,
        email: str | None,
        phone: str | None,
        password: str | None,
        password_confirmation: str | None,
    ) -> ServiceResult:
        """Create an account after validating input.

        The email pre-check only produces a friendlier early answer; a
        concurrent signup with the same email is still rejected by the store.
        """
        if not (username and username.strip()) or not email or not phone or not password:
            raise InvalidInputError("All fields are required")
        if password != password_confirmation:
            raise InvalidInputError("Passwords do not match")
        email = validate_email(email)

        if await self.accounts.find_by_email(email):
            raise ConflictError()

        account = await self.accounts.create(
            username=username.strip(),
            email=email,
            phone=phone.strip(),
            password_hash=await hash_password(password),
        )
        logger.info(f"Registered account {account.id}")
        return ServiceResult(
            success=True,
            message="Account created successfully",
            data={"account": AccountRead.model_validate(account)},
        )

    @service_boundary("get account")
    async def get_account(self, account_id: int) -> AccountRead:
        account = await self.accounts.find_by_id(account_id)
        if not account:
            raise NotFoundError()
        return AccountRead.model_validate(account)

    @service_boundary("list accounts")
    async def list_accounts(self) -> list[AccountRead]:
        return [AccountRead.model_validate(a) for a in await self.accounts.list_all()]

    @service_boundary("update username")
    async def update_username(self, account_id: int, username: str | None) -> ServiceResult:
        if not username or not username.strip():
            raise InvalidInputError("Username is required")
        if not await self.accounts.update_username(account_id, username.strip()):
            raise UpdateFailedError("Failed to update username")
        return ServiceResult(success=True, message="Username updated successfully")

    @service_boundary("change password")
    async def change_password(
        self,
        account_id: int,
        password: str | None,
        password_confirmation: str | None,
    ) -> ServiceResult:
        password = validate_new_password(password, password_confirmation)
        password_hash = await hash_password(password)
        if not await self.accounts.update_password_hash(account_id, password_hash):
            raise UpdateFailedError("Failed to update password")
        return ServiceResult(success=True, message="Password updated successfully")
