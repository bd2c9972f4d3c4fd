"""Code-based verification workflow.

Issues short-lived codes over email and, on confirmation, applies the
account mutation they gate: a password reset, an email reset, or a change
to a new email address.

Confirmation consumes the code before touching the account. A mutation
that fails after a valid code has been presented does not restore the
code; the user has to request a new one.
"""

import logging

from storefront.config import settings
from storefront.services.accounts import (
    AccountStore,
    normalize_email,
    validate_email,
)
from storefront.services.codes import (
    CodeGenerator,
    CodePurpose,
    VerificationCodeStore,
    code_key,
    email_change_key,
    numeric_code,
)
from storefront.services.email import EmailDeliveryError, EmailService
from storefront.services.errors import (
    ConflictError,
    InvalidCodeError,
    InvalidInputError,
    NotFoundError,
    ServiceResult,
    UnavailableError,
    UpdateFailedError,
    service_boundary,
)
from storefront.services.passwords import hash_password

logger = logging.getLogger(__name__)


class VerificationWorkflow:
    """Orchestrates code issuance, validation and the resulting mutation."""

    def __init__(
        self,
        accounts: AccountStore,
        codes: VerificationCodeStore,
        notifier: EmailService,
        generate_code: CodeGenerator = numeric_code,
        ttl_seconds: int | None = None,
    ):
        self.accounts = accounts
        self.codes = codes
        self.notifier = notifier
        self.generate_code = generate_code
        self.ttl_seconds = ttl_seconds or settings.verification_code_ttl_seconds

    async def _issue(self, key: str, destination: str) -> None:
        code = self.generate_code()
        await self.codes.set(key, code, self.ttl_seconds)
        try:
            await self.notifier.send_verification_code(destination, code)
        except EmailDeliveryError as e:
            logger.error(f"Could not deliver verification code for {key}: {e}")
            raise UnavailableError() from e

    @service_boundary("request code")
    async def request_code(self, email: str | None, purpose: CodePurpose) -> ServiceResult:
        """Send a code to the account's current email address.

        Any earlier code for the same account and purpose stops working.
        """
        if not email:
            raise InvalidInputError("Email is required")
        account = await self.accounts.find_by_email(normalize_email(email))
        if not account:
            raise NotFoundError()

        await self._issue(code_key(account.id, purpose), account.email)  # type: ignore[arg-type]
        return ServiceResult(success=True, message="Code sent by email")

    @service_boundary("confirm code")
    async def confirm_code(
        self,
        email: str | None,
        purpose: CodePurpose,
        code: str | None,
        new_value: str | None,
    ) -> ServiceResult:
        """Redeem a code sent by `request_code` and apply the change."""
        if not email or not code or not new_value:
            raise InvalidInputError("All fields are required")
        if purpose == CodePurpose.EMAIL:
            new_value = validate_email(new_value)

        account = await self.accounts.find_by_email(normalize_email(email))
        if not account:
            raise NotFoundError()
        account_id: int = account.id  # type: ignore[assignment]

        if not await self.codes.consume(code_key(account_id, purpose), code):
            raise InvalidCodeError()

        if purpose == CodePurpose.PASSWORD:
            updated = await self.accounts.update_password_hash(
                account_id, await hash_password(new_value)
            )
        else:
            updated = await self.accounts.update_email(account_id, new_value)

        if not updated:
            raise UpdateFailedError(f"Failed to update {purpose.value}")

        logger.info(f"Account {account_id} changed {purpose.value} with a verification code")
        return ServiceResult(success=True, message="Change applied successfully")

    @service_boundary("request email change")
    async def request_email_change(self, account_id: int, new_email: str | None) -> ServiceResult:
        """Send a code to a candidate address the account wants to switch to.

        Codes are keyed per target address, so requests for different
        targets do not invalidate each other.
        """
        new_email = validate_email(new_email)
        account = await self.accounts.find_by_id(account_id)
        if not account:
            raise NotFoundError()
        if await self.accounts.find_by_email(new_email):
            raise ConflictError("This email is already in use")

        await self._issue(email_change_key(account_id, new_email), new_email)
        return ServiceResult(success=True, message="Code sent to the new email")

    @service_boundary("confirm email change")
    async def confirm_email_change(
        self, account_id: int, new_email: str | None, code: str | None
    ) -> ServiceResult:
        """Redeem an email-change code; the submitted target must match."""
        if not code:
            raise InvalidInputError("Code is required")
        new_email = validate_email(new_email)

        if not await self.codes.consume(email_change_key(account_id, new_email), code):
            raise InvalidCodeError()

        if not await self.accounts.update_email(account_id, new_email):
            raise UpdateFailedError("Failed to update email")

        logger.info(f"Account {account_id} confirmed a new email address")
        return ServiceResult(success=True, message="Email updated successfully")
