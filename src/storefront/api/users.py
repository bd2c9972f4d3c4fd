"""Endpoints for the authenticated account: profile, email change, addresses."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from storefront.api.deps import (
    AccountServiceDep,
    AddressServiceDep,
    CurrentAccount,
    VerificationRateLimit,
    WorkflowDep,
    enforce_code_attempt_limit,
)
from storefront.models import AccountRead, AddressCreate, AddressRead, AddressUpdate
from storefront.schemas import ErrorResponse, ResultResponse
from storefront.services.rate_limit import get_identifier

router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    }
)


class UpdateNameRequest(BaseModel):
    username: str


class UpdatePasswordRequest(BaseModel):
    password: str
    password_confirmation: str


class EmailChangeRequest(BaseModel):
    """Request a code at the address the account wants to switch to."""

    new_email: str


class EmailChangeConfirm(BaseModel):
    new_email: str
    code: str


@router.get("/me", response_model=AccountRead)
async def get_me(account: CurrentAccount, accounts: AccountServiceDep):
    """Get the authenticated account."""
    return await accounts.get_account(account.id)  # type: ignore[arg-type]


@router.put("/me/name", response_model=ResultResponse)
async def update_name(
    request: UpdateNameRequest,
    account: CurrentAccount,
    accounts: AccountServiceDep,
):
    result = await accounts.update_username(account.id, request.username)  # type: ignore[arg-type]
    return result.to_dict()


@router.put("/me/password", response_model=ResultResponse)
async def update_password(
    request: UpdatePasswordRequest,
    account: CurrentAccount,
    accounts: AccountServiceDep,
):
    result = await accounts.change_password(
        account.id,  # type: ignore[arg-type]
        request.password,
        request.password_confirmation,
    )
    return result.to_dict()


@router.post("/change-email/request", response_model=ResultResponse)
async def request_email_change(
    request: EmailChangeRequest,
    account: CurrentAccount,
    workflow: WorkflowDep,
    _rate_limit: VerificationRateLimit,
):
    """Send a verification code to the new email address."""
    result = await workflow.request_email_change(account.id, request.new_email)  # type: ignore[arg-type]
    return result.to_dict()


@router.post("/change-email/confirm", response_model=ResultResponse)
async def confirm_email_change(
    request: EmailChangeConfirm,
    account: CurrentAccount,
    workflow: WorkflowDep,
    _rate_limit: VerificationRateLimit,
):
    """Switch to the new email address once its code is confirmed."""
    await enforce_code_attempt_limit(get_identifier(None, account.id))
    result = await workflow.confirm_email_change(
        account.id,  # type: ignore[arg-type]
        request.new_email,
        request.code,
    )
    return result.to_dict()


@router.get("/addresses", response_model=list[AddressRead])
async def list_addresses(account: CurrentAccount, addresses: AddressServiceDep):
    return await addresses.list_addresses(account.id)  # type: ignore[arg-type]


@router.post("/addresses", response_model=AddressRead, status_code=status.HTTP_201_CREATED)
async def create_address(
    request: AddressCreate,
    account: CurrentAccount,
    addresses: AddressServiceDep,
):
    return await addresses.create_address(account.id, request)  # type: ignore[arg-type]


@router.get("/addresses/{address_id}", response_model=AddressRead)
async def get_address(address_id: int, account: CurrentAccount, addresses: AddressServiceDep):
    return await addresses.get_address(account.id, address_id)  # type: ignore[arg-type]


@router.put("/addresses/{address_id}", response_model=AddressRead)
async def update_address(
    address_id: int,
    request: AddressUpdate,
    account: CurrentAccount,
    addresses: AddressServiceDep,
):
    return await addresses.update_address(account.id, address_id, request)  # type: ignore[arg-type]


@router.delete("/addresses/{address_id}", response_model=ResultResponse)
async def delete_address(address_id: int, account: CurrentAccount, addresses: AddressServiceDep):
    result = await addresses.delete_address(account.id, address_id)  # type: ignore[arg-type]
    return result.to_dict()
