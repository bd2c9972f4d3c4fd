"""Authentication endpoints: registration, login and code-based recovery."""

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from storefront.api.deps import (
    AccountServiceDep,
    AuthRateLimit,
    SessionIssuerDep,
    VerificationRateLimit,
    WorkflowDep,
    enforce_code_attempt_limit,
)
from storefront.models import AccountCreate, AccountRead
from storefront.schemas import ErrorResponse, ResultResponse
from storefront.services.accounts import normalize_email
from storefront.services.codes import CodePurpose

router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    }
)


class RegisterResponse(ResultResponse):
    account: AccountRead


class LoginRequest(BaseModel):
    """Request body for login."""

    email: str
    password: str


class LoginResponse(ResultResponse):
    """Response containing the session token."""

    token: str
    token_type: str = "bearer"


class RecoveryRequest(BaseModel):
    """Request a verification code sent to the account's email."""

    email: str
    purpose: CodePurpose = Field(description="What the code will allow changing")


class ResetRequest(BaseModel):
    """Redeem a verification code."""

    email: str
    purpose: CodePurpose
    code: str = Field(max_length=32)
    new_value: str = Field(description="New password, or new email for the email purpose")


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: AccountCreate,
    accounts: AccountServiceDep,
    _rate_limit: AuthRateLimit,
):
    """Create a new account."""
    result = await accounts.register(
        username=request.username,
        email=request.email,
        phone=request.phone,
        password=request.password,
        password_confirmation=request.password_confirmation,
    )
    return result.to_dict()


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    issuer: SessionIssuerDep,
    _rate_limit: AuthRateLimit,
):
    """Exchange email and password for a session token."""
    result = await issuer.login(request.email, request.password)
    return result.to_dict()


@router.post("/recovery", response_model=ResultResponse)
async def request_code(
    request: RecoveryRequest,
    workflow: WorkflowDep,
    _rate_limit: VerificationRateLimit,
):
    """Email a verification code for a password or email reset."""
    result = await workflow.request_code(request.email, request.purpose)
    return result.to_dict()


@router.post("/reset", response_model=ResultResponse)
async def reset(
    request: ResetRequest,
    workflow: WorkflowDep,
    _rate_limit: VerificationRateLimit,
):
    """Apply a password or email reset with a verification code."""
    await enforce_code_attempt_limit(f"email:{normalize_email(request.email)}")
    result = await workflow.confirm_code(
        request.email, request.purpose, request.code, request.new_value
    )
    return result.to_dict()
