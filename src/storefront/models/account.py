"""Account model."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from storefront.models.base import TimestampMixin


class Account(TimestampMixin, SQLModel, table=True):
    """A registered customer account."""

    __tablename__ = "account"

    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(max_length=255)
    email: str = Field(unique=True, index=True, max_length=255)
    phone: str = Field(max_length=32)
    password_hash: str = Field(max_length=255, description="bcrypt hash, never the plaintext")
    last_login_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        description="Timestamp of the last successful login",
    )


class AccountCreate(SQLModel):
    """Schema for creating an account."""

    username: str
    email: str
    phone: str
    password: str
    password_confirmation: str


class AccountRead(SQLModel):
    """Schema for reading an account."""

    id: int
    username: str
    email: str
    phone: str
    created_at: datetime
    last_login_at: datetime | None
