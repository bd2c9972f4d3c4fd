"""Shipping address model."""

from sqlmodel import Field, SQLModel


class AddressBase(SQLModel):
    """Fields shared by address schemas."""

    street: str = Field(max_length=255)
    number: int = Field(ge=0)
    neighborhood: str = Field(max_length=255)
    state: str = Field(max_length=100)
    country: str = Field(max_length=100)


class Address(AddressBase, table=True):
    """An address belonging to an account."""

    __tablename__ = "address"

    id: int | None = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="account.id", index=True, ondelete="CASCADE")


class AddressCreate(AddressBase):
    """Schema for creating an address."""

    pass


class AddressUpdate(SQLModel):
    """Schema for partially updating an address."""

    street: str | None = Field(default=None, max_length=255)
    number: int | None = Field(default=None, ge=0)
    neighborhood: str | None = Field(default=None, max_length=255)
    state: str | None = Field(default=None, max_length=100)
    country: str | None = Field(default=None, max_length=100)


class AddressRead(AddressBase):
    """Schema for reading an address."""

    id: int
    account_id: int
