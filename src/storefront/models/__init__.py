"""SQLModel database models."""

from storefront.models.account import Account, AccountCreate, AccountRead
from storefront.models.address import Address, AddressCreate, AddressRead, AddressUpdate
from storefront.models.base import TimestampMixin, utcnow

__all__ = [
    "Account",
    "AccountCreate",
    "AccountRead",
    "Address",
    "AddressCreate",
    "AddressRead",
    "AddressUpdate",
    "TimestampMixin",
    "utcnow",
]
