"""Address book for accounts."""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from storefront.models import Address, AddressCreate, AddressRead, AddressUpdate
from storefront.services.errors import NotFoundError, ServiceResult, service_boundary


class AddressService:
    """CRUD over the addresses owned by one account.

    An address belonging to someone else is reported exactly like a
    missing one.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_owned(self, account_id: int, address_id: int) -> Address:
        address = await self.session.get(Address, address_id)
        if not address or address.account_id != account_id:
            raise NotFoundError("Address not found")
        return address

    @service_boundary("list addresses")
    async def list_addresses(self, account_id: int) -> list[AddressRead]:
        stmt = select(Address).where(Address.account_id == account_id).order_by(Address.id)
        result = await self.session.execute(stmt)
        return [AddressRead.model_validate(a) for a in result.scalars().all()]

    @service_boundary("get address")
    async def get_address(self, account_id: int, address_id: int) -> AddressRead:
        return AddressRead.model_validate(await self._get_owned(account_id, address_id))

    @service_boundary("create address")
    async def create_address(self, account_id: int, data: AddressCreate) -> AddressRead:
        address = Address(**data.model_dump(), account_id=account_id)
        self.session.add(address)
        await self.session.commit()
        await self.session.refresh(address)
        return AddressRead.model_validate(address)

    @service_boundary("update address")
    async def update_address(
        self, account_id: int, address_id: int, data: AddressUpdate
    ) -> AddressRead:
        address = await self._get_owned(account_id, address_id)
        for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(address, key, value)
        self.session.add(address)
        await self.session.commit()
        await self.session.refresh(address)
        return AddressRead.model_validate(address)

    @service_boundary("delete address")
    async def delete_address(self, account_id: int, address_id: int) -> ServiceResult:
        address = await self._get_owned(account_id, address_id)
        await self.session.delete(address)
        await self.session.commit()
        return ServiceResult(success=True, message="Address deleted successfully")
