from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.models.allowed_user import AllowedUser


class AllowedUserRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def exists(self, customer_id: str) -> bool:
        stmt = select(AllowedUser.id).where(col(AllowedUser.customer_id) == customer_id)
        result = await self.db.exec(stmt)
        return result.first() is not None

    async def add(self, customer_id: str) -> AllowedUser:
        allowed = AllowedUser(customer_id=customer_id.strip())
        self.db.add(allowed)
        await self.db.flush()
        await self.db.refresh(allowed)
        return allowed
