from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from achievement_portal.models.user import Users
from achievement_portal.repositories.crud_repository import CrudRepository


class UserRepository(CrudRepository):
    def __init__(self, db: AsyncSession):
        super().__init__(db, Users)

    async def find_by_email(self, email: str) -> Optional[Users]:
        stmt = select(self.model).where(self.model.email == email.lower())
        result = await self.db.execute(stmt)
        return result.scalars().first()
