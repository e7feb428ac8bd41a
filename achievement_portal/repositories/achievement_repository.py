from typing import List, Optional

from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from achievement_portal.models.achievement import Achievement
from achievement_portal.repositories.crud_repository import CrudRepository


class AchievementRepository(CrudRepository):
    def __init__(self, db: AsyncSession):
        super().__init__(db, Achievement)

    def _newest_first(self, stmt):
        return stmt.order_by(desc(self.model.created_at), desc(self.model.id))

    async def get_by_owner(self, owner_id: int) -> List[Achievement]:
        stmt = self._newest_first(select(self.model).where(self.model.owner_id == owner_id))
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def find_owned(self, id: int, owner_id: int) -> Optional[Achievement]:
        # Existence and ownership in one lookup, so a foreign id looks missing
        stmt = select(self.model).where(self.model.id == id, self.model.owner_id == owner_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get(self, filters: dict = None) -> List[Achievement]:
        stmt = select(self.model).options(selectinload(self.model.owner))

        if filters is not None:
            if filters.get('category') is not None:
                stmt = stmt.where(self.model.category == filters['category'])

            if filters.get('status') is not None:
                stmt = stmt.where(self.model.status == filters['status'])

        result = await self.db.execute(self._newest_first(stmt))
        return result.scalars().all()

    async def certificate_refs(self) -> set:
        result = await self.db.execute(select(self.model.certificate_ref))
        return set(result.scalars().all())

    async def count_by(self, column_name: str):
        column = getattr(self.model, column_name)
        count = func.count(self.model.id).label("count")
        stmt = select(column, count).group_by(column).order_by(desc(count), column)
        result = await self.db.execute(stmt)
        return [(value, total) for value, total in result.all()]

    async def created_at_values(self):
        result = await self.db.execute(select(self.model.created_at))
        return result.scalars().all()
