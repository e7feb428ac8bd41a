from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from achievement_portal.exceptions import StorageError

logger = structlog.get_logger()


class CrudRepository:
    def __init__(self, db: AsyncSession, model):
        self.db = db
        self.model = model

    async def find(self, id: int):
        result = await self.db.execute(select(self.model).where(self.model.id == id))
        return result.scalars().first()

    async def create(self, data: dict, refresh: bool = True):
        db_obj = self.model(**data)
        self.db.add(db_obj)
        await self._commit()
        if refresh:
            await self.refresh(db_obj)
        return db_obj

    async def update(self, db_obj, data: dict, refresh: bool = True):
        for field, value in data.items():
            setattr(db_obj, field, value)
        await self._commit()
        if refresh:
            await self.refresh(db_obj)
        return db_obj

    async def refresh(self, db_obj):
        await self.db.refresh(db_obj)

    async def delete(self, db_obj):
        await self.db.delete(db_obj)
        await self._commit()

    async def _commit(self):
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database commit failed", model=self.model.__name__, error=str(e))
            raise StorageError("Database error") from e
