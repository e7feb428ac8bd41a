from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Database:
    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url

        self.engine = create_async_engine(
            self.database_url,
            echo=echo,
            future=True,
        )

        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )

    async def create_all(self):
        # Models must be imported so that they are registered on Base.metadata
        from achievement_portal.models import achievement, user  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()


# Session dependency for Depends(); the Database lives on app.state
async def get_db(request: Request):
    async with request.app.state.db.session_factory() as session:
        yield session
