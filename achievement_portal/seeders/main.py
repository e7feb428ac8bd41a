import asyncio

from achievement_portal.config import get_settings
from achievement_portal.infrastructure.database.connection import Database
from achievement_portal.infrastructure.logger import setup_logging
from achievement_portal.seeders import users_table_seeder


async def seed():
    settings = get_settings()
    setup_logging(json_logs=settings.log_json, log_level=settings.log_level, log_file=None)

    database = Database(settings.get_database_url(), echo=settings.db_echo)
    try:
        if settings.db_auto_create:
            await database.create_all()
        async with database.session_factory() as db:
            await users_table_seeder.run(db, settings)
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
