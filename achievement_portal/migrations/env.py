import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

from achievement_portal.config import get_settings
from achievement_portal.infrastructure.database.connection import Base

# Models must be imported so that autogenerate sees them
from achievement_portal.models.user import Users  # noqa: F401
from achievement_portal.models.achievement import Achievement  # noqa: F401

target_metadata = Base.metadata
config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def get_url():
    return config.get_main_option("sqlalchemy.url") or get_settings().get_database_url()


def run_migrations_offline():
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online():
    connectable = create_async_engine(get_url(), poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
