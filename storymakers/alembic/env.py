import asyncio
from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from storymakers.config import Settings, is_placeholder
from storymakers.models import Base

config = context.config

# target metadata for autogenerate
target_metadata = Base.metadata


def _database_url() -> str:
    db_url = Settings.from_env().database_url or config.get_main_option('sqlalchemy.url')
    if is_placeholder(db_url):
        raise RuntimeError('DATABASE_URL is not set')
    return db_url


def run_migrations_offline():
    context.configure(url=_database_url(), target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online():
    connectable: AsyncEngine = create_async_engine(_database_url(), poolclass=pool.NullPool)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
