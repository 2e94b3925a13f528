import asyncio
import os
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

from app.core.db import to_async_url
from app.models.base import Base
from app.models import quiz, rate_limit  # noqa: F401  импортируй все модели, которые нужны в миграциях


# Alembic Config
config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


# Метаданные из Base
target_metadata = Base.metadata


# ALEMBIC_DATABASE_URL, иначе тот же DATABASE_URL, что у приложения
def get_url():
    url = os.getenv("ALEMBIC_DATABASE_URL") or os.getenv("DATABASE_URL") or os.getenv("PG_DSN")
    if not url:
        raise RuntimeError("ALEMBIC_DATABASE_URL or DATABASE_URL must be set")
    return to_async_url(url)


def run_migrations_offline():
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
    )
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
