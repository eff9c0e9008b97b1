import asyncio
from logging.config import fileConfig
import os

from dotenv import load_dotenv, find_dotenv

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from healthlab.core.config import normalize_db_url
from healthlab.core.db.models import Base


config = context.config

# Interpret the config file for Python logging.
# При вызове из приложения (create_db) логирование уже настроено
if config.config_file_name is not None and "connection" not in config.attributes:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_db_url():
    load_dotenv(find_dotenv())

    # 1. Пробуем взять готовый DATABASE_URL
    url = os.getenv("DATABASE_URL")

    # 2. Если нет, собираем из частей
    if not url:
        user = os.getenv("POSTGRES_USER", "postgres")
        password = os.getenv("POSTGRES_PASSWORD", "postgres")
        db = os.getenv("POSTGRES_DB", "postgres")
        host = os.getenv("POSTGRES_HOST", "localhost")
        port = os.getenv("DB_PORT", "5432")
        url = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"

    return normalize_db_url(url)


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=get_db_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """In this scenario we need to create an Engine
    and associate a connection with the context.
    """
    configuration = config.get_section(config.config_ini_section) or {}
    # URL берём из окружения, а не из alembic.ini
    configuration["sqlalchemy.url"] = get_db_url()

    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    # соединение передано из приложения: работаем в его транзакции
    connection = config.attributes.get("connection")
    if connection is not None:
        do_run_migrations(connection)
        return

    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
