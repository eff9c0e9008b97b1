import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from healthlab.core.db.models import Base

logger = logging.getLogger(__name__)

# alembic.ini и папка миграций лежат в корне репозитория
PROJECT_ROOT = Path(__file__).resolve().parents[3]


def build_session_maker(db_url: str) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Создаёт движок и фабрику сессий."""
    engine = create_async_engine(
        db_url,
        echo=False,             # Отключаем логи в консоль
        pool_size=10,           # Базовый пул соединений
        max_overflow=5,         # Доп. слоты при нагрузке
        connect_args={
            "command_timeout": 30,  # Макс. время выполнения SQL-запроса (сек)
            "timeout": 10           # Макс. время ожидания соединения (сек)
        }
    )
    session_maker = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    return engine, session_maker


def alembic_config(connection: Connection | None = None) -> Config | None:
    ini_path = PROJECT_ROOT / "alembic.ini"
    if not ini_path.exists():
        return None
    cfg = Config(str(ini_path))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    if connection is not None:
        cfg.attributes["connection"] = connection
    return cfg


def _create_schema(connection: Connection):
    fresh = not inspect(connection).has_table(Base.metadata.tables["users"].name)
    Base.metadata.create_all(connection)
    if not fresh:
        return

    # Пустая БД: схема уже актуальна, помечаем head, иначе `alembic upgrade head` упадёт на существующих таблицах
    cfg = alembic_config(connection)
    if cfg is None:
        logger.warning("alembic.ini not found, run `alembic stamp head` manually")
        return
    command.stamp(cfg, "head")
    logger.info("🗄 Database created and stamped with alembic head")


async def create_db(engine: AsyncEngine):
    # create_all не трогает существующие таблицы, поэтому безопасно на каждом старте.
    # Изменения схемы: через alembic
    async with engine.begin() as conn:
        await conn.run_sync(_create_schema)
