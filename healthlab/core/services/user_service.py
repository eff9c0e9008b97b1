import json
import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from healthlab.core.db.models import User
from healthlab.core.schemas import UserCache
from healthlab.core.redis_client import redis_client


logger = logging.getLogger(__name__)
USER_TTL = 300  # Время жизни кэша (5 мин)


def _key(telegram_id: int) -> str:
    return f"user:{telegram_id}"


async def get_user_cached(session: AsyncSession, telegram_id: int) -> UserCache | None:
    """
    1. Ищет в Redis.
    2. Если нет: ищет в БД, сохраняет в Redis и возвращает.
    """
    raw_data = await redis_client.get(_key(telegram_id))
    if raw_data:
        return UserCache(**json.loads(raw_data))

    result = await session.execute(select(User).where(User.telegram_id == telegram_id))
    user_db = result.scalar_one_or_none()

    if not user_db:
        return None

    user_dto = UserCache(
        id=user_db.id,
        telegram_id=user_db.telegram_id,
        username=user_db.username,
        language=user_db.language,
        stripe_customer_id=user_db.stripe_customer_id,
    )

    await redis_client.set(_key(telegram_id), user_dto.model_dump_json(), ex=USER_TTL)
    logger.debug(f"💾 Cached user {telegram_id} for {USER_TTL}s")

    return user_dto


async def invalidate_user(telegram_id: int):
    """Сбрасывает кэш после любого изменения пользователя."""
    await redis_client.delete(_key(telegram_id))
    logger.debug(f"🗑️ Invalidated cache for user {telegram_id}")
