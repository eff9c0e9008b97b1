"""
Доступ подписчиков к закрытому каналу и чату.
Ошибки Telegram (бот не админ, юзер заблокировал бота и т.п.) только логируем.
"""

import logging

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from healthlab.core.config import Settings

logger = logging.getLogger(__name__)


def _chats(settings: Settings) -> dict[str, int]:
    return {"channel": settings.CHANNEL_ID, "group": settings.GROUP_ID}


async def grant_access(bot: Bot, settings: Settings, telegram_id: int) -> dict[str, str]:
    """Одноразовые ссылки-приглашения: {"channel": url, "group": url}."""
    links = {}
    for name, chat_id in _chats(settings).items():
        try:
            # на случай повторной подписки после отмены
            await bot.unban_chat_member(chat_id=chat_id, user_id=telegram_id, only_if_banned=True)
            invite = await bot.create_chat_invite_link(
                chat_id=chat_id,
                name=f"sub {telegram_id}",
                member_limit=1,
            )
            links[name] = invite.invite_link
        except TelegramAPIError as e:
            logger.error(f"Invite link for {telegram_id} in {chat_id} failed: {e}")
    return links


async def revoke_access(bot: Bot, settings: Settings, telegram_id: int):
    """Исключает из канала и чата (ban + unban, чтобы можно было вернуться после оплаты)."""
    for chat_id in _chats(settings).values():
        try:
            await bot.ban_chat_member(chat_id=chat_id, user_id=telegram_id)
            await bot.unban_chat_member(chat_id=chat_id, user_id=telegram_id, only_if_banned=True)
        except TelegramAPIError as e:
            logger.error(f"Removing {telegram_id} from {chat_id} failed: {e}")
