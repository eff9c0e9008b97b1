from aiogram import Router
from aiogram.types import BotCommand

from healthlab.core.texts import t
from .start_cmds import start_router
from .subscription_cmds import subscription_router

# Создаем главный роутер
user_router = Router()

# Подключаем дочерние роутеры
user_router.include_router(start_router)
user_router.include_router(subscription_router)


# Команды для кнопки МЕНЮ
def bot_menu(lang: str) -> list[BotCommand]:
    return [
        BotCommand(command="start", description=t(lang, "cmd_start")),
        BotCommand(command="subscribe", description=t(lang, "cmd_subscribe")),
        BotCommand(command="status", description=t(lang, "cmd_status")),
        BotCommand(command="language", description=t(lang, "cmd_language")),
        BotCommand(command="help", description=t(lang, "cmd_help")),
    ]


__all__ = ["user_router", "bot_menu"]
