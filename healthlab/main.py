"""
Сборка процесса: aiohttp-сервер (Stripe webhook, Telegram webhook, страницы оплаты)
+ aiogram-диспетчер. В режиме polling апдейты Telegram забираются long-polling'ом,
а HTTP-сервер всё равно нужен для Stripe.
"""

import asyncio
import logging
import os
import signal

from aiogram import Bot, Dispatcher, types
from aiogram.client.bot import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.webhook.aiohttp_server import SimpleRequestHandler
from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healthlab.core.config import Settings, load_settings
from healthlab.core.db.config import build_session_maker, create_db
from healthlab.core.redis_client import redis_client as redis
from healthlab.core.services import stripe_client
from healthlab.core.texts import LANGUAGES, DEFAULT_LANGUAGE
from healthlab.middlewares.db_session import DataBaseSession
from healthlab.platforms.telegram.handlers import user_router, bot_menu
from healthlab.web.webhooks import stripe_webhook_handler
from healthlab.web.payment_pages import checkout_success, checkout_cancel, health

logger = logging.getLogger(__name__)

STRIPE_WEBHOOK_PATH = "/stripe/webhook"
TELEGRAM_PATH = "/telegram"
WEBAPP_HOST = "0.0.0.0"


def create_dispatcher(settings: Settings, session_maker: async_sessionmaker[AsyncSession]) -> Dispatcher:
    # settings попадает в хэндлеры как именованный аргумент
    dp = Dispatcher(settings=settings)
    dp.update.middleware(DataBaseSession(session_pool=session_maker))
    dp.include_router(user_router)
    return dp


def create_app(
    settings: Settings,
    bot: Bot | None,
    dispatcher: Dispatcher | None,
    session_maker: async_sessionmaker[AsyncSession],
) -> web.Application:
    app = web.Application()

    # Передаём зависимости в app для доступа из хэндлеров
    app["settings"] = settings
    app["bot"] = bot
    app["session_maker"] = session_maker

    app.router.add_get("/health", health)
    app.router.add_get("/success", checkout_success)
    app.router.add_get("/cancel", checkout_cancel)
    app.router.add_post(STRIPE_WEBHOOK_PATH, stripe_webhook_handler)

    if dispatcher is not None and bot is not None and settings.BOT_MODE == "webhook":
        SimpleRequestHandler(
            dispatcher=dispatcher,
            bot=bot,
            secret_token=settings.TELEGRAM_SECRET_TOKEN,
        ).register(app, path=TELEGRAM_PATH)

    return app


async def on_startup(bot: Bot, settings: Settings):
    await bot.set_my_commands(commands=bot_menu(DEFAULT_LANGUAGE), scope=types.BotCommandScopeAllPrivateChats())
    for lang in LANGUAGES:
        await bot.set_my_commands(
            commands=bot_menu(lang),
            scope=types.BotCommandScopeAllPrivateChats(),
            language_code=lang,
        )

    if settings.BOT_MODE == "webhook":
        await bot.set_webhook(
            url=settings.telegram_webhook_url,
            drop_pending_updates=True,
            allowed_updates=["message", "callback_query"],
            secret_token=settings.TELEGRAM_SECRET_TOKEN,
        )
        logger.info(f"✅ Webhook: {settings.telegram_webhook_url}")
    else:
        await bot.delete_webhook(drop_pending_updates=True)
        logger.info("✅ Long polling mode")


async def main():
    # === 1. Конфиг (падаем сразу, если чего-то нет) ===
    settings = load_settings()
    stripe_client.configure(settings)

    # === 2. БД ===
    engine, session_maker = build_session_maker(settings.DATABASE_URL)
    await create_db(engine)
    logger.info("✅ DB initialized")

    # === 3. Бот и Redis ===
    bot = Bot(token=settings.BOT_TOKEN, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    await redis.connect(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD,
        bot=bot,
        admin_id=settings.ADMIN_TELEGRAM_ID,
    )

    dp = create_dispatcher(settings, session_maker)
    await on_startup(bot, settings)

    # === 4. Aiohttp-сервер ===
    app = create_app(settings, bot, dp, session_maker)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=WEBAPP_HOST, port=settings.PORT)
    await site.start()
    logger.info(f"🚀 Server running on {WEBAPP_HOST}:{settings.PORT} ({settings.BOT_MODE})")

    polling_task = None
    if settings.BOT_MODE == "polling":
        polling_task = asyncio.create_task(dp.start_polling(bot, handle_signals=False))

    # === 5. Graceful shutdown ===
    stop_event = asyncio.Event()
    if os.name != "nt":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
    finally:
        logger.info("🔄 Shutting down...")
        if polling_task is not None:
            await dp.stop_polling()
            await polling_task
        await runner.cleanup()
        await bot.session.close()
        await redis.close()
        await engine.dispose()
        logger.info("✅ Shutdown complete")
