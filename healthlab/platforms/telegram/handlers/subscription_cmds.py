import logging

from aiogram import Router, Bot, F
from aiogram.filters import Command
from aiogram.types import Message, CallbackQuery
from sqlalchemy.ext.asyncio import AsyncSession

from healthlab.core.config import Settings
from healthlab.core.db.crud import get_subscription
from healthlab.core.services.stripe_client import create_checkout_session, create_portal_session
from healthlab.core.services.user_service import get_user_cached
from healthlab.core.texts import t
import healthlab.platforms.telegram.keyboards as kb


logger = logging.getLogger(__name__)
subscription_router = Router()


async def _user_lang(session: AsyncSession, telegram_id: int) -> str | None:
    user = await get_user_cached(session, telegram_id)
    return user.language if user else None


###########################################################################################################
# Оформление подписки
async def send_checkout(message: Message, telegram_id: int, session: AsyncSession, settings: Settings):
    lang = await _user_lang(session, telegram_id)

    subscription = await get_subscription(session, telegram_id)
    if subscription and subscription.status == "active":
        await message.answer(t(lang, "already_active"))
        return

    result = await create_checkout_session(settings, telegram_id)
    if not result.success:
        # не ретраим: юзер сам нажмёт ещё раз
        await message.answer(t(lang, "checkout_failed"))
        return

    logger.info(f"Checkout {result.session_id} created for {telegram_id}")
    await message.answer(
        t(lang, "checkout"),
        reply_markup=kb.url_button_kb(t(lang, "btn_pay"), result.url),
    )


@subscription_router.callback_query(F.data == "subscribe")
async def subscribe_btn(call: CallbackQuery, session: AsyncSession, settings: Settings):
    await call.answer()
    await send_checkout(call.message, call.from_user.id, session, settings)


@subscription_router.message(Command("subscribe"))
async def subscribe_cmd(message: Message, session: AsyncSession, settings: Settings):
    await send_checkout(message, message.from_user.id, session, settings)


###########################################################################################################
# Статус подписки
async def send_status(message: Message, telegram_id: int, session: AsyncSession):
    lang = await _user_lang(session, telegram_id)
    subscription = await get_subscription(session, telegram_id)

    if not subscription:
        await message.answer(t(lang, "status_none"), reply_markup=kb.main_menu_kb(lang))
        return

    await message.answer(t(lang, "status_line", status=subscription.status))


@subscription_router.callback_query(F.data == "status")
async def status_btn(call: CallbackQuery, session: AsyncSession):
    await call.answer()
    await send_status(call.message, call.from_user.id, session)


@subscription_router.message(Command("status"))
async def status_cmd(message: Message, session: AsyncSession):
    await send_status(message, message.from_user.id, session)


###########################################################################################################
# Управление (Stripe Billing Portal: смена карты, отмена)
@subscription_router.callback_query(F.data == "manage")
async def manage_btn(call: CallbackQuery, bot: Bot, session: AsyncSession):
    await call.answer()
    user = await get_user_cached(session, call.from_user.id)
    lang = user.language if user else None

    if not user or not user.stripe_customer_id:
        await call.message.answer(t(lang, "no_customer"))
        return

    me = await bot.me()
    result = await create_portal_session(user.stripe_customer_id, return_url=f"https://t.me/{me.username}")
    if not result.success:
        await call.message.answer(t(lang, "checkout_failed"))
        return

    await call.message.answer(
        t(lang, "portal"),
        reply_markup=kb.url_button_kb(t(lang, "btn_portal"), result.url),
    )
