import contextlib

from aiogram import Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandStart
from aiogram.types import Message, CallbackQuery
from sqlalchemy.ext.asyncio import AsyncSession

from healthlab.core.db.crud import get_or_create_user, set_user_language
from healthlab.core.services.user_service import get_user_cached, invalidate_user
from healthlab.core.texts import LANGUAGES, LANGUAGE_PROMPT, t
import healthlab.platforms.telegram.keyboards as kb


start_router = Router()


async def send_main_menu(message: Message, lang: str):
    await message.answer(t(lang, "hello"))
    await message.answer(t(lang, "menu_hint"), reply_markup=kb.main_menu_kb(lang))


# команда СТАРТ
@start_router.message(CommandStart())
async def cmd_start(message: Message, session: AsyncSession):
    user = await get_or_create_user(session, message.from_user.id, message.from_user.username)
    await invalidate_user(user.telegram_id)

    # Пока язык не выбран: спрашиваем на каждом /start
    if not user.language:
        await message.answer(LANGUAGE_PROMPT, reply_markup=kb.language_kb())
        return

    await send_main_menu(message, user.language)


@start_router.message(Command("language"))
async def cmd_language(message: Message):
    await message.answer(LANGUAGE_PROMPT, reply_markup=kb.language_kb())


@start_router.callback_query(F.data == "language")
async def language_menu(call: CallbackQuery):
    await call.answer()
    await call.message.answer(LANGUAGE_PROMPT, reply_markup=kb.language_kb())


@start_router.callback_query(F.data.startswith("lang:"))
async def choose_language(call: CallbackQuery, session: AsyncSession):
    lang = call.data.split(":", 1)[1]
    if lang not in LANGUAGES:
        await call.answer()
        return

    # кнопка могла остаться от старого сообщения, а юзера в БД ещё нет
    await get_or_create_user(session, call.from_user.id, call.from_user.username)
    await set_user_language(session, call.from_user.id, lang)
    await invalidate_user(call.from_user.id)

    await call.answer(t(lang, "language_saved"))
    with contextlib.suppress(TelegramBadRequest):
        await call.message.edit_reply_markup(reply_markup=None)

    await send_main_menu(call.message, lang)


@start_router.message(Command("help"))
async def cmd_help(message: Message, session: AsyncSession):
    user = await get_user_cached(session, message.from_user.id)
    await message.answer(t(user.language if user else None, "help"))
