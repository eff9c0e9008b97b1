"""
Webhook-обработчик Stripe.

400: подпись не сошлась (Stripe повторит доставку), в БД ничего не пишем.
200: событие обработано, проигнорировано или отброшено как битое.
500: упала БД/код, пусть Stripe повторит.
"""

import logging
from aiohttp import web

from healthlab.core.services.stripe_client import InvalidSignature, verify_event
from healthlab.core.services.payment_service import (
    apply_event,
    EventOutcome,
    ACTIVATED,
    STATUS_CHANGED,
)
from healthlab.core.services.channel_service import grant_access, revoke_access
from healthlab.core.services.user_service import get_user_cached, invalidate_user
from healthlab.core.texts import t
from healthlab.platforms.telegram.keyboards import invite_links_kb

logger = logging.getLogger(__name__)

# Статусы, при которых доступ к каналу ещё есть
ACCESS_STATUSES = {"active", "trialing"}
# Статусы, при которых доступ закрываем
ENDED_STATUSES = {"canceled", "incomplete_expired", "unpaid"}


async def stripe_webhook_handler(request: web.Request):
    settings = request.app["settings"]
    session_maker = request.app["session_maker"]

    # 1. Подпись: по СЫРОМУ телу
    payload = await request.read()
    try:
        event = verify_event(payload, request.headers.get("Stripe-Signature"), settings.STRIPE_WEBHOOK_SECRET)
    except InvalidSignature as e:
        logger.warning(f"Stripe webhook signature failed: {e}")
        return web.Response(status=400, text="Webhook Error")

    try:
        async with session_maker() as session:
            # Транзакция сама сделает commit в конце блока
            async with session.begin():
                outcome = await apply_event(session, event)

            lang = None
            if outcome.telegram_id is not None:
                await invalidate_user(outcome.telegram_id)
                user = await get_user_cached(session, outcome.telegram_id)
                lang = user.language if user else None
    except Exception:
        logger.exception(f"Stripe webhook {event.get('id')} failed")
        return web.Response(status=500, text="internal error")

    # Уведомляем только после COMMIT
    await _notify(request, outcome, lang)

    return web.json_response({"received": True})


async def _notify(request: web.Request, outcome: EventOutcome, lang: str | None):
    bot = request.app.get("bot")
    settings = request.app["settings"]
    if not bot or outcome.telegram_id is None:
        return

    user_id = outcome.telegram_id
    text, markup = None, None
    was_active = outcome.previous_status in ACCESS_STATUSES

    if outcome.action == ACTIVATED:
        # повторная доставка: ссылки уже выдали
        if not was_active:
            text, markup = await _grant(bot, settings, user_id, lang, "activated")

    elif outcome.action == STATUS_CHANGED and outcome.status != outcome.previous_status:
        if outcome.status in ACCESS_STATUSES and not was_active:
            text, markup = await _grant(bot, settings, user_id, lang, "reactivated")
        elif outcome.status in ENDED_STATUSES:
            await revoke_access(bot, settings, user_id)
            text = t(lang, "ended")
        elif outcome.status not in ACCESS_STATUSES:
            text = t(lang, "payment_problem", status=outcome.status)

    if text is None:
        return

    try:
        await bot.send_message(chat_id=user_id, text=text, reply_markup=markup)
    except Exception as e:
        logger.error(f"TG notification failed for {user_id}: {e}")


async def _grant(bot, settings, user_id: int, lang: str | None, key: str):
    links = await grant_access(bot, settings, user_id)
    if not links:
        # ссылки не создались: без обещания кнопок
        return t(lang, "access_no_links"), None
    return t(lang, key), invite_links_kb(lang, links)
