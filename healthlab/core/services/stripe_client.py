"""
Клиент Stripe: Checkout, Billing Portal и проверка подписи webhook'ов.
Не знает ни про Telegram, ни про БД.
"""

import asyncio
import json
import logging
from dataclasses import dataclass

import stripe

from healthlab.core.config import Settings

logger = logging.getLogger(__name__)

# Допустимый возраст подписи webhook'а (сек)
SIGNATURE_TOLERANCE = 300


class InvalidSignature(Exception):
    """Подпись webhook'а отсутствует или не сходится: Stripe должен повторить доставку."""


@dataclass
class CheckoutResult:
    """Результат создания сессии оплаты / портала."""
    success: bool
    url: str | None = None
    session_id: str | None = None
    error: str | None = None


def configure(settings: Settings):
    stripe.api_key = settings.STRIPE_SECRET_KEY
    stripe.api_version = settings.STRIPE_API_VERSION


async def create_checkout_session(settings: Settings, telegram_id: int) -> CheckoutResult:
    """
    Создаёт hosted Checkout на подписку.
    Telegram ID уходит в client_reference_id: по нему webhook найдёт пользователя.
    """
    try:
        # SDK синхронный: уводим в поток, чтобы не блокировать event loop
        session = await asyncio.to_thread(
            stripe.checkout.Session.create,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": settings.PRICE_ID, "quantity": 1}],
            success_url=settings.success_url,
            cancel_url=settings.cancel_url,
            client_reference_id=str(telegram_id),
            subscription_data={"metadata": {"telegram_id": str(telegram_id)}},
        )
    except Exception as e:
        logger.exception(f"Checkout error for {telegram_id}: {e}")
        return CheckoutResult(success=False, error=str(e))

    return CheckoutResult(success=True, url=session.url, session_id=session.id)


async def create_portal_session(customer_id: str, return_url: str) -> CheckoutResult:
    try:
        portal = await asyncio.to_thread(
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=return_url,
        )
    except Exception as e:
        logger.exception(f"Billing portal error for {customer_id}: {e}")
        return CheckoutResult(success=False, error=str(e))

    return CheckoutResult(success=True, url=portal.url, session_id=portal.id)


def verify_event(payload: bytes, signature: str | None, secret: str) -> dict:
    """
    Проверяет заголовок Stripe-Signature и возвращает событие как обычный dict.
    Проверка идёт по сырому телу запроса: его нельзя парсить заранее.
    """
    if not signature:
        raise InvalidSignature("no Stripe-Signature header")

    try:
        body = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(body, signature, secret, SIGNATURE_TOLERANCE)
    except (UnicodeDecodeError, stripe.SignatureVerificationError) as e:
        raise InvalidSignature(str(e)) from e

    try:
        event = json.loads(body)
    except json.JSONDecodeError:
        # подпись верная, а тело битое: ретрай не поможет
        logger.warning("Signed Stripe payload is not valid JSON")
        return {}
    return event if isinstance(event, dict) else {}
