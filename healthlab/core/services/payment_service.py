"""
Синхронизация подписок по webhook'ам Stripe.

Локальная таблица только кэширует состояние Stripe,
строки появляются и меняются исключительно здесь.
Не знает про Telegram: уведомления шлёт web-слой после COMMIT.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from healthlab.core.db.crud import (
    link_customer,
    activate_subscription,
    update_subscription_status,
)

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"

# Что сделали с событием
ACTIVATED = "activated"
STATUS_CHANGED = "status_changed"
UNKNOWN = "unknown"       # подписки с таким id у нас нет
DROPPED = "dropped"       # битое / неполное событие
IGNORED = "ignored"       # неинтересный нам тип

# telegram_id хранится в BIGINT
BIGINT_MAX = 2 ** 63 - 1


@dataclass
class EventOutcome:
    action: str
    telegram_id: int | None = None
    status: str | None = None
    previous_status: str | None = None


def _parse_telegram_id(value) -> int | None:
    try:
        telegram_id = int(value)
    except (TypeError, ValueError):
        return None
    if not 0 < telegram_id <= BIGINT_MAX:
        return None
    return telegram_id


def _object_id(value) -> str | None:
    # поле может прийти как id или как раскрытый (expand) объект
    if isinstance(value, dict):
        value = value.get("id")
    return value if isinstance(value, str) and value else None


async def apply_event(session: AsyncSession, event: dict) -> EventOutcome:
    """
    Применяет событие к БД. Транзакцией управляет вызывающий код.
    Битые события не бросают исключений: логируем и отвечаем Stripe 200.
    """
    event_type = event.get("type")
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None

    if event_type not in (CHECKOUT_COMPLETED, SUBSCRIPTION_UPDATED, SUBSCRIPTION_DELETED):
        logger.info(f"Stripe event {event_type} ignored")
        return EventOutcome(action=IGNORED)

    if not isinstance(obj, dict):
        logger.warning(f"Stripe event {event.get('id')} ({event_type}) has no object")
        return EventOutcome(action=DROPPED)

    if event_type == CHECKOUT_COMPLETED:
        return await _on_checkout_completed(session, event, obj)
    return await _on_subscription_changed(session, event, event_type, obj)


async def _on_checkout_completed(session: AsyncSession, event: dict, obj: dict) -> EventOutcome:
    if obj.get("mode") != "subscription":
        logger.info(f"Checkout {obj.get('id')} is not a subscription, ignored")
        return EventOutcome(action=IGNORED)

    telegram_id = _parse_telegram_id(obj.get("client_reference_id"))
    subscription_id = _object_id(obj.get("subscription"))

    if telegram_id is None or subscription_id is None:
        logger.warning(
            f"Checkout {obj.get('id')} dropped: "
            f"client_reference_id={obj.get('client_reference_id')!r}, subscription={subscription_id!r}"
        )
        return EventOutcome(action=DROPPED)

    await link_customer(session, telegram_id, _object_id(obj.get("customer")))
    previous_status = await activate_subscription(session, telegram_id, subscription_id)

    logger.info(f"💳 Subscription {subscription_id} active for {telegram_id} (event {event.get('id')})")
    return EventOutcome(
        action=ACTIVATED,
        telegram_id=telegram_id,
        status="active",
        previous_status=previous_status,
    )


async def _on_subscription_changed(session: AsyncSession, event: dict, event_type: str, obj: dict) -> EventOutcome:
    subscription_id = _object_id(obj.get("id"))
    if subscription_id is None:
        logger.warning(f"Stripe event {event.get('id')} ({event_type}) without subscription id dropped")
        return EventOutcome(action=DROPPED)

    status = obj.get("status")
    if not isinstance(status, str) or not status:
        if event_type != SUBSCRIPTION_DELETED:
            logger.warning(f"Subscription {subscription_id} update without status dropped")
            return EventOutcome(action=DROPPED)
        status = "canceled"

    snapshot = await update_subscription_status(session, subscription_id, status)
    if snapshot is None:
        logger.info(f"Subscription {subscription_id} not found locally, {event_type} skipped")
        return EventOutcome(action=UNKNOWN, status=status)

    logger.info(f"🔄 Subscription {subscription_id}: {snapshot.previous_status} -> {status}")
    return EventOutcome(
        action=STATUS_CHANGED,
        telegram_id=snapshot.telegram_id,
        status=status,
        previous_status=snapshot.previous_status,
    )
