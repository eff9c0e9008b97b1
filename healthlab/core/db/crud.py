from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from healthlab.core.db.models import User, Subscription
from healthlab.core.texts import LANGUAGES


@dataclass
class SubscriptionSnapshot:
    """Состояние подписки до обновления из webhook."""
    telegram_id: int
    previous_status: str


def _insert(session: AsyncSession, model):
    # ON CONFLICT есть и в PostgreSQL, и в SQLite (тесты), но конструкции разные
    if session.bind.dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)


###  ###  ###  Пользователь  ###  ###  ###

# Получить пользователя или создать нового
async def get_or_create_user(session: AsyncSession, telegram_id: int, username: str | None) -> User:
    """
    Upsert: два параллельных /start (или /start вместе с webhook'ом)
    не падают на уникальном telegram_id.
    """
    stmt = _insert(session, User).values(telegram_id=telegram_id, username=username)
    stmt = stmt.on_conflict_do_update(
        index_elements=[User.telegram_id],
        set_={"username": stmt.excluded.username},
    )
    await session.execute(stmt)

    result = await session.execute(
        select(User)
        .where(User.telegram_id == telegram_id)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one()
    await session.commit()
    return user


async def set_user_language(session: AsyncSession, telegram_id: int, language: str):
    if language not in LANGUAGES:
        raise ValueError(f"Unsupported language: {language!r}")

    await session.execute(
        update(User)
        .where(User.telegram_id == telegram_id)
        .values(language=language)
    )
    await session.commit()


async def get_subscription(session: AsyncSession, telegram_id: int) -> Subscription | None:
    result = await session.execute(
        select(Subscription).where(Subscription.telegram_id == telegram_id)
    )
    return result.scalar_one_or_none()


###  ###  ###  Функции для webhook'ов (БЕЗ COMMIT)  ###  ###  ###

async def link_customer(session: AsyncSession, telegram_id: int, customer_id: str | None):
    """
    Привязывает клиента Stripe к пользователю.
    Если пользователя ещё нет в БД (оплатил раньше, чем мы его сохранили): создаёт.
    """
    stmt = _insert(session, User).values(
        telegram_id=telegram_id,
        stripe_customer_id=customer_id,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[User.telegram_id],
        # без customer в событии не затираем уже привязанного
        set_={"stripe_customer_id": func.coalesce(stmt.excluded.stripe_customer_id, User.stripe_customer_id)},
    )
    await session.execute(stmt)
    # commit делает вызывающий код


async def activate_subscription(session: AsyncSession, telegram_id: int, subscription_id: str) -> str | None:
    """
    Повторная доставка того же события даёт ту же самую одну строку.
    Возвращает статус до активации (None: подписки не было).
    """
    previous_status = await session.scalar(
        select(Subscription.status).where(Subscription.telegram_id == telegram_id)
    )

    stmt = _insert(session, Subscription).values(
        telegram_id=telegram_id,
        stripe_subscription_id=subscription_id,
        status="active",
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Subscription.telegram_id],
        set_={
            "stripe_subscription_id": stmt.excluded.stripe_subscription_id,
            "status": "active",
            "updated_at": func.now(),
        },
    )
    await session.execute(stmt)
    # commit делает вызывающий код
    return previous_status


async def update_subscription_status(
    session: AsyncSession,
    subscription_id: str,
    status: str,
) -> SubscriptionSnapshot | None:
    """
    Обновляет статус по id подписки Stripe.
    Неизвестный id -> None, строка НЕ создаётся.
    """
    result = await session.execute(
        select(Subscription.telegram_id, Subscription.status)
        .where(Subscription.stripe_subscription_id == subscription_id)
    )
    row = result.one_or_none()
    if row is None:
        return None

    await session.execute(
        update(Subscription)
        .where(Subscription.stripe_subscription_id == subscription_id)
        .values(status=status, updated_at=func.now())
    )
    # commit делает вызывающий код
    return SubscriptionSnapshot(telegram_id=row.telegram_id, previous_status=row.status)
