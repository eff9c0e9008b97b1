from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, String
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


# Кастомный Base-класс с таймстемпом
class Base(AsyncAttrs, DeclarativeBase):
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# Таблица пользователя
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    telegram_id: Mapped[int] = mapped_column(
        BigInteger,
        unique=True,
        index=True,
        nullable=False
    )
    username: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)

    # NULL: язык ещё не выбран, на /start снова покажем выбор
    language: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)

    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


# Таблица подписки (одна на пользователя). Пишется только из webhook'ов Stripe
class Subscription(Base):
    __tablename__ = "subscriptions"

    telegram_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.telegram_id", ondelete="CASCADE"),
        primary_key=True
    )
    stripe_subscription_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False
    )
    # Словарь статусов Stripe: active, past_due, canceled, unpaid, ...
    status: Mapped[str] = mapped_column(String(50), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )
