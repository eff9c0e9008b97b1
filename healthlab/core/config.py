"""
Конфигурация из переменных окружения (.env).

Все обязательные переменные проверяются при старте:
если чего-то не хватает, падаем сразу, а не на первом платеже.
"""

import os
from typing import Literal, Mapping, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ValidationError, field_validator


def normalize_db_url(url: str) -> str:
    # Heroku/Railway отдают postgres://, а SQLAlchemy нужен явный драйвер
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


class ConfigError(RuntimeError):
    """Не хватает переменных окружения или они некорректны."""


class Settings(BaseModel):
    # --- обязательные ---
    BOT_TOKEN: str
    DATABASE_URL: str
    CHANNEL_ID: int          # закрытый канал для подписчиков
    GROUP_ID: int            # чат подписчиков
    APP_URL: str             # внешний адрес сервера (https://...)
    PRICE_ID: str
    STRIPE_SECRET_KEY: str
    STRIPE_WEBHOOK_SECRET: str

    # --- необязательные ---
    PORT: int = 3000
    BOT_MODE: Literal["webhook", "polling"] = "webhook"
    TELEGRAM_SECRET_TOKEN: Optional[str] = None
    STRIPE_API_VERSION: str = "2024-06-20"
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    ADMIN_TELEGRAM_ID: Optional[int] = None
    LOG_LEVEL: str = "INFO"

    @field_validator("DATABASE_URL")
    @classmethod
    def _asyncpg_driver(cls, v: str) -> str:
        return normalize_db_url(v)

    @field_validator("APP_URL")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def success_url(self) -> str:
        return f"{self.APP_URL}/success"

    @property
    def cancel_url(self) -> str:
        return f"{self.APP_URL}/cancel"

    @property
    def telegram_webhook_url(self) -> str:
        return f"{self.APP_URL}/telegram"


REQUIRED_VARS = [name for name, field in Settings.model_fields.items() if field.is_required()]


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Собирает Settings из окружения.
    Пустые строки считаются отсутствующими (так обычно выглядит незаполненный .env).
    """
    if environ is None:
        load_dotenv(find_dotenv())
        environ = os.environ

    raw = {
        name: environ[name]
        for name in Settings.model_fields
        if environ.get(name) not in (None, "")
    }

    missing = [name for name in REQUIRED_VARS if name not in raw]
    if missing:
        raise ConfigError(f"Missing env vars: {', '.join(missing)}")

    try:
        return Settings.model_validate(raw)
    except ValidationError as e:
        bad = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise ConfigError(f"Invalid env vars: {bad}") from e
