import logging
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class SafeRedis:
    """
    Безопасная обёртка над Redis.
    - Не крашит бот если Redis недоступен (кэш просто выключается)
    - Отправляет Telegram-уведомление админу при падении (один раз)
    - Методы: get / set / delete
    """

    def __init__(self):
        self._client: Redis | None = None
        self._connected = False
        self._alert_sent = False
        self._bot = None
        self._admin_id: int | None = None

    async def connect(self, host: str, port: int, password: str | None = None,
                      bot=None, admin_id: int | None = None):
        """Вызывается из main.py при старте"""
        self._bot = bot
        self._admin_id = admin_id
        self._client = Redis(
            host=host,
            port=port,
            password=password,
            decode_responses=True,
            socket_connect_timeout=1.0,
            socket_timeout=1.0,
            retry_on_timeout=False,
            health_check_interval=0,
        )
        return await self.ping()

    async def ping(self) -> bool:
        """Проверка связи + сброс флага ошибки"""
        if self._client is None:
            return False
        try:
            await self._client.ping()
        except (RedisError, OSError) as e:
            await self._on_error(e)
            return False

        self._connected = True
        if self._alert_sent:
            logger.info("✅ Redis recovered! Alert flag reset.")
            await self._alert("✅ <b>Redis снова доступен!</b>")
        self._alert_sent = False
        return True

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
        self._connected = False

    async def _on_error(self, e: Exception):
        self._connected = False
        logger.error(f"Redis error: {e}")

        if self._alert_sent:
            return
        if await self._alert(f"🚨 <b>Redis недоступен!</b>\n\nОшибка: <code>{e}</code>\n\nБот работает без кэша."):
            self._alert_sent = True

    async def _alert(self, text: str) -> bool:
        if not self._bot or not self._admin_id:
            return False
        try:
            await self._bot.send_message(chat_id=self._admin_id, text=text)
            return True
        except Exception as e:
            logger.warning(f"Admin alert failed: {e}")
            return False

    # -------------------------------------------------------
    # Публичные методы
    # -------------------------------------------------------

    async def get(self, key: str) -> str | None:
        if not self._connected:
            return None
        try:
            return await self._client.get(key)
        except (RedisError, OSError) as e:
            await self._on_error(e)
            return None

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        if not self._connected:
            return False
        try:
            await self._client.set(key, value, ex=ex)
            return True
        except (RedisError, OSError) as e:
            await self._on_error(e)
            return False

    async def delete(self, *keys: str) -> int:
        if not self._connected:
            return 0
        try:
            return await self._client.delete(*keys)
        except (RedisError, OSError) as e:
            await self._on_error(e)
            return 0


# Глобальный клиент: импортируется везде
redis_client = SafeRedis()
