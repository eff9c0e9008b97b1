"""
Точка входа: Telegram-бот + aiohttp (Stripe webhook + страницы оплаты).

Запуск:
  python run_telegram.py           (локально)
  python -m run_telegram           (Docker)

Необходимые переменные .env:
  BOT_TOKEN, DATABASE_URL, CHANNEL_ID, GROUP_ID, APP_URL,
  PRICE_ID, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
"""

import asyncio
import logging
import os
import sys

from dotenv import find_dotenv, load_dotenv
load_dotenv(find_dotenv())

from healthlab.core.config import ConfigError
from healthlab.main import main

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

if __name__ == "__main__":
    try:
        if os.name == "nt":
            asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
        asyncio.run(main())
    except ConfigError as e:
        logging.getLogger(__name__).critical(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        pass
