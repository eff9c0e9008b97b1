"""
Страницы, на которые Stripe Checkout возвращает пользователя.

Маршруты:
  GET /success : оплата прошла
  GET /cancel  : оплата отменена
  GET /health  : проверка живости для хостинга

Сами страницы ничего не меняют: статус подписки приходит только webhook'ом.
"""

from aiohttp import web


async def checkout_success(request: web.Request) -> web.Response:
    html = _page_html(
        icon="✅",
        title="Оплата прошла успешно / Payment successful",
        message="Вернитесь в бот: ссылки на канал придут в течение минуты. Можно закрыть страницу."
                "<br><br>Return to the bot: channel links will arrive within a minute. "
                "You can close this page.",
    )
    return web.Response(text=html, content_type="text/html")


async def checkout_cancel(request: web.Request) -> web.Response:
    html = _page_html(
        icon="↩️",
        title="Оплата отменена / Payment canceled",
        message="Деньги не списаны. Оформить подписку можно снова из бота."
                "<br><br>You have not been charged. You can subscribe again from the bot.",
    )
    return web.Response(text=html, content_type="text/html")


async def health(request: web.Request) -> web.Response:
    return web.Response(text="ok")


# ============================================================
# HTML-шаблон (встроенный, без Jinja: для простоты)
# ============================================================

def _page_html(icon: str, title: str, message: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Health Lab Padel</title>
    <style>
        * {{ margin: 0; padding: 0; box-sizing: border-box; }}
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: #f5f5f5;
            display: flex;
            justify-content: center;
            align-items: center;
            min-height: 100vh;
            padding: 20px;
        }}
        .card {{
            background: #fff;
            border-radius: 16px;
            box-shadow: 0 4px 24px rgba(0,0,0,0.1);
            padding: 40px 32px;
            max-width: 420px;
            width: 100%;
            text-align: center;
        }}
        .icon {{ font-size: 64px; margin-bottom: 16px; }}
        h1 {{ font-size: 20px; color: #333; margin-bottom: 12px; }}
        p {{ color: #666; line-height: 1.6; }}
    </style>
</head>
<body>
    <div class="card">
        <div class="icon">{icon}</div>
        <h1>{title}</h1>
        <p>{message}</p>
    </div>
</body>
</html>"""
