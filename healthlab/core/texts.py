LANGUAGES = ("ru", "en")
DEFAULT_LANGUAGE = "ru"

# Выбор языка показываем на обоих языках сразу
LANGUAGE_PROMPT = "🌐 Выберите язык / Choose your language"

TEXTS = {
    "ru": {
        "language_name": "🇷🇺 Русский",
        "language_saved": "✅ Язык сохранён",
        "hello": "👋 <b>Health Lab Padel</b>\n\n"
                 "Подписка открывает доступ к закрытому каналу с тренировками и чату участников.",
        "menu_hint": "Выберите действие 👇",
        "btn_subscribe": "💳 Оформить подписку",
        "btn_status": "📋 Моя подписка",
        "btn_manage": "⚙️ Управление подпиской",
        "btn_language": "🌐 Язык",
        "btn_pay": "💳 Перейти к оплате",
        "btn_portal": "⚙️ Открыть управление",
        "btn_channel": "📣 Канал",
        "btn_group": "💬 Чат",
        "checkout": "Оплата подписки:",
        "checkout_failed": "❌ Не удалось создать платёж. Попробуйте ещё раз чуть позже.",
        "already_active": "✅ Ваша подписка уже активна.",
        "status_none": "У вас пока нет подписки.",
        "status_line": "Статус подписки: <b>{status}</b>",
        "no_customer": "У вас пока нет подписки, управлять нечем.",
        "portal": "Управление подпиской (карта, отмена):",
        "activated": "🚀 <b>Подписка активирована!</b>\n\n"
                     "Ссылки ниже одноразовые — вступите по ним в канал и чат 👇",
        "reactivated": "✅ <b>Подписка снова активна!</b>\n\nСсылки для входа 👇",
        "access_no_links": "✅ <b>Подписка активна!</b>\n\n"
                           "Ссылки на канал и чат сейчас создать не получилось, администратор пришлёт их вручную.",
        "payment_problem": "⚠️ Проблема с оплатой подписки (статус: <b>{status}</b>).\n\n"
                           "Обновите способ оплаты через «Управление подпиской».",
        "ended": "❌ Подписка закончилась. Доступ к каналу и чату закрыт.\n\n"
                 "Оформить заново можно в любой момент: /start",
        "help": "/start — главное меню\n"
                "/subscribe — оформить подписку\n"
                "/status — статус подписки\n"
                "/language — сменить язык",
        "cmd_start": "🏠 Главное меню",
        "cmd_subscribe": "💳 Подписка",
        "cmd_status": "📋 Моя подписка",
        "cmd_language": "🌐 Язык",
        "cmd_help": "🆘 Помощь",
    },
    "en": {
        "language_name": "🇬🇧 English",
        "language_saved": "✅ Language saved",
        "hello": "👋 <b>Health Lab Padel</b>\n\n"
                 "A subscription gives you access to the private training channel and the members' chat.",
        "menu_hint": "Choose an action 👇",
        "btn_subscribe": "💳 Subscribe",
        "btn_status": "📋 My subscription",
        "btn_manage": "⚙️ Manage subscription",
        "btn_language": "🌐 Language",
        "btn_pay": "💳 Go to payment",
        "btn_portal": "⚙️ Open billing portal",
        "btn_channel": "📣 Channel",
        "btn_group": "💬 Chat",
        "checkout": "Subscription payment:",
        "checkout_failed": "❌ Could not create the payment. Please try again a bit later.",
        "already_active": "✅ Your subscription is already active.",
        "status_none": "You don't have a subscription yet.",
        "status_line": "Subscription status: <b>{status}</b>",
        "no_customer": "You don't have a subscription to manage yet.",
        "portal": "Manage your subscription (card, cancellation):",
        "activated": "🚀 <b>Subscription activated!</b>\n\n"
                     "The links below are single-use — join the channel and the chat 👇",
        "reactivated": "✅ <b>Your subscription is active again!</b>\n\nJoin links 👇",
        "access_no_links": "✅ <b>Your subscription is active!</b>\n\n"
                           "We could not create the channel and chat links right now, an admin will send them to you.",
        "payment_problem": "⚠️ There is a problem with your subscription payment (status: <b>{status}</b>).\n\n"
                           "Please update your payment method via “Manage subscription”.",
        "ended": "❌ Your subscription has ended. Access to the channel and chat is closed.\n\n"
                 "You can subscribe again any time: /start",
        "help": "/start — main menu\n"
                "/subscribe — subscribe\n"
                "/status — subscription status\n"
                "/language — change language",
        "cmd_start": "🏠 Main menu",
        "cmd_subscribe": "💳 Subscribe",
        "cmd_status": "📋 My subscription",
        "cmd_language": "🌐 Language",
        "cmd_help": "🆘 Help",
    },
}


def t(lang: str | None, key: str, **kwargs) -> str:
    texts = TEXTS.get(lang or DEFAULT_LANGUAGE, TEXTS[DEFAULT_LANGUAGE])
    text = texts.get(key, TEXTS[DEFAULT_LANGUAGE][key])
    return text.format(**kwargs) if kwargs else text
