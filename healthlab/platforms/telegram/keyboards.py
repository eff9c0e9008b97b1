from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from healthlab.core.texts import LANGUAGES, t


def language_kb() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=t(code, "language_name"), callback_data=f"lang:{code}")
         for code in LANGUAGES]
    ])


def main_menu_kb(lang: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=t(lang, "btn_subscribe"), callback_data="subscribe")],
        [InlineKeyboardButton(text=t(lang, "btn_status"), callback_data="status"),
         InlineKeyboardButton(text=t(lang, "btn_manage"), callback_data="manage")],
        [InlineKeyboardButton(text=t(lang, "btn_language"), callback_data="language")],
    ])


def url_button_kb(text: str, url: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=text, url=url)]
    ])


def invite_links_kb(lang: str, links: dict[str, str]) -> InlineKeyboardMarkup | None:
    buttons = [
        [InlineKeyboardButton(text=t(lang, f"btn_{name}"), url=url)]
        for name, url in links.items()
    ]
    return InlineKeyboardMarkup(inline_keyboard=buttons) if buttons else None
