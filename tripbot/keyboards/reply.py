"""Reply keyboards for the bot."""

from aiogram.types import ReplyKeyboardMarkup
from aiogram.utils.keyboard import ReplyKeyboardBuilder

from tripbot.utils.constants import BTN_CANCEL, BTN_SKIP


def get_main_menu_keyboard() -> ReplyKeyboardMarkup:
    """Create main menu keyboard."""
    builder = ReplyKeyboardBuilder()

    builder.button(text="/add_expense")
    builder.button(text="/balances")
    builder.button(text="/expenses")
    builder.button(text="/breakdown")
    builder.button(text="/help")

    builder.adjust(2, 2, 1)
    return builder.as_markup(resize_keyboard=True)


def get_cancel_keyboard() -> ReplyKeyboardMarkup:
    """Create keyboard with cancel button."""
    builder = ReplyKeyboardBuilder()
    builder.button(text=BTN_CANCEL)
    return builder.as_markup(resize_keyboard=True)


def get_skip_keyboard() -> ReplyKeyboardMarkup:
    """Create keyboard with skip button."""
    builder = ReplyKeyboardBuilder()
    builder.button(text=BTN_SKIP)
    builder.button(text=BTN_CANCEL)
    builder.adjust(2)
    return builder.as_markup(resize_keyboard=True)
