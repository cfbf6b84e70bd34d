"""Handlers for start and help commands."""

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from tripbot.utils.constants import MSG_WELCOME, MSG_HELP
from tripbot.keyboards.reply import get_main_menu_keyboard

router = Router()


@router.message(CommandStart())
async def cmd_start(message: Message):
    """Handle /start command."""
    await message.answer(
        MSG_WELCOME,
        reply_markup=get_main_menu_keyboard()
    )


@router.message(Command("help"))
async def cmd_help(message: Message):
    """Handle /help command."""
    await message.answer(MSG_HELP, parse_mode="HTML")
