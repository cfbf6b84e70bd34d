"""Handlers for the spending breakdown."""

from aiogram import Router, F
from aiogram.filters import Command, CommandObject
from aiogram.types import Message, CallbackQuery

from tripbot.ledger.models import TEAM
from tripbot.services.ledger_service import LedgerService
from tripbot.services.member_service import MemberService
from tripbot.store.repositories import TripRepositories
from tripbot.utils.constants import CB_BREAKDOWN, ERR_NOT_FOUND
from tripbot.utils.formatters import format_breakdown
from tripbot.keyboards.inline import get_breakdown_keyboard

router = Router()


async def _render_breakdown(repos: TripRepositories, viewpoint: str, title: str):
    categories = await LedgerService(repos).get_category_breakdown(viewpoint)
    members = await MemberService(repos).list_members()
    return (
        format_breakdown(categories, title, repos.rates.base_currency),
        get_breakdown_keyboard(members),
    )


@router.message(Command("breakdown"))
async def cmd_breakdown(message: Message, command: CommandObject, repos: TripRepositories):
    """Spend by category for the team, or for one member: /breakdown [Name]"""
    viewpoint, title = TEAM, "Shared by everyone"

    if command.args:
        member = await MemberService(repos).find_member(command.args)
        if member is None:
            await message.answer(ERR_NOT_FOUND)
            return
        viewpoint, title = member.id, f"{member.name}'s share"

    text, keyboard = await _render_breakdown(repos, viewpoint, title)
    await message.answer(text, reply_markup=keyboard, parse_mode="HTML")


@router.callback_query(F.data.startswith(f"{CB_BREAKDOWN}:"))
async def callback_breakdown(callback: CallbackQuery, repos: TripRepositories):
    """Switch the breakdown viewpoint."""
    viewpoint = callback.data.split(":", 1)[1]
    title = "Shared by everyone"

    if viewpoint != TEAM:
        member = await MemberService(repos).find_member(viewpoint)
        if member is None:
            await callback.answer(ERR_NOT_FOUND, show_alert=True)
            return
        title = f"{member.name}'s share"

    text, keyboard = await _render_breakdown(repos, viewpoint, title)
    await callback.message.edit_text(text, reply_markup=keyboard, parse_mode="HTML")
    await callback.answer()
