"""Handlers for the trip roster."""

from html import escape

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from tripbot.ledger.exceptions import LedgerValidationError, StoreWriteError
from tripbot.services.member_service import MemberService
from tripbot.store.repositories import TripRepositories
from tripbot.utils.constants import ERR_NOT_FOUND, ERR_NOT_SYNCED
from tripbot.utils.formatters import format_members_list
from tripbot.utils.validators import validate_member_name

router = Router()


@router.message(Command("join"))
async def cmd_join(
        message: Message,
        repos: TripRepositories,
        user_id: int,
        full_name: str
):
    """Add the sender to this chat's trip."""
    member_service = MemberService(repos)

    try:
        member = await member_service.add_member(full_name, member_id=str(user_id))
    except StoreWriteError:
        await message.answer(ERR_NOT_SYNCED)
        return

    await message.answer(f"✅ {escape(member.name)} is on the trip!", parse_mode="HTML")


@router.message(Command("add_member"))
async def cmd_add_member(
        message: Message,
        command: CommandObject,
        repos: TripRepositories
):
    """Add a member who is not in the chat: /add_member Name."""
    name = (command.args or "").strip()

    is_valid, error = validate_member_name(name)
    if not is_valid:
        await message.answer(f"{error}\nUsage: /add_member Name")
        return

    member_service = MemberService(repos)
    try:
        member = await member_service.add_member(name)
    except LedgerValidationError as e:
        await message.answer("❌ " + "\n".join(e.messages))
        return
    except StoreWriteError:
        await message.answer(ERR_NOT_SYNCED)
        return

    await message.answer(f"✅ Added {escape(member.name)}", parse_mode="HTML")


@router.message(Command("members"))
async def cmd_members(message: Message, repos: TripRepositories):
    """List trip members."""
    members = await MemberService(repos).list_members()
    await message.answer(format_members_list(members), parse_mode="HTML")


@router.message(Command("remove_member"))
async def cmd_remove_member(
        message: Message,
        command: CommandObject,
        repos: TripRepositories
):
    """Remove a member by name: /remove_member Name."""
    member_service = MemberService(repos)
    member = await member_service.find_member(command.args or "")

    if member is None:
        await message.answer(f"{ERR_NOT_FOUND}\nUsage: /remove_member Name")
        return

    try:
        await member_service.remove_member(member.id)
    except StoreWriteError:
        await message.answer(ERR_NOT_SYNCED)
        return

    await message.answer(
        f"✅ Removed {escape(member.name)}. Their expenses stay in the history "
        f"but no longer count towards balances.",
        parse_mode="HTML"
    )
