"""Handlers for balances and repayments."""

from aiogram import Router, F
from aiogram.filters import Command
from aiogram.types import Message, CallbackQuery

from tripbot.ledger.exceptions import LedgerValidationError, StoreWriteError
from tripbot.services.ledger_service import LedgerService
from tripbot.services.member_service import MemberService
from tripbot.store.repositories import TripRepositories
from tripbot.utils.constants import CB_SETTLE, ERR_NO_MEMBERS, ERR_NOT_SYNCED
from tripbot.utils.formatters import (
    format_balances,
    format_settlement_history,
    format_transfer,
    member_names,
)
from tripbot.keyboards.inline import get_history_keyboard, get_transfers_keyboard

router = Router()


async def _render_balances(repos: TripRepositories):
    ledger_service = LedgerService(repos)
    members = await MemberService(repos).list_members()
    balances = await ledger_service.get_balances()
    transfers = await ledger_service.get_suggested_settlements()
    names = member_names(members)

    text = format_balances(balances, transfers, names, repos.rates.base_currency)
    keyboard = get_transfers_keyboard(transfers, names) if transfers else None
    return members, text, keyboard


@router.message(Command("balances"))
async def cmd_balances(message: Message, repos: TripRepositories):
    """Show balances and the suggested transfers."""
    members, text, keyboard = await _render_balances(repos)
    if not members:
        await message.answer(ERR_NO_MEMBERS)
        return

    await message.answer(text, reply_markup=keyboard, parse_mode="HTML")


@router.callback_query(F.data.startswith(f"{CB_SETTLE}:pay:"))
async def callback_pay_transfer(callback: CallbackQuery, repos: TripRepositories):
    """
    Archive a suggested transfer as done.

    The plan is recomputed rather than trusted from the button, so a tap on
    a stale message settles what is owed now.
    """
    index = int(callback.data.split(":")[2])
    ledger_service = LedgerService(repos)
    transfers = await ledger_service.get_suggested_settlements()

    if index >= len(transfers):
        await callback.answer("Balances changed, here is the current plan", show_alert=True)
    else:
        transfer = transfers[index]
        try:
            await ledger_service.record_settlement(transfer.from_id, transfer.to_id, transfer.amount)
        except LedgerValidationError as e:
            await callback.answer("❌ " + "\n".join(e.messages), show_alert=True)
            return
        except StoreWriteError:
            await callback.answer(ERR_NOT_SYNCED, show_alert=True)
            return

        names = member_names(await MemberService(repos).list_members())
        await callback.answer(
            f"✅ {format_transfer(transfer, names, repos.rates.base_currency)}"
        )

    _, text, keyboard = await _render_balances(repos)
    await callback.message.edit_text(text, reply_markup=keyboard, parse_mode="HTML")


@router.message(Command("history"))
async def cmd_history(message: Message, repos: TripRepositories):
    """Show completed repayments, newest first."""
    settlements = await LedgerService(repos).list_settlements()
    names = member_names(await MemberService(repos).list_members())

    await message.answer(
        format_settlement_history(settlements, names, repos.rates.base_currency),
        reply_markup=get_history_keyboard(settlements, names) if settlements else None,
        parse_mode="HTML"
    )


@router.callback_query(F.data.startswith(f"{CB_SETTLE}:undo:"))
async def callback_undo_settlement(callback: CallbackQuery, repos: TripRepositories):
    """Undo an archived repayment."""
    settlement_id = callback.data.split(":")[2]
    ledger_service = LedgerService(repos)

    try:
        await ledger_service.undo_settlement(settlement_id)
    except StoreWriteError:
        await callback.answer(ERR_NOT_SYNCED, show_alert=True)
        return

    settlements = await ledger_service.list_settlements()
    names = member_names(await MemberService(repos).list_members())

    await callback.message.edit_text(
        format_settlement_history(settlements, names, repos.rates.base_currency),
        reply_markup=get_history_keyboard(settlements, names) if settlements else None,
        parse_mode="HTML"
    )
    await callback.answer("↩️ Repayment undone")
