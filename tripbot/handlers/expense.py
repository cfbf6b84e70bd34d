"""Handlers for expense management."""

from aiogram import Router, F
from aiogram.filters import Command, StateFilter
from aiogram.types import Message, CallbackQuery
from aiogram.fsm.context import FSMContext

from tripbot.states.forms import ExpenseForm
from tripbot.ledger.exceptions import LedgerValidationError, StoreWriteError, UnknownExpenseError
from tripbot.services.ledger_service import LedgerService
from tripbot.services.member_service import MemberService
from tripbot.services.rate_service import RateService
from tripbot.services.rate_source import RateSource
from tripbot.store.repositories import TripRepositories
from tripbot.utils.constants import (
    BTN_CANCEL,
    BTN_SKIP,
    CATEGORY_LABELS,
    CB_EXPENSE,
    ERR_NO_MEMBERS,
    ERR_NOT_FOUND,
    ERR_NOT_SYNCED,
    EXPENSES_PAGE,
)
from tripbot.utils.formatters import (
    format_amount,
    format_expense_detail,
    format_expenses_list,
    member_names,
)
from tripbot.utils.validators import validate_amount, validate_note
from tripbot.keyboards.inline import (
    get_category_keyboard,
    get_currency_keyboard,
    get_expense_actions_keyboard,
    get_expenses_keyboard,
    get_members_keyboard,
    get_split_keyboard,
)
from tripbot.keyboards.reply import get_cancel_keyboard, get_main_menu_keyboard, get_skip_keyboard

router = Router()


@router.message(StateFilter(ExpenseForm), F.text == BTN_CANCEL)
async def cancel_expense(message: Message, state: FSMContext):
    """Abort the expense form at any step."""
    await state.clear()
    await message.answer(
        "❌ Expense discarded",
        reply_markup=get_main_menu_keyboard()
    )


@router.message(Command("add_expense"))
async def cmd_add_expense(
        message: Message,
        state: FSMContext,
        repos: TripRepositories
):
    """Start adding an expense."""
    members = await MemberService(repos).list_members()
    if not members:
        await message.answer(ERR_NO_MEMBERS)
        return

    await state.clear()
    await state.set_state(ExpenseForm.amount)

    await message.answer(
        "💵 <b>New expense</b>\n\n"
        "How much was it? (e.g. 500 or 1250.50)",
        reply_markup=get_cancel_keyboard(),
        parse_mode="HTML"
    )


@router.message(ExpenseForm.amount)
async def process_expense_amount(
        message: Message,
        state: FSMContext,
        repos: TripRepositories,
        rate_source: RateSource
):
    """Process expense amount, ask for the currency."""
    is_valid, amount, error = validate_amount(message.text or "")
    if not is_valid:
        await message.answer(error)
        return

    await state.update_data(amount=str(amount))
    await state.set_state(ExpenseForm.currency)

    rates = await RateService(repos, rate_source).get_rates()
    await message.answer(
        "💱 <b>Currency?</b>",
        reply_markup=get_currency_keyboard(rates.codes),
        parse_mode="HTML"
    )


@router.callback_query(ExpenseForm.currency, F.data.startswith(f"{CB_EXPENSE}:currency:"))
async def callback_select_currency(callback: CallbackQuery, state: FSMContext):
    """Currency selected, ask for the category."""
    currency = callback.data.split(":")[2]
    await state.update_data(currency=currency)
    await state.set_state(ExpenseForm.category)

    await callback.message.edit_text(
        "🏷 <b>Category?</b>",
        reply_markup=get_category_keyboard(),
        parse_mode="HTML"
    )
    await callback.answer()


@router.callback_query(ExpenseForm.category, F.data.startswith(f"{CB_EXPENSE}:category:"))
async def callback_select_category(
        callback: CallbackQuery,
        state: FSMContext,
        repos: TripRepositories
):
    """Category selected, ask who paid."""
    category = callback.data.split(":")[2]
    await state.update_data(category=category)
    await state.set_state(ExpenseForm.payer)

    members = await MemberService(repos).list_members()
    await callback.message.edit_text(
        "👛 <b>Who paid?</b>",
        reply_markup=get_members_keyboard(members, action="payer"),
        parse_mode="HTML"
    )
    await callback.answer()


@router.callback_query(ExpenseForm.payer, F.data.startswith(f"{CB_EXPENSE}:payer:"))
async def callback_select_payer(
        callback: CallbackQuery,
        state: FSMContext,
        repos: TripRepositories
):
    """Payer selected, ask who shares the expense (everyone by default)."""
    payer_id = callback.data.split(":", 2)[2]
    members = await MemberService(repos).list_members()
    split_with = [m.id for m in members]

    await state.update_data(payer_id=payer_id, split_with=split_with)
    await state.set_state(ExpenseForm.split_with)

    await callback.message.edit_text(
        "👥 <b>Split between?</b>\n\nTap to include or exclude, then Done.",
        reply_markup=get_split_keyboard(members, split_with),
        parse_mode="HTML"
    )
    await callback.answer()


@router.callback_query(ExpenseForm.split_with, F.data.startswith(f"{CB_EXPENSE}:split:"))
async def callback_toggle_split(
        callback: CallbackQuery,
        state: FSMContext,
        repos: TripRepositories
):
    """Include or exclude one member from the split."""
    member_id = callback.data.split(":", 2)[2]
    data = await state.get_data()

    split_with = list(data.get("split_with", []))
    if member_id in split_with:
        split_with.remove(member_id)
    else:
        split_with.append(member_id)
    await state.update_data(split_with=split_with)

    members = await MemberService(repos).list_members()
    await callback.message.edit_reply_markup(
        reply_markup=get_split_keyboard(members, split_with)
    )
    await callback.answer()


@router.callback_query(ExpenseForm.split_with, F.data == f"{CB_EXPENSE}:split_done")
async def callback_split_done(callback: CallbackQuery, state: FSMContext):
    """Split confirmed, ask for an optional note."""
    data = await state.get_data()
    if not data.get("split_with"):
        await callback.answer("❌ Pick at least one person", show_alert=True)
        return

    await state.set_state(ExpenseForm.note)
    await callback.message.edit_text("📝 Add a note (what was it for?) or skip.")
    await callback.message.answer("Note:", reply_markup=get_skip_keyboard())
    await callback.answer()


@router.message(ExpenseForm.note)
async def process_expense_note(
        message: Message,
        state: FSMContext,
        repos: TripRepositories,
        user_id: int
):
    """Save the expense."""
    note = "" if message.text == BTN_SKIP else (message.text or "").strip()
    is_valid, error = validate_note(note)
    if not is_valid:
        await message.answer(error)
        return

    data = await state.get_data()
    ledger_service = LedgerService(repos)

    try:
        expense = await ledger_service.add_expense(
            amount=data["amount"],
            currency=data["currency"],
            category=data["category"],
            payer_id=data["payer_id"],
            split_with=data["split_with"],
            note=note,
            added_by=str(user_id),
        )
    except LedgerValidationError as e:
        await message.answer("❌ " + "\n".join(e.messages))
        return
    except StoreWriteError:
        await state.clear()
        await message.answer(ERR_NOT_SYNCED, reply_markup=get_main_menu_keyboard())
        return

    await state.clear()
    await message.answer(
        f"✅ Saved {CATEGORY_LABELS[expense.category]} "
        f"{format_amount(expense.amount, expense.currency)}",
        reply_markup=get_main_menu_keyboard()
    )


@router.message(Command("expenses"))
async def cmd_expenses(message: Message, repos: TripRepositories):
    """Show the latest expenses."""
    expenses = (await LedgerService(repos).list_expenses())[:EXPENSES_PAGE]
    names = member_names(await MemberService(repos).list_members())

    await message.answer(
        format_expenses_list(expenses, names),
        reply_markup=get_expenses_keyboard(expenses) if expenses else None,
        parse_mode="HTML"
    )


async def _show_expense(callback: CallbackQuery, repos: TripRepositories, expense_id: str, rate_source: RateSource):
    ledger_service = LedgerService(repos)
    expense = await ledger_service.get_expense(expense_id)
    if expense is None:
        await callback.message.edit_text(ERR_NOT_FOUND)
        return

    statuses = await ledger_service.get_settlement_status(expense_id)
    rates = await RateService(repos, rate_source).get_rates()
    names = member_names(await MemberService(repos).list_members())

    await callback.message.edit_text(
        format_expense_detail(expense, names, rates, statuses),
        reply_markup=get_expense_actions_keyboard(expense, statuses, names),
        parse_mode="HTML"
    )


@router.callback_query(F.data.startswith(f"{CB_EXPENSE}:view:"))
async def callback_view_expense(
        callback: CallbackQuery,
        repos: TripRepositories,
        rate_source: RateSource
):
    """Show one expense with per-member settlement state."""
    expense_id = callback.data.split(":")[2]
    await _show_expense(callback, repos, expense_id, rate_source)
    await callback.answer()


@router.callback_query(F.data.startswith(f"{CB_EXPENSE}:toggle:"))
async def callback_toggle_settled(
        callback: CallbackQuery,
        repos: TripRepositories,
        rate_source: RateSource
):
    """Mark or unmark one member's share of an expense as repaid."""
    _, _, expense_id, member_id = callback.data.split(":", 3)

    try:
        settlement_id = await LedgerService(repos).toggle_member_settled(expense_id, member_id)
    except UnknownExpenseError:
        await callback.answer(ERR_NOT_FOUND, show_alert=True)
        return
    except StoreWriteError:
        await callback.answer(ERR_NOT_SYNCED, show_alert=True)
        return

    await _show_expense(callback, repos, expense_id, rate_source)
    await callback.answer("✅ Marked as settled" if settlement_id else "↩️ Updated")


@router.callback_query(F.data.startswith(f"{CB_EXPENSE}:delete:"))
async def callback_delete_expense(callback: CallbackQuery, repos: TripRepositories):
    """Delete an expense."""
    expense_id = callback.data.split(":")[2]

    try:
        removed = await LedgerService(repos).remove_expense(expense_id)
    except StoreWriteError:
        await callback.answer(ERR_NOT_SYNCED, show_alert=True)
        return

    if not removed:
        await callback.answer(ERR_NOT_FOUND, show_alert=True)
        return

    await callback.message.edit_text("🗑 Expense deleted")
    await callback.answer()
