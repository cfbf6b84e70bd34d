"""Inline keyboards for the bot."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Mapping

from aiogram.types import InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from tripbot.ledger.models import TEAM, ArchivedSettlement, Expense, ExpenseCategory, Member, SettlementStatus, Transfer
from tripbot.utils.constants import CATEGORY_LABELS, CB_BREAKDOWN, CB_EXPENSE, CB_SETTLE
from tripbot.utils.formatters import truncate_text


def get_currency_keyboard(codes: Iterable[str]) -> InlineKeyboardMarkup:
    """Create keyboard with tracked currency codes."""
    builder = InlineKeyboardBuilder()

    for code in codes:
        builder.button(text=code, callback_data=f"{CB_EXPENSE}:currency:{code}")

    builder.adjust(4)
    return builder.as_markup()


def get_category_keyboard() -> InlineKeyboardMarkup:
    """Create keyboard with expense categories."""
    builder = InlineKeyboardBuilder()

    for category in ExpenseCategory:
        builder.button(
            text=CATEGORY_LABELS[category],
            callback_data=f"{CB_EXPENSE}:category:{category.value}"
        )

    builder.adjust(2)
    return builder.as_markup()


def get_members_keyboard(members: List[Member], action: str) -> InlineKeyboardMarkup:
    """
    Create keyboard with list of members.

    Args:
        members: Trip members
        action: Action prefix for callback data
    """
    builder = InlineKeyboardBuilder()

    for member in members:
        builder.button(text=member.name, callback_data=f"{CB_EXPENSE}:{action}:{member.id}")

    builder.adjust(2)
    return builder.as_markup()


def get_split_keyboard(members: List[Member], selected: Iterable[str]) -> InlineKeyboardMarkup:
    """Create multi-select keyboard for who shares an expense."""
    selected = set(selected)
    builder = InlineKeyboardBuilder()

    for member in members:
        mark = "✅" if member.id in selected else "⬜"
        builder.button(
            text=f"{mark} {member.name}",
            callback_data=f"{CB_EXPENSE}:split:{member.id}"
        )

    builder.button(text="✔️ Done", callback_data=f"{CB_EXPENSE}:split_done")

    builder.adjust(2)
    return builder.as_markup()


def get_expenses_keyboard(expenses: List[Expense]) -> InlineKeyboardMarkup:
    """Create keyboard opening one expense per button."""
    builder = InlineKeyboardBuilder()

    for i, expense in enumerate(expenses, 1):
        label = f"{i}. {expense.amount.normalize():f} {expense.currency}"
        if expense.note:
            label += f" · {truncate_text(expense.note, 20)}"
        builder.button(text=label, callback_data=f"{CB_EXPENSE}:view:{expense.id}")

    builder.adjust(1)
    return builder.as_markup()


def get_expense_actions_keyboard(
        expense: Expense,
        statuses: Mapping[str, SettlementStatus],
        names: Mapping[str, str]
) -> InlineKeyboardMarkup:
    """
    Create keyboard for one expense: a settle toggle per member who can
    still be marked (or unmarked) and a delete button.
    """
    builder = InlineKeyboardBuilder()

    for member_id, status in statuses.items():
        name = names.get(member_id, member_id)
        if status == SettlementStatus.SETTLED:
            text = f"↩️ {name}: unmark"
        elif status == SettlementStatus.OUTSTANDING:
            text = f"✅ {name}: mark settled"
        else:
            continue
        builder.button(text=text, callback_data=f"{CB_EXPENSE}:toggle:{expense.id}:{member_id}")

    builder.button(text="🗑 Delete", callback_data=f"{CB_EXPENSE}:delete:{expense.id}")

    builder.adjust(1)
    return builder.as_markup()


def get_transfers_keyboard(
        transfers: List[Transfer],
        names: Mapping[str, str]
) -> InlineKeyboardMarkup:
    """Create keyboard with one 'paid' button per suggested transfer."""
    builder = InlineKeyboardBuilder()

    for index, transfer in enumerate(transfers):
        amount = transfer.amount.quantize(Decimal(1), rounding=ROUND_HALF_UP)
        builder.button(
            text=f"💸 {names.get(transfer.from_id, transfer.from_id)} → "
                 f"{names.get(transfer.to_id, transfer.to_id)} ({amount})",
            callback_data=f"{CB_SETTLE}:pay:{index}"
        )

    builder.adjust(1)
    return builder.as_markup()


def get_history_keyboard(
        settlements: List[ArchivedSettlement],
        names: Mapping[str, str]
) -> InlineKeyboardMarkup:
    """Create keyboard with one undo button per archived settlement."""
    builder = InlineKeyboardBuilder()

    for settlement in settlements:
        amount = settlement.amount.quantize(Decimal(1), rounding=ROUND_HALF_UP)
        builder.button(
            text=f"↩️ {names.get(settlement.from_id, settlement.from_id)} → "
                 f"{names.get(settlement.to_id, settlement.to_id)} ({amount})",
            callback_data=f"{CB_SETTLE}:undo:{settlement.id}"
        )

    builder.adjust(1)
    return builder.as_markup()


def get_breakdown_keyboard(members: List[Member]) -> InlineKeyboardMarkup:
    """Create keyboard switching the breakdown viewpoint."""
    builder = InlineKeyboardBuilder()

    builder.button(text="👥 Whole team", callback_data=f"{CB_BREAKDOWN}:{TEAM}")
    for member in members:
        builder.button(text=member.name, callback_data=f"{CB_BREAKDOWN}:{member.id}")

    builder.adjust(2)
    return builder.as_markup()
