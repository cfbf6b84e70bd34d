"""Formatters for displaying data in messages."""

from decimal import ROUND_HALF_UP, Decimal
from html import escape
from typing import Dict, List, Mapping

from tripbot.ledger.models import (
    SETTLEMENT_EPSILON,
    ArchivedSettlement,
    CategoryTotal,
    Expense,
    Member,
    SettlementStatus,
    Transfer,
)
from tripbot.ledger.rates import CurrencyRateTable
from tripbot.utils.constants import CATEGORY_LABELS, STATUS_LABELS

CENT = Decimal("0.01")


def format_amount(amount: Decimal, currency: str) -> str:
    """Round half up to cents for display."""
    return f"{amount.quantize(CENT, rounding=ROUND_HALF_UP):,.2f} {currency}"


def _name(names: Mapping[str, str], member_id: str) -> str:
    return escape(names.get(member_id, member_id))


def member_names(members: List[Member]) -> Dict[str, str]:
    return {m.id: m.name for m in members}


def format_members_list(members: List[Member]) -> str:
    """Format list of members."""
    if not members:
        return "❌ No members yet"

    message = "<b>👥 Members:</b>\n\n"
    for i, member in enumerate(members, 1):
        message += f"{i}. {escape(member.name)}"
        if member.title:
            message += f" <i>({escape(member.title)})</i>"
        message += "\n"

    return message


def format_balances(
        balances: Mapping[str, Decimal],
        transfers: List[Transfer],
        names: Mapping[str, str],
        base_currency: str
) -> str:
    """Format balances followed by the suggested repayment plan."""
    message = "<b>🧮 Balances</b>\n\n"

    debtors = [(mid, bal) for mid, bal in balances.items() if bal < -SETTLEMENT_EPSILON]
    creditors = [(mid, bal) for mid, bal in balances.items() if bal > SETTLEMENT_EPSILON]
    balanced = [mid for mid, bal in balances.items() if abs(bal) <= SETTLEMENT_EPSILON]

    if creditors:
        message += "<b>✅ Is owed:</b>\n"
        for member_id, balance in sorted(creditors, key=lambda x: x[1], reverse=True):
            message += f"  • {_name(names, member_id)}: {format_amount(balance, base_currency)}\n"
        message += "\n"

    if debtors:
        message += "<b>💸 Owes:</b>\n"
        for member_id, balance in sorted(debtors, key=lambda x: x[1]):
            message += f"  • {_name(names, member_id)}: {format_amount(-balance, base_currency)}\n"
        message += "\n"

    if balanced:
        message += "<b>⚖️ Square:</b>\n"
        for member_id in balanced:
            message += f"  • {_name(names, member_id)}\n"
        message += "\n"

    if transfers:
        message += "<b>🔁 Suggested transfers</b> (tap one once it is paid):\n"
        for transfer in transfers:
            message += f"  {format_transfer(transfer, names, base_currency)}\n"
    else:
        message += "🎉 Nobody owes anything."

    return message


def format_transfer(transfer: Transfer, names: Mapping[str, str], base_currency: str) -> str:
    return (
        f"{_name(names, transfer.from_id)} → {_name(names, transfer.to_id)}: "
        f"{format_amount(transfer.amount, base_currency)}"
    )


def format_settlement_history(
        settlements: List[ArchivedSettlement],
        names: Mapping[str, str],
        base_currency: str
) -> str:
    """Format archived settlements, newest first."""
    if not settlements:
        return "📭 No repayments recorded yet"

    message = "<b>📜 Completed repayments</b> (tap to undo):\n\n"
    for settlement in settlements:
        scope = "for one expense" if settlement.expense_id else "towards total"
        message += (
            f"• {settlement.date.strftime('%d.%m.%Y')} "
            f"{_name(names, settlement.from_id)} → {_name(names, settlement.to_id)}: "
            f"{format_amount(settlement.amount, base_currency)} <i>({scope})</i>\n"
        )

    return message


def format_expenses_list(expenses: List[Expense], names: Mapping[str, str]) -> str:
    """Format list of expenses."""
    if not expenses:
        return "❌ No expenses yet"

    message = "<b>💰 Expenses:</b>\n\n"
    for i, expense in enumerate(expenses, 1):
        message += f"{i}. {CATEGORY_LABELS[expense.category]} {format_amount(expense.amount, expense.currency)}"
        if expense.note:
            message += f" · {escape(truncate_text(expense.note, 30))}"
        message += f"\n   Paid by {_name(names, expense.payer_id)} on {expense.date.strftime('%d.%m.%Y')}\n"

    return message


def format_expense_detail(
        expense: Expense,
        names: Mapping[str, str],
        rates: CurrencyRateTable,
        statuses: Mapping[str, SettlementStatus]
) -> str:
    """Format one expense with each split member's share and settlement state."""
    base_amount = rates.convert_to_base(expense.amount, expense.currency)
    share = base_amount / expense.share_count

    message = f"<b>💰 Expense #{expense.id}</b>\n\n"
    message += f"<b>Amount:</b> {format_amount(expense.amount, expense.currency)}"
    if expense.currency != rates.base_code:
        message += f" ≈ {format_amount(base_amount, rates.base_code)}"
    message += "\n"
    message += f"<b>Category:</b> {CATEGORY_LABELS[expense.category]}\n"
    message += f"<b>Paid by:</b> {_name(names, expense.payer_id)}\n"
    message += f"<b>Date:</b> {expense.date.strftime('%d.%m.%Y')}\n"
    if expense.note:
        message += f"<b>Note:</b> {escape(expense.note)}\n"

    message += f"\n<b>Split between {expense.share_count}</b> ({format_amount(share, rates.base_code)} each):\n"
    for member_id in expense.split_with:
        status = statuses.get(member_id, SettlementStatus.OUTSTANDING)
        message += f"  • {_name(names, member_id)}: {STATUS_LABELS[status]}\n"

    return message


def format_breakdown(
        categories: List[CategoryTotal],
        title: str,
        base_currency: str
) -> str:
    """Format category totals, largest first, with a text bar per category."""
    if not categories:
        return f"<b>📊 {escape(title)}</b>\n\nNothing spent yet."

    total = sum((c.total for c in categories), Decimal(0))
    message = f"<b>📊 {escape(title)}</b>\n"
    message += f"Total: {format_amount(total, base_currency)}\n\n"

    for category in categories:
        bar = "█" * max(1, category.percentage // 10) if category.percentage else "▏"
        message += (
            f"{CATEGORY_LABELS[category.category]}: {format_amount(category.total, base_currency)} "
            f"({category.percentage}%)\n{bar}\n"
        )

    return message


def format_rates(rates: CurrencyRateTable) -> str:
    """Format the rate table."""
    message = f"<b>💱 Rates into {rates.base_code}</b>\n\n"
    for code, multiplier in rates.items():
        marker = " (base)" if code == rates.base_code else ""
        message += f"• 1 {code} = {multiplier.normalize():f} {rates.base_code}{marker}\n"
    return message


def truncate_text(text: str, max_length: int = 50) -> str:
    """Truncate text to max length."""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."
