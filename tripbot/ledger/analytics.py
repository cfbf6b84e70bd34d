"""Spend-by-category breakdown for the whole team or one member."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List

from tripbot.ledger.models import (
    TEAM,
    CategoryItem,
    CategoryTotal,
    Expense,
    ExpenseCategory,
    Member,
)
from tripbot.ledger.rates import CurrencyRateTable


def _whole_percent(part: Decimal, total: Decimal) -> int:
    if total <= 0:
        return 0
    return int((part / total * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def by_category(
        expenses: Iterable[Expense],
        rates: CurrencyRateTable,
        members: Iterable[Member],
        viewpoint: str = TEAM
) -> Dict[ExpenseCategory, List[CategoryItem]]:
    """
    Group expenses by category as seen from ``viewpoint``.

    TEAM counts only expenses split across the entire roster, at their full
    converted value. A member id counts every expense that member shares,
    at that member's share of the converted value.
    """
    roster = {m.id for m in members}
    grouped: Dict[ExpenseCategory, List[CategoryItem]] = {c: [] for c in ExpenseCategory}

    for expense in expenses:
        base_amount = rates.convert_to_base(expense.amount, expense.currency)

        if viewpoint == TEAM:
            if not roster or set(expense.split_with) != roster:
                continue
            value = base_amount
        else:
            if not expense.involves(viewpoint):
                continue
            value = base_amount / expense.share_count

        grouped[expense.category].append(CategoryItem(expense=expense, value=value))

    return grouped


def rank_categories(grouped: Dict[ExpenseCategory, List[CategoryItem]]) -> List[CategoryTotal]:
    """
    Order non-empty categories by total, largest first, with each one's
    whole-number percentage of the grand total and the running percentage
    of the categories before it (the start angle of its chart slice).
    """
    totals = {
        category: sum((item.value for item in items), Decimal(0))
        for category, items in grouped.items()
    }
    grand_total = sum(totals.values(), Decimal(0))

    ranked = sorted(
        (category for category, total in totals.items() if total > 0),
        key=lambda category: totals[category],
        reverse=True,
    )

    result = []
    running = Decimal(0)
    for category in ranked:
        result.append(CategoryTotal(
            category=category,
            total=totals[category],
            percentage=_whole_percent(totals[category], grand_total),
            cumulative=_whole_percent(running, grand_total),
            items=grouped[category],
        ))
        running += totals[category]

    return result


def team_total(
        expenses: Iterable[Expense],
        rates: CurrencyRateTable,
        members: Iterable[Member]
) -> Decimal:
    """Converted total of expenses shared by the whole roster."""
    grouped = by_category(expenses, rates, members, TEAM)
    return sum((item.value for items in grouped.values() for item in items), Decimal(0))
