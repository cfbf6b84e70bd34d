"""Net balance per member from expenses, rates and archived settlements."""

from decimal import Decimal
from typing import Dict, Iterable

from tripbot.ledger.models import Expense, Member
from tripbot.ledger.rates import CurrencyRateTable
from tripbot.ledger.settlements import SettlementArchive


def calculate_balances(
        expenses: Iterable[Expense],
        rates: CurrencyRateTable,
        archive: SettlementArchive,
        members: Iterable[Member]
) -> Dict[str, Decimal]:
    """
    Calculate net balance for each member in base currency.

    Positive balance = member is owed money
    Negative balance = member owes money

    Every contribution is a matched credit/debit pair:
    1. Each split member other than the payer owes an equal share of the
       converted amount to the payer, unless an expense-scoped settlement
       already covers that member on that expense.
    2. Each global settlement moves its amount from the payee's credit
       back to the payer of the settlement.
    Pairs that touch someone outside the roster are skipped, so the
    balances always sum to zero. Nothing is rounded here.
    """
    balances: Dict[str, Decimal] = {m.id: Decimal(0) for m in members}
    settled = archive.settled_pairs()

    for expense in expenses:
        if expense.payer_id not in balances:
            continue

        base_amount = rates.convert_to_base(expense.amount, expense.currency)
        share = base_amount / expense.share_count

        for member_id in expense.split_with:
            if member_id == expense.payer_id or member_id not in balances:
                continue
            if (expense.id, member_id) in settled:
                continue
            balances[member_id] -= share
            balances[expense.payer_id] += share

    for settlement in archive.global_settlements():
        if settlement.from_id not in balances or settlement.to_id not in balances:
            continue
        balances[settlement.from_id] += settlement.amount
        balances[settlement.to_id] -= settlement.amount

    return balances

