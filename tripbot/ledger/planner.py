"""Greedy debt simplification over a balance map."""

from decimal import Decimal
from typing import List, Mapping

from tripbot.ledger.models import SETTLEMENT_EPSILON, Transfer


def plan_settlements(
        balances: Mapping[str, Decimal],
        epsilon: Decimal = SETTLEMENT_EPSILON
) -> List[Transfer]:
    """
    Suggest transfers that bring every balance within ``epsilon`` of zero.

    Algorithm:
    1. Separate into debtors (balance < -epsilon) and creditors (> epsilon)
    2. Match the largest debtor with the largest creditor
    3. Settle min(credit, debt) between them
    4. Move past whichever side dropped below epsilon; repeat

    Ties keep the input order of ``balances``.

    Returns:
        Transfers from debtor to creditor, unrounded
    """
    debtors = [[mid, -bal] for mid, bal in balances.items() if bal < -epsilon]
    creditors = [[mid, bal] for mid, bal in balances.items() if bal > epsilon]

    debtors.sort(key=lambda x: x[1], reverse=True)
    creditors.sort(key=lambda x: x[1], reverse=True)

    transfers = []
    i, j = 0, 0

    while i < len(debtors) and j < len(creditors):
        debtor_id, debt = debtors[i]
        creditor_id, credit = creditors[j]

        amount = min(debt, credit)
        transfers.append(Transfer(from_id=debtor_id, to_id=creditor_id, amount=amount))

        debtors[i][1] = debt - amount
        creditors[j][1] = credit - amount

        if debtors[i][1] < epsilon:
            i += 1
        if creditors[j][1] < epsilon:
            j += 1

    return transfers
