"""Archive of completed repayments, per-expense or global."""

import datetime as dt
import logging
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from pydantic import ValidationError

from tripbot.ledger.exceptions import LedgerValidationError
from tripbot.ledger.expenses import next_id, validation_messages
from tripbot.ledger.models import (
    SETTLEMENT_EPSILON,
    ArchivedSettlement,
    Expense,
    SettlementStatus,
    utc_now,
)

logger = logging.getLogger(__name__)


class SettlementArchive:
    """Append-only settlement records, newest first; undo removes by id."""

    def __init__(
            self,
            settlements: Optional[Iterable[ArchivedSettlement]] = None,
            clock: Callable[[], dt.datetime] = utc_now
    ):
        self._settlements: List[ArchivedSettlement] = list(settlements or [])
        self._clock = clock

    def record_global(self, from_id: str, to_id: str, amount: Decimal) -> ArchivedSettlement:
        return self._record(from_id, to_id, amount, expense_id=None)

    def record_for_expense(
            self,
            expense_id: str,
            from_id: str,
            to_id: str,
            amount: Decimal
    ) -> ArchivedSettlement:
        return self._record(from_id, to_id, amount, expense_id=expense_id)

    def _record(
            self,
            from_id: str,
            to_id: str,
            amount: Decimal,
            expense_id: Optional[str]
    ) -> ArchivedSettlement:
        now = self._clock()
        try:
            settlement = ArchivedSettlement(
                id=next_id((s.id for s in self._settlements), now),
                from_id=from_id,
                to_id=to_id,
                amount=amount,
                date=now.date(),
                created_at=now,
                expense_id=expense_id,
            )
        except ValidationError as e:
            raise LedgerValidationError(validation_messages(e)) from e

        self._settlements.insert(0, settlement)
        scope = f"expense {expense_id}" if expense_id else "global"
        logger.info(f"Settlement {settlement.id} recorded ({scope}): {from_id} -> {to_id} {amount}")
        return settlement

    def undo(self, settlement_id: str) -> bool:
        """Remove a record. Unknown ids are ignored."""
        before = len(self._settlements)
        self._settlements = [s for s in self._settlements if s.id != settlement_id]
        removed = len(self._settlements) != before
        if removed:
            logger.info(f"Settlement {settlement_id} undone")
        return removed

    def is_settled(self, expense_id: str, member_id: str) -> bool:
        """Whether ``member_id`` repaid their share of ``expense_id`` specifically."""
        return self.find_for_expense(expense_id, member_id) is not None

    def find_for_expense(self, expense_id: str, member_id: str) -> Optional[ArchivedSettlement]:
        for settlement in self._settlements:
            if settlement.expense_id == expense_id and settlement.from_id == member_id:
                return settlement
        return None

    def settled_pairs(self) -> Set[Tuple[str, str]]:
        """(expense_id, member_id) pairs covered by expense-scoped records."""
        return {
            (s.expense_id, s.from_id)
            for s in self._settlements
            if s.expense_id is not None
        }

    def global_settlements(self) -> List[ArchivedSettlement]:
        return [s for s in self._settlements if s.is_global]

    def latest_global_at(self, member_id: str) -> Optional[dt.datetime]:
        """Creation time of the newest lump-sum repayment made by ``member_id``."""
        times = [s.created_at for s in self.global_settlements() if s.from_id == member_id]
        return max(times) if times else None

    def get(self, settlement_id: str) -> Optional[ArchivedSettlement]:
        for settlement in self._settlements:
            if settlement.id == settlement_id:
                return settlement
        return None

    @property
    def settlements(self) -> List[ArchivedSettlement]:
        return list(self._settlements)

    def __iter__(self):
        return iter(self._settlements)

    def __len__(self) -> int:
        return len(self._settlements)


def settlement_statuses(
        expense: Expense,
        archive: SettlementArchive,
        balances: Mapping[str, Decimal],
        epsilon: Decimal = SETTLEMENT_EPSILON
) -> Dict[str, SettlementStatus]:
    """
    Settlement state of every split member of one expense.

    An expense counts as covered by a lump-sum repayment when it was
    created before the member's most recent global settlement.
    """
    statuses = {}
    for member_id in expense.split_with:
        if member_id == expense.payer_id:
            statuses[member_id] = SettlementStatus.PAYER
            continue

        if archive.is_settled(expense.id, member_id):
            statuses[member_id] = SettlementStatus.SETTLED
            continue

        last_global = archive.latest_global_at(member_id)
        if last_global is not None and expense.created_at < last_global:
            statuses[member_id] = SettlementStatus.COVERED_BY_GLOBAL
        elif balances.get(member_id, Decimal(0)) >= -epsilon:
            statuses[member_id] = SettlementStatus.ZERO_DEBT
        else:
            statuses[member_id] = SettlementStatus.OUTSTANDING

    return statuses
