"""Expense ledger: validated add / full-replace / remove over expense records."""

import datetime as dt
import logging
from typing import Callable, Iterable, List, Optional

from pydantic import ValidationError

from tripbot.ledger.exceptions import LedgerValidationError, UnknownExpenseError
from tripbot.ledger.models import Expense, ExpenseDraft, utc_now

logger = logging.getLogger(__name__)


def validation_messages(error: ValidationError) -> List[str]:
    """Flatten a pydantic error into one line per offending field."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "expense"
        messages.append(f"{location}: {item['msg']}")
    return messages


def next_id(existing_ids: Iterable[str], now: dt.datetime) -> str:
    """
    Creation-ordered id: epoch milliseconds, bumped past any existing
    numeric id so that ids stay strictly increasing.
    """
    candidate = int(now.timestamp() * 1000)
    numeric = [int(i) for i in existing_ids if i.isdigit()]
    if numeric and candidate <= max(numeric):
        candidate = max(numeric) + 1
    return str(candidate)


class ExpenseLedger:
    """Expense records in newest-first order. Holds no derived state."""

    def __init__(
            self,
            expenses: Optional[Iterable[Expense]] = None,
            clock: Callable[[], dt.datetime] = utc_now
    ):
        self._expenses: List[Expense] = list(expenses or [])
        self._clock = clock

    @staticmethod
    def validate(draft: ExpenseDraft | dict) -> ExpenseDraft:
        """Validate user input, raising LedgerValidationError on rejection."""
        if isinstance(draft, ExpenseDraft):
            draft = draft.model_dump(by_alias=True)
        try:
            return ExpenseDraft.model_validate(draft)
        except ValidationError as e:
            raise LedgerValidationError(validation_messages(e)) from e

    def add(self, draft: ExpenseDraft | dict) -> Expense:
        draft = self.validate(draft)
        now = self._clock()
        expense = Expense(
            **draft.model_dump(),
            id=next_id((e.id for e in self._expenses), now),
            created_at=now,
        )
        if expense.added_by is None:
            expense.added_by = expense.payer_id

        self._expenses.insert(0, expense)
        logger.info(f"Expense {expense.id} added: {expense.amount} {expense.currency} by {expense.payer_id}")
        return expense

    def update(self, expense_id: str, draft: ExpenseDraft | dict) -> Expense:
        """Full replacement keeping id, creation time and authorship."""
        draft = self.validate(draft)
        index = self._index_of(expense_id)
        original = self._expenses[index]

        fields = draft.model_dump()
        fields["added_by"] = original.added_by
        replacement = Expense(**fields, id=original.id, created_at=original.created_at)

        self._expenses[index] = replacement
        logger.info(f"Expense {expense_id} replaced")
        return replacement

    def remove(self, expense_id: str) -> bool:
        """Drop an expense. Settlements that reference it are left alone."""
        before = len(self._expenses)
        self._expenses = [e for e in self._expenses if e.id != expense_id]
        removed = len(self._expenses) != before
        if removed:
            logger.info(f"Expense {expense_id} removed")
        return removed

    def get(self, expense_id: str) -> Optional[Expense]:
        for expense in self._expenses:
            if expense.id == expense_id:
                return expense
        return None

    def require(self, expense_id: str) -> Expense:
        expense = self.get(expense_id)
        if expense is None:
            raise UnknownExpenseError(expense_id)
        return expense

    def _index_of(self, expense_id: str) -> int:
        for index, expense in enumerate(self._expenses):
            if expense.id == expense_id:
                return index
        raise UnknownExpenseError(expense_id)

    @property
    def expenses(self) -> List[Expense]:
        return list(self._expenses)

    def __iter__(self):
        return iter(self._expenses)

    def __len__(self) -> int:
        return len(self._expenses)
