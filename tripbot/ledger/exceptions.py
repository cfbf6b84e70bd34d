"""Errors raised by the ledger core and its services."""

from typing import Iterable


class LedgerError(Exception):
    """Base class for ledger errors."""


class LedgerValidationError(LedgerError):
    """Input rejected before any state was touched."""

    def __init__(self, messages: Iterable[str] | str):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class UnknownExpenseError(LedgerError):
    """Expense id is not present in the ledger."""

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} not found")


class StoreWriteError(LedgerError):
    """The shared store did not accept a write."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Store rejected update of '{field}'")


class RateSourceError(LedgerError):
    """External currency source failed (network, status or payload)."""
