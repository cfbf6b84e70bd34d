"""Shared expense ledger and debt settlement core."""

from tripbot.ledger.analytics import by_category, rank_categories, team_total
from tripbot.ledger.balances import calculate_balances
from tripbot.ledger.bookings import Booking
from tripbot.ledger.exceptions import (
    LedgerError,
    LedgerValidationError,
    RateSourceError,
    StoreWriteError,
    UnknownExpenseError,
)
from tripbot.ledger.expenses import ExpenseLedger
from tripbot.ledger.models import (
    SETTLEMENT_EPSILON,
    TEAM,
    ArchivedSettlement,
    CategoryTotal,
    Expense,
    ExpenseCategory,
    ExpenseDraft,
    Member,
    SettlementStatus,
    Transfer,
)
from tripbot.ledger.planner import plan_settlements
from tripbot.ledger.rates import CurrencyRateTable
from tripbot.ledger.settlements import SettlementArchive, settlement_statuses

__all__ = [
    "SETTLEMENT_EPSILON",
    "TEAM",
    "ArchivedSettlement",
    "Booking",
    "CategoryTotal",
    "CurrencyRateTable",
    "Expense",
    "ExpenseCategory",
    "ExpenseDraft",
    "ExpenseLedger",
    "LedgerError",
    "LedgerValidationError",
    "Member",
    "RateSourceError",
    "SettlementArchive",
    "SettlementStatus",
    "StoreWriteError",
    "Transfer",
    "UnknownExpenseError",
    "by_category",
    "calculate_balances",
    "plan_settlements",
    "rank_categories",
    "settlement_statuses",
    "team_total",
]
