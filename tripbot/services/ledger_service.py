"""Service for the shared expense ledger and debt settlement."""

import asyncio
import datetime as dt
import logging
from decimal import Decimal
from typing import AsyncIterator, Dict, List, Optional

from pydantic import ValidationError

from tripbot.ledger.analytics import by_category, rank_categories, team_total
from tripbot.ledger.balances import calculate_balances
from tripbot.ledger.exceptions import LedgerValidationError, StoreWriteError
from tripbot.ledger.expenses import ExpenseLedger, validation_messages
from tripbot.ledger.models import (
    SETTLEMENT_EPSILON,
    TEAM,
    ArchivedSettlement,
    CategoryTotal,
    Expense,
    ExpenseCategory,
    SettlementStatus,
    Transfer,
)
from tripbot.ledger.planner import plan_settlements
from tripbot.ledger.settlements import SettlementArchive, settlement_statuses
from tripbot.store.repositories import LEDGER_FIELDS, TripRepositories, TripSnapshot

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Ledger operations for one trip.

    Nothing derived is cached: every read loads the latest snapshot of
    members, expenses, rates and settlements and recomputes from it.
    """

    def __init__(self, repos: TripRepositories):
        self.repos = repos

    # Balances and settlement plan

    async def get_balances(self) -> Dict[str, Decimal]:
        """Net balance per member in base currency (positive = is owed)."""
        return self._balances(await self.repos.snapshot())

    @staticmethod
    def _balances(snapshot: TripSnapshot) -> Dict[str, Decimal]:
        return calculate_balances(snapshot.ledger, snapshot.rates, snapshot.archive, snapshot.members)

    async def get_suggested_settlements(self) -> List[Transfer]:
        """Greedy repayment plan that zeroes every balance."""
        return plan_settlements(await self.get_balances())

    async def watch_balances(self) -> AsyncIterator[Dict[str, Decimal]]:
        """Yield a fresh balance map whenever any ledger input changes."""
        changes: asyncio.Queue = asyncio.Queue()
        subscriptions = []
        relays = []

        async def relay(subscription):
            async for _ in subscription:
                changes.put_nowait(subscription.field)

        try:
            for field in LEDGER_FIELDS:
                subscriptions.append(await self.repos.store.subscribe(field))
            relays = [asyncio.create_task(relay(s)) for s in subscriptions]
            while True:
                await changes.get()
                while not changes.empty():
                    changes.get_nowait()
                yield await self.get_balances()
        finally:
            for task in relays:
                task.cancel()
            for subscription in subscriptions:
                await subscription.aclose()

    # Settlement archive

    async def record_settlement(
            self,
            from_id: str,
            to_id: str,
            amount: Decimal,
            expense_id: Optional[str] = None
    ) -> str:
        """
        Archive a repayment.

        Args:
            from_id: Member who paid back
            to_id: Member who received the money
            amount: Base-currency amount
            expense_id: Tie the repayment to one expense instead of the
                aggregate balance

        Returns:
            New settlement id
        """
        snapshot = await self.repos.snapshot()
        roster = {m.id for m in snapshot.members}
        unknown = [mid for mid in (from_id, to_id) if mid not in roster]
        if unknown:
            raise LedgerValidationError([f"Unknown member: {mid}" for mid in unknown])

        if expense_id is None:
            settlement = snapshot.archive.record_global(from_id, to_id, amount)
        else:
            snapshot.ledger.require(expense_id)
            settlement = snapshot.archive.record_for_expense(expense_id, from_id, to_id, amount)

        await self._save_settlements(snapshot.archive)
        return settlement.id

    async def undo_settlement(self, settlement_id: str) -> None:
        """Remove an archived settlement; unknown ids are a no-op."""
        archive = SettlementArchive(await self.repos.settlements.load(), clock=self.repos.clock)
        if archive.undo(settlement_id):
            await self._save_settlements(archive)

    async def list_settlements(self) -> List[ArchivedSettlement]:
        return await self.repos.settlements.load()

    async def toggle_member_settled(self, expense_id: str, member_id: str) -> Optional[str]:
        """
        Flip whether ``member_id`` has repaid their share of one expense.

        An existing expense-scoped record is undone. Otherwise a record for
        the member's converted share is created, unless the member owes
        nothing overall anymore.

        Returns:
            Id of the new settlement, or None if nothing was recorded
        """
        snapshot = await self.repos.snapshot()
        expense = snapshot.ledger.require(expense_id)

        existing = snapshot.archive.find_for_expense(expense_id, member_id)
        if existing is not None:
            snapshot.archive.undo(existing.id)
            await self._save_settlements(snapshot.archive)
            return None

        if member_id == expense.payer_id or not expense.involves(member_id):
            return None

        balances = self._balances(snapshot)
        if balances.get(member_id, Decimal(0)) >= -SETTLEMENT_EPSILON:
            return None

        share = snapshot.rates.convert_to_base(expense.amount, expense.currency) / expense.share_count
        settlement = snapshot.archive.record_for_expense(expense_id, member_id, expense.payer_id, share)
        await self._save_settlements(snapshot.archive)
        return settlement.id

    async def get_settlement_status(self, expense_id: str) -> Dict[str, SettlementStatus]:
        """Settlement state of each split member of an expense."""
        snapshot = await self.repos.snapshot()
        expense = snapshot.ledger.require(expense_id)
        return settlement_statuses(expense, snapshot.archive, self._balances(snapshot))

    async def _save_settlements(self, archive: SettlementArchive):
        if not await self.repos.settlements.save(archive.settlements):
            logger.warning("Settlement archive was not saved")
            raise StoreWriteError(self.repos.settlements.field)

    # Expenses

    async def add_expense(
            self,
            amount: Decimal,
            currency: str,
            payer_id: str,
            split_with: List[str],
            category: ExpenseCategory | str = ExpenseCategory.OTHERS,
            date: Optional[dt.date] = None,
            note: str = "",
            added_by: Optional[str] = None
    ) -> Expense:
        """Validate and append a new expense."""
        draft = self._draft(amount, currency, payer_id, split_with, category, date, note, added_by)
        ledger = await self._load_ledger()
        expense = ledger.add(draft)
        await self._save_expenses(ledger)
        return expense

    async def add_expense_from_booking(
            self,
            booking_id: str,
            payer_id: str,
            split_with: List[str]
    ) -> Expense:
        """Record a booking's price as an expense paid by ``payer_id``."""
        bookings = await self.repos.bookings.load()
        booking = next((b for b in bookings if b.id == booking_id), None)
        if booking is None:
            raise LedgerValidationError(f"Booking {booking_id} not found")

        try:
            draft = booking.to_expense_draft(payer_id, split_with)
        except ValidationError as e:
            raise LedgerValidationError(validation_messages(e)) from e

        ledger = await self._load_ledger()
        expense = ledger.add(draft)
        await self._save_expenses(ledger)
        return expense

    async def update_expense(
            self,
            expense_id: str,
            amount: Decimal,
            currency: str,
            payer_id: str,
            split_with: List[str],
            category: ExpenseCategory | str = ExpenseCategory.OTHERS,
            date: Optional[dt.date] = None,
            note: str = ""
    ) -> Expense:
        """Replace every user-editable field of an expense."""
        ledger = await self._load_ledger()
        original = ledger.require(expense_id)
        draft = self._draft(
            amount, currency, payer_id, split_with, category,
            date or original.date, note, original.added_by
        )
        expense = ledger.update(expense_id, draft)
        await self._save_expenses(ledger)
        return expense

    async def remove_expense(self, expense_id: str) -> bool:
        """Delete an expense. Settlements pointing at it stay archived."""
        ledger = await self._load_ledger()
        if not ledger.remove(expense_id):
            return False
        await self._save_expenses(ledger)
        return True

    async def get_expense(self, expense_id: str) -> Optional[Expense]:
        return (await self._load_ledger()).get(expense_id)

    async def list_expenses(self) -> List[Expense]:
        """Expenses newest first."""
        expenses = await self.repos.expenses.load()
        return sorted(expenses, key=lambda e: e.created_at, reverse=True)

    async def _load_ledger(self) -> ExpenseLedger:
        return ExpenseLedger(await self.repos.expenses.load(), clock=self.repos.clock)

    async def _save_expenses(self, ledger: ExpenseLedger):
        if not await self.repos.expenses.save(ledger.expenses):
            logger.warning("Expense list was not saved")
            raise StoreWriteError(self.repos.expenses.field)

    @staticmethod
    def _draft(amount, currency, payer_id, split_with, category, date, note, added_by) -> dict:
        draft = {
            "amount": amount,
            "currency": currency,
            "category": category,
            "payerId": payer_id,
            "splitWith": list(split_with or []),
            "note": note or "",
            "addedBy": added_by,
        }
        if date is not None:
            draft["date"] = date
        return draft

    # Analytics

    async def get_category_breakdown(self, viewpoint: str = TEAM) -> List[CategoryTotal]:
        """
        Spend per category, largest first.

        Args:
            viewpoint: TEAM for expenses shared by everyone at full value,
                or a member id for that member's shares
        """
        snapshot = await self.repos.snapshot()
        if viewpoint != TEAM and viewpoint not in {m.id for m in snapshot.members}:
            raise LedgerValidationError(f"Unknown member: {viewpoint}")
        grouped = by_category(snapshot.ledger, snapshot.rates, snapshot.members, viewpoint)
        return rank_categories(grouped)

    async def get_team_total(self) -> Decimal:
        snapshot = await self.repos.snapshot()
        return team_total(snapshot.ledger, snapshot.rates, snapshot.members)
