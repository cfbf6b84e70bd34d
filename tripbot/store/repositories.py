"""Typed repositories, one per collection of the trip document."""

import asyncio
import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Generic, List, Mapping, Optional, Type, TypeVar

from pydantic import ValidationError

from tripbot.ledger.bookings import Booking
from tripbot.ledger.expenses import ExpenseLedger
from tripbot.ledger.models import ArchivedSettlement, Expense, LedgerModel, Member, utc_now
from tripbot.ledger.rates import CurrencyRateTable
from tripbot.ledger.settlements import SettlementArchive
from tripbot.store.interface import DocumentStore

logger = logging.getLogger(__name__)

MEMBERS_FIELD = "members"
EXPENSES_FIELD = "expenses"
RATES_FIELD = "currencyRates"
SETTLEMENTS_FIELD = "archivedSettlements"
BOOKINGS_FIELD = "bookings"

# Fields whose changes invalidate balances and settlement plans.
LEDGER_FIELDS = (MEMBERS_FIELD, EXPENSES_FIELD, RATES_FIELD, SETTLEMENTS_FIELD)

T = TypeVar("T", bound=LedgerModel)


class ListRepository(Generic[T]):
    """A list-valued field holding one model per item."""

    field: str
    model: Type[T]

    def __init__(self, store: DocumentStore):
        self.store = store

    def decode(self, raw: Any) -> List[T]:
        """Parse stored items, skipping any that no longer validate."""
        if not isinstance(raw, list):
            return []

        items = []
        for entry in raw:
            try:
                items.append(self.model.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {self.field} entry: {e.error_count()} error(s)")
        return items

    def encode(self, items: List[T]) -> list:
        return [item.to_document() for item in items]

    async def load(self) -> List[T]:
        return self.decode(await self.store.get(self.field))

    async def save(self, items: List[T]) -> bool:
        return await self.store.update(self.field, self.encode(items))

    async def watch(self) -> AsyncIterator[List[T]]:
        async with await self.store.subscribe(self.field) as subscription:
            async for raw in subscription:
                yield self.decode(raw)


class MemberRepository(ListRepository[Member]):
    field = MEMBERS_FIELD
    model = Member


class ExpenseRepository(ListRepository[Expense]):
    field = EXPENSES_FIELD
    model = Expense


class SettlementRepository(ListRepository[ArchivedSettlement]):
    field = SETTLEMENTS_FIELD
    model = ArchivedSettlement


class BookingRepository(ListRepository[Booking]):
    field = BOOKINGS_FIELD
    model = Booking


class RateRepository:
    """The currencyRates field, a mapping of code to multiplier."""

    field = RATES_FIELD

    def __init__(self, store: DocumentStore, base_currency: str, default_rates: Mapping[str, Any]):
        self.store = store
        self.base_currency = base_currency
        self.default_rates = dict(default_rates)

    def decode(self, raw: Any) -> CurrencyRateTable:
        if not isinstance(raw, dict) or not raw:
            return CurrencyRateTable(self.base_currency, self.default_rates)
        return CurrencyRateTable(self.base_currency, raw)

    async def load(self) -> CurrencyRateTable:
        return self.decode(await self.store.get(self.field))

    async def save(self, table: CurrencyRateTable) -> bool:
        return await self.store.update(self.field, table.to_dict())

    async def watch(self) -> AsyncIterator[CurrencyRateTable]:
        async with await self.store.subscribe(self.field) as subscription:
            async for raw in subscription:
                yield self.decode(raw)


@dataclass
class TripSnapshot:
    """Latest inputs of every derived ledger value."""
    members: List[Member]
    ledger: ExpenseLedger
    rates: CurrencyRateTable
    archive: SettlementArchive


class TripRepositories:
    """All collections of one trip document."""

    def __init__(
            self,
            store: DocumentStore,
            base_currency: str = "TWD",
            default_rates: Optional[Mapping[str, Any]] = None,
            clock: Callable[[], dt.datetime] = utc_now
    ):
        self.store = store
        self.clock = clock
        self.members = MemberRepository(store)
        self.expenses = ExpenseRepository(store)
        self.settlements = SettlementRepository(store)
        self.bookings = BookingRepository(store)
        self.rates = RateRepository(store, base_currency, default_rates or {base_currency: 1})

    async def snapshot(self) -> TripSnapshot:
        members, expenses, rates, settlements = await asyncio.gather(
            self.members.load(),
            self.expenses.load(),
            self.rates.load(),
            self.settlements.load(),
        )
        return TripSnapshot(
            members=members,
            ledger=ExpenseLedger(expenses, clock=self.clock),
            rates=rates,
            archive=SettlementArchive(settlements, clock=self.clock),
        )
