"""Tests for the ledger, rate and member services."""

import asyncio
from decimal import Decimal

import pytest

from tripbot.ledger.exceptions import (
    LedgerValidationError,
    RateSourceError,
    StoreWriteError,
    UnknownExpenseError,
)
from tripbot.ledger.models import TEAM, ExpenseCategory, SettlementStatus, Transfer
from tripbot.services.ledger_service import LedgerService
from tripbot.services.member_service import MemberService
from tripbot.services.rate_service import RateService
from tripbot.store.repositories import TripRepositories
from tripbot.store.sql import SqlDocumentStore

from tests.conftest import FakeRateSource

EVERYONE = ["alice", "bob", "carol"]


@pytest.fixture
def service(repos) -> LedgerService:
    return LedgerService(repos)


class TestLedgerService:
    """Tests for LedgerService."""

    async def test_balances_and_plan(self, service):
        await service.add_expense(Decimal("300"), "TWD", "alice", EVERYONE, category="Food")

        assert await service.get_balances() == {
            "alice": Decimal(200), "bob": Decimal(-100), "carol": Decimal(-100),
        }
        assert await service.get_suggested_settlements() == [
            Transfer(from_id="bob", to_id="alice", amount=Decimal(100)),
            Transfer(from_id="carol", to_id="alice", amount=Decimal(100)),
        ]

    async def test_global_settlement_and_undo(self, service):
        await service.add_expense(Decimal("300"), "TWD", "alice", EVERYONE)

        settlement_id = await service.record_settlement("bob", "alice", Decimal(100))
        balances = await service.get_balances()
        assert balances["bob"] == 0
        assert balances["alice"] == Decimal(100)

        await service.undo_settlement(settlement_id)
        await service.undo_settlement(settlement_id)
        assert (await service.get_balances())["bob"] == Decimal(-100)
        assert await service.list_settlements() == []

    async def test_expense_scoped_settlement(self, service):
        """Settling one share removes it from balances while the expense stays."""
        expense = await service.add_expense(Decimal("90"), "EUR", "bob", EVERYONE)

        await service.record_settlement("alice", "bob", Decimal(60), expense_id=expense.id)

        assert await service.get_balances() == {
            "alice": Decimal(0), "bob": Decimal(60), "carol": Decimal(-60),
        }
        assert await service.get_expense(expense.id) == expense

    async def test_record_settlement_validation(self, service):
        expense = await service.add_expense(Decimal("90"), "TWD", "bob", EVERYONE)

        with pytest.raises(LedgerValidationError):
            await service.record_settlement("mallory", "bob", Decimal(10))
        with pytest.raises(LedgerValidationError):
            await service.record_settlement("alice", "bob", Decimal(0))
        with pytest.raises(UnknownExpenseError):
            await service.record_settlement("alice", "bob", Decimal(30), expense_id="missing")
        with pytest.raises(LedgerValidationError):
            await service.record_settlement("alice", "alice", Decimal(30), expense_id=expense.id)

        assert await service.list_settlements() == []

    async def test_toggle_member_settled(self, service):
        expense = await service.add_expense(Decimal("300"), "TWD", "alice", EVERYONE)

        settlement_id = await service.toggle_member_settled(expense.id, "bob")
        assert settlement_id is not None
        settlements = await service.list_settlements()
        assert settlements[0].amount == Decimal(100)
        assert settlements[0].expense_id == expense.id
        assert (await service.get_settlement_status(expense.id))["bob"] == SettlementStatus.SETTLED
        assert (await service.get_balances())["bob"] == 0

        assert await service.toggle_member_settled(expense.id, "bob") is None
        assert await service.list_settlements() == []
        assert (await service.get_balances())["bob"] == Decimal(-100)

    async def test_toggle_skips_payer_and_members_without_debt(self, service):
        expense = await service.add_expense(Decimal("300"), "TWD", "alice", EVERYONE)
        await service.record_settlement("carol", "alice", Decimal(100))

        assert await service.toggle_member_settled(expense.id, "alice") is None
        assert await service.toggle_member_settled(expense.id, "carol") is None
        assert len(await service.list_settlements()) == 1

    async def test_settlement_status(self, service):
        expense = await service.add_expense(Decimal("300"), "TWD", "alice", EVERYONE)
        await service.record_settlement("carol", "alice", Decimal(100))

        assert await service.get_settlement_status(expense.id) == {
            "alice": SettlementStatus.PAYER,
            "bob": SettlementStatus.OUTSTANDING,
            "carol": SettlementStatus.COVERED_BY_GLOBAL,
        }

    async def test_add_rejects_invalid_expense(self, service, store):
        with pytest.raises(LedgerValidationError):
            await service.add_expense(Decimal("-1"), "TWD", "alice", EVERYONE)
        with pytest.raises(LedgerValidationError):
            await service.add_expense(Decimal("10"), "TWD", "alice", [])
        assert store.write_count == 0

    async def test_update_and_remove_expense(self, service):
        expense = await service.add_expense(Decimal("300"), "TWD", "alice", EVERYONE, added_by="carol")

        updated = await service.update_expense(
            expense.id, Decimal("60"), "TWD", "bob", ["alice", "bob"], category="Transport"
        )
        assert updated.id == expense.id
        assert updated.added_by == "carol"
        assert updated.category == ExpenseCategory.TRANSPORT
        assert await service.get_balances() == {
            "alice": Decimal(-30), "bob": Decimal(30), "carol": Decimal(0),
        }

        assert await service.remove_expense(expense.id) is True
        assert await service.remove_expense(expense.id) is False
        assert await service.list_expenses() == []

    async def test_removed_expense_keeps_its_settlements_archived(self, service):
        """Settlements tied to a deleted expense stay archived but no longer count."""
        expense = await service.add_expense(Decimal("90"), "EUR", "bob", EVERYONE)
        await service.record_settlement("alice", "bob", Decimal(60), expense_id=expense.id)

        assert await service.remove_expense(expense.id) is True

        assert await service.get_balances() == {
            "alice": Decimal(0), "bob": Decimal(0), "carol": Decimal(0),
        }
        settlements = await service.list_settlements()
        assert len(settlements) == 1
        assert settlements[0].expense_id == expense.id

    async def test_list_expenses_newest_first(self, service):
        first = await service.add_expense(Decimal("10"), "TWD", "alice", EVERYONE)
        second = await service.add_expense(Decimal("20"), "TWD", "bob", EVERYONE)

        assert [e.id for e in await service.list_expenses()] == [second.id, first.id]

    async def test_write_failure_raises(self, service, store):
        store.fail_next_writes()

        with pytest.raises(StoreWriteError):
            await service.add_expense(Decimal("300"), "TWD", "alice", EVERYONE)
        assert await service.list_expenses() == []

    async def test_expense_from_booking(self, service, store):
        await store.update("bookings", [{
            "id": "b1",
            "type": "hotel",
            "title": "Hotel Sacher",
            "date": "2024-05-02",
            "price": "150",
            "currency": "EUR",
            "details": {"address": "Philharmoniker Str. 4"},
        }])

        expense = await service.add_expense_from_booking("b1", "alice", EVERYONE)

        assert expense.category == ExpenseCategory.ACCOMMODATION
        assert expense.note == "Hotel Sacher"
        assert (await service.get_balances())["alice"] == Decimal(200)
        with pytest.raises(LedgerValidationError):
            await service.add_expense_from_booking("missing", "alice", EVERYONE)

    async def test_category_breakdown(self, service):
        await service.add_expense(Decimal("300"), "TWD", "alice", EVERYONE, category="Food")
        await service.add_expense(Decimal("50"), "EUR", "bob", ["bob", "carol"], category="Transport")

        team = await service.get_category_breakdown(TEAM)
        assert [(c.category, c.total) for c in team] == [(ExpenseCategory.FOOD, Decimal(300))]
        assert await service.get_team_total() == Decimal(300)

        carol = await service.get_category_breakdown("carol")
        assert [(c.category, c.total) for c in carol] == [
            (ExpenseCategory.FOOD, Decimal(100)),
            (ExpenseCategory.TRANSPORT, Decimal(50)),
        ]

        with pytest.raises(LedgerValidationError):
            await service.get_category_breakdown("mallory")

    async def test_watch_balances(self, service):
        """A fresh balance map is emitted after every ledger change."""
        watcher = service.watch_balances()
        initial = await asyncio.wait_for(watcher.__anext__(), 1)
        assert all(balance == 0 for balance in initial.values())

        await service.add_expense(Decimal("300"), "TWD", "alice", EVERYONE)

        async def until_alice_is_owed():
            async for balances in watcher:
                if balances["alice"] != 0:
                    return balances

        balances = await asyncio.wait_for(until_alice_is_owed(), 1)
        assert balances["alice"] == Decimal(200)
        await watcher.aclose()

    async def test_watch_balances_closes_subscriptions_when_subscribe_fails(self, service, store, monkeypatch):
        subscribe = store.subscribe

        async def flaky_subscribe(field):
            if field == "expenses":
                raise RuntimeError("store offline")
            return await subscribe(field)

        monkeypatch.setattr(store, "subscribe", flaky_subscribe)
        watcher = service.watch_balances()

        with pytest.raises(RuntimeError):
            await watcher.__anext__()
        assert store.watched_fields == set()

    async def test_works_on_sql_store(self, sql_manager, clock, members):
        store = SqlDocumentStore(sql_manager, "chat-42")
        repos = TripRepositories(store, "TWD", {"TWD": 1, "EUR": 2}, clock=clock)
        await repos.members.save(members)

        service = LedgerService(repos)
        await service.add_expense(Decimal("90"), "EUR", "bob", EVERYONE)

        assert await service.get_balances() == {
            "alice": Decimal(-60), "bob": Decimal(120), "carol": Decimal(-60),
        }


class TestRateService:
    """Tests for RateService."""

    async def test_set_and_remove_rate(self, repos, rate_source):
        service = RateService(repos, rate_source)

        assert await service.set_rate("usd", Decimal("31")) is True
        assert (await service.get_rates()).rate("USD") == Decimal("31")
        assert await service.remove_rate("USD") is True
        assert await service.remove_rate("USD") is False

    async def test_base_rate_is_not_written(self, repos, store, rate_source):
        service = RateService(repos, rate_source)

        assert await service.set_rate("TWD", Decimal("3")) is False
        assert store.write_count == 0

    async def test_rate_change_moves_balances(self, repos, rate_source):
        ledger_service = LedgerService(repos)
        await ledger_service.add_expense(Decimal("90"), "EUR", "bob", EVERYONE)

        await RateService(repos, rate_source).set_rate("EUR", Decimal("4"))

        assert (await ledger_service.get_balances())["bob"] == Decimal(240)

    async def test_refresh_rates(self, repos, rate_source):
        service = RateService(repos, rate_source)

        assert await service.refresh_rates() == ["EUR"]

        rates = await service.get_rates()
        assert rates.rate("EUR") == Decimal("34.5")
        assert "USD" not in rates
        assert rate_source.calls == ["TWD"]

    async def test_refresh_failure_leaves_rates_untouched(self, repos, store):
        service = RateService(repos, FakeRateSource(fail=True))
        before = await service.get_rates()

        with pytest.raises(RateSourceError):
            await service.refresh_rates()

        assert await service.get_rates() == before
        assert store.write_count == 0

    async def test_convert(self, repos, rate_source):
        service = RateService(repos, rate_source)
        assert await service.convert(Decimal("10"), "EUR", "TWD") == Decimal("20")


class TestMemberService:
    """Tests for MemberService."""

    async def test_add_member_generates_id(self, repos):
        service = MemberService(repos)
        member = await service.add_member("  Dave ")

        assert member.name == "Dave"
        assert member.id
        assert (await service.list_members())[-1] == member

    async def test_add_member_with_known_id_is_idempotent(self, repos, store):
        service = MemberService(repos)
        member = await service.add_member("Someone Else", member_id="alice")

        assert member.name == "Alice"
        assert store.write_count == 0

    async def test_add_member_rejects_empty_name(self, repos):
        with pytest.raises(LedgerValidationError):
            await MemberService(repos).add_member("   ")

    async def test_find_and_remove_member(self, repos):
        service = MemberService(repos)

        assert (await service.find_member("CAROL")).id == "carol"
        assert (await service.find_member("bob")).id == "bob"
        assert await service.find_member("mallory") is None

        assert await service.remove_member("carol") is True
        assert await service.remove_member("carol") is False
        assert [m.id for m in await service.list_members()] == ["alice", "bob"]

    async def test_removed_member_leaves_balances(self, repos):
        ledger_service = LedgerService(repos)
        await ledger_service.add_expense(Decimal("300"), "TWD", "alice", EVERYONE)

        await MemberService(repos).remove_member("carol")

        assert await ledger_service.get_balances() == {"alice": Decimal(100), "bob": Decimal(-100)}
