"""Tests for input validators, message formatters, settings and middlewares."""

from decimal import Decimal

import pytest

from tripbot.config.settings import Settings
from tripbot.ledger.models import CategoryTotal, ExpenseCategory, Member, SettlementStatus, Transfer
from tripbot.ledger.rates import CurrencyRateTable
from tripbot.middlewares.trip import TripMiddleware, trip_id_for_chat
from tripbot.store.registry import StoreRegistry
from tripbot.store.repositories import TripRepositories
from tripbot.utils.formatters import (
    format_amount,
    format_balances,
    format_breakdown,
    format_expense_detail,
    format_members_list,
    format_rates,
    member_names,
    truncate_text,
)
from tripbot.utils.validators import (
    validate_amount,
    validate_currency_code,
    validate_member_name,
    validate_note,
    validate_rate,
)

from tests.conftest import FakeRateSource


class TestValidators:
    """Tests for user input validators."""

    def test_validate_amount(self):
        assert validate_amount("1 250,50") == (True, Decimal("1250.50"), None)

    @pytest.mark.parametrize("text", ["abc", "0", "-5", "Infinity", "1000000000"])
    def test_validate_amount_rejects(self, text):
        is_valid, amount, error = validate_amount(text)
        assert not is_valid
        assert amount is None
        assert error

    def test_validate_rate(self):
        assert validate_rate("35,1") == (True, Decimal("35.1"), None)
        assert validate_rate("0")[0] is False

    def test_validate_currency_code(self):
        assert validate_currency_code(" eur ") == (True, "EUR", None)
        assert validate_currency_code("EURO")[0] is False
        assert validate_currency_code("")[0] is False

    def test_validate_member_name(self):
        assert validate_member_name("Dave") == (True, None)
        assert validate_member_name("  ")[0] is False
        assert validate_member_name("x" * 51)[0] is False

    def test_validate_note(self):
        assert validate_note("")[0] is True
        assert validate_note("x" * 201)[0] is False


class TestFormatters:
    """Tests for message formatters."""

    def test_format_amount_rounds_half_up(self):
        assert format_amount(Decimal("1234.565"), "TWD") == "1,234.57 TWD"
        assert format_amount(Decimal("-0.005"), "EUR") == "-0.01 EUR"

    def test_format_members_list_escapes_names(self):
        text = format_members_list([Member(id="x", name="<b>Eve</b>", title="Driver")])
        assert "&lt;b&gt;Eve&lt;/b&gt;" in text
        assert "Driver" in text

    def test_format_members_list_empty(self):
        assert "No members" in format_members_list([])

    def test_format_balances(self):
        names = {"alice": "Alice", "bob": "Bob", "carol": "Carol"}
        balances = {"alice": Decimal(200), "bob": Decimal(-200), "carol": Decimal("0.04")}
        transfers = [Transfer(from_id="bob", to_id="alice", amount=Decimal(200))]

        text = format_balances(balances, transfers, names, "TWD")

        assert "Alice: 200.00 TWD" in text
        assert "Bob: 200.00 TWD" in text
        assert "Carol" in text.split("Square")[1]
        assert "Bob → Alice: 200.00 TWD" in text

    def test_format_balances_when_square(self):
        text = format_balances({"alice": Decimal(0)}, [], {"alice": "Alice"}, "TWD")
        assert "Nobody owes anything" in text

    def test_format_expense_detail(self, clock):
        from tripbot.ledger.expenses import ExpenseLedger

        expense = ExpenseLedger(clock=clock).add({
            "amount": "30", "currency": "EUR", "payerId": "alice",
            "splitWith": ["alice", "bob"], "note": "Museum",
        })
        rates = CurrencyRateTable("TWD", {"EUR": "35"})
        statuses = {"alice": SettlementStatus.PAYER, "bob": SettlementStatus.OUTSTANDING}

        text = format_expense_detail(expense, {"alice": "Alice", "bob": "Bob"}, rates, statuses)

        assert "30.00 EUR ≈ 1,050.00 TWD" in text
        assert "525.00 TWD each" in text
        assert "Museum" in text
        assert "Bob: ⏳ owes" in text

    def test_format_breakdown(self):
        categories = [
            CategoryTotal(category=ExpenseCategory.FOOD, total=Decimal(300), percentage=75, cumulative=0),
            CategoryTotal(category=ExpenseCategory.SHOPPING, total=Decimal(100), percentage=25, cumulative=75),
        ]
        text = format_breakdown(categories, "Team", "TWD")

        assert "Total: 400.00 TWD" in text
        assert "(75%)" in text
        assert "Nothing spent" in format_breakdown([], "Team", "TWD")

    def test_format_rates(self):
        text = format_rates(CurrencyRateTable("TWD", {"EUR": "35.10"}))
        assert "1 TWD = 1 TWD (base)" in text
        assert "1 EUR = 35.1 TWD" in text

    def test_member_names(self, members):
        assert member_names(members) == {"alice": "Alice", "bob": "Bob", "carol": "Carol"}

    def test_truncate_text(self):
        assert truncate_text("short") == "short"
        assert truncate_text("x" * 60, 10) == "xxxxxxx..."


class TestSettings:
    """Tests for Settings."""

    def test_default_rate_table(self):
        settings = Settings(DEFAULT_RATES="TWD:1, eur:35.1,broken,:3")
        assert settings.default_rate_table == {"TWD": "1", "EUR": "35.1"}

    def test_database_url(self):
        settings = Settings(DB_USER="trip", DB_PASSWORD="secret", DB_HOST="db", DB_PORT=5433, DB_NAME="wallet")
        assert settings.database_url == "postgresql+asyncpg://trip:secret@db:5433/wallet"


class TestTripMiddleware:
    """Tests for TripMiddleware."""

    def test_trip_id_for_chat(self):
        assert trip_id_for_chat(-1001) == "chat--1001"

    async def test_injects_repositories_per_chat(self):
        registry = StoreRegistry("memory")
        rate_source = FakeRateSource()
        middleware = TripMiddleware(registry, "TWD", {"TWD": 1}, rate_source)
        seen = []

        async def handler(event, data):
            seen.append(data)
            return "handled"

        assert await middleware(handler, None, {"chat_id": 5}) == "handled"
        await middleware(handler, None, {"chat_id": 5})
        await middleware(handler, None, {"chat_id": 6})

        assert all(isinstance(data["repos"], TripRepositories) for data in seen)
        assert seen[0]["repos"].store is seen[1]["repos"].store
        assert seen[0]["repos"].store is not seen[2]["repos"].store
        assert seen[0]["rate_source"] is rate_source
