"""Tests for expense models and the expense ledger."""

import datetime as dt
from decimal import Decimal

import pytest
from pydantic import ValidationError

from tripbot.ledger.exceptions import LedgerValidationError, UnknownExpenseError
from tripbot.ledger.expenses import ExpenseLedger, next_id
from tripbot.ledger.models import ArchivedSettlement, Expense, ExpenseCategory

from tests.conftest import START


def draft(**overrides):
    fields = {
        "amount": "300",
        "currency": "TWD",
        "category": "Food",
        "payerId": "alice",
        "splitWith": ["alice", "bob", "carol"],
        "note": "Dinner",
    }
    fields.update(overrides)
    return fields


class TestExpenseModels:
    """Tests for the stored record shapes."""

    def test_draft_normalizes_input(self):
        expense = ExpenseLedger().validate(draft(currency=" eur ", splitWith=["bob", " bob", "alice"]))
        assert expense.currency == "EUR"
        assert expense.split_with == ["bob", "alice"]

    def test_unknown_category_folds_to_others(self):
        expense = ExpenseLedger().validate(draft(category="Souvenirs"))
        assert expense.category == ExpenseCategory.OTHERS

    def test_legacy_expense_takes_created_at_from_id(self):
        """Records without createdAt carry their creation time in the id."""
        expense = Expense.model_validate({**draft(), "id": "1714521600000", "date": "2024-05-01"})
        assert expense.created_at == dt.datetime(2024, 5, 1, tzinfo=dt.timezone.utc)

    def test_expense_document_uses_camel_case(self):
        expense = Expense.model_validate({**draft(), "id": "e1", "createdAt": START.isoformat()})
        document = expense.to_document()
        assert document["payerId"] == "alice"
        assert document["splitWith"] == ["alice", "bob", "carol"]
        assert document["amount"] == "300"
        assert Expense.model_validate(document) == expense

    def test_legacy_settlement_splits_iso_date(self):
        settlement = ArchivedSettlement.model_validate({
            "id": "s1",
            "fromId": "bob",
            "toId": "alice",
            "amount": 100,
            "date": "2024-05-01T10:00:00.000Z",
        })
        assert settlement.date == dt.date(2024, 5, 1)
        assert settlement.created_at == dt.datetime(2024, 5, 1, 10, tzinfo=dt.timezone.utc)
        assert settlement.is_global

    def test_settlement_needs_two_members(self):
        with pytest.raises(ValidationError):
            ArchivedSettlement(
                id="s1", from_id="bob", to_id="bob", amount=Decimal("5"),
                date=START.date(), created_at=START,
            )


class TestExpenseLedger:
    """Tests for ExpenseLedger."""

    def test_add_assigns_id_and_created_at(self, clock):
        ledger = ExpenseLedger(clock=clock)
        expense = ledger.add(draft())

        assert expense.id == str(int(START.timestamp() * 1000))
        assert expense.created_at == START
        assert expense.added_by == "alice"
        assert ledger.expenses == [expense]

    def test_add_keeps_newest_first(self, clock):
        ledger = ExpenseLedger(clock=clock)
        first = ledger.add(draft())
        second = ledger.add(draft(note="Taxi"))
        assert [e.id for e in ledger] == [second.id, first.id]

    def test_ids_strictly_increase_with_a_frozen_clock(self):
        ledger = ExpenseLedger(clock=lambda: START)
        ids = [int(ledger.add(draft()).id) for _ in range(3)]
        assert ids == sorted(set(ids))

    def test_next_id_ignores_non_numeric_ids(self):
        assert next_id(["legacy-uuid", "5"], dt.datetime.fromtimestamp(0.001, tz=dt.timezone.utc)) == "6"

    @pytest.mark.parametrize("overrides", [
        {"amount": "0"},
        {"amount": "-5"},
        {"amount": "abc"},
        {"splitWith": []},
        {"payerId": "  "},
        {"currency": ""},
    ])
    def test_add_rejects_invalid_input(self, clock, overrides):
        """Rejected input leaves the ledger untouched."""
        ledger = ExpenseLedger(clock=clock)
        with pytest.raises(LedgerValidationError) as excinfo:
            ledger.add(draft(**overrides))
        assert excinfo.value.messages
        assert len(ledger) == 0

    def test_update_is_full_replacement(self, clock):
        """Editable fields are replaced, identity and authorship are kept."""
        ledger = ExpenseLedger(clock=clock)
        original = ledger.add(draft(addedBy="carol"))

        updated = ledger.update(original.id, draft(amount="120", payerId="bob", splitWith=["bob", "carol"], note=""))

        assert updated.id == original.id
        assert updated.created_at == original.created_at
        assert updated.added_by == "carol"
        assert updated.amount == Decimal("120")
        assert updated.split_with == ["bob", "carol"]
        assert updated.note == ""
        assert ledger.get(original.id) == updated

    def test_update_unknown_expense(self, clock):
        ledger = ExpenseLedger(clock=clock)
        with pytest.raises(UnknownExpenseError):
            ledger.update("missing", draft())

    def test_remove(self, clock):
        ledger = ExpenseLedger(clock=clock)
        expense = ledger.add(draft())
        assert ledger.remove("missing") is False
        assert ledger.remove(expense.id) is True
        assert ledger.get(expense.id) is None
