"""Ledger data models.

Field aliases follow the camelCase shape of the shared trip document,
so ``model_dump(mode="json", by_alias=True)`` is what gets stored and
``model_validate`` accepts both the stored shape and snake_case names.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Balances within this distance of zero count as settled.
SETTLEMENT_EPSILON = Decimal("0.1")

# Analytics viewpoint covering the whole roster.
TEAM = "TEAM"


class ExpenseCategory(str, Enum):
    """Expense categories shown in the breakdown chart."""
    FOOD = "Food"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    ACCOMMODATION = "Accommodation"
    TICKET = "Ticket"
    ACTIVITY = "Activity"
    OTHERS = "Others"


class SettlementStatus(str, Enum):
    """Where one split member stands on one expense."""
    PAYER = "payer"
    SETTLED = "settled"                      # expense-scoped record exists
    COVERED_BY_GLOBAL = "covered_by_global"  # older than member's last lump-sum repayment
    ZERO_DEBT = "zero_debt"                  # member no longer owes anything overall
    OUTSTANDING = "outstanding"


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _epoch_ms_to_datetime(value: Any) -> Optional[dt.datetime]:
    """Interpret a legacy creation-ordered id (epoch milliseconds)."""
    if isinstance(value, str) and value.isdigit():
        return dt.datetime.fromtimestamp(int(value) / 1000, tz=dt.timezone.utc)
    return None


def _assume_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


class LedgerModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    def to_document(self) -> dict:
        """Shape written to the shared store."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Member(LedgerModel):
    """Trip participant. Owned by the roster, referenced by the ledger."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    avatar: str = ""
    title: Optional[str] = None


class ExpenseDraft(LedgerModel):
    """User-entered expense fields, validated before the ledger assigns an id."""

    amount: Decimal = Field(gt=0)
    currency: str = Field(min_length=1)
    category: ExpenseCategory = ExpenseCategory.OTHERS
    payer_id: str = Field(alias="payerId", min_length=1)
    split_with: List[str] = Field(alias="splitWith", min_length=1)
    added_by: Optional[str] = Field(default=None, alias="addedBy")
    date: dt.date = Field(default_factory=dt.date.today)
    note: str = ""

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("payer_id", mode="before")
    @classmethod
    def strip_payer(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("category", mode="before")
    @classmethod
    def fold_unknown_category(cls, value: Any) -> Any:
        if isinstance(value, ExpenseCategory):
            return value
        try:
            return ExpenseCategory(value)
        except ValueError:
            return ExpenseCategory.OTHERS

    @field_validator("split_with", mode="before")
    @classmethod
    def dedupe_split(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple, set)):
            return value
        seen = []
        for member_id in value:
            member_id = str(member_id).strip()
            if member_id and member_id not in seen:
                seen.append(member_id)
        return seen


class Expense(ExpenseDraft):
    """Stored expense record."""

    id: str = Field(min_length=1)
    created_at: dt.datetime = Field(alias="createdAt")

    @model_validator(mode="before")
    @classmethod
    def fill_created_at(cls, data: Any) -> Any:
        # Records written before createdAt existed carry their creation time in the id.
        if isinstance(data, dict) and not (data.get("createdAt") or data.get("created_at")):
            created = _epoch_ms_to_datetime(str(data.get("id", "")))
            data = {**data, "createdAt": created or dt.datetime.fromtimestamp(0, tz=dt.timezone.utc)}
        return data

    @field_validator("created_at")
    @classmethod
    def aware_created_at(cls, value: dt.datetime) -> dt.datetime:
        return _assume_utc(value)

    @property
    def share_count(self) -> int:
        return len(self.split_with)

    def involves(self, member_id: str) -> bool:
        return member_id in self.split_with


class ArchivedSettlement(LedgerModel):
    """A completed repayment. Global when ``expense_id`` is absent."""

    id: str = Field(min_length=1)
    from_id: str = Field(alias="fromId", min_length=1)
    to_id: str = Field(alias="toId", min_length=1)
    amount: Decimal = Field(gt=0)
    date: dt.date
    created_at: dt.datetime = Field(alias="createdAt")
    expense_id: Optional[str] = Field(default=None, alias="expenseId")

    @model_validator(mode="before")
    @classmethod
    def split_legacy_date(cls, data: Any) -> Any:
        # Older records stored a single ISO timestamp under "date".
        if not isinstance(data, dict):
            return data
        data = dict(data)
        raw_date = data.get("date")
        if not (data.get("createdAt") or data.get("created_at")):
            if isinstance(raw_date, str) and "T" in raw_date:
                data["createdAt"] = raw_date.replace("Z", "+00:00")
            else:
                data["createdAt"] = _epoch_ms_to_datetime(str(data.get("id", ""))) or utc_now()
        if isinstance(raw_date, str) and "T" in raw_date:
            data["date"] = raw_date[:10]
        elif raw_date is None:
            created = data["createdAt"]
            data["date"] = created.date() if isinstance(created, dt.datetime) else str(created)[:10]
        return data

    @field_validator("created_at")
    @classmethod
    def aware_created_at(cls, value: dt.datetime) -> dt.datetime:
        return _assume_utc(value)

    @model_validator(mode="after")
    def distinct_parties(self) -> "ArchivedSettlement":
        if self.from_id == self.to_id:
            raise ValueError("a settlement needs two different members")
        return self

    @property
    def is_global(self) -> bool:
        return self.expense_id is None


class Transfer(BaseModel):
    """Suggested repayment from a debtor to a creditor."""
    model_config = ConfigDict(frozen=True)

    from_id: str
    to_id: str
    amount: Decimal


class CategoryItem(BaseModel):
    """One expense inside a category, valued from the chosen viewpoint."""

    expense: Expense
    value: Decimal


class CategoryTotal(BaseModel):
    category: ExpenseCategory
    total: Decimal
    percentage: int
    cumulative: int  # percentage of all categories ranked before this one
    items: List[CategoryItem] = Field(default_factory=list)
