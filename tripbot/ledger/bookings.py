"""Booking cards, one closed detail shape per booking kind."""

import datetime as dt
from decimal import Decimal
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import Field, model_validator

from tripbot.ledger.models import ExpenseCategory, ExpenseDraft, LedgerModel


class FlightDetails(LedgerModel):
    kind: Literal["flight"] = "flight"
    origin: Optional[str] = Field(default=None, alias="from")
    destination: Optional[str] = Field(default=None, alias="to")
    dep_time: Optional[str] = Field(default=None, alias="depTime")
    arr_time: Optional[str] = Field(default=None, alias="arrTime")
    flight_no: Optional[str] = Field(default=None, alias="flightNo")
    terminal: Optional[str] = None
    cabin_class: Optional[str] = Field(default=None, alias="cabinClass")
    seat: Optional[str] = None


class HotelDetails(LedgerModel):
    kind: Literal["hotel"] = "hotel"
    address: Optional[str] = None
    check_in: Optional[str] = Field(default=None, alias="checkIn")
    check_out: Optional[str] = Field(default=None, alias="checkOut")
    voucher_url: Optional[str] = Field(default=None, alias="voucherUrl")
    info: Optional[str] = None


class ActivityDetails(LedgerModel):
    kind: Literal["activity"] = "activity"
    address: Optional[str] = None
    time: Optional[str] = None
    voucher_url: Optional[str] = Field(default=None, alias="voucherUrl")
    info: Optional[str] = None


class TicketDetails(LedgerModel):
    kind: Literal["ticket"] = "ticket"
    time: Optional[str] = None
    seat: Optional[str] = None
    voucher_url: Optional[str] = Field(default=None, alias="voucherUrl")
    info: Optional[str] = None


BookingDetails = Annotated[
    Union[FlightDetails, HotelDetails, ActivityDetails, TicketDetails],
    Field(discriminator="kind"),
]

BOOKING_CATEGORIES = {
    "flight": ExpenseCategory.TRANSPORT,
    "hotel": ExpenseCategory.ACCOMMODATION,
    "activity": ExpenseCategory.ACTIVITY,
    "ticket": ExpenseCategory.TICKET,
}


class Booking(LedgerModel):
    id: str = Field(min_length=1)
    title: str
    date: dt.date
    price: Decimal = Field(default=Decimal(0), ge=0)
    currency: str
    details: BookingDetails

    @model_validator(mode="before")
    @classmethod
    def tag_details(cls, data: Any) -> Any:
        # Stored cards keep the kind on the booking itself as "type".
        if isinstance(data, dict) and "type" in data:
            data = dict(data)
            details = dict(data.get("details") or {})
            details.setdefault("kind", data.pop("type"))
            data["details"] = details
        return data

    @property
    def kind(self) -> str:
        return self.details.kind

    def to_document(self) -> dict:
        document = super().to_document()
        document["type"] = document["details"].pop("kind")
        return document

    def to_expense_draft(self, payer_id: str, split_with: List[str]) -> ExpenseDraft:
        """Expense fields for paying this booking on behalf of ``split_with``."""
        return ExpenseDraft(
            amount=self.price,
            currency=self.currency,
            category=BOOKING_CATEGORIES[self.kind],
            payer_id=payer_id,
            split_with=split_with,
            added_by=payer_id,
            date=self.date,
            note=self.title,
        )
