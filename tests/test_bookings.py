"""Tests for booking cards."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from tripbot.ledger.bookings import Booking, FlightDetails, HotelDetails
from tripbot.ledger.models import ExpenseCategory

FLIGHT = {
    "id": "b1",
    "type": "flight",
    "title": "TPE to VIE",
    "date": "2024-05-01",
    "price": "24000",
    "currency": "twd",
    "details": {"from": "TPE", "to": "VIE", "flightNo": "BR65", "seat": "32A"},
}


class TestBooking:
    """Tests for the tagged booking variants."""

    def test_stored_type_selects_details_shape(self):
        booking = Booking.model_validate(FLIGHT)

        assert booking.kind == "flight"
        assert isinstance(booking.details, FlightDetails)
        assert booking.details.origin == "TPE"
        assert booking.details.flight_no == "BR65"

    def test_to_document_restores_stored_shape(self):
        document = Booking.model_validate(FLIGHT).to_document()

        assert document["type"] == "flight"
        assert "kind" not in document["details"]
        assert document["details"]["from"] == "TPE"
        assert Booking.model_validate(document) == Booking.model_validate(FLIGHT)

    def test_hotel_fields(self):
        booking = Booking.model_validate({
            "id": "b2",
            "type": "hotel",
            "title": "Hotel Sacher",
            "date": "2024-05-02",
            "price": 0,
            "currency": "EUR",
            "details": {"address": "Philharmoniker Str. 4", "checkIn": "15:00"},
        })
        assert isinstance(booking.details, HotelDetails)
        assert booking.details.check_in == "15:00"

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError):
            Booking.model_validate({**FLIGHT, "type": "cruise"})

    def test_negative_price_is_rejected(self):
        with pytest.raises(ValidationError):
            Booking.model_validate({**FLIGHT, "price": "-1"})

    def test_to_expense_draft(self):
        draft = Booking.model_validate(FLIGHT).to_expense_draft("alice", ["alice", "bob"])

        assert draft.amount == Decimal("24000")
        assert draft.currency == "TWD"
        assert draft.category == ExpenseCategory.TRANSPORT
        assert draft.note == "TPE to VIE"
        assert draft.split_with == ["alice", "bob"]
