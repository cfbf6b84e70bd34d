"""Validators for user input."""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple


def validate_amount(text: str) -> Tuple[bool, Optional[Decimal], Optional[str]]:
    """
    Validate and parse amount from text.

    Args:
        text: User input text

    Returns:
        Tuple of (is_valid, amount, error_message)
    """
    # Remove spaces and replace comma with dot
    text = text.strip().replace(" ", "").replace(",", ".")

    try:
        amount = Decimal(text)
    except (InvalidOperation, ValueError):
        return False, None, "❌ Not a valid amount. Use numbers, e.g. 100 or 150.50"

    if not amount.is_finite() or amount <= 0:
        return False, None, "❌ Amount must be greater than zero"

    if amount > Decimal("100000000"):
        return False, None, "❌ Amount is too large"

    return True, amount, None


def validate_rate(text: str) -> Tuple[bool, Optional[Decimal], Optional[str]]:
    """
    Validate a conversion multiplier into the base currency.

    Returns:
        Tuple of (is_valid, rate, error_message)
    """
    text = text.strip().replace(",", ".")

    try:
        rate = Decimal(text)
    except (InvalidOperation, ValueError):
        return False, None, "❌ Not a valid rate"

    if not rate.is_finite() or rate <= 0:
        return False, None, "❌ Rate must be greater than zero"

    return True, rate, None


def validate_currency_code(text: str) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate a currency code (three letters).

    Returns:
        Tuple of (is_valid, code, error_message)
    """
    code = text.strip().upper()

    if not re.match(r"^[A-Z]{3}$", code):
        return False, None, "❌ Currency code must be three letters, e.g. EUR"

    return True, code, None


def validate_member_name(name: str) -> Tuple[bool, Optional[str]]:
    """
    Validate member name.

    Returns:
        Tuple of (is_valid, error_message)
    """
    name = name.strip()

    if not name:
        return False, "❌ Name cannot be empty"

    if len(name) > 50:
        return False, "❌ Name is too long (50 characters max)"

    return True, None


def validate_note(note: str) -> Tuple[bool, Optional[str]]:
    """
    Validate expense note.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if len(note.strip()) > 200:
        return False, "❌ Note is too long (200 characters max)"

    return True, None
