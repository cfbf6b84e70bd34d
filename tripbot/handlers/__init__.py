"""Handlers package."""

from tripbot.handlers import (
    start,
    member,
    expense,
    settlement,
    rates,
    analytics
)

__all__ = [
    "start",
    "member",
    "expense",
    "settlement",
    "rates",
    "analytics"
]
