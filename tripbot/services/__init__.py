"""Services package."""

from tripbot.services.ledger_service import LedgerService
from tripbot.services.member_service import MemberService
from tripbot.services.rate_service import RateService
from tripbot.services.rate_source import OpenExchangeRateSource, RateSource

__all__ = [
    "LedgerService",
    "MemberService",
    "RateService",
    "RateSource",
    "OpenExchangeRateSource",
]
