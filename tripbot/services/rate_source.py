"""External currency quotes."""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Dict

import aiohttp

from tripbot.ledger.exceptions import RateSourceError

logger = logging.getLogger(__name__)


class RateSource(ABC):
    """Best-effort, read-only source of base-currency multipliers."""

    @abstractmethod
    async def fetch(self, base_code: str) -> Dict[str, Decimal]:
        """
        Fetch multipliers into ``base_code``.

        Returns:
            {code: base units per one unit of code}; codes the source does
            not know are simply absent

        Raises:
            RateSourceError: the source could not be read at all
        """


class OpenExchangeRateSource(RateSource):
    """
    Quotes from an open.er-api.com style endpoint.

    The endpoint answers ``{"result": "success", "rates": {code: units per base}}``,
    so each quote is inverted into a multiplier.
    """

    def __init__(self, url_template: str, precision: int = 4):
        self.url_template = url_template
        self.precision = precision

    async def fetch(self, base_code: str) -> Dict[str, Decimal]:
        url = self.url_template.format(base=base_code.upper())
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(url) as response:
                    response.raise_for_status()
                    payload = await response.json(content_type=None)
        except (aiohttp.ClientError, ValueError) as e:
            logger.warning(f"Rate fetch from {url} failed: {e}")
            raise RateSourceError(f"Could not fetch rates: {e}") from e

        return self.parse(payload, self.precision)

    @staticmethod
    def parse(payload: Any, precision: int = 4) -> Dict[str, Decimal]:
        """Turn a quotes payload into rounded multipliers, dropping unusable quotes."""
        if not isinstance(payload, dict) or not isinstance(payload.get("rates"), dict):
            raise RateSourceError("Rate payload has no 'rates' mapping")
        if payload.get("result", "success") != "success":
            raise RateSourceError(f"Rate source answered {payload.get('result')!r}")

        exponent = Decimal(1).scaleb(-precision)
        multipliers = {}
        for code, quote in payload["rates"].items():
            try:
                quote = Decimal(str(quote))
            except (InvalidOperation, ValueError):
                continue
            if not quote.is_finite() or quote <= 0:
                continue
            multipliers[code.upper()] = (1 / quote).quantize(exponent)
        return multipliers
