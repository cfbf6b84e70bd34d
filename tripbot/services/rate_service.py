"""Service for managing currency rates."""

import logging
from decimal import Decimal
from typing import List

from tripbot.ledger.exceptions import StoreWriteError
from tripbot.ledger.rates import CurrencyRateTable
from tripbot.services.rate_source import RateSource
from tripbot.store.repositories import TripRepositories

logger = logging.getLogger(__name__)


class RateService:
    """Service for rate table operations."""

    def __init__(self, repos: TripRepositories, source: RateSource):
        self.repos = repos
        self.source = source

    async def get_rates(self) -> CurrencyRateTable:
        return await self.repos.rates.load()

    async def set_rate(self, code: str, multiplier: Decimal) -> bool:
        """
        Insert or overwrite one rate.

        Returns:
            False when the change was rejected (base currency) and nothing
            was written
        """
        table = await self.repos.rates.load()
        if code.strip().upper() == table.base_code:
            return table.set(code, multiplier)
        table.set(code, multiplier)
        await self._save(table)
        logger.info(f"Rate {code.upper()} set to {multiplier}")
        return True

    async def remove_rate(self, code: str) -> bool:
        table = await self.repos.rates.load()
        if not table.remove(code):
            return False
        await self._save(table)
        logger.info(f"Rate {code.upper()} removed")
        return True

    async def refresh_rates(self) -> List[str]:
        """
        Pull fresh multipliers for every tracked code.

        A failing source raises RateSourceError before the table is touched.

        Returns:
            Codes whose rate changed
        """
        table = await self.repos.rates.load()
        quotes = await self.source.fetch(table.base_code)

        changed = table.refresh(quotes)
        await self._save(table)
        logger.info(f"Rates refreshed, changed: {', '.join(changed) or 'none'}")
        return changed

    async def convert(self, amount: Decimal, from_code: str, to_code: str) -> Decimal:
        table = await self.repos.rates.load()
        return table.convert(amount, from_code, to_code)

    async def _save(self, table: CurrencyRateTable):
        if not await self.repos.rates.save(table):
            logger.warning("Rate table was not saved")
            raise StoreWriteError(self.repos.rates.field)
