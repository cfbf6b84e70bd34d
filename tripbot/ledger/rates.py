"""Currency rate table: multipliers from each tracked code into the base currency."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterator, List, Mapping, Tuple

from tripbot.ledger.exceptions import LedgerValidationError

logger = logging.getLogger(__name__)

ONE = Decimal(1)


def _to_decimal(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if not value.is_finite():
        raise ValueError(f"{value} is not a finite number")
    return value


class CurrencyRateTable:
    """
    Active currencies and their conversion multiplier into ``base_code``.

    The base code is always present with multiplier 1. Codes the table
    does not know convert at 1 so that old expenses never block a
    balance computation.
    """

    def __init__(self, base_code: str, rates: Mapping[str, object] | None = None):
        self.base_code = base_code.strip().upper()
        self._rates: Dict[str, Decimal] = {self.base_code: ONE}

        for code, multiplier in (rates or {}).items():
            code = code.strip().upper()
            if code == self.base_code:
                continue
            try:
                multiplier = _to_decimal(multiplier)
            except (InvalidOperation, ValueError):
                logger.warning(f"Ignoring malformed rate for {code}: {multiplier!r}")
                continue
            if multiplier > 0:
                self._rates[code] = multiplier

    def set(self, code: str, multiplier) -> bool:
        """Insert or overwrite a rate. Returns False when the base rate would change."""
        code = code.strip().upper()
        if not code:
            raise LedgerValidationError("Currency code is required")

        try:
            multiplier = _to_decimal(multiplier)
        except (InvalidOperation, ValueError):
            raise LedgerValidationError(f"Rate for {code} is not a number")

        if code == self.base_code:
            return multiplier == ONE

        if multiplier <= 0:
            raise LedgerValidationError(f"Rate for {code} must be positive")

        self._rates[code] = multiplier
        return True

    def remove(self, code: str) -> bool:
        code = code.strip().upper()
        if code == self.base_code or code not in self._rates:
            return False
        del self._rates[code]
        return True

    def refresh(self, external_rates: Mapping[str, object]) -> List[str]:
        """
        Replace tracked non-base multipliers with externally supplied ones.

        Codes missing from ``external_rates`` keep their value and no code is
        added or removed. The new mapping is built in full before it replaces
        the current one.

        Returns:
            Codes whose multiplier changed
        """
        quotes = {code.upper(): value for code, value in external_rates.items()}
        updated = dict(self._rates)
        changed = []

        for code, current in self._rates.items():
            if code == self.base_code or code not in quotes:
                continue
            try:
                multiplier = _to_decimal(quotes[code])
            except (InvalidOperation, ValueError):
                continue
            if multiplier <= 0:
                continue
            if multiplier != current:
                changed.append(code)
            updated[code] = multiplier

        self._rates = updated
        return changed

    def rate(self, code: str) -> Decimal:
        return self._rates.get(code.strip().upper(), ONE)

    def convert_to_base(self, amount, code: str) -> Decimal:
        return _to_decimal(amount) * self.rate(code)

    def convert(self, amount, from_code: str, to_code: str) -> Decimal:
        """Convert between two tracked currencies through the base currency."""
        return self.convert_to_base(amount, from_code) / self.rate(to_code)

    @property
    def codes(self) -> List[str]:
        return list(self._rates)

    def items(self) -> Iterator[Tuple[str, Decimal]]:
        return iter(self._rates.items())

    def to_dict(self) -> Dict[str, str]:
        return {code: str(multiplier) for code, multiplier in self._rates.items()}

    def copy(self) -> "CurrencyRateTable":
        return CurrencyRateTable(self.base_code, self._rates)

    def __contains__(self, code: str) -> bool:
        return code.strip().upper() in self._rates

    def __len__(self) -> int:
        return len(self._rates)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CurrencyRateTable):
            return NotImplemented
        return self.base_code == other.base_code and self._rates == other._rates

    def __repr__(self) -> str:
        return f"<CurrencyRateTable(base='{self.base_code}', codes={self.codes})>"
