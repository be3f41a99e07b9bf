"""FX rate store and fallback conversion rules."""

from decimal import Decimal
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from config.settings import settings
from utils.math_utils import ONE, ZERO


RateKey = Tuple[str, str, str]


class FXConverter:
    """
    Date-scoped exchange rate store.

    Rates are keyed by (from, to, day) and are append-only: historical
    rates for a fixed day never change, so the first rate recorded for
    a key is kept for the rest of the session.

    Also owns the currency normalisation and the fixed fallback table
    used while an authoritative rate is still being fetched.
    """

    def __init__(
        self,
        fallback_rates: Optional[Mapping[Tuple[str, str], Decimal]] = None,
        stablecoins: Optional[FrozenSet[str]] = None,
        base_currency: Optional[str] = None
    ):
        """
        Initialize FX converter.

        Args:
            fallback_rates: Fixed rates by (from, to) pair
            stablecoins: Symbols treated as the base currency
            base_currency: Currency stablecoins are pegged to
        """
        self.base_currency = (base_currency or settings.base_currency).upper()
        self.fallback_rates: Dict[Tuple[str, str], Decimal] = {
            (src.upper(), dst.upper()): rate
            for (src, dst), rate in (
                fallback_rates if fallback_rates is not None else settings.fallback_fx_rates
            ).items()
        }
        self.stablecoins = frozenset(
            s.upper() for s in (stablecoins if stablecoins is not None else settings.stablecoins)
        )
        self._rates: Dict[RateKey, Decimal] = {}

    def normalize(self, currency: str) -> str:
        """Upper-case a currency code and map stablecoins to the base currency."""
        code = currency.strip().upper()
        return self.base_currency if code in self.stablecoins else code

    def set_rate(
        self,
        from_currency: str,
        to_currency: str,
        day: str,
        rate: Decimal
    ) -> bool:
        """
        Record a rate for a pair and day.

        Args:
            from_currency: Source currency
            to_currency: Target currency
            day: Day key (YYYY-MM-DD or "today")
            rate: Units of target per unit of source

        Returns:
            True if stored, False if the key already had a rate or the
            rate is not a positive finite number
        """
        if not rate.is_finite() or rate <= ZERO:
            return False

        key = (self.normalize(from_currency), self.normalize(to_currency), day)
        if key in self._rates:
            return False
        self._rates[key] = rate
        return True

    def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        day: str
    ) -> Optional[Decimal]:
        """
        Get a recorded rate for a pair and day.

        Returns:
            Exchange rate or None if not recorded
        """
        src = self.normalize(from_currency)
        dst = self.normalize(to_currency)

        # Same currency = rate of 1
        if src == dst:
            return ONE

        return self._rates.get((src, dst, day))

    def has_rate(self, from_currency: str, to_currency: str, day: str) -> bool:
        return self.get_rate(from_currency, to_currency, day) is not None

    def fallback_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """
        Approximate rate used while the real one is unknown.

        A configured pair is used directly and its reverse through the
        reciprocal. Converting any other currency into one that has a
        configured base-currency rate uses that rate as a best effort.
        Everything else converts one to one.
        """
        src = self.normalize(from_currency)
        dst = self.normalize(to_currency)

        if src == dst:
            return ONE

        direct = self.fallback_rates.get((src, dst))
        if direct is not None:
            return direct

        reverse = self.fallback_rates.get((dst, src))
        if reverse is not None and reverse != ZERO:
            return ONE / reverse

        from_base = self.fallback_rates.get((self.base_currency, dst))
        if from_base is not None:
            return from_base

        return ONE

    def convert(self, amount: Decimal, rate: Decimal) -> Decimal:
        """Apply a rate to an amount."""
        return amount * rate

    def get_available_pairs(self) -> List[Tuple[str, str]]:
        """Get list of currency pairs with recorded rates."""
        return sorted({(src, dst) for src, dst, _ in self._rates})

    def clear(self) -> None:
        """Forget all recorded rates."""
        self._rates.clear()

    def __len__(self) -> int:
        return len(self._rates)
