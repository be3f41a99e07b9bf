"""Exceptions raised by the valuation engine.

Data-quality problems are never raised: they surface as absent results,
stale conversions or zeros. These exceptions cover contract violations
by callers and failures of rate providers.
"""


class ValuationError(Exception):
    """Base exception for the valuation engine."""


class MalformedRequestError(ValuationError, ValueError):
    """A conversion request or ledger record violates its contract."""


class RateUnavailableError(ValuationError):
    """A rate provider could not produce a rate for the requested pair and date."""

    def __init__(self, from_currency: str, to_currency: str, as_of: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.as_of = as_of
        super().__init__(f"No rate available for {from_currency}-{to_currency} on {as_of}")
