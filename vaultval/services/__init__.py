"""Services for the valuation engine."""

from .rate_providers import RateProvider, StaticRateProvider, LedgerAPIRateProvider, ECBRateProvider
from .conversion_cache import CurrencyConversionCache
from .valuation_service import ValuationService, LedgerProvider

__all__ = [
    "RateProvider",
    "StaticRateProvider",
    "LedgerAPIRateProvider",
    "ECBRateProvider",
    "CurrencyConversionCache",
    "ValuationService",
    "LedgerProvider",
]
