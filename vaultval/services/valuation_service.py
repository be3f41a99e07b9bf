"""Session-scoped entry point for conversion, valuation and performance."""

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from calculators.fx_converter import FXConverter
from calculators.performance_calculator import PerformanceCalculator
from calculators.valuation_reconstructor import ValuationReconstructor
from models.conversion import ConversionRequest, ConversionResult
from models.ledger import LedgerEntry, ShareState
from models.performance import (
    PerformanceResult,
    SeriesPoint,
    ValuationResult,
    VaultMetrics,
)
from utils.math_utils import safe_divide, to_decimal

from .conversion_cache import CurrencyConversionCache
from .rate_providers import RateProvider

logger = logging.getLogger(__name__)


class LedgerProvider(ABC):
    """
    Source of vault ledgers (the external transaction/ledger service).

    Methods may be plain or async. Entries may be ``LedgerEntry`` objects
    or raw records accepted by ``LedgerEntry.from_dict``.
    """

    @abstractmethod
    def get_entries(self, vault_id: str) -> Iterable[Any]:
        """Return the vault's ledger entries or raw records."""
        pass

    @abstractmethod
    def get_share_state(self, vault_id: str) -> Any:
        """Return the vault's share totals."""
        pass


class ValuationService:
    """
    One instance per user session.

    Owns the conversion caches so that every view converts through the
    same memoized state, and exposes the pure valuation and performance
    calculations next to it. ``reset`` drops all session state (logout).
    """

    def __init__(
        self,
        rate_provider: RateProvider,
        fx_converter: Optional[FXConverter] = None,
        performance_calculator: Optional[PerformanceCalculator] = None
    ):
        """
        Initialize valuation service.

        Args:
            rate_provider: Source of authoritative FX rates
            fx_converter: Rate store and fallback rules
            performance_calculator: Return calculation rules
        """
        self.conversions = CurrencyConversionCache(rate_provider, fx_converter)
        self.performance = performance_calculator or PerformanceCalculator()
        self.reconstructor = ValuationReconstructor(self.performance)

    # Conversion

    def convert(self, request: ConversionRequest) -> ConversionResult:
        return self.conversions.convert(request)

    def convert_row(self, row: Mapping[str, Any], target_currency: str) -> ConversionResult:
        """Convert a raw transaction row for display in ``target_currency``."""
        return self.conversions.convert(ConversionRequest.from_row(row, target_currency))

    # Valuation

    def reconstruct(
        self,
        entries: Iterable[LedgerEntry],
        share_state: Optional[ShareState] = None
    ) -> ValuationResult:
        return self.reconstructor.reconstruct(entries, share_state)

    def daily_series(
        self,
        entries: Iterable[LedgerEntry],
        start: Any = None,
        end: Any = None
    ) -> List[SeriesPoint]:
        return self.reconstructor.daily_series(entries, start, end)

    def compute_performance(
        self,
        reference_price: Any,
        current_price: Any,
        inception_date: Any,
        as_of_date: Any,
        external_roi: Any = None,
        external_apr: Any = None
    ) -> PerformanceResult:
        return self.performance.compute_performance(
            reference_price, current_price, inception_date, as_of_date,
            external_roi=external_roi, external_apr=external_apr,
        )

    def vault_metrics(
        self,
        entries: Iterable[LedgerEntry],
        share_state: Optional[ShareState],
        reference_price: Any,
        inception_date: Any,
        as_of: Any,
        static_aum: Any = None,
        static_price: Any = None,
        external_roi: Any = None,
        external_apr: Any = None
    ) -> VaultMetrics:
        """
        Everything a vault detail view needs, from one ledger load.

        When the ledger has no valuation mark the statically configured
        AUM and price stand in and ``is_fallback`` is set. A missing
        static price is derived from the static AUM and share count.

        Args:
            entries: Vault ledger entries
            share_state: Current share totals
            reference_price: Price at inception
            inception_date: Vault inception date
            as_of: Valuation date
            static_aum: Configured AUM used without an anchor
            static_price: Configured price used without an anchor
            external_roi: Server-computed total return, takes precedence
            external_apr: Server-computed annualized return, takes precedence

        Returns:
            VaultMetrics
        """
        entries = list(entries)
        valuation = self.reconstructor.reconstruct(entries, share_state)
        flows = self.reconstructor.summarize_flows(entries)

        aum = valuation.rolling_aum
        price = valuation.implied_price_per_share
        is_fallback = False

        if not valuation.is_anchored:
            is_fallback = True
            aum = to_decimal(static_aum)
            price = to_decimal(static_price)
            shares = share_state.total_shares_outstanding if share_state else None
            if price is None and aum is not None and shares is not None and shares > 0:
                price = safe_divide(aum, shares)
            logger.info("No valuation mark; using configured AUM %s and price %s", aum, price)

        performance = self.performance.compute_performance(
            reference_price, price, inception_date, as_of,
            external_roi=external_roi, external_apr=external_apr,
        )

        return VaultMetrics(
            aum_usd=aum,
            price_per_share=price,
            roi_on_contributions_percent=self.reconstructor.roi_on_contributions(aum, flows),
            performance=performance,
            flows=flows,
            is_fallback=is_fallback,
        )

    async def load_vault(
        self,
        ledger_provider: LedgerProvider,
        vault_id: str
    ) -> Tuple[List[LedgerEntry], ShareState]:
        """
        Fetch a vault's ledger and share state from the ledger provider.

        Provider failures propagate unchanged.

        Returns:
            Tuple of (entries, share_state)
        """
        raw_entries = await _maybe_await(ledger_provider.get_entries(vault_id))
        raw_state = await _maybe_await(ledger_provider.get_share_state(vault_id))

        entries = [
            e if isinstance(e, LedgerEntry) else LedgerEntry.from_dict(e)
            for e in raw_entries
        ]
        share_state = raw_state if isinstance(raw_state, ShareState) else ShareState.from_value(raw_state)
        return entries, share_state

    # Session

    def reset(self) -> None:
        """Drop all session caches, e.g. on logout."""
        self.conversions.clear()


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value
