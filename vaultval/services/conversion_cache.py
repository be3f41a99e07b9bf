"""Memoized per-row currency conversion with background rate fetches."""

import asyncio
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

from calculators.fx_converter import FXConverter, RateKey
from models.conversion import ConversionRequest, ConversionResult
from models.exceptions import RateUnavailableError
from utils.date_utils import to_day
from utils.math_utils import ZERO, to_decimal

from .rate_providers import RateProvider

logger = logging.getLogger(__name__)


class CurrencyConversionCache:
    """
    Convert row amounts between currencies without ever blocking on the network.

    Resolution order, first hit wins:

    1. Converted amount already resolved for (row, target currency)
    2. Same currency: returned as is, not cached
    3. Rate embedded in the row ("FROM-TO" key)
    4. Rate fetched earlier for the same pair and day
    5. Fixed fallback rate, marked stale, while a background fetch for
       the pair and day runs; the fallback is never cached so the real
       rate replaces it once it arrives

    At most one fetch per (pair, day) is in flight. The loading flag is
    checked and set in the same synchronous step, so no lock is needed
    on a single event loop. Both caches are append-only until ``clear``.
    """

    def __init__(
        self,
        rate_provider: RateProvider,
        fx_converter: Optional[FXConverter] = None
    ):
        """
        Initialize conversion cache.

        Args:
            rate_provider: Source of authoritative rates
            fx_converter: Rate store and fallback rules
        """
        self.rate_provider = rate_provider
        self.fx = fx_converter or FXConverter()
        self._converted: Dict[Tuple[str, str], Tuple[Decimal, Decimal]] = {}
        self._loading: Dict[RateKey, asyncio.Task] = {}
        self._tasks: Set[asyncio.Task] = set()
        self.fetch_count = 0

    def convert(self, request: ConversionRequest) -> ConversionResult:
        """
        Convert a row's amount and cashflow to the target currency.

        Args:
            request: Conversion request for one row

        Returns:
            ConversionResult; ``is_stale`` is True when the fallback rate
            was used because the real rate is not known yet
        """
        cached = self._converted.get(request.conversion_key)
        if cached is not None:
            amount, cashflow = cached
            return ConversionResult(amount=amount, cashflow=cashflow, is_stale=False)

        src = self.fx.normalize(request.local_currency)
        dst = self.fx.normalize(request.target_currency)

        if src == dst:
            return ConversionResult(
                amount=request.amount_local,
                cashflow=request.cashflow_local,
                is_stale=False,
            )

        rate = request.inline_rate(request.local_currency, request.target_currency)
        if rate is None and (src, dst) != (request.local_currency, request.target_currency):
            rate = request.inline_rate(src, dst)
        if rate is not None:
            return self._remember(request, rate)

        rate_key = request.rate_key(src, dst)
        rate = self.fx.get_rate(*rate_key)
        if rate is not None:
            return self._remember(request, rate)

        if rate_key not in self._loading:
            self._start_fetch(rate_key, request)

        fallback = self.fx.fallback_rate(src, dst)
        return ConversionResult(
            amount=self.fx.convert(request.amount_local, fallback),
            cashflow=self.fx.convert(request.cashflow_local, fallback),
            is_stale=True,
        )

    def _remember(self, request: ConversionRequest, rate: Decimal) -> ConversionResult:
        if not request.is_identified:
            logger.debug("Row without id converted at %s; result not memoized", rate)
            return ConversionResult(
                amount=self.fx.convert(request.amount_local, rate),
                cashflow=self.fx.convert(request.cashflow_local, rate),
                is_stale=False,
            )

        # First resolution wins; later tiers never overwrite it
        amount, cashflow = self._converted.setdefault(
            request.conversion_key,
            (
                self.fx.convert(request.amount_local, rate),
                self.fx.convert(request.cashflow_local, rate),
            ),
        )
        return ConversionResult(amount=amount, cashflow=cashflow, is_stale=False)

    def _start_fetch(self, rate_key: RateKey, request: ConversionRequest) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; cannot fetch %s-%s for %s", *rate_key)
            return

        task = loop.create_task(self._fetch(rate_key, request))
        self._loading[rate_key] = task
        self.fetch_count += 1
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fetch(self, rate_key: RateKey, request: ConversionRequest) -> None:
        src, dst, day = rate_key
        try:
            raw_rate = await self.rate_provider.get_rate(src, dst, to_day(request.as_of))
            rate = to_decimal(raw_rate)
            if rate is None or rate <= ZERO:
                raise RateUnavailableError(src, dst, day)

            self.fx.set_rate(src, dst, day, rate)
            self._remember(request, self.fx.get_rate(src, dst, day))
            logger.debug("Fetched %s-%s rate for %s: %s", src, dst, day, rate)

        except Exception as e:
            # Display must not fail on the network; the next call retries
            logger.warning("Rate fetch failed for %s-%s on %s: %s", src, dst, day, e)

        finally:
            # A fetch abandoned by clear() must not release a newer fetch's key
            if self._loading.get(rate_key) is asyncio.current_task():
                del self._loading[rate_key]

    def is_loading(self, from_currency: str, to_currency: str, day: str) -> bool:
        """Check whether a fetch for the pair and day is in flight."""
        key = (self.fx.normalize(from_currency), self.fx.normalize(to_currency), day)
        return key in self._loading

    def pending_fetches(self) -> List[asyncio.Task]:
        """Get the in-flight fetch tasks."""
        return list(self._tasks)

    async def wait_for_pending(self) -> None:
        """Wait until every in-flight fetch has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def clear(self) -> None:
        """Drop both caches and abandon in-flight fetches."""
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._loading.clear()
        self._converted.clear()
        self.fx.clear()

    def stats(self) -> Dict[str, int]:
        """Get cache sizes for diagnostics."""
        return {
            "converted_amounts": len(self._converted),
            "rates": len(self.fx),
            "in_flight": len(self._loading),
        }
