"""Exchange rate providers used by the conversion cache."""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

from config.settings import settings
from models.exceptions import RateUnavailableError
from utils.date_utils import to_day
from utils.math_utils import ONE, ZERO, to_decimal

logger = logging.getLogger(__name__)


class RateProvider(ABC):
    """
    Source of authoritative exchange rates.

    ``get_rate`` returns units of ``to_currency`` per unit of
    ``from_currency`` on the given day (today when ``as_of`` is None).
    Failures are raised; callers decide how to degrade.
    """

    @abstractmethod
    async def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        as_of: Optional[date] = None
    ) -> Decimal:
        """Get units of ``to_currency`` per unit of ``from_currency``."""
        pass


class StaticRateProvider(RateProvider):
    """
    Rates from a fixed table, for offline use and tests.

    Keys are (from, to) for rates valid on any day, or (from, to, day)
    for day-specific rates. Reverse pairs use the reciprocal.
    """

    def __init__(self, rates: Optional[Mapping[Tuple, Any]] = None):
        self._rates: Dict[Tuple, Decimal] = {}
        for key, value in (rates or {}).items():
            rate = to_decimal(value)
            if rate is not None:
                self._rates[tuple(k.upper() if isinstance(k, str) else k for k in key)] = rate
        self.calls = 0

    async def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        as_of: Optional[date] = None
    ) -> Decimal:
        self.calls += 1
        src = from_currency.upper()
        dst = to_currency.upper()
        if src == dst:
            return ONE

        day = to_day(as_of)
        for key in ((src, dst, day), (src, dst)):
            if key in self._rates:
                return self._rates[key]
        for key in ((dst, src, day), (dst, src)):
            rate = self._rates.get(key)
            if rate is not None and rate != ZERO:
                return ONE / rate

        raise RateUnavailableError(src, dst, day.isoformat() if day else "today")


class LedgerAPIRateProvider(RateProvider):
    """
    Rates from the ledger service's FX endpoints.

    Historical rates come from ``/api/fx/history`` (a list of
    ``{"rate": ...}`` records for a single-day range); live rates from
    ``/api/fx/today``.
    """

    HISTORY_PATH = "/api/fx/history"
    TODAY_PATH = "/api/fx/today"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize ledger API rate provider.

        Args:
            base_url: Ledger service root URL
            timeout: Request timeout in seconds
            client: Shared client; one is created per request if omitted
        """
        self.base_url = (base_url or settings.fx_api_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self._client = client

    async def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        as_of: Optional[date] = None
    ) -> Decimal:
        src = from_currency.upper()
        dst = to_currency.upper()
        day = to_day(as_of)

        if day is not None:
            path = self.HISTORY_PATH
            params = {"from": src, "to": dst, "start": day.isoformat(), "end": day.isoformat()}
        else:
            path = self.TODAY_PATH
            params = {"from": src, "to": dst}

        data = await self._get_json(path, params)

        record = data
        if isinstance(data, list):
            record = data[0] if data else None
        if not isinstance(record, dict):
            raise RateUnavailableError(src, dst, day.isoformat() if day else "today")

        rate = to_decimal(record.get("rate", record.get("Rate")))
        if rate is None or rate <= ZERO:
            raise RateUnavailableError(src, dst, day.isoformat() if day else "today")
        return rate

    async def _get_json(self, path: str, params: Dict[str, str]) -> Any:
        url = f"{self.base_url}{path}"
        if self._client is not None:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return response.json()

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()


class ECBRateProvider(RateProvider):
    """
    Rates from ECB (European Central Bank) reference rates.

    ECB provides daily reference rates against EUR, published around
    16:00 CET on business days. Other pairs are derived as cross rates
    through EUR. Weekends and holidays use the most recent earlier rate
    within the lookback window.
    """

    # Common currency codes
    SUPPORTED_CURRENCIES = [
        "USD", "GBP", "CHF", "JPY", "CAD", "AUD", "NZD",
        "HKD", "SGD", "CNY", "INR", "SEK", "NOK", "DKK"
    ]

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        lookback_days: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize ECB rate provider.

        Args:
            api_url: ECB SDMX EXR endpoint
            timeout: Request timeout in seconds
            lookback_days: How far back to look for a published rate
            client: Shared client; one is created per request if omitted
        """
        self.api_url = api_url or settings.ecb_api_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.lookback_days = lookback_days or settings.rate_lookback_days
        self._client = client
        # currency -> {date -> units per EUR}
        self._rates: Dict[str, Dict[date, Decimal]] = {}

    async def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        as_of: Optional[date] = None
    ) -> Decimal:
        src = from_currency.upper()
        dst = to_currency.upper()
        if src == dst:
            return ONE

        day = to_day(as_of) or date.today()
        needed = [c for c in (src, dst) if c != "EUR" and self._lookup(c, day) is None]
        if needed:
            fetched = await self.fetch_rates(needed, day - timedelta(days=self.lookback_days), day)
            for currency, date_rates in fetched.items():
                self._rates.setdefault(currency, {}).update(date_rates)

        from_rate = ONE if src == "EUR" else self._lookup(src, day)
        to_rate = ONE if dst == "EUR" else self._lookup(dst, day)
        if from_rate is None or to_rate is None or from_rate == ZERO:
            raise RateUnavailableError(src, dst, day.isoformat())

        # Cross rate = to_rate / from_rate
        return to_rate / from_rate

    def _lookup(self, currency: str, day: date) -> Optional[Decimal]:
        date_rates = self._rates.get(currency)
        if not date_rates:
            return None
        for days_back in range(0, self.lookback_days + 1):
            rate = date_rates.get(day - timedelta(days=days_back))
            if rate is not None:
                return rate
        return None

    async def fetch_rates(
        self,
        currencies: list,
        start_date: date,
        end_date: date
    ) -> Dict[str, Dict[date, Decimal]]:
        """
        Fetch exchange rates from the ECB API.

        Args:
            currencies: Currency codes to fetch
            start_date: Start date for historical rates
            end_date: End date

        Returns:
            Dict of currency -> {date -> rate}
        """
        # ECB SDMX format: /EXR/D.{currency}.EUR.SP00.A
        currency_list = "+".join(currencies)
        url = f"{self.api_url}/D.{currency_list}.EUR.SP00.A"

        params = {
            "startPeriod": start_date.isoformat(),
            "endPeriod": end_date.isoformat(),
            "format": "jsondata"
        }

        if self._client is not None:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return self._parse_ecb_json(response.json())

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return self._parse_ecb_json(response.json())

    @staticmethod
    def _parse_ecb_json(data: dict) -> Dict[str, Dict[date, Decimal]]:
        """Parse ECB SDMX JSON response."""
        rates: Dict[str, Dict[date, Decimal]] = {}

        data_sets = data.get("dataSets", [])
        if not data_sets:
            return rates

        dimensions = data.get("structure", {}).get("dimensions", {})

        # Get time periods
        time_dim = next(
            (d for d in dimensions.get("observation", []) if d.get("id") == "TIME_PERIOD"),
            None,
        )
        currency_dim = next(
            (d for d in dimensions.get("series", []) if d.get("id") == "CURRENCY"),
            None,
        )
        if not time_dim or not currency_dim:
            logger.warning("ECB response is missing time or currency dimensions")
            return rates

        time_values = [v.get("id") for v in time_dim.get("values", [])]
        currency_values = [v.get("id") for v in currency_dim.get("values", [])]

        # The currency is the second component of the series key
        currency_pos = next(
            (i for i, d in enumerate(dimensions.get("series", [])) if d.get("id") == "CURRENCY"),
            1,
        )

        for series_key, series_data in data_sets[0].get("series", {}).items():
            key_parts = series_key.split(":")
            if len(key_parts) <= currency_pos:
                continue

            currency_idx = int(key_parts[currency_pos])
            if currency_idx >= len(currency_values):
                continue

            currency = currency_values[currency_idx]
            currency_rates = rates.setdefault(currency, {})

            for time_idx, obs_values in series_data.get("observations", {}).items():
                if int(time_idx) >= len(time_values):
                    continue
                try:
                    rate_date = datetime.strptime(time_values[int(time_idx)], "%Y-%m-%d").date()
                except (TypeError, ValueError):
                    continue
                rate_value = to_decimal(obs_values[0] if obs_values else None)
                if rate_value is not None:
                    currency_rates[rate_date] = rate_value

        return rates
