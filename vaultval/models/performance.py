"""Valuation and performance result models."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from utils.math_utils import ZERO

from .ledger import Valuation


def _as_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


@dataclass(frozen=True)
class PerformanceResult:
    """Return figures for a vault, in percent."""

    total_return_percent: Decimal = ZERO
    annualized_percent: Decimal = ZERO
    days_elapsed: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_return_percent": float(self.total_return_percent),
            "annualized_percent": float(self.annualized_percent),
            "days_elapsed": self.days_elapsed,
        }


@dataclass(frozen=True)
class ValuationResult:
    """
    Rolling AUM and implied price reconstructed from a ledger.

    Both figures are None when the ledger has no usable valuation mark;
    the price alone is None when share accounting is inconsistent.
    """

    rolling_aum: Optional[Decimal] = None
    implied_price_per_share: Optional[Decimal] = None
    anchor: Optional[Valuation] = None

    @property
    def is_anchored(self) -> bool:
        return self.rolling_aum is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rolling_aum": _as_float(self.rolling_aum),
            "implied_price_per_share": _as_float(self.implied_price_per_share),
            "anchored_at": (
                self.anchor.timestamp.isoformat()
                if self.anchor is not None and self.anchor.timestamp is not None
                else None
            ),
        }


@dataclass(frozen=True)
class FlowSummary:
    """Lifetime deposit and withdrawal totals for a vault."""

    total_deposited_usd: Decimal = ZERO
    total_withdrawn_usd: Decimal = ZERO
    net_shares: Decimal = ZERO
    entry_count: int = 0
    first_flow_at: Optional[datetime] = None
    last_entry_at: Optional[datetime] = None

    @property
    def net_flow_usd(self) -> Decimal:
        return self.total_deposited_usd - self.total_withdrawn_usd


@dataclass(frozen=True)
class VaultMetrics:
    """Everything a vault detail view shows about value and performance."""

    aum_usd: Optional[Decimal]
    price_per_share: Optional[Decimal]
    roi_on_contributions_percent: Decimal
    performance: PerformanceResult
    flows: FlowSummary
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aum_usd": _as_float(self.aum_usd),
            "price_per_share": _as_float(self.price_per_share),
            "roi_on_contributions_percent": float(self.roi_on_contributions_percent),
            "total_deposited_usd": float(self.flows.total_deposited_usd),
            "total_withdrawn_usd": float(self.flows.total_withdrawn_usd),
            "is_fallback": self.is_fallback,
            **self.performance.to_dict(),
        }


@dataclass(frozen=True)
class SeriesPoint:
    """One day of a vault's reconstructed history."""

    date: date
    aum_usd: Decimal
    deposits_cum_usd: Decimal
    withdrawals_cum_usd: Decimal
    pnl_usd: Decimal
    roi_percent: Decimal
    apr_percent: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "aum_usd": float(self.aum_usd),
            "deposits_cum_usd": float(self.deposits_cum_usd),
            "withdrawals_cum_usd": float(self.withdrawals_cum_usd),
            "pnl_usd": float(self.pnl_usd),
            "roi_percent": float(self.roi_percent),
            "apr_percent": float(self.apr_percent),
        }
