"""Rolling AUM and implied share price reconstruction from a vault ledger."""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple

from models.enums import LedgerEntryKind
from models.ledger import LedgerEntry, ShareState, Valuation
from models.performance import FlowSummary, SeriesPoint, ValuationResult
from utils.date_utils import parse_timestamp, to_day
from utils.math_utils import HUNDRED, ZERO, safe_divide, to_decimal

from .performance_calculator import PerformanceCalculator

logger = logging.getLogger(__name__)


class ValuationReconstructor:
    """
    Reconstruct a vault's current AUM and price from its ledger.

    A vault's price is marked periodically by a valuation entry, while
    deposits and withdrawals keep arriving between marks. The current
    AUM is the last mark plus the net flow recorded after it:

        rolling AUM = last valuation + deposits since - withdrawals since
        price       = rolling AUM / shares outstanding

    Deposits and withdrawals move AUM and share count together, so they
    do not move the implied price on their own. Without a valuation
    mark there is nothing to extrapolate from and the result is absent.
    """

    def __init__(self, performance_calculator: Optional[PerformanceCalculator] = None):
        """
        Initialize valuation reconstructor.

        Args:
            performance_calculator: Annualization rules used by daily_series
        """
        self.performance_calculator = performance_calculator or PerformanceCalculator()

    def reconstruct(
        self,
        entries: Iterable[LedgerEntry],
        share_state: Optional[ShareState] = None
    ) -> ValuationResult:
        """
        Derive rolling AUM and implied price per share.

        Args:
            entries: Ledger entries in arrival order
            share_state: Current share totals from the ledger owner

        Returns:
            ValuationResult; both figures absent when there is no usable
            valuation mark, the price alone absent when share accounting
            does not add up
        """
        ordered = self.sort_entries(entries)

        anchor_index = self._find_last_valuation(ordered)
        if anchor_index is None:
            logger.debug("No valuation mark among %d entries", len(ordered))
            return ValuationResult()

        anchor = ordered[anchor_index]
        base_aum = anchor.amount_usd
        if base_aum is None or not base_aum.is_finite():
            logger.info("Last valuation mark at %s has no usable amount", anchor.timestamp)
            return ValuationResult()

        net_flow, flow_shares = self._net_flows(ordered[anchor_index + 1:])
        rolling_aum = base_aum + net_flow

        total_shares = share_state.total_shares_outstanding if share_state else None
        if total_shares is None or not total_shares.is_finite() or total_shares <= ZERO:
            return ValuationResult(rolling_aum=rolling_aum, anchor=anchor)

        shares_at_anchor = total_shares - flow_shares
        if shares_at_anchor <= ZERO:
            logger.info(
                "Share accounting inconsistent: %s outstanding, %s issued since mark at %s",
                total_shares, flow_shares, anchor.timestamp,
            )
            return ValuationResult(rolling_aum=rolling_aum, anchor=anchor)

        return ValuationResult(
            rolling_aum=rolling_aum,
            implied_price_per_share=rolling_aum / total_shares,
            anchor=anchor,
        )

    @staticmethod
    def sort_entries(entries: Iterable[LedgerEntry]) -> List[LedgerEntry]:
        """
        Order entries by timestamp, dropping undated ones.

        ``sorted`` is stable, so same-timestamp entries keep arrival order.
        """
        return sorted(
            (e for e in entries if e.timestamp is not None),
            key=lambda e: parse_timestamp(e.timestamp),
        )

    @staticmethod
    def _find_last_valuation(ordered: List[LedgerEntry]) -> Optional[int]:
        for i in range(len(ordered) - 1, -1, -1):
            if ordered[i].kind == LedgerEntryKind.VALUATION:
                return i
        return None

    @staticmethod
    def _net_flows(entries: Iterable[LedgerEntry]) -> Tuple[Decimal, Decimal]:
        net_flow = ZERO
        flow_shares = ZERO
        for entry in entries:
            net_flow += entry.signed_amount
            flow_shares += entry.signed_shares
        return net_flow, flow_shares

    def summarize_flows(self, entries: Iterable[LedgerEntry]) -> FlowSummary:
        """
        Total deposits and withdrawals over the vault's life.

        Args:
            entries: Ledger entries

        Returns:
            FlowSummary
        """
        ordered = self.sort_entries(entries)

        deposited = ZERO
        withdrawn = ZERO
        net_shares = ZERO
        first_flow_at = None

        for entry in ordered:
            if entry.kind == LedgerEntryKind.DEPOSIT:
                deposited += entry.signed_amount
            elif entry.kind == LedgerEntryKind.WITHDRAW:
                withdrawn -= entry.signed_amount
            else:
                continue
            net_shares += entry.signed_shares
            if first_flow_at is None:
                first_flow_at = entry.timestamp

        return FlowSummary(
            total_deposited_usd=deposited,
            total_withdrawn_usd=withdrawn,
            net_shares=net_shares,
            entry_count=len(ordered),
            first_flow_at=first_flow_at,
            last_entry_at=ordered[-1].timestamp if ordered else None,
        )

    @staticmethod
    def roi_on_contributions(aum: Any, summary: FlowSummary) -> Decimal:
        """
        Return on money put in, in percent.

        Formula: (AUM + withdrawn - deposited) / deposited * 100

        Returns:
            ROI in percent, zero when nothing was deposited or AUM is unusable
        """
        aum_value = to_decimal(aum)
        if aum_value is None or summary.total_deposited_usd <= ZERO:
            return ZERO

        pnl = aum_value + summary.total_withdrawn_usd - summary.total_deposited_usd
        return safe_divide(pnl, summary.total_deposited_usd) * HUNDRED

    def daily_series(
        self,
        entries: Iterable[LedgerEntry],
        start: Any = None,
        end: Any = None
    ) -> List[SeriesPoint]:
        """
        Rebuild day-by-day AUM, P&L, ROI and APR for a vault.

        Each valuation re-anchors AUM; flows adjust it in between. Before
        the first valuation AUM is the net amount deposited. APR counts
        days from the first deposit day, inclusive.

        Args:
            entries: Ledger entries
            start: First day to report (defaults to first entry day)
            end: Last day to report (defaults to last entry day)

        Returns:
            List of SeriesPoint, one per calendar day
        """
        ordered = self.sort_entries(entries)
        if not ordered:
            return []

        first_day = to_day(ordered[0].timestamp)
        last_day = to_day(ordered[-1].timestamp)
        report_start = to_day(start) or first_day
        report_end = to_day(end) or last_day
        if report_end < report_start:
            return []

        aum = ZERO
        deposited = ZERO
        withdrawn = ZERO
        first_deposit_day: Optional[date] = None
        points: List[SeriesPoint] = []

        idx = 0
        day = min(first_day, report_start)
        while day <= report_end:
            while idx < len(ordered) and to_day(ordered[idx].timestamp) <= day:
                entry = ordered[idx]
                if isinstance(entry, Valuation):
                    mark = entry.amount_usd
                    if mark is not None and mark.is_finite():
                        aum = mark
                else:
                    aum += entry.signed_amount
                    if entry.kind == LedgerEntryKind.DEPOSIT:
                        deposited += entry.signed_amount
                        if first_deposit_day is None and entry.signed_amount > ZERO:
                            first_deposit_day = day
                    else:
                        withdrawn -= entry.signed_amount
                idx += 1

            if day >= report_start:
                points.append(self._series_point(day, aum, deposited, withdrawn, first_deposit_day))
            day += timedelta(days=1)

        return points

    def _series_point(
        self,
        day: date,
        aum: Decimal,
        deposited: Decimal,
        withdrawn: Decimal,
        first_deposit_day: Optional[date]
    ) -> SeriesPoint:
        pnl = aum + withdrawn - deposited
        calc = self.performance_calculator

        roi = ZERO
        apr = ZERO
        if deposited > ZERO:
            roi = calc.suppress_noise(safe_divide(pnl, deposited) * HUNDRED)
            if first_deposit_day is not None:
                days_elapsed = max(1, (day - first_deposit_day).days + 1)
                apr = calc.annualize(roi, days_elapsed)

        return SeriesPoint(
            date=day,
            aum_usd=aum,
            deposits_cum_usd=deposited,
            withdrawals_cum_usd=withdrawn,
            pnl_usd=pnl,
            roi_percent=roi,
            apr_percent=apr,
        )


def reconstruct(
    entries: Iterable[LedgerEntry],
    share_state: Optional[ShareState] = None
) -> ValuationResult:
    """
    Convenience function to reconstruct rolling AUM and implied price.

    Args:
        entries: Ledger entries
        share_state: Current share totals

    Returns:
        ValuationResult
    """
    return ValuationReconstructor().reconstruct(entries, share_state)
