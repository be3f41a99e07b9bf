"""Total and annualized return calculator."""

import logging
from decimal import Decimal
from typing import Any, Optional

from config.settings import settings
from models.performance import PerformanceResult
from utils.date_utils import days_between
from utils.math_utils import HUNDRED, ONE, ZERO, compound_annualize, safe_divide, to_decimal

logger = logging.getLogger(__name__)


class PerformanceCalculator:
    """
    Calculate a vault's total return and annualized return from prices.

    Formula:
        total return  = (current / reference - 1) * 100
        annualized    = ((1 + total / 100) ^ (1 / years) - 1) * 100
        years         = days elapsed / 365.25

    Returns under one basis point are treated as zero, and histories
    shorter than 30 days are not annualized: compounding a few days of
    return into a yearly figure produces meaningless numbers.

    Never raises for bad data; unusable inputs produce zeros.
    """

    def __init__(
        self,
        noise_threshold_percent: Optional[Decimal] = None,
        min_annualization_days: Optional[int] = None,
        days_per_year: Optional[Decimal] = None
    ):
        """
        Initialize performance calculator.

        Args:
            noise_threshold_percent: Returns smaller than this snap to zero
            min_annualization_days: Shorter histories are not annualized
            days_per_year: Year length used for annualization
        """
        self.noise_threshold_percent = (
            noise_threshold_percent
            if noise_threshold_percent is not None
            else settings.noise_threshold_percent
        )
        self.min_annualization_days = (
            min_annualization_days
            if min_annualization_days is not None
            else settings.min_annualization_days
        )
        self.days_per_year = days_per_year if days_per_year is not None else settings.days_per_year

    def compute_performance(
        self,
        reference_price: Any,
        current_price: Any,
        inception_date: Any,
        as_of_date: Any,
        external_roi: Any = None,
        external_apr: Any = None
    ) -> PerformanceResult:
        """
        Compute total and annualized return since inception.

        Args:
            reference_price: Price at inception
            current_price: Current (possibly implied) price
            inception_date: Date the reference price applies to
            as_of_date: Date of the current price
            external_roi: Server-computed total return in percent, if known
            external_apr: Server-computed annualized return in percent, if known

        Returns:
            PerformanceResult; server figures take precedence when finite
        """
        days_elapsed = max(1, days_between(as_of_date, inception_date))

        total_return = self.total_return_percent(reference_price, current_price)
        annualized = self.annualize(total_return, days_elapsed)

        server_roi = to_decimal(external_roi)
        if server_roi is not None:
            total_return = server_roi
        server_apr = to_decimal(external_apr)
        if server_apr is not None:
            annualized = server_apr

        return PerformanceResult(
            total_return_percent=total_return,
            annualized_percent=annualized,
            days_elapsed=days_elapsed,
        )

    def total_return_percent(self, reference_price: Any, current_price: Any) -> Decimal:
        """
        Percentage change from reference to current price.

        Returns:
            Return in percent, zero when either price is unusable or the
            move is below the noise threshold
        """
        reference = to_decimal(reference_price)
        current = to_decimal(current_price)

        if reference is None or reference <= ZERO or current is None or current <= ZERO:
            logger.debug(
                "Unusable prices for return (reference=%r, current=%r)",
                reference_price, current_price,
            )
            return ZERO

        total_return = (current / reference - ONE) * HUNDRED
        return self.suppress_noise(total_return)

    def suppress_noise(self, percent: Decimal) -> Decimal:
        """Snap sub-basis-point moves to exactly zero."""
        if abs(percent) < self.noise_threshold_percent:
            return ZERO
        return percent

    def annualize(self, total_return_percent: Decimal, days_elapsed: int) -> Decimal:
        """
        Annualize a total return over a number of days.

        Args:
            total_return_percent: Total return in percent
            days_elapsed: Length of the history in days

        Returns:
            Annualized return in percent; the total return itself for
            short histories; zero when not computable
        """
        if not total_return_percent.is_finite():
            return ZERO

        if days_elapsed < self.min_annualization_days:
            return total_return_percent

        years = safe_divide(Decimal(days_elapsed), self.days_per_year)
        annualized = compound_annualize(total_return_percent / HUNDRED, years)
        if annualized is None:
            logger.debug(
                "Cannot annualize %s%% over %d days", total_return_percent, days_elapsed
            )
            return ZERO

        return annualized * HUNDRED


def compute_performance(
    reference_price: Any,
    current_price: Any,
    inception_date: Any,
    as_of_date: Any,
    external_roi: Any = None,
    external_apr: Any = None
) -> PerformanceResult:
    """
    Convenience function to compute performance with default settings.

    Args:
        reference_price: Price at inception
        current_price: Current price
        inception_date: Inception date
        as_of_date: Valuation date
        external_roi: Optional server-computed total return (percent)
        external_apr: Optional server-computed annualized return (percent)

    Returns:
        PerformanceResult
    """
    calculator = PerformanceCalculator()
    return calculator.compute_performance(
        reference_price, current_price, inception_date, as_of_date,
        external_roi=external_roi, external_apr=external_apr,
    )
