"""Pytest configuration and fixtures."""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from models.conversion import ConversionRequest
from models.ledger import Deposit, Withdraw, Valuation, ShareState
from services.rate_providers import StaticRateProvider


def utc(year, month, day, hour=0):
    """Build a UTC timestamp."""
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def end_to_end_ledger():
    """Valuation, then a deposit and a withdrawal after it."""
    return [
        Valuation(timestamp=utc(2024, 1, 1), amount_usd=Decimal("1000")),
        Deposit(timestamp=utc(2024, 1, 10), amount_usd=Decimal("200"), shares=Decimal("20")),
        Withdraw(timestamp=utc(2024, 1, 15), amount_usd=Decimal("50"), shares=Decimal("5")),
    ]


@pytest.fixture
def end_to_end_shares():
    """100 initial shares + 20 issued - 5 redeemed."""
    return ShareState(total_shares_outstanding=Decimal("115"))


@pytest.fixture
def flows_only_ledger():
    """Ledger with no valuation mark."""
    return [
        Deposit(timestamp=utc(2024, 1, 1), amount_usd=Decimal("5000"), shares=Decimal("500")),
        Deposit(timestamp=utc(2024, 2, 1), amount_usd=Decimal("2500"), shares=Decimal("250")),
        Withdraw(timestamp=utc(2024, 3, 1), amount_usd=Decimal("1000"), shares=Decimal("100")),
    ]


@pytest.fixture
def usd_vnd_provider():
    """Offline rate provider with a USD/VND rate."""
    return StaticRateProvider({("USD", "VND"): Decimal("25000")})


@pytest.fixture
def make_request():
    """Factory for USD -> VND conversion requests."""
    def _make(row_id="1", amount="100", local="USD", target="VND",
              as_of=date(2024, 1, 15), cashflow="0", inline_rates=None):
        return ConversionRequest(
            amount_local=Decimal(amount),
            local_currency=local,
            target_currency=target,
            as_of=as_of,
            row_id=row_id,
            cashflow_local=Decimal(cashflow),
            inline_rates=inline_rates,
        )
    return _make


@pytest.fixture
def sample_transaction_rows():
    """Transaction rows as served by the ledger API."""
    return [
        {
            "id": 1,
            "date": "2024-01-15T10:00:00Z",
            "type": "income",
            "amount_local": 1000,
            "local_currency": "USD",
            "fx_rates": {"USD-VND": 24500, "USD-USD": 1},
        },
        {
            "id": 2,
            "date": "2024-02-15",
            "type": "expense",
            "amount_local": "250.50",
            "local_currency": "USD",
        },
        {
            "id": 3,
            "type": "repay",
            "direction": "borrow",
            "amount_local": "not a number",
            "local_currency": "VND",
        },
    ]
