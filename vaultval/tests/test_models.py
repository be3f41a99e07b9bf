"""Tests for data models."""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from models.conversion import ConversionRequest, ConversionResult, derive_cashflow
from models.enums import LedgerEntryKind, TransactionType
from models.exceptions import MalformedRequestError
from models.ledger import Deposit, LedgerEntry, ShareState, Valuation, Withdraw
from models.performance import PerformanceResult, ValuationResult


class TestLedgerEntry:
    """Tests for ledger entry variants."""

    def test_variant_kinds(self):
        """Each variant reports its own kind."""
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert Deposit(ts, Decimal("1"), Decimal("1")).kind == LedgerEntryKind.DEPOSIT
        assert Withdraw(ts, Decimal("1"), Decimal("1")).kind == LedgerEntryKind.WITHDRAW
        assert Valuation(ts, Decimal("1")).kind == LedgerEntryKind.VALUATION
        assert LedgerEntryKind.DEPOSIT.is_flow
        assert not LedgerEntryKind.VALUATION.is_flow

    def test_base_entry_not_constructible(self):
        """Only concrete variants can be created."""
        with pytest.raises(TypeError):
            LedgerEntry(None, None)

    def test_signed_flows(self):
        """Deposits add, withdrawals subtract, valuations are not flows."""
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)

        deposit = Deposit(ts, Decimal("200"), Decimal("20"))
        withdraw = Withdraw(ts, Decimal("50"), Decimal("5"))
        valuation = Valuation(ts, Decimal("1000"))

        assert deposit.signed_amount == Decimal("200")
        assert deposit.signed_shares == Decimal("20")
        assert withdraw.signed_amount == Decimal("-50")
        assert withdraw.signed_shares == Decimal("-5")
        assert valuation.signed_amount == Decimal("0")
        assert valuation.signed_shares == Decimal("0")

    def test_non_finite_amounts_contribute_zero(self):
        """NaN or missing amounts count as zero."""
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)

        deposit = Deposit(ts, Decimal("NaN"), None)

        assert deposit.signed_amount == Decimal("0")
        assert deposit.signed_shares == Decimal("0")

    def test_entries_are_immutable(self):
        """Ledger entries cannot be modified once created."""
        entry = Valuation(datetime(2024, 1, 1, tzinfo=timezone.utc), Decimal("1000"))

        with pytest.raises(AttributeError):
            entry.amount_usd = Decimal("0")

    def test_from_dict_ledger_service_record(self):
        """Records using the ledger service spelling build the right variant."""
        entry = LedgerEntry.from_dict({
            "type": "DEPOSIT",
            "at": "2024-01-10T12:00:00Z",
            "usdValue": 200,
            "shares": "20",
        })

        assert isinstance(entry, Deposit)
        assert entry.amount_usd == Decimal("200")
        assert entry.shares == Decimal("20")
        assert entry.timestamp == datetime(2024, 1, 10, 12, tzinfo=timezone.utc)

    def test_from_dict_withdrawal_alias(self):
        """'withdrawal' is accepted as a withdraw kind."""
        entry = LedgerEntry.from_dict({"kind": "withdrawal", "date": "2024-01-15", "amount": 50})

        assert isinstance(entry, Withdraw)
        assert entry.amount_usd == Decimal("50")

    def test_from_dict_valuation_without_timestamp(self):
        """Missing timestamps are kept as None, not rejected."""
        entry = LedgerEntry.from_dict({"type": "valuation", "amount_usd": "1000"})

        assert isinstance(entry, Valuation)
        assert entry.timestamp is None

    def test_from_dict_malformed_amount(self):
        """Malformed amounts become None."""
        entry = LedgerEntry.from_dict({"type": "deposit", "at": "2024-01-01", "usdValue": "abc"})

        assert entry.amount_usd is None
        assert entry.signed_amount == Decimal("0")

    def test_from_dict_unknown_kind(self):
        """Unknown kinds are a contract violation."""
        with pytest.raises(MalformedRequestError):
            LedgerEntry.from_dict({"type": "rebalance", "at": "2024-01-01"})

        with pytest.raises(MalformedRequestError):
            LedgerEntry.from_dict({"at": "2024-01-01"})


class TestShareState:
    """Tests for share state parsing."""

    def test_from_value(self):
        assert ShareState.from_value("115").total_shares_outstanding == Decimal("115")
        assert ShareState.from_value(float("nan")).total_shares_outstanding is None
        assert ShareState.from_value(None).total_shares_outstanding is None

    def test_from_record(self):
        state = ShareState.from_value({"total_shares": 110})

        assert state.total_shares_outstanding == Decimal("110")


class TestConversionRequest:
    """Tests for conversion requests."""

    def test_currencies_normalised(self):
        """Currency codes are upper-cased."""
        request = ConversionRequest(
            amount_local=Decimal("1"),
            local_currency="usd",
            target_currency=" vnd ",
            row_id=7,
        )

        assert request.local_currency == "USD"
        assert request.target_currency == "VND"
        assert request.conversion_key == ("7", "VND")

    def test_day_key(self):
        """Rate dates are truncated to the day; undated rows use today."""
        dated = ConversionRequest(
            amount_local=Decimal("1"),
            local_currency="USD",
            target_currency="VND",
            as_of=datetime(2024, 1, 15, 23, 59, tzinfo=timezone.utc),
        )
        undated = ConversionRequest(
            amount_local=Decimal("1"), local_currency="USD", target_currency="VND"
        )

        assert dated.day == "2024-01-15"
        assert undated.day == "today"
        assert dated.rate_key("USD", "VND") == ("USD", "VND", "2024-01-15")

    def test_inline_rate_lookup(self):
        """Only positive finite direct-pair rates are usable."""
        request = ConversionRequest(
            amount_local=Decimal("1"),
            local_currency="USD",
            target_currency="VND",
            inline_rates={"USD-VND": 24500, "VND-USD": 0, "USD-EUR": "nan"},
        )

        assert request.inline_rate("USD", "VND") == Decimal("24500")
        assert request.inline_rate("VND", "USD") is None
        assert request.inline_rate("USD", "EUR") is None
        assert request.inline_rate("USD", "GBP") is None

    def test_malformed_requests_rejected(self):
        """Missing currencies or non-finite amounts are programming errors."""
        with pytest.raises(MalformedRequestError):
            ConversionRequest(amount_local=Decimal("1"), local_currency="", target_currency="VND")

        with pytest.raises(MalformedRequestError):
            ConversionRequest(
                amount_local=Decimal("Infinity"), local_currency="USD", target_currency="VND"
            )

        with pytest.raises(ValueError):
            ConversionRequest(amount_local=1.5, local_currency="USD", target_currency="VND")

    def test_from_row(self, sample_transaction_rows):
        """Rows from the ledger API become requests."""
        request = ConversionRequest.from_row(sample_transaction_rows[0], "VND")

        assert request.row_id == "1"
        assert request.amount_local == Decimal("1000")
        assert request.cashflow_local == Decimal("1000")
        assert request.day == "2024-01-15"
        assert request.inline_rate("USD", "VND") == Decimal("24500")

    def test_from_row_derives_outflow(self, sample_transaction_rows):
        """Expense rows carry a negative cashflow."""
        request = ConversionRequest.from_row(sample_transaction_rows[1], "VND")

        assert request.amount_local == Decimal("250.50")
        assert request.cashflow_local == Decimal("-250.50")
        assert request.inline_rates is None

    def test_from_row_malformed_amount(self, sample_transaction_rows):
        """Malformed amounts fall back to zero."""
        request = ConversionRequest.from_row(sample_transaction_rows[2], "USD")

        assert request.amount_local == Decimal("0")
        assert request.cashflow_local == Decimal("0")
        assert request.as_of is None

    def test_from_empty_row(self):
        """An empty row converts as a zero USD amount."""
        request = ConversionRequest.from_row({}, "VND")

        assert request.row_id == "unknown"
        assert request.local_currency == "USD"
        assert request.amount_local == Decimal("0")


class TestDeriveCashflow:
    """Tests for cashflow sign rules."""

    def test_inflows_and_outflows(self):
        amount = Decimal("100")

        assert derive_cashflow("income", amount) == Decimal("100")
        assert derive_cashflow("transfer_in", amount) == Decimal("100")
        assert derive_cashflow("expense", amount) == Decimal("-100")
        assert derive_cashflow("TRANSFER_OUT", amount) == Decimal("-100")

    def test_repay_direction(self):
        amount = Decimal("100")

        assert derive_cashflow("repay", amount, "loan") == Decimal("100")
        assert derive_cashflow("repay", amount, "borrow") == Decimal("-100")
        assert derive_cashflow("repay", amount, None) == Decimal("0")

    def test_neutral_types(self):
        amount = Decimal("100")

        assert derive_cashflow("initial", amount) == Decimal("0")
        assert derive_cashflow("borrow", amount) == Decimal("0")
        assert derive_cashflow("loan", amount) == Decimal("0")
        assert derive_cashflow("something_else", amount) == Decimal("0")
        assert derive_cashflow(None, amount) == Decimal("0")

    def test_transaction_type_helpers(self):
        assert TransactionType.is_inflow(TransactionType.INCOME)
        assert TransactionType.is_outflow(TransactionType.EXPENSE)
        assert not TransactionType.is_inflow(TransactionType.REPAY)


class TestResults:
    """Tests for result containers."""

    def test_valuation_result_absent(self):
        result = ValuationResult()

        assert not result.is_anchored
        assert result.to_dict() == {
            "rolling_aum": None,
            "implied_price_per_share": None,
            "anchored_at": None,
        }

    def test_valuation_result_to_dict(self):
        anchor = Valuation(datetime(2024, 1, 1, tzinfo=timezone.utc), Decimal("1000"))
        result = ValuationResult(
            rolling_aum=Decimal("1150"),
            implied_price_per_share=Decimal("10"),
            anchor=anchor,
        )

        data = result.to_dict()

        assert result.is_anchored
        assert data["rolling_aum"] == 1150.0
        assert data["implied_price_per_share"] == 10.0
        assert data["anchored_at"] == "2024-01-01T00:00:00+00:00"

    def test_conversion_result_to_dict(self):
        result = ConversionResult(amount=Decimal("2400000"), cashflow=Decimal("-2400000"), is_stale=True)

        assert result.to_dict() == {"amount": 2400000.0, "cashflow": -2400000.0, "is_stale": True}

    def test_performance_result_defaults(self):
        result = PerformanceResult()

        assert result.total_return_percent == Decimal("0")
        assert result.annualized_percent == Decimal("0")
        assert result.days_elapsed == 1
