"""Currency conversion request and result models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from utils.date_utils import day_key, parse_timestamp
from utils.math_utils import ZERO, decimal_or_zero, to_decimal

from .enums import RepayDirection, TransactionType
from .exceptions import MalformedRequestError

# Placeholder id for rows served without one
UNKNOWN_ROW_ID = "unknown"


@dataclass(frozen=True)
class ConversionRequest:
    """
    A request to show one row's amount in another currency.

    ``row_id`` plus ``target_currency`` identifies the converted amount;
    the currency pair plus the day of ``as_of`` identifies the rate.
    """

    amount_local: Decimal
    local_currency: str
    target_currency: str
    as_of: Optional[datetime] = None
    row_id: str = UNKNOWN_ROW_ID
    cashflow_local: Decimal = ZERO
    inline_rates: Optional[Mapping[str, Any]] = field(default=None, compare=False)

    def __post_init__(self):
        """Validate the request contract."""
        if not self.local_currency or not self.target_currency:
            raise MalformedRequestError("Conversion request needs both currencies")
        for name in ("amount_local", "cashflow_local"):
            value = getattr(self, name)
            if not isinstance(value, Decimal) or not value.is_finite():
                raise MalformedRequestError(f"{name} must be a finite Decimal, got {value!r}")

        object.__setattr__(self, "local_currency", self.local_currency.strip().upper())
        object.__setattr__(self, "target_currency", self.target_currency.strip().upper())
        object.__setattr__(self, "row_id", str(self.row_id))

    @property
    def day(self) -> str:
        """Rate date as YYYY-MM-DD, or "today" for undated rows."""
        return day_key(self.as_of)

    @property
    def is_identified(self) -> bool:
        """Whether the row carries its own id and so can be memoized."""
        return self.row_id != UNKNOWN_ROW_ID

    @property
    def conversion_key(self) -> Tuple[str, str]:
        return (self.row_id, self.target_currency)

    def rate_key(self, from_currency: str, to_currency: str) -> Tuple[str, str, str]:
        """Rate cache key for this request's date and a normalised pair."""
        return (from_currency, to_currency, self.day)

    def inline_rate(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        """
        Look up the direct pair in the row's embedded rate table.

        Returns:
            The rate if present, finite and positive, otherwise None
        """
        if not self.inline_rates:
            return None
        rate = to_decimal(self.inline_rates.get(f"{from_currency}-{to_currency}"))
        if rate is None or rate <= ZERO:
            return None
        return rate

    @classmethod
    def from_row(cls, row: Mapping[str, Any], target_currency: str) -> "ConversionRequest":
        """
        Build a request from a transaction row as served by the ledger API.

        Malformed amounts are treated as zero. When the row has no
        ``cashflow_local`` it is derived from the row type.

        Args:
            row: Transaction row mapping
            target_currency: Currency to display the row in

        Returns:
            ConversionRequest for the row
        """
        amount_local = decimal_or_zero(row.get("amount_local"))

        cashflow = to_decimal(row.get("cashflow_local"))
        if cashflow is None:
            cashflow = derive_cashflow(row.get("type"), amount_local, row.get("direction"))

        row_id = row.get("id")
        return cls(
            amount_local=amount_local,
            local_currency=str(row.get("local_currency") or "USD"),
            target_currency=target_currency,
            as_of=parse_timestamp(row.get("date")),
            row_id=UNKNOWN_ROW_ID if row_id is None else str(row_id),
            cashflow_local=cashflow,
            inline_rates=row.get("fx_rates") or None,
        )


@dataclass(frozen=True)
class ConversionResult:
    """Converted amount and cashflow for one row."""

    amount: Decimal
    cashflow: Decimal
    is_stale: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": float(self.amount),
            "cashflow": float(self.cashflow),
            "is_stale": self.is_stale,
        }


def derive_cashflow(
    txn_type: Any,
    amount: Decimal,
    direction: Any = None
) -> Decimal:
    """
    Derive the signed cashflow of a transaction row.

    Income and inbound transfers are positive, expenses and outbound
    transfers negative. A repayment is positive when a loan is repaid
    to us and negative when we repay a borrowing. Everything else
    (initial balances, new borrowings and loans) is neutral.

    Args:
        txn_type: Row type string
        amount: Row amount (sign ignored)
        direction: Repayment direction for "repay" rows

    Returns:
        Signed cashflow
    """
    try:
        kind = TransactionType.from_string(txn_type)
    except ValueError:
        return ZERO

    magnitude = abs(amount)
    if TransactionType.is_inflow(kind):
        return magnitude
    if TransactionType.is_outflow(kind):
        return -magnitude
    if kind == TransactionType.REPAY:
        direction_str = str(direction or "").strip().lower()
        if direction_str == RepayDirection.LOAN.value:
            return magnitude
        if direction_str == RepayDirection.BORROW.value:
            return -magnitude
    return ZERO
