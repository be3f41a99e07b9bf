"""Vault ledger data models."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from utils.date_utils import parse_timestamp
from utils.math_utils import ZERO, to_decimal

from .enums import LedgerEntryKind
from .exceptions import MalformedRequestError


@dataclass(frozen=True)
class LedgerEntry(ABC):
    """
    One immutable record of vault activity.

    Concrete entries are ``Deposit``, ``Withdraw`` or ``Valuation``.
    Amounts are kept as reported; a missing or non-finite value is
    stored as None and contributes nothing to sums.
    """

    timestamp: Optional[datetime]
    amount_usd: Optional[Decimal]

    @property
    @abstractmethod
    def kind(self) -> LedgerEntryKind:
        """Return the kind of this entry."""
        pass

    @property
    def signed_amount(self) -> Decimal:
        """USD flow with sign (+ into the vault, - out of it)."""
        return ZERO

    @property
    def signed_shares(self) -> Decimal:
        """Shares issued (+) or redeemed (-) by this entry."""
        return ZERO

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "LedgerEntry":
        """
        Build the matching entry variant from a provider record.

        Accepts the field spellings used by the ledger service
        (``type``/``kind``, ``at``/``timestamp``/``date``,
        ``usdValue``/``amount_usd``/``amount``, ``shares``).

        Raises:
            MalformedRequestError: If the record has no recognisable kind
        """
        raw_kind = record.get("kind", record.get("type"))
        if raw_kind is None:
            raise MalformedRequestError("Ledger record has no type")
        try:
            kind = LedgerEntryKind.from_string(raw_kind)
        except ValueError as e:
            raise MalformedRequestError(str(e)) from e

        timestamp = parse_timestamp(
            _first_present(record, "timestamp", "at", "date")
        )
        amount = to_decimal(
            _first_present(record, "amount_usd", "usdValue", "usd_value", "amount")
        )

        if kind == LedgerEntryKind.VALUATION:
            return Valuation(timestamp=timestamp, amount_usd=amount)

        shares = to_decimal(record.get("shares"))
        if kind == LedgerEntryKind.DEPOSIT:
            return Deposit(timestamp=timestamp, amount_usd=amount, shares=shares)
        return Withdraw(timestamp=timestamp, amount_usd=amount, shares=shares)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for reporting."""
        return {
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "amount_usd": float(self.amount_usd) if self.amount_usd is not None else None,
        }


@dataclass(frozen=True)
class Deposit(LedgerEntry):
    """Cash flowing into the vault, issuing shares."""

    shares: Optional[Decimal] = None

    @property
    def kind(self) -> LedgerEntryKind:
        return LedgerEntryKind.DEPOSIT

    @property
    def signed_amount(self) -> Decimal:
        return _finite_or_zero(self.amount_usd)

    @property
    def signed_shares(self) -> Decimal:
        return _finite_or_zero(self.shares)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["shares"] = float(self.shares) if self.shares is not None else None
        return data


@dataclass(frozen=True)
class Withdraw(LedgerEntry):
    """Cash flowing out of the vault, redeeming shares."""

    shares: Optional[Decimal] = None

    @property
    def kind(self) -> LedgerEntryKind:
        return LedgerEntryKind.WITHDRAW

    @property
    def signed_amount(self) -> Decimal:
        return -_finite_or_zero(self.amount_usd)

    @property
    def signed_shares(self) -> Decimal:
        return -_finite_or_zero(self.shares)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["shares"] = float(self.shares) if self.shares is not None else None
        return data


@dataclass(frozen=True)
class Valuation(LedgerEntry):
    """Authoritative mark-to-market of total AUM; not a flow."""

    @property
    def kind(self) -> LedgerEntryKind:
        return LedgerEntryKind.VALUATION


@dataclass(frozen=True)
class ShareState:
    """Share totals as reported by the ledger owner."""

    total_shares_outstanding: Optional[Decimal] = None

    @classmethod
    def from_value(cls, value: Any) -> "ShareState":
        """Build from a raw provider value or record, dropping unusable numbers."""
        if isinstance(value, Mapping):
            value = _first_present(value, "total_shares_outstanding", "total_shares", "total_supply")
        return cls(total_shares_outstanding=to_decimal(value))


def _finite_or_zero(value: Optional[Decimal]) -> Decimal:
    if value is None or not value.is_finite():
        return ZERO
    return value


def _first_present(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None
