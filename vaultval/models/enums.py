"""Enumeration types for the valuation engine."""

from enum import Enum


class LedgerEntryKind(Enum):
    """Kinds of vault ledger entries."""

    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    VALUATION = "valuation"

    @classmethod
    def from_string(cls, kind_str: str) -> "LedgerEntryKind":
        """Convert a provider string ("DEPOSIT", "withdrawal", ...) to a kind."""
        normalized = str(kind_str).strip().lower()
        if normalized == "withdrawal":
            normalized = "withdraw"
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown ledger entry kind: {kind_str}")

    @property
    def is_flow(self) -> bool:
        """Deposits and withdrawals move cash; valuations only mark it."""
        return self in {LedgerEntryKind.DEPOSIT, LedgerEntryKind.WITHDRAW}


class TransactionType(Enum):
    """Transaction row types that carry a cashflow sign."""

    INITIAL = "initial"
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    BORROW = "borrow"
    LOAN = "loan"
    REPAY = "repay"

    @classmethod
    def from_string(cls, type_str: str) -> "TransactionType":
        """Convert string to TransactionType."""
        try:
            return cls(str(type_str).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown transaction type: {type_str}")

    @classmethod
    def is_inflow(cls, txn_type: "TransactionType") -> bool:
        """Check if transaction type adds cash."""
        return txn_type in {cls.INCOME, cls.TRANSFER_IN}

    @classmethod
    def is_outflow(cls, txn_type: "TransactionType") -> bool:
        """Check if transaction type removes cash."""
        return txn_type in {cls.EXPENSE, cls.TRANSFER_OUT}


class RepayDirection(Enum):
    """Which side of a debt a repayment settles."""

    LOAN = "loan"      # someone repays us
    BORROW = "borrow"  # we repay someone
