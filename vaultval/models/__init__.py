"""Data models for the valuation engine."""

from .enums import LedgerEntryKind, TransactionType, RepayDirection
from .exceptions import ValuationError, MalformedRequestError, RateUnavailableError
from .ledger import LedgerEntry, Deposit, Withdraw, Valuation, ShareState
from .conversion import ConversionRequest, ConversionResult, derive_cashflow
from .performance import (
    PerformanceResult,
    ValuationResult,
    FlowSummary,
    VaultMetrics,
    SeriesPoint,
)

__all__ = [
    "LedgerEntryKind",
    "TransactionType",
    "RepayDirection",
    "ValuationError",
    "MalformedRequestError",
    "RateUnavailableError",
    "LedgerEntry",
    "Deposit",
    "Withdraw",
    "Valuation",
    "ShareState",
    "ConversionRequest",
    "ConversionResult",
    "derive_cashflow",
    "PerformanceResult",
    "ValuationResult",
    "FlowSummary",
    "VaultMetrics",
    "SeriesPoint",
]
