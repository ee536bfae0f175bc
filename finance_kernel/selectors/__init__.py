"""Selectors for the ledger (read side)."""

from finance_kernel.selectors.ledger_selector import (
    LedgerAggregator,
    LedgerSelector,
    MonthlyBalance,
    SessionLedgerAggregator,
    month_key,
)

__all__ = [
    "LedgerAggregator",
    "LedgerSelector",
    "MonthlyBalance",
    "SessionLedgerAggregator",
    "month_key",
]
