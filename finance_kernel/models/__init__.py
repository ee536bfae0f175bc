"""Ledger models read by statement generation."""

from finance_kernel.models.ledger import (
    Account,
    CategoryType,
    Transaction,
    TransactionType,
)

__all__ = [
    "Account",
    "CategoryType",
    "Transaction",
    "TransactionType",
]
