"""
Reporting-specific test fixtures.

Provides:
- FakeAggregator: in-memory LedgerAggregator that serves monthly balances
  by category type / account number and records every call
- FailingAggregator: raises on every call
- Service fixtures wired to the default mapping set
"""

import threading
from collections.abc import Sequence
from datetime import date
from decimal import Decimal

import pytest

from finance_config import get_active_mapping
from finance_kernel.selectors.ledger_selector import MonthlyBalance
from finance_modules.reporting.config import ReportingConfig
from finance_modules.reporting.service import FinancialStatementService


class FakeAggregator:
    """
    LedgerAggregator over a fixed list of rows.

    Each row is (category_type, account_number, month, income, expense).
    A row matches when its category type OR its account number is selected.
    """

    def __init__(self, rows: Sequence[tuple[str, str, str, str, str]] = ()):
        self.rows = [
            (ct, acct, month, Decimal(income), Decimal(expense))
            for ct, acct, month, income, expense in rows
        ]
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def monthly_balances(
        self,
        start_date: date,
        end_date: date,
        category_types: Sequence[str],
        account_numbers: Sequence[str],
    ) -> list[MonthlyBalance]:
        with self._lock:
            self.calls.append(
                (start_date, end_date, tuple(category_types), tuple(account_numbers))
            )
        first = f"{start_date.year:04d}-{start_date.month:02d}"
        last = f"{end_date.year:04d}-{end_date.month:02d}"
        sums: dict[tuple[str, str], list[Decimal]] = {}
        for ct, acct, month, income, expense in self.rows:
            if not (first <= month <= last):
                continue
            if ct not in category_types and acct not in account_numbers:
                continue
            bucket = sums.setdefault((ct, month), [Decimal("0"), Decimal("0")])
            bucket[0] += income
            bucket[1] += expense
        return [
            MonthlyBalance(
                category_type_code=ct,
                month=month,
                income_sum=s[0],
                expense_sum=s[1],
            )
            for (ct, month), s in sorted(sums.items())
        ]


class FailingAggregator:
    """LedgerAggregator whose every call fails."""

    def __init__(self, exc: Exception | None = None):
        self.exc = exc or ConnectionError("ledger unavailable")

    def monthly_balances(self, start_date, end_date, category_types, account_numbers):
        raise self.exc


# Gross-to-net scenario for January 2025
JANUARY_ROWS = [
    ("REVENUE", "4101", "2025-01", "5000000", "0"),
    ("COGS", "5101", "2025-01", "0", "1500000"),
    ("COGS", "5102", "2025-01", "0", "500000"),
    ("SALES_EXPENSE", "6202", "2025-01", "0", "300000"),
    ("GA_EXPENSE", "6101", "2025-01", "0", "1000000"),
    ("NON_OP_INCOME", "4102", "2025-01", "50000", "0"),
    ("NON_OP_EXPENSE", "7101", "2025-01", "0", "250000"),
    ("ASSET_CURRENT", "1101", "2025-01", "2000000", "0"),
    ("ASSET_CURRENT", "1102", "2025-01", "8000000", "0"),
    ("ASSET_FIXED", "1401", "2025-01", "0", "400000"),
    ("DEPRECIATION", "1403", "2025-01", "50000", "0"),
    ("LIABILITY_LONG", "2301", "2025-01", "0", "100000"),
    ("EQUITY", "3101", "2025-01", "10000000", "0"),
]


@pytest.fixture
def default_mapping():
    return get_active_mapping()


@pytest.fixture
def january_ledger() -> FakeAggregator:
    return FakeAggregator(JANUARY_ROWS)


@pytest.fixture
def reporting_config() -> ReportingConfig:
    """Standard reporting configuration for tests."""
    return ReportingConfig.with_defaults()


@pytest.fixture
def statement_service(january_ledger, default_mapping, reporting_config):
    """FinancialStatementService over the January fake ledger."""
    return FinancialStatementService(
        january_ledger, mapping=default_mapping, config=reporting_config
    )
