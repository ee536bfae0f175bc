"""
Tests for reporting model DTOs.

Verifies frozen dataclass construction, immutability, and the category to
statement expansion. NO database required.
"""

from __future__ import annotations

import dataclasses
from datetime import date
from decimal import Decimal

import pytest

from finance_config.schema import StatementType
from finance_modules.reporting.models import (
    FinancialStatements,
    ReportCategory,
    ReportPeriod,
    SectionResult,
)

PERIOD = ReportPeriod(date(2025, 1, 1), date(2025, 1, 31), ("2025-01",))


class TestReportCategory:

    def test_values(self):
        assert ReportCategory("income_statement") is ReportCategory.INCOME_STATEMENT
        assert ReportCategory.ALL.value == "all"

    def test_unknown_value(self):
        with pytest.raises(ValueError):
            ReportCategory("trial_balance")

    def test_single_statement(self):
        assert ReportCategory.CASH_FLOW.statements == (StatementType.CASH_FLOW,)

    def test_all_in_output_order(self):
        assert ReportCategory.ALL.statements == (
            StatementType.INCOME_STATEMENT,
            StatementType.BALANCE_SHEET,
            StatementType.CASH_FLOW,
        )


class TestSectionResult:

    def test_defaults(self):
        result = SectionResult(key="cash", label="Cash", amounts=(Decimal("10"),))
        assert result.children == ()
        assert result.calculation is None
        assert result.statement_source is None

    def test_immutable(self):
        result = SectionResult(key="cash", label="Cash", amounts=(Decimal("10"),))
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.label = "Bank"  # type: ignore[misc]


class TestFinancialStatements:

    def test_statement_lookup(self):
        sections = (SectionResult(key="net_sales", label="Net Sales", amounts=(Decimal("1"),)),)
        statements = FinancialStatements(
            period=PERIOD,
            report_category=ReportCategory.INCOME_STATEMENT,
            mapping_set="default",
            income_statement=sections,
        )
        assert statements.statement(StatementType.INCOME_STATEMENT) == sections
        assert statements.statement(StatementType.BALANCE_SHEET) is None

    def test_period_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            PERIOD.months = ("2025-02",)  # type: ignore[misc]
