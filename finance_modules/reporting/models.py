"""
Financial Reporting Domain Models (``finance_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for statement generation: the requested
report category, the resolved period, per-section results and the full
statements bundle returned to callers.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by
``statements.py`` and ``FinancialStatementService``; rendered to JSON-ready
primitives by ``statements.render_to_dict``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Every ``SectionResult.amounts`` has one entry per ``ReportPeriod.months``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from finance_config.schema import StatementType


class ReportCategory(str, Enum):
    """What a caller can ask for."""

    INCOME_STATEMENT = "income_statement"
    BALANCE_SHEET = "balance_sheet"
    CASH_FLOW = "cash_flow"
    ALL = "all"

    @property
    def statements(self) -> tuple[StatementType, ...]:
        """Statements produced for this category, in output order."""
        if self is ReportCategory.ALL:
            return (
                StatementType.INCOME_STATEMENT,
                StatementType.BALANCE_SHEET,
                StatementType.CASH_FLOW,
            )
        return (StatementType(self.value),)


@dataclass(frozen=True)
class ReportPeriod:
    """Requested date range and the month columns it resolves to."""

    start_date: date
    end_date: date
    months: tuple[str, ...]  # "YYYY-MM", one or two entries


@dataclass(frozen=True)
class SectionResult:
    """
    Computed value of one section node.

    ``key``, ``calculation`` and ``statement_source`` are internal
    bookkeeping; the assembler drops them from the external shape.
    """

    key: str
    label: str
    amounts: tuple[Decimal, ...]
    children: tuple[SectionResult, ...] = ()
    calculation: str | None = None
    statement_source: StatementType | None = None


@dataclass(frozen=True)
class FinancialStatements:
    """Everything produced by one generation request."""

    period: ReportPeriod
    report_category: ReportCategory
    mapping_set: str
    income_statement: tuple[SectionResult, ...] | None = None
    balance_sheet: tuple[SectionResult, ...] | None = None
    cash_flow: tuple[SectionResult, ...] | None = None

    def statement(self, statement: StatementType) -> tuple[SectionResult, ...] | None:
        return getattr(self, statement.value)
