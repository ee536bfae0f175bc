"""
Financial Reporting Module (``finance_modules.reporting``).

Responsibility
--------------
Read-only module that generates financial statements from the ledger and a
declarative mapping definition: income statement (gross to net), balance
sheet, and cash-flow statement (indirect method, seeded with net profit
from the income statement).

Architecture position
---------------------
**Modules layer** -- pure computation in ``statements.py``, orchestration
in ``service.py``.  Report structure comes entirely from
``finance_config``; no section layout is hard-coded here.

Invariants enforced
-------------------
* Nothing is written to the ledger (read-only guarantee).
* Every section's amount list has one entry per requested month.
* Statement generation is deterministic and reproducible from the ledger
  and the mapping set checksum.

Failure modes
-------------
* Invalid period or category -> typed ``ReportError`` before any query.
* Ledger aggregation failure -> ``StatementGenerationError``; no partial
  statements are returned.
* Bad formulas -> resolved to zero with a warning (never raised).
"""

from finance_modules.reporting.config import ReportingConfig
from finance_modules.reporting.models import (
    FinancialStatements,
    ReportCategory,
    ReportPeriod,
    SectionResult,
)
from finance_modules.reporting.periods import (
    resolve_report_months,
    resolve_report_period,
)
from finance_modules.reporting.service import FinancialStatementService
from finance_modules.reporting.statements import (
    DataContext,
    assemble_section,
    assemble_statement,
    build_import_seed,
    find_section,
    process_section,
    process_statement,
    render_to_dict,
)

__all__ = [
    # Service
    "FinancialStatementService",
    # Config
    "ReportingConfig",
    # Models
    "FinancialStatements",
    "ReportCategory",
    "ReportPeriod",
    "SectionResult",
    # Periods
    "resolve_report_months",
    "resolve_report_period",
    # Pure functions
    "DataContext",
    "assemble_section",
    "assemble_statement",
    "build_import_seed",
    "find_section",
    "process_section",
    "process_statement",
    "render_to_dict",
]
