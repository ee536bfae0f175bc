"""
Reporting Module Service (``finance_modules.reporting.service``).

Responsibility
--------------
Orchestrates financial statement generation -- income statement, balance
sheet and cash-flow statement -- by bridging a ledger aggregator
(``LedgerSelector`` / ``SessionLedgerAggregator``) and the active mapping
definition to the pure functions in ``statements.py``.  This is a
**read-only** service.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``FinancialStatementService`` is the sole
public entry point for statement generation.  Constructor: ``ledger`` +
``mapping`` + ``config``.

Scheduling
----------
Statements are evaluated in stages.  A statement runs once every
statement it imports from has a raw (unassembled) result.  With the
default mapping, ``all`` evaluates the income statement and balance
sheet concurrently on a thread pool, then the cash-flow statement seeded
with net profit from the income statement.  Requesting ``cash_flow`` alone
still computes the income statement raw result, but does not emit it.
Log context fields are copied into every worker.

Invariants enforced
-------------------
* Read-only -- nothing is written to the ledger.
* All monetary amounts use ``Decimal`` -- NEVER ``float``.
* Each statement tree gets its own DataContext; nothing mutable is shared
  between workers.
* All-or-nothing: if any statement fails, no statements are returned.

Failure modes
-------------
* ``end_date < start_date``  -> ``InvalidReportPeriodError`` before any
  ledger query.
* Unknown category  -> ``UnknownReportCategoryError`` before any query.
* Aggregator failure  -> ``StatementGenerationError`` naming the statement,
  chained to the aggregator exception.  No retries.

Audit relevance
---------------
Structured log events are emitted for every generation, carrying the
category, period, mapping set and per-statement section counts.
"""

from __future__ import annotations

import contextvars
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from typing import Any

from finance_config import get_active_mapping
from finance_config.schema import MappingDefinition, StatementType
from finance_kernel.exceptions import (
    StatementGenerationError,
    UnknownReportCategoryError,
)
from finance_kernel.logging_config import LogContext, get_logger
from finance_kernel.selectors.ledger_selector import LedgerAggregator

from finance_modules.reporting.config import ReportingConfig
from finance_modules.reporting.models import (
    FinancialStatements,
    ReportCategory,
    ReportPeriod,
    SectionResult,
)
from finance_modules.reporting.periods import resolve_report_period
from finance_modules.reporting.statements import (
    build_import_seed,
    process_statement,
    render_to_dict,
)

logger = get_logger("modules.reporting.service")

RawResults = dict[StatementType, tuple[SectionResult, ...]]


class FinancialStatementService:
    """
    Financial statement generation service.

    Contract
    --------
    * ``generate_statements`` returns a ``FinancialStatements`` DTO holding
      only the requested statements.
    * ``generate_report`` returns the same content as JSON-ready primitives.

    Non-goals
    ---------
    * Does NOT cache results; every call recomputes from the ledger.
    * Does NOT retry failed aggregator calls.
    """

    def __init__(
        self,
        ledger: LedgerAggregator,
        mapping: MappingDefinition | None = None,
        config: ReportingConfig | None = None,
    ):
        self._ledger = ledger
        self._config = config or ReportingConfig.with_defaults()
        self._mapping = mapping or get_active_mapping(
            self._config.mapping_set, self._config.mapping_dir
        )

        logger.info(
            "financial_statement_service_initialized",
            extra={
                "mapping_set": self._mapping.name,
                "mapping_version": self._mapping.version,
                "parallel_statements": self._config.parallel_statements,
            },
        )

    @property
    def mapping(self) -> MappingDefinition:
        return self._mapping

    # =========================================================================
    # Public API
    # =========================================================================

    def generate_statements(
        self,
        start_date: date,
        end_date: date,
        report_category: ReportCategory | str,
    ) -> FinancialStatements:
        """
        Generate the statements for one category over a date range.

        Raises:
            InvalidReportPeriodError: end_date before start_date.
            UnknownReportCategoryError: unsupported category.
            StatementGenerationError: a statement could not be produced.
        """
        category = self._parse_category(report_category)
        period = resolve_report_period(_as_date(start_date), _as_date(end_date))

        with LogContext.bind(
            report_category=category.value,
            mapping_set=self._mapping.name,
        ):
            logger.info(
                "statements_generation_started",
                extra={
                    "start_date": period.start_date,
                    "end_date": period.end_date,
                    "months": period.months,
                },
            )

            raw = self._compute(category.statements, period)

            statements = FinancialStatements(
                period=period,
                report_category=category,
                mapping_set=self._mapping.name,
                **{s.value: raw[s] for s in category.statements},
            )

            logger.info(
                "statements_generated",
                extra={"statements": [s.value for s in category.statements]},
            )
        return statements

    def generate_report(
        self,
        start_date: date,
        end_date: date,
        report_category: ReportCategory | str,
    ) -> dict[str, Any]:
        """Generate statements and render them to JSON-ready primitives."""
        return render_to_dict(
            self.generate_statements(start_date, end_date, report_category)
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    @staticmethod
    def _parse_category(report_category: ReportCategory | str) -> ReportCategory:
        if isinstance(report_category, ReportCategory):
            return report_category
        try:
            return ReportCategory(str(report_category).strip().lower())
        except ValueError:
            raise UnknownReportCategoryError(
                str(report_category), [c.value for c in ReportCategory]
            ) from None

    def _required_statements(
        self, requested: Sequence[StatementType]
    ) -> list[StatementType]:
        """Requested statements plus everything they import from."""
        required: list[StatementType] = []
        pending = list(requested)
        while pending:
            statement = pending.pop(0)
            if statement in required:
                continue
            if statement not in self._mapping.statements:
                raise StatementGenerationError(
                    statement.value,
                    f"mapping set '{self._mapping.name}' does not define it",
                )
            required.append(statement)
            for node in self._mapping.imports_for(statement):
                if node.statement_source in self._mapping.statements:
                    pending.append(node.statement_source)
        return required

    def _dependencies(self, statement: StatementType) -> set[StatementType]:
        return {
            node.statement_source
            for node in self._mapping.imports_for(statement)
            if node.statement_source in self._mapping.statements
            and node.statement_source != statement
        }

    def _compute(
        self,
        requested: Sequence[StatementType],
        period: ReportPeriod,
    ) -> RawResults:
        """Evaluate required statements stage by stage."""
        remaining = self._required_statements(requested)
        raw: RawResults = {}

        while remaining:
            stage = [s for s in remaining if self._dependencies(s) <= raw.keys()]
            if not stage:
                # Import cycles are rejected at load time.
                raise StatementGenerationError(
                    remaining[0].value, "cross-statement imports form a cycle"
                )
            seeds = {s: build_import_seed(self._mapping, s, raw) for s in stage}

            if self._config.parallel_statements and len(stage) > 1:
                with ThreadPoolExecutor(
                    max_workers=min(self._config.max_workers, len(stage)),
                    thread_name_prefix="statement",
                ) as executor:
                    futures = {
                        s: executor.submit(
                            contextvars.copy_context().run,
                            self._generate_statement,
                            s,
                            period,
                            seeds[s],
                        )
                        for s in stage
                    }
                    for statement, future in futures.items():
                        raw[statement] = future.result()
            else:
                for statement in stage:
                    raw[statement] = self._generate_statement(
                        statement, period, seeds[statement]
                    )

            remaining = [s for s in remaining if s not in raw]

        return raw

    def _generate_statement(
        self,
        statement: StatementType,
        period: ReportPeriod,
        seed: dict,
    ) -> tuple[SectionResult, ...]:
        """Produce the raw result tree of one statement."""
        with LogContext.bind(statement=statement.value):
            started = time.monotonic()
            try:
                results = process_statement(
                    self._mapping.statement(statement).sections,
                    period,
                    self._ledger,
                    seed=seed,
                )
            except Exception as exc:
                logger.error(
                    "statement_generation_failed",
                    extra={"failed_statement": statement.value},
                    exc_info=True,
                )
                raise StatementGenerationError(statement.value, str(exc)) from exc

            logger.info(
                "statement_generated",
                extra={
                    "section_count": len(results),
                    "seeded_keys": sorted(seed),
                    "duration_ms": round((time.monotonic() - started) * 1000, 3),
                },
            )
        return results


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value
