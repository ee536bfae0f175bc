"""
Pure statement computation functions.

These functions walk a mapping definition and turn it into section
results: data leaves are read through a ledger aggregator, calculated
nodes through the formula engine.  Apart from the aggregator calls the
module has ZERO I/O and ZERO side effects.

Evaluation rules:
- Depth-first, children before their parent, siblings in declaration order.
- Each node sees an immutable DataContext: everything bound above it plus
  its earlier siblings.  A parent's calculation additionally sees all of
  its direct children.  A child with a role is also bound as
  "<parent_key>.<role>".
- A calculation that is exactly a key already present in the context the
  node received copies those amounts (alias / cross-statement import)
  instead of being evaluated.
- A data leaf calls the aggregator once for the whole period and buckets
  the balances by month; a leaf without selectors is zero and never
  queries the ledger.

All monetary values are Decimal.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping, Sequence
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from finance_config.schema import (
    CalculatedNode,
    DataLeafNode,
    MappingDefinition,
    SectionNode,
    SectionSign,
    StatementType,
)
from finance_config.validator import role_alias
from finance_engines.formula import evaluate_formula_series
from finance_kernel.logging_config import get_logger
from finance_kernel.selectors.ledger_selector import LedgerAggregator
from finance_modules.reporting.models import (
    FinancialStatements,
    ReportPeriod,
    SectionResult,
)

logger = get_logger("modules.reporting.statements")

_ZERO = Decimal("0")


# =========================================================================
# Data context
# =========================================================================


class DataContext(Mapping[str, tuple[Decimal, ...]]):
    """
    Immutable mapping from section key to its monthly amounts.

    ``bind`` returns a new context; the receiver is never changed, so a
    context handed to a child cannot see siblings resolved after it.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, Sequence[Decimal]] | None = None):
        self._entries: dict[str, tuple[Decimal, ...]] = {
            key: tuple(amounts) for key, amounts in (entries or {}).items()
        }

    def __getitem__(self, key: str) -> tuple[Decimal, ...]:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"DataContext({sorted(self._entries)})"

    def bind(self, key: str, amounts: Sequence[Decimal]) -> DataContext:
        entries = dict(self._entries)
        entries[key] = tuple(amounts)
        return DataContext(entries)


# =========================================================================
# Section processing
# =========================================================================


def fetch_leaf_amounts(
    node: DataLeafNode,
    period: ReportPeriod,
    ledger: LedgerAggregator,
) -> tuple[Decimal, ...]:
    """Read a data leaf's monthly amounts from the ledger."""
    totals = [_ZERO] * len(period.months)
    if node.selectors.is_empty:
        return tuple(totals)

    balances = ledger.monthly_balances(
        period.start_date,
        period.end_date,
        node.selectors.category_types,
        node.selectors.account_numbers,
    )

    index = {month: i for i, month in enumerate(period.months)}
    for balance in balances:
        i = index.get(balance.month)
        if i is None:
            continue
        if node.sign is SectionSign.EXPENSE_POSITIVE:
            totals[i] -= balance.balance
        else:
            totals[i] += balance.balance
    return tuple(totals)


def _resolve_calculation(
    node: CalculatedNode,
    incoming: DataContext,
    local: DataContext,
    month_count: int,
) -> tuple[Decimal, ...]:
    trimmed = node.calculation.strip()
    imported = incoming.get(trimmed)
    if imported:
        return tuple(imported)
    return evaluate_formula_series(node.calculation, local, month_count)


def process_section(
    node: SectionNode,
    context: DataContext,
    period: ReportPeriod,
    ledger: LedgerAggregator,
) -> SectionResult:
    """Resolve one node (and its subtree) into a SectionResult."""
    local = context
    children: list[SectionResult] = []
    for child in node.children:
        child_result = process_section(child, local, period, ledger)
        children.append(child_result)
        local = local.bind(child.key, child_result.amounts)
        if child.role is not None:
            local = local.bind(role_alias(node.key, child.role), child_result.amounts)

    if isinstance(node, CalculatedNode):
        return SectionResult(
            key=node.key,
            label=node.label,
            amounts=_resolve_calculation(node, context, local, len(period.months)),
            children=tuple(children),
            calculation=node.calculation,
            statement_source=node.statement_source,
        )

    return SectionResult(
        key=node.key,
        label=node.label,
        amounts=fetch_leaf_amounts(node, period, ledger),
        children=tuple(children),
    )


def process_statement(
    sections: Sequence[SectionNode],
    period: ReportPeriod,
    ledger: LedgerAggregator,
    seed: Mapping[str, Sequence[Decimal]] | None = None,
) -> tuple[SectionResult, ...]:
    """Resolve the top-level sections of one statement, in order."""
    context = DataContext(seed)
    results: list[SectionResult] = []
    for node in sections:
        result = process_section(node, context, period, ledger)
        results.append(result)
        context = context.bind(node.key, result.amounts)
    return tuple(results)


# =========================================================================
# Cross-statement injection
# =========================================================================


def find_section(results: Sequence[SectionResult], key: str) -> SectionResult | None:
    """Depth-first search of a raw result tree by key."""
    for result in results:
        if result.key == key:
            return result
        found = find_section(result.children, key)
        if found is not None:
            return found
    return None


def build_import_seed(
    mapping: MappingDefinition,
    statement: StatementType,
    raw_results: Mapping[StatementType, Sequence[SectionResult]],
) -> dict[str, tuple[Decimal, ...]]:
    """
    Initial context for *statement* from other statements' raw results.

    Every calculated node with a ``statement_source`` imports its
    calculation key from that statement.  A missing source section is
    logged and left out, so the importing formula resolves to zero.
    """
    seed: dict[str, tuple[Decimal, ...]] = {}
    for node in mapping.imports_for(statement):
        key = node.calculation.strip()
        source = node.statement_source
        found = find_section(raw_results.get(source, ()), key)
        if found is None:
            logger.warning(
                "cross_statement_import_missing",
                extra={
                    "target_statement": statement.value,
                    "source_statement": source.value,
                    "section_key": key,
                },
            )
            continue
        seed[key] = found.amounts
        logger.debug(
            "cross_statement_import_seeded",
            extra={
                "target_statement": statement.value,
                "source_statement": source.value,
                "section_key": key,
                "amounts": found.amounts,
            },
        )
    return seed


# =========================================================================
# Assembly and rendering
# =========================================================================


def assemble_section(result: SectionResult | Mapping[str, Any]) -> dict[str, Any]:
    """
    External shape of a section: label, amount, and subsections when any.

    Accepts raw results or already-assembled dicts, so assembling twice
    gives the same output.  Amounts are passed through untouched.
    """
    if isinstance(result, SectionResult):
        label = result.label
        amount = list(result.amounts)
        children: Sequence[Any] = result.children
    else:
        label = result["label"]
        amount = list(result["amount"])
        children = result.get("subsections") or ()

    assembled: dict[str, Any] = {"label": label, "amount": amount}
    if children:
        assembled["subsections"] = [assemble_section(child) for child in children]
    return assembled


def assemble_statement(
    results: Sequence[SectionResult | Mapping[str, Any]],
) -> list[dict[str, Any]]:
    """Assemble every top-level section of a statement."""
    return [assemble_section(result) for result in results]


def _decimal_to_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def render_to_dict(obj: object) -> Any:
    """
    Convert report objects to plain JSON-ready primitives.

    Handles:
    - FinancialStatements -> {"period": ..., "<statement>": [...]} with
      only the requested statements present
    - SectionResult -> assembled section
    - Decimal -> int when integral, else float
    - date -> ISO format string
    - Enum -> .value
    - Nested dataclasses -> nested dicts
    - Tuples -> lists
    """
    if obj is None:
        return None
    if isinstance(obj, FinancialStatements):
        rendered: dict[str, Any] = {"period": render_to_dict(obj.period)}
        for statement in StatementType:
            results = obj.statement(statement)
            if results is not None:
                rendered[statement.value] = render_to_dict(assemble_statement(results))
        return rendered
    if isinstance(obj, SectionResult):
        return render_to_dict(assemble_section(obj))
    if isinstance(obj, Decimal):
        return _decimal_to_number(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, Mapping):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
