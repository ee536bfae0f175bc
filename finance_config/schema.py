"""
Mapping definition schema.

Defines the human-authored, reviewable description of report structure.
YAML files are parsed into these types by the loader and checked by the
validator before any report is produced.

A section node is a tagged variant:
  DataLeafNode   = value comes from the ledger via category selectors
  CalculatedNode = value comes from a calculation over earlier sections,
                   optionally imported from another statement

The schema holds no behaviour; the reporting module walks it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Literal, Union

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class StatementType(str, Enum):
    """The statements a mapping set can describe."""

    INCOME_STATEMENT = "income_statement"
    BALANCE_SHEET = "balance_sheet"
    CASH_FLOW = "cash_flow"


class SectionSign(str, Enum):
    """How a data leaf turns monthly income and expense sums into an amount."""

    INCOME_POSITIVE = "income_positive"  # income - expense
    EXPENSE_POSITIVE = "expense_positive"  # expense - income


class SectionRole(str, Enum):
    """Which half of an income/expense sibling pair a node represents."""

    INCOME = "income"
    EXPENSE = "expense"


# ---------------------------------------------------------------------------
# Section nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategorySelectors:
    """Ledger filters feeding a data leaf."""

    category_types: tuple[str, ...] = ()
    account_numbers: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.category_types and not self.account_numbers


@dataclass(frozen=True)
class DataLeafNode:
    """A section whose own value is read from the ledger.

    Children, when present, are still evaluated and reported; they do not
    contribute to this node's value.
    """

    key: str
    label: str
    selectors: CategorySelectors = field(default_factory=CategorySelectors)
    sign: SectionSign = SectionSign.INCOME_POSITIVE
    children: tuple[SectionNode, ...] = ()
    role: SectionRole | None = None
    kind: Literal["data"] = "data"


@dataclass(frozen=True)
class CalculatedNode:
    """A section whose own value is a calculation over other sections."""

    key: str
    label: str
    calculation: str
    children: tuple[SectionNode, ...] = ()
    role: SectionRole | None = None
    statement_source: StatementType | None = None  # import from this statement
    kind: Literal["calculated"] = "calculated"


SectionNode = Union[DataLeafNode, CalculatedNode]


def iter_nodes(nodes: tuple[SectionNode, ...]) -> Iterator[SectionNode]:
    """Yield every node depth-first, children before their parent."""
    for node in nodes:
        yield from iter_nodes(node.children)
        yield node


# ---------------------------------------------------------------------------
# Statements and sets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatementMapping:
    """Ordered top-level sections of one statement."""

    statement: StatementType
    sections: tuple[SectionNode, ...]

    def all_keys(self) -> set[str]:
        return {node.key for node in iter_nodes(self.sections)}


@dataclass(frozen=True)
class MappingDefinition:
    """A complete, versioned mapping set: one mapping per statement."""

    name: str
    version: int
    statements: dict[StatementType, StatementMapping]
    description: str = ""
    checksum: str = ""

    def statement(self, statement: StatementType) -> StatementMapping:
        return self.statements[statement]

    def imports_for(self, statement: StatementType) -> tuple[CalculatedNode, ...]:
        """Calculated nodes in *statement* that import from another statement."""
        if statement not in self.statements:
            return ()
        return tuple(
            node
            for node in iter_nodes(self.statements[statement].sections)
            if isinstance(node, CalculatedNode) and node.statement_source is not None
        )
