"""
Module: finance_engines
Responsibility:
    Package entrypoint for the pure calculation engines used by statement
    generation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import finance_kernel exceptions and logging.
    MUST NOT import finance_config or finance_modules.

Invariants enforced:
    - Decimal-only arithmetic; floats never enter a calculation.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from finance_engines.formula import evaluate_formula, parse_formula
"""

from finance_engines.formula import (
    BinaryOp,
    FormulaASTError,
    FormulaNode,
    Number,
    Reference,
    UnaryOp,
    evaluate_formula,
    evaluate_formula_series,
    formula_references,
    parse_formula,
    validate_formula_expression,
)

__all__ = [
    "BinaryOp",
    "FormulaASTError",
    "FormulaNode",
    "Number",
    "Reference",
    "UnaryOp",
    "evaluate_formula",
    "evaluate_formula_series",
    "formula_references",
    "parse_formula",
    "validate_formula_expression",
]
