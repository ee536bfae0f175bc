"""
finance_engines.formula -- Safe arithmetic over named statement sections.

Responsibility:
    Parse calculation expressions from the mapping definition
    (``gross_profit_loss - operating_expenses``) into a small AST and
    evaluate them against a data context of monthly section amounts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import finance_kernel exceptions and logging.
    Consumed by the section processor (finance_modules.reporting) and by the
    mapping validator (finance_config) for load-time syntax checks.

Grammar:
    expr    := term (('+' | '-') term)*
    term    := unary (('*' | '/') unary)*
    unary   := ('+' | '-') unary | primary
    primary := NUMBER | IDENT | '(' expr ')'

    IDENT is a maximal run of ``[A-Za-z_][A-Za-z0-9_.]*``.  Tokenizing whole
    identifiers means a short key never matches inside a longer one
    (``kas`` inside ``kas_position``).  Dots allow role-qualified keys such as
    ``other_income_expenses.income``.

Invariants enforced:
    - No dynamic code execution.  Only the grammar above is accepted.
    - Decimal-only arithmetic; operator precedence is the usual one and
      unary minus binds tighter than ``*`` and ``/``.
    - Determinism: identical (expression, context, month index) always
      produce the identical result.  Parsed trees are cached per expression.

Failure modes:
    - ``parse_formula`` raises FormulaSyntaxError, including for expressions
      longer than MAX_FORMULA_TOKENS or nested deeper than MAX_NESTING_DEPTH.
    - ``evaluate_formula`` NEVER raises for bad expressions: syntax errors,
      unresolved keys, division by zero and non-finite results are logged
      as ``formula_evaluation_failed`` and resolve to Decimal("0").

Usage:
    from finance_engines.formula import evaluate_formula

    context = {"net_sales": (Decimal("500"),), "cogs": (Decimal("200"),)}
    evaluate_formula("net_sales - cogs", context, 0)   # Decimal("300")
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, DecimalException
from functools import lru_cache
from typing import Union

from finance_kernel.exceptions import (
    FormulaArithmeticError,
    FormulaError,
    FormulaSyntaxError,
    UnresolvedReferenceError,
)
from finance_kernel.logging_config import get_logger

logger = get_logger("engines.formula")

ZERO = Decimal("0")

# Open parentheses plus pending unary signs.
MAX_NESTING_DEPTH = 64
# Flat operator chains build left-deep trees walked recursively on evaluation.
MAX_FORMULA_TOKENS = 512

_TOKEN_RE = re.compile(
    r"(?P<number>\d+(?:\.\d*)?|\.\d+)"
    r"|(?P<ident>[A-Za-z_][A-Za-z0-9_.]*)"
    r"|(?P<op>[-+*/()])"
)


# ---------------------------------------------------------------------------
# AST
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Number:
    value: Decimal


@dataclass(frozen=True)
class Reference:
    key: str


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: FormulaNode


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: FormulaNode
    right: FormulaNode


FormulaNode = Union[Number, Reference, UnaryOp, BinaryOp]


@dataclass(frozen=True)
class FormulaASTError:
    """A validation error found in a calculation expression."""

    expression: str
    message: str
    position: int = 0


# ---------------------------------------------------------------------------
# Tokenizer / parser
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Token:
    kind: str  # "number", "ident", "op", "end"
    text: str
    position: int


def _tokenize(expression: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    length = len(expression)
    while pos < length:
        if expression[pos].isspace():
            pos += 1
            continue
        match = _TOKEN_RE.match(expression, pos)
        if match is None:
            raise FormulaSyntaxError(
                expression, pos, f"unexpected character {expression[pos]!r}"
            )
        kind = match.lastgroup or "op"
        tokens.append(_Token(kind, match.group(), pos))
        pos = match.end()
    tokens.append(_Token("end", "", length))
    return tokens


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = _tokenize(expression)
        self.index = 0
        self.depth = 0
        if len(self.tokens) > MAX_FORMULA_TOKENS:
            raise FormulaSyntaxError(expression, 0, "expression too long")

    @property
    def current(self) -> _Token:
        return self.tokens[self.index]

    def _advance(self) -> _Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _error(self, reason: str) -> FormulaSyntaxError:
        return FormulaSyntaxError(self.expression, self.current.position, reason)

    def _nest(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise self._error("expression nested too deeply")

    def parse(self) -> FormulaNode:
        if self.current.kind == "end":
            raise self._error("empty expression")
        node = self._expr()
        if self.current.kind != "end":
            raise self._error(f"unexpected token {self.current.text!r}")
        return node

    def _expr(self) -> FormulaNode:
        node = self._term()
        while self.current.kind == "op" and self.current.text in "+-":
            op = self._advance().text
            node = BinaryOp(op, node, self._term())
        return node

    def _term(self) -> FormulaNode:
        node = self._unary()
        while self.current.kind == "op" and self.current.text in "*/":
            op = self._advance().text
            node = BinaryOp(op, node, self._unary())
        return node

    def _unary(self) -> FormulaNode:
        if self.current.kind == "op" and self.current.text in "+-":
            op = self._advance().text
            self._nest()
            node = UnaryOp(op, self._unary())
            self.depth -= 1
            return node
        return self._primary()

    def _primary(self) -> FormulaNode:
        token = self.current
        if token.kind == "number":
            self._advance()
            return Number(Decimal(token.text))
        if token.kind == "ident":
            self._advance()
            return Reference(token.text)
        if token.kind == "op" and token.text == "(":
            self._advance()
            self._nest()
            node = self._expr()
            self.depth -= 1
            if not (self.current.kind == "op" and self.current.text == ")"):
                raise self._error("missing closing parenthesis")
            self._advance()
            return node
        if token.kind == "end":
            raise self._error("unexpected end of expression")
        raise self._error(f"unexpected token {token.text!r}")


@lru_cache(maxsize=1024)
def parse_formula(expression: str) -> FormulaNode:
    """Parse an expression into an AST.

    Raises:
        FormulaSyntaxError: If the expression does not match the grammar.
    """
    return _Parser(expression).parse()


def _collect_references(node: FormulaNode, out: list[str]) -> None:
    if isinstance(node, Reference):
        if node.key not in out:
            out.append(node.key)
    elif isinstance(node, UnaryOp):
        _collect_references(node.operand, out)
    elif isinstance(node, BinaryOp):
        _collect_references(node.left, out)
        _collect_references(node.right, out)


def formula_references(expression: str) -> tuple[str, ...]:
    """Return the keys referenced by an expression, in first-use order.

    Raises:
        FormulaSyntaxError: If the expression cannot be parsed.
    """
    keys: list[str] = []
    _collect_references(parse_formula(expression), keys)
    return tuple(keys)


def validate_formula_expression(expression: str) -> list[FormulaASTError]:
    """Validate an expression against the grammar.

    Returns a list of errors. Empty list means the expression is valid.
    """
    try:
        parse_formula(expression)
    except FormulaSyntaxError as e:
        return [
            FormulaASTError(
                expression=expression,
                message=e.reason,
                position=e.position,
            )
        ]
    return []


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def _evaluate_node(
    node: FormulaNode,
    resolve: Callable[[str], Decimal],
    expression: str,
) -> Decimal:
    if isinstance(node, Number):
        return node.value
    if isinstance(node, Reference):
        return resolve(node.key)
    if isinstance(node, UnaryOp):
        value = _evaluate_node(node.operand, resolve, expression)
        return -value if node.op == "-" else value

    left = _evaluate_node(node.left, resolve, expression)
    right = _evaluate_node(node.right, resolve, expression)
    if node.op == "+":
        return left + right
    if node.op == "-":
        return left - right
    if node.op == "*":
        return left * right
    if right == ZERO:
        raise FormulaArithmeticError(expression, "division by zero")
    return left / right


def evaluate_formula(
    expression: str,
    context: Mapping[str, Sequence[Decimal]],
    month_index: int,
) -> Decimal:
    """Evaluate an expression for one month of the data context.

    A key present in the context whose amounts are shorter than
    ``month_index`` contributes zero.  Any failure resolves the whole
    expression to zero and is logged at WARNING.
    """

    def resolve(key: str) -> Decimal:
        if key not in context:
            raise UnresolvedReferenceError(expression, key)
        amounts = context[key]
        if month_index < len(amounts):
            return Decimal(amounts[month_index])
        return ZERO

    try:
        result = _evaluate_node(parse_formula(expression), resolve, expression)
        if not result.is_finite():
            raise FormulaArithmeticError(expression, "non-finite result")
    except DecimalException as e:
        return _evaluation_failed(
            FormulaArithmeticError(expression, type(e).__name__), month_index
        )
    except FormulaError as e:
        return _evaluation_failed(e, month_index)
    return result


def _evaluation_failed(error: FormulaError, month_index: int) -> Decimal:
    logger.warning(
        "formula_evaluation_failed",
        extra={
            "expression": getattr(error, "expression", ""),
            "month_index": month_index,
            "error_code": error.code,
            "reason": str(error),
        },
    )
    return ZERO


def evaluate_formula_series(
    expression: str,
    context: Mapping[str, Sequence[Decimal]],
    month_count: int,
) -> tuple[Decimal, ...]:
    """Evaluate an expression once per requested month."""
    return tuple(
        evaluate_formula(expression, context, index) for index in range(month_count)
    )
