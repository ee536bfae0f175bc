"""
Module: finance_kernel.selectors.ledger_selector
Responsibility: Read-only monthly balance aggregation over ledger
    transactions.  This is the ledger aggregator consumed by statement
    generation: given a date range and category selectors it returns one
    income/expense summary per (category type, month).
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.  MUST NOT import from outer layers.

Invariants enforced:
    - No stored balances.  Every figure is computed at query time from
      Transaction rows.
    - A transaction matches when its category type code is selected OR its
      account number is selected; it is counted once either way.
    - Date range is inclusive on both ends.
    - Months without matching transactions are absent from the result.
    - All amounts are Decimal (never float).

Failure modes:
    - SQLAlchemyError propagates unchanged; callers decide how a failed
      aggregation surfaces.  No retries happen here.

Audit relevance:
    Statement figures derive exclusively from this read path.  The same
    ledger state and selectors always produce the same balances.
"""

from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol

from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Session

from finance_kernel.logging_config import get_logger
from finance_kernel.models.ledger import (
    Account,
    CategoryType,
    Transaction,
    TransactionType,
)
from finance_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.ledger")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class MonthlyBalance:
    """Income and expense totals for one category type in one month."""

    category_type_code: str
    month: str  # "YYYY-MM"
    income_sum: Decimal
    expense_sum: Decimal

    @property
    def balance(self) -> Decimal:
        """Net balance (income - expense)."""
        return self.income_sum - self.expense_sum


class LedgerAggregator(Protocol):
    """Contract for anything that can summarize the ledger by month."""

    def monthly_balances(
        self,
        start_date: date,
        end_date: date,
        category_types: Sequence[str],
        account_numbers: Sequence[str],
    ) -> list[MonthlyBalance]: ...


def month_key(value: date) -> str:
    """Return the "YYYY-MM" bucket for a date."""
    return f"{value.year:04d}-{value.month:02d}"


def _as_decimal(value) -> Decimal:
    if value is None:
        return _ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class LedgerSelector(BaseSelector[Transaction]):
    """
    Selector for monthly ledger balances.

    Contract:
        monthly_balances() groups matching transactions by category type
        and transaction date in SQL, then rolls dates up to calendar months
        in Python.  Month extraction differs between SQL dialects; the
        Python roll-up keeps the query portable.

    Non-goals:
        - No currency conversion.
        - No short-circuit for empty selectors; that is the caller's job.
          With both selector lists empty the query matches nothing.
    """

    def monthly_balances(
        self,
        start_date: date,
        end_date: date,
        category_types: Sequence[str],
        account_numbers: Sequence[str],
    ) -> list[MonthlyBalance]:
        """
        Summarize income and expense per (category type, month).

        Args:
            start_date: First day included.
            end_date: Last day included.
            category_types: Category type codes to include.
            account_numbers: Specific account numbers to include.

        Returns:
            MonthlyBalance DTOs ordered by category type code then month.
        """
        clauses = []
        if category_types:
            clauses.append(CategoryType.code.in_(list(category_types)))
        if account_numbers:
            clauses.append(Account.number.in_(list(account_numbers)))
        if not clauses:
            return []

        income_sum = func.sum(
            case(
                (Transaction.transaction_type == TransactionType.INCOME.value, Transaction.amount),
                else_=_ZERO,
            )
        ).label("income_sum")

        expense_sum = func.sum(
            case(
                (Transaction.transaction_type == TransactionType.EXPENSE.value, Transaction.amount),
                else_=_ZERO,
            )
        ).label("expense_sum")

        query = (
            select(
                CategoryType.code,
                Transaction.transaction_date,
                income_sum,
                expense_sum,
            )
            .join(Account, Transaction.account_id == Account.id)
            .join(CategoryType, Account.category_type_id == CategoryType.id)
            .where(Transaction.transaction_date >= start_date)
            .where(Transaction.transaction_date <= end_date)
            .where(or_(*clauses))
            .group_by(CategoryType.code, Transaction.transaction_date)
        )

        rows = self.session.execute(query).all()

        buckets: dict[tuple[str, str], list[Decimal]] = defaultdict(
            lambda: [_ZERO, _ZERO]
        )
        for code, tx_date, income, expense in rows:
            bucket = buckets[(code, month_key(tx_date))]
            bucket[0] += _as_decimal(income)
            bucket[1] += _as_decimal(expense)

        balances = [
            MonthlyBalance(
                category_type_code=code,
                month=month,
                income_sum=sums[0],
                expense_sum=sums[1],
            )
            for (code, month), sums in sorted(buckets.items())
        ]

        logger.debug(
            "ledger_monthly_balances_queried",
            extra={
                "start_date": start_date,
                "end_date": end_date,
                "category_types": list(category_types),
                "account_numbers": list(account_numbers),
                "row_count": len(balances),
            },
        )
        return balances


class SessionLedgerAggregator:
    """
    LedgerAggregator that opens a short-lived session per call.

    Sessions are not thread-safe; statement workers running in parallel
    each get their own session from the factory.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def monthly_balances(
        self,
        start_date: date,
        end_date: date,
        category_types: Sequence[str],
        account_numbers: Sequence[str],
    ) -> list[MonthlyBalance]:
        with self._session_factory() as session:
            return LedgerSelector(session).monthly_balances(
                start_date, end_date, category_types, account_numbers
            )
