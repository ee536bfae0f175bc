#!/usr/bin/env python3
"""
Generate financial statements from a ledger database.

Loads the active mapping set, aggregates the ledger through SQLAlchemy and
prints the statements as JSON.  With --seed-demo the target database is
first populated with a small chart of accounts and one month of trading.

Usage:
    python3 scripts/generate_statements.py --seed-demo \\
        --start 2025-01-01 --end 2025-01-31 --category all
    python3 scripts/generate_statements.py --database-url postgresql://... \\
        --start 2025-01-01 --end 2025-03-31 --category cash_flow
"""

import argparse
import json
import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy.orm import Session  # noqa: E402

from finance_kernel.models.ledger import (  # noqa: E402
    Account,
    CategoryType,
    Transaction,
    TransactionType,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DB_URL = "sqlite:///:memory:"

DEMO_CATEGORY_TYPES = (
    ("ASSET_CURRENT", "Current Assets"),
    ("ASSET_FIXED", "Fixed Assets"),
    ("LIABILITY_SHORT", "Short-term Liabilities"),
    ("LIABILITY_LONG", "Long-term Liabilities"),
    ("EQUITY", "Equity"),
    ("REVENUE", "Revenue"),
    ("COGS", "Cost of Goods Sold"),
    ("GA_EXPENSE", "General & Administrative"),
    ("SALES_EXPENSE", "Selling & Operating"),
    ("NON_OP_INCOME", "Non-operating Income"),
    ("NON_OP_EXPENSE", "Non-operating Expense"),
)

DEMO_ACCOUNTS = (
    ("1101", "Cash", "ASSET_CURRENT"),
    ("1102", "Bank", "ASSET_CURRENT"),
    ("1104", "Trade Receivables", "ASSET_CURRENT"),
    ("1106", "Raw Materials Inventory", "ASSET_CURRENT"),
    ("1401", "Kitchen Equipment", "ASSET_FIXED"),
    ("1402", "Vehicles", "ASSET_FIXED"),
    ("1403", "Accumulated Depreciation", "ASSET_FIXED"),
    ("2101", "Trade Payables", "LIABILITY_SHORT"),
    ("2201", "Salaries Payable", "LIABILITY_SHORT"),
    ("2301", "Bank Loan", "LIABILITY_LONG"),
    ("3101", "Owner's Capital", "EQUITY"),
    ("3201", "Retained Earnings", "EQUITY"),
    ("4101", "Product Sales", "REVENUE"),
    ("4102", "Other Income", "NON_OP_INCOME"),
    ("5101", "COGS - Raw Materials", "COGS"),
    ("5102", "COGS - Direct Labour", "COGS"),
    ("6101", "Admin Salaries", "GA_EXPENSE"),
    ("6102", "Building Rent", "GA_EXPENSE"),
    ("6202", "Utilities", "SALES_EXPENSE"),
    ("6203", "Advertising & Promotion", "SALES_EXPENSE"),
    ("6204", "Transport & Delivery", "SALES_EXPENSE"),
    ("7101", "Bank Interest", "NON_OP_EXPENSE"),
    ("7201", "Other Losses", "NON_OP_EXPENSE"),
)

# (account number, type, amount, day of month, description)
DEMO_TRANSACTIONS = (
    ("3101", TransactionType.INCOME, "150000000", 1, "Owner capital injection"),
    ("1102", TransactionType.INCOME, "150000000", 1, "Capital deposited to bank"),
    ("1401", TransactionType.EXPENSE, "25000000", 3, "Kitchen equipment purchase"),
    ("4101", TransactionType.INCOME, "45000000", 10, "Product sales"),
    ("1101", TransactionType.INCOME, "45000000", 10, "Cash from sales"),
    ("5101", TransactionType.EXPENSE, "12000000", 12, "Raw materials used"),
    ("5102", TransactionType.EXPENSE, "6000000", 15, "Direct labour"),
    ("6101", TransactionType.EXPENSE, "5000000", 25, "Admin salaries"),
    ("6102", TransactionType.EXPENSE, "3000000", 1, "Monthly rent"),
    ("6202", TransactionType.EXPENSE, "1200000", 20, "Electricity and water"),
    ("6203", TransactionType.EXPENSE, "800000", 18, "Social media ads"),
    ("4102", TransactionType.INCOME, "500000", 28, "Bank interest received"),
    ("7101", TransactionType.EXPENSE, "250000", 28, "Loan interest"),
    ("2301", TransactionType.EXPENSE, "2000000", 28, "Loan repayment"),
)


def seed_demo_ledger(session: Session, year: int = 2025, month: int = 1) -> int:
    """Insert the demo chart of accounts and one month of transactions.

    Returns the number of transactions inserted.  The caller commits.
    """
    types = {
        code: CategoryType(code=code, name=name) for code, name in DEMO_CATEGORY_TYPES
    }
    session.add_all(types.values())

    accounts = {
        number: Account(number=number, name=name, category_type=types[type_code])
        for number, name, type_code in DEMO_ACCOUNTS
    }
    session.add_all(accounts.values())

    for number, tx_type, amount, day, description in DEMO_TRANSACTIONS:
        session.add(
            Transaction(
                account=accounts[number],
                transaction_type=tx_type.value,
                amount=Decimal(amount),
                transaction_date=date(year, month, day),
                description=description,
            )
        )
    session.flush()
    return len(DEMO_TRANSACTIONS)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Generate financial statements as JSON.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--database-url", type=str, default=DB_URL,
        help=f"SQLAlchemy database URL (default: {DB_URL})",
    )
    parser.add_argument(
        "--start", type=date.fromisoformat, required=True,
        help="First day of the period (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--end", type=date.fromisoformat, required=True,
        help="Last day of the period (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--category", type=str, default="all",
        choices=["income_statement", "balance_sheet", "cash_flow", "all"],
        help="Statements to generate",
    )
    parser.add_argument(
        "--mapping-set", type=str, default="default",
        help="Mapping set name",
    )
    parser.add_argument(
        "--mapping-dir", type=Path, default=None,
        help="Directory holding mapping sets (default: finance_config/sets)",
    )
    parser.add_argument(
        "--seed-demo", action="store_true",
        help="Create tables and insert demo ledger data first",
    )
    parser.add_argument(
        "--sequential", action="store_true",
        help="Generate statements one at a time instead of in parallel",
    )
    parser.add_argument(
        "--log-level", type=str, default="WARNING",
        help="Log level for structured logs on stderr",
    )
    args = parser.parse_args(argv)

    from finance_kernel.db.engine import (
        create_tables,
        get_session_factory,
        init_engine_from_url,
        is_in_memory_sqlite,
        reset_engine,
        session_scope,
    )
    from finance_kernel.exceptions import FinanceKernelError
    from finance_kernel.logging_config import configure_logging
    from finance_kernel.selectors.ledger_selector import SessionLedgerAggregator
    from finance_modules.reporting import FinancialStatementService, ReportingConfig

    configure_logging(level=getattr(logging, args.log_level.upper(), logging.WARNING))

    init_engine_from_url(args.database_url)
    try:
        if args.seed_demo:
            create_tables()
            with session_scope() as session:
                seed_demo_ledger(session, args.start.year, args.start.month)

        # An in-memory database is one shared connection; workers cannot share it.
        in_memory = is_in_memory_sqlite(args.database_url)
        config = ReportingConfig(
            mapping_set=args.mapping_set,
            mapping_dir=args.mapping_dir,
            parallel_statements=not (args.sequential or in_memory),
        )
        service = FinancialStatementService(
            SessionLedgerAggregator(get_session_factory()),
            config=config,
        )
        report = service.generate_report(args.start, args.end, args.category)
    except FinanceKernelError as exc:
        print(json.dumps({"error": exc.code, "message": str(exc)}), file=sys.stderr)
        return 1
    finally:
        reset_engine()

    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
