"""
Pytest fixtures for the statement engine test suite.

Provides:
- Structured logging configured once per session, with capture helper
- SQLite ledger sessions (one fresh database file per test)
- Ledger data factories (category types, accounts, transactions)
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from finance_kernel.db.engine import (
    create_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from finance_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from finance_kernel.models.ledger import (
    Account,
    CategoryType,
    Transaction,
    TransactionType,
)
from finance_kernel.selectors.ledger_selector import (
    LedgerSelector,
    SessionLedgerAggregator,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture finance_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.generate_statements(...)
            logs = captured_logs()
            assert any(r["message"] == "statements_generated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("finance_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: end-to-end test through the database"
    )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="function")
def engine(tmp_path):
    """Fresh file-backed SQLite engine with all ledger tables.

    A file database gives each statement worker its own connection.
    """
    eng = init_engine_from_url(f"sqlite:///{tmp_path / 'ledger.db'}")
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture(scope="function")
def session(engine) -> Generator[Session, None, None]:
    """Session on the test engine; closed after the test."""
    sess = get_session()
    yield sess
    sess.close()


@pytest.fixture
def session_factory(engine):
    return get_session_factory()


@pytest.fixture
def ledger_selector(session: Session) -> LedgerSelector:
    return LedgerSelector(session)


@pytest.fixture
def session_aggregator(session_factory) -> SessionLedgerAggregator:
    return SessionLedgerAggregator(session_factory)


# =============================================================================
# Ledger data factories
# =============================================================================


@pytest.fixture
def create_category_type(session: Session):
    """Factory for CategoryType rows."""

    def _create(code: str, name: str | None = None) -> CategoryType:
        category = CategoryType(code=code, name=name or code.title())
        session.add(category)
        session.flush()
        return category

    return _create


@pytest.fixture
def create_account(session: Session):
    """Factory for Account rows."""

    def _create(number: str, name: str, category_type: CategoryType) -> Account:
        account = Account(number=number, name=name, category_type=category_type)
        session.add(account)
        session.flush()
        return account

    return _create


@pytest.fixture
def post_transaction(session: Session):
    """Factory for Transaction rows; amounts are strings or Decimals."""

    def _post(
        account: Account,
        transaction_type: TransactionType,
        amount: Decimal | str,
        transaction_date: date,
        description: str = "",
    ) -> Transaction:
        tx = Transaction(
            account=account,
            transaction_type=transaction_type.value,
            amount=Decimal(amount),
            transaction_date=transaction_date,
            description=description,
        )
        session.add(tx)
        session.flush()
        return tx

    return _post
