"""
Finance Kernel - ledger read side for statement generation.

Provides:
- Structured JSON logging with request-scoped context
- Typed exceptions with machine-readable codes
- SQLAlchemy engine/session management and ledger ORM models
- Monthly balance aggregation over ledger transactions
"""

__version__ = "0.1.0"
