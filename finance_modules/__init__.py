"""
Finance Modules.

Thin orchestration layers over the Finance Kernel, Engines and Config.

Modules:
- Reporting: income statement, balance sheet and cash-flow statement
  generated from the ledger and a declarative mapping set
"""

from finance_modules import reporting

__all__ = ["reporting"]
