"""
Report period resolution.

A request covers a date range but statements are reported in month
columns.  A range inside one calendar month yields that month; any longer
range yields exactly its first and last month, so a report compares two
points and never lists the months in between.
"""

from __future__ import annotations

from datetime import date

from finance_kernel.exceptions import InvalidReportPeriodError
from finance_kernel.selectors.ledger_selector import month_key
from finance_modules.reporting.models import ReportPeriod


def resolve_report_months(start_date: date, end_date: date) -> tuple[str, ...]:
    """Return the "YYYY-MM" columns for a date range.

    Raises:
        InvalidReportPeriodError: If end_date is before start_date.
    """
    if end_date < start_date:
        raise InvalidReportPeriodError(start_date, end_date)
    first = month_key(start_date)
    last = month_key(end_date)
    if first == last:
        return (first,)
    return (first, last)


def resolve_report_period(start_date: date, end_date: date) -> ReportPeriod:
    """Build the ReportPeriod for a request."""
    return ReportPeriod(
        start_date=start_date,
        end_date=end_date,
        months=resolve_report_months(start_date, end_date),
    )
