# ==== BUSINESS-DAY CALCULATOR ==== #

"""
Working-day arithmetic for monthly deadlines.

A working day is Monday through Friday. No holiday calendar is applied.
All walks stay inside the requested month and are capped at 31 steps, so
a count larger than the month's working days fails with RangeError instead
of spilling into the neighbouring month.
"""

import calendar
import datetime as dt
from typing import List

from invoice_compliance.business.errors import RangeError


MAX_DAY_WALK = 31


def is_working_day(day: dt.date) -> bool:
    """Return True when `day` falls on Monday-Friday."""
    return day.isoweekday() <= 5


def _validate_count(n: int) -> None:
    if isinstance(n, bool) or not isinstance(n, int):
        raise RangeError(f"Working-day count must be an integer, got {n!r}")
    if n <= 0:
        raise RangeError(f"Working-day count must be >= 1, got {n}")


def nth_working_day_from_start(year: int, month: int, n: int) -> dt.date:
    """
    Get the n-th working day counting forward from the 1st of the month.

    Args:
        year (int): Calendar year
        month (int): Month number, 1-12
        n (int): Working-day ordinal, n=1 is the first working day

    Returns:
        dt.date: Date of the n-th working day

    Raises:
        RangeError: If n <= 0 or the month has fewer than n working days
    """
    _validate_count(n)

    current = dt.date(year, month, 1)
    working_days = 0
    for _ in range(MAX_DAY_WALK):
        if current.month != month:
            break
        if is_working_day(current):
            working_days += 1
            if working_days == n:
                return current
        current += dt.timedelta(days=1)

    raise RangeError(
        f"{year:04d}-{month:02d} has only {working_days} working days, "
        f"cannot take working day {n} from start"
    )


def nth_working_day_from_end(year: int, month: int, n: int) -> dt.date:
    """
    Get the n-th working day counting backward from the last day of the month.

    Args:
        year (int): Calendar year
        month (int): Month number, 1-12
        n (int): Working-day ordinal, n=1 is the last working day

    Returns:
        dt.date: Date of the n-th working day from the end

    Raises:
        RangeError: If n <= 0 or the month has fewer than n working days
    """
    _validate_count(n)

    current = dt.date(year, month, calendar.monthrange(year, month)[1])
    working_days = 0
    for _ in range(MAX_DAY_WALK):
        if current.month != month:
            break
        if is_working_day(current):
            working_days += 1
            if working_days == n:
                return current
        current -= dt.timedelta(days=1)

    raise RangeError(
        f"{year:04d}-{month:02d} has only {working_days} working days, "
        f"cannot take working day {n} from end"
    )


def working_days_in_month(year: int, month: int) -> List[dt.date]:
    """List every working day of the month in calendar order."""
    days_in_month = calendar.monthrange(year, month)[1]
    return [
        day
        for day in (dt.date(year, month, d) for d in range(1, days_in_month + 1))
        if is_working_day(day)
    ]
