# ==== REFERENCE MONTH ==== #

"""
Reference month value type.

A reference month identifies the invoice period being tracked. Its canonical
form is `YYYY-MM`; ISO dates and datetimes are accepted on input and reduced
to their year and month.
"""

import calendar
import datetime as dt
import re
from dataclasses import dataclass
from typing import Union


_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})(?:-\d{2}(?:[T ].*)?)?$")


@dataclass(frozen=True, order=True)
class ReferenceMonth:
    """(year, month) pair identifying an invoice period."""

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be 1-12, got {self.month}")
        if not dt.MINYEAR <= self.year <= dt.MAXYEAR:
            raise ValueError(f"Year out of range: {self.year}")

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    # ==== CONSTRUCTORS ==== #

    @classmethod
    def parse(cls, value: Union[str, dt.date, "ReferenceMonth"]) -> "ReferenceMonth":
        """
        Build a reference month from a string, date or existing instance.

        Args:
            value: `YYYY-MM`, an ISO date/datetime string, a date or datetime

        Returns:
            ReferenceMonth: Parsed reference month

        Raises:
            ValueError: If the value cannot be interpreted as a month
        """
        if isinstance(value, ReferenceMonth):
            return value
        if isinstance(value, dt.date):
            return cls(value.year, value.month)
        if isinstance(value, str):
            match = _MONTH_PATTERN.match(value.strip())
            if match:
                return cls(int(match.group(1)), int(match.group(2)))
        raise ValueError(f"Invalid reference month: {value!r}")

    @classmethod
    def containing(cls, moment: dt.date) -> "ReferenceMonth":
        """Reference month that contains the given date or datetime."""
        return cls(moment.year, moment.month)

    # ==== CALENDAR BOUNDS ==== #

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def first_day(self) -> dt.date:
        return dt.date(self.year, self.month, 1)

    @property
    def last_day(self) -> dt.date:
        return dt.date(self.year, self.month, self.days_in_month)

    def contains(self, day: dt.date) -> bool:
        return day.year == self.year and day.month == self.month

    # ==== NAVIGATION ==== #

    def next(self) -> "ReferenceMonth":
        if self.month == 12:
            return ReferenceMonth(self.year + 1, 1)
        return ReferenceMonth(self.year, self.month + 1)

    def previous(self) -> "ReferenceMonth":
        if self.month == 1:
            return ReferenceMonth(self.year - 1, 12)
        return ReferenceMonth(self.year, self.month - 1)
