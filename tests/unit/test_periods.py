"""Unit tests for reference months."""

from datetime import date, datetime

import pytest

from invoice_compliance.business.periods import ReferenceMonth


@pytest.mark.unit
class TestReferenceMonth:
    """Test cases for parsing, bounds and navigation."""

    @pytest.mark.parametrize("value", [
        "2024-03",
        "2024-03-02",
        "2024-03-02T00:00:00.000Z",
        " 2024-03 ",
        date(2024, 3, 31),
        datetime(2024, 3, 1, 23, 59),
    ])
    def test_parse(self, value):
        assert ReferenceMonth.parse(value) == ReferenceMonth(2024, 3)

    @pytest.mark.parametrize("value", ["2024-13", "2024-00", "March 2024", "24-03", 202403])
    def test_parse_invalid(self, value):
        with pytest.raises(ValueError):
            ReferenceMonth.parse(value)

    def test_canonical_string(self):
        assert str(ReferenceMonth(2024, 3)) == "2024-03"
        assert str(ReferenceMonth(987, 11)) == "0987-11"

    def test_bounds(self):
        february = ReferenceMonth(2024, 2)

        assert february.first_day == date(2024, 2, 1)
        assert february.last_day == date(2024, 2, 29)
        assert february.days_in_month == 29
        assert february.contains(date(2024, 2, 15))
        assert not february.contains(date(2024, 3, 1))

    def test_navigation_across_years(self):
        assert ReferenceMonth(2023, 12).next() == ReferenceMonth(2024, 1)
        assert ReferenceMonth(2024, 1).previous() == ReferenceMonth(2023, 12)
        assert ReferenceMonth(2024, 6).next().previous() == ReferenceMonth(2024, 6)

    def test_ordering_and_hashing(self):
        months = {ReferenceMonth(2024, 3), ReferenceMonth.parse("2024-03"), ReferenceMonth(2023, 12)}

        assert len(months) == 2
        assert sorted(months)[0] == ReferenceMonth(2023, 12)
