"""Reporting period bounds and the period filters."""
from datetime import date, timedelta

import pytest

from core.periods import (
    Period, PeriodKind, ALL_FROM, ALL_TO, period_range, in_period, overlaps, parse_date,
)


class TestWeekly:
    def test_wednesday_opens_the_week(self):
        p = period_range("weekly", "2024-05-15")       # Wednesday
        assert p == Period(date(2024, 5, 15), date(2024, 5, 21))

    def test_tuesday_closes_the_week(self):
        p = period_range("weekly", "2024-05-21")       # Tuesday
        assert p == Period(date(2024, 5, 15), date(2024, 5, 21))

    def test_monday_belongs_to_week_ending_next_day(self):
        p = period_range(PeriodKind.WEEKLY, date(2024, 5, 20))
        assert p.end == date(2024, 5, 21)
        assert (p.end - p.start).days == 6


class TestMonthly:
    @pytest.mark.parametrize("ref, start, end", [
        ("2024-05-10", date(2024, 4, 16), date(2024, 5, 15)),
        ("2024-05-15", date(2024, 4, 16), date(2024, 5, 15)),
        ("2024-05-16", date(2024, 5, 16), date(2024, 6, 15)),
        ("2024-01-05", date(2023, 12, 16), date(2024, 1, 15)),
        ("2024-12-20", date(2024, 12, 16), date(2025, 1, 15)),
    ])
    def test_sixteenth_to_fifteenth(self, ref, start, end):
        assert period_range("monthly", ref) == Period(start, end)


LEAP_YEAR = [date(2024, 1, 1) + timedelta(days=n) for n in range(366)]


class TestEveryDayOfLeapYear:
    @pytest.mark.parametrize("ref", LEAP_YEAR, ids=str)
    def test_week_is_wednesday_to_tuesday(self, ref):
        p = period_range("weekly", ref)
        assert p.start <= ref <= p.end
        assert (p.end - p.start).days == 6
        assert p.end.weekday() == 1

    @pytest.mark.parametrize("ref", LEAP_YEAR, ids=str)
    def test_month_splits_between_fifteenth_and_sixteenth(self, ref):
        p = period_range("monthly", ref)
        assert p.start <= ref <= p.end
        assert (p.start.day, p.end.day) == (16, 15)
        assert (p.start + timedelta(days=31)).replace(day=15) == p.end
        assert (p.end == ref.replace(day=15)) == (ref.day <= 15)


class TestCalendarPeriods:
    def test_quarter(self):
        assert period_range("quarterly", "2024-08-10") == Period(date(2024, 7, 1), date(2024, 9, 30))

    def test_first_quarter_of_leap_year(self):
        assert period_range("quarterly", "2024-02-29") == Period(date(2024, 1, 1), date(2024, 3, 31))

    def test_half_year(self):
        assert period_range("halfYearly", "2024-06-30") == Period(date(2024, 1, 1), date(2024, 6, 30))
        assert period_range("halfYearly", "2024-07-01") == Period(date(2024, 7, 1), date(2024, 12, 31))

    def test_year(self):
        assert period_range("yearly", "2023-03-03") == Period(date(2023, 1, 1), date(2023, 12, 31))


class TestSpecialKinds:
    def test_custom_uses_given_bounds(self):
        p = period_range("custom", custom_from="2024-01-02", custom_to="2024-02-03")
        assert p == Period(date(2024, 1, 2), date(2024, 2, 3))
        assert p.bounded

    def test_custom_missing_bound_is_unbounded(self):
        assert not period_range("custom", custom_from="2024-01-02").bounded

    def test_all(self):
        assert period_range("all") == Period(ALL_FROM, ALL_TO)

    def test_unknown_kind_falls_back_to_all(self):
        assert period_range("fortnightly", "2024-05-01") == Period(ALL_FROM, ALL_TO)

    def test_malformed_reference_gives_no_bounds(self):
        p = period_range("monthly", "not-a-date")
        assert p == Period(None, None)
        assert p.as_dict() == {"from": None, "to": None}

    def test_missing_reference_uses_today(self):
        p = period_range("yearly", today=date(2022, 6, 1))
        assert p.as_dict() == {"from": "2022-01-01", "to": "2022-12-31"}


class TestFilters:
    PERIOD = Period(date(2024, 5, 1), date(2024, 5, 31))

    def test_in_period_is_inclusive(self):
        assert in_period("2024-05-01", self.PERIOD)
        assert in_period("2024-05-31", self.PERIOD)
        assert not in_period("2024-06-01", self.PERIOD)

    def test_in_period_ignores_time_part(self):
        assert in_period("2024-05-31T23:59:00.000Z", self.PERIOD)

    def test_in_period_rejects_bad_dates(self):
        assert not in_period("", self.PERIOD)
        assert not in_period("31/05/2024", self.PERIOD)

    def test_unbounded_period_accepts_everything(self):
        assert in_period("garbage", Period(None, None))
        assert overlaps("", "", Period(None, None))

    @pytest.mark.parametrize("start, end, expected", [
        ("2024-04-20", "2024-05-05", True),    # ends inside
        ("2024-05-20", "2024-06-10", True),    # starts inside
        ("2024-04-01", "2024-06-30", True),    # spans
        ("2024-03-01", "2024-04-30", False),
        ("2024-06-01", "2024-06-30", False),
        ("", "", False),
    ])
    def test_event_overlap(self, start, end, expected):
        assert overlaps(start, end, self.PERIOD) is expected

    def test_parse_date_accepts_dates_and_strings(self):
        assert parse_date("2024-05-01") == date(2024, 5, 1)
        assert parse_date(date(2024, 5, 1)) == date(2024, 5, 1)
        assert parse_date(None) is None
        assert parse_date("05/01/2024") is None
