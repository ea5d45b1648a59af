"""Tests for the date/ISO-week resolver."""

from datetime import date, datetime

import pytest

from core.dates import (
    DateRange,
    IsoWeek,
    SingleDate,
    date_in_range,
    format_long_date,
    iso_week_of,
    parse_daily_name,
    parse_week_token,
    parse_weekly_name,
    resolve,
    weeks_in_year,
)

# Wednesday, ISO week 2026-W04.
WEDNESDAY = date(2026, 1, 21)


# =============================================================================
# IsoWeek arithmetic
# =============================================================================


class TestIsoWeek:
    def test_weeks_in_year(self):
        assert weeks_in_year(2026) == 53
        assert weeks_in_year(2025) == 52

    def test_invalid_week_raises(self):
        with pytest.raises(ValueError):
            IsoWeek(2025, 53)
        with pytest.raises(ValueError):
            IsoWeek(2026, 0)

    def test_previous_crosses_year_boundary(self):
        assert IsoWeek(2026, 1).previous() == IsoWeek(2025, 52)
        assert IsoWeek(2025, 52).next() == IsoWeek(2026, 1)

    def test_week_53_rolls_into_next_year(self):
        assert IsoWeek(2026, 53).next() == IsoWeek(2027, 1)

    def test_date_range_is_monday_to_sunday(self):
        week = IsoWeek(2026, 3)
        assert week.date_range() == DateRange(date(2026, 1, 12), date(2026, 1, 18))
        assert week.label() == "2026-W03"

    def test_iso_week_of(self):
        assert iso_week_of(WEDNESDAY) == IsoWeek(2026, 4)
        assert iso_week_of(date(2026, 1, 1)) == IsoWeek(2026, 1)

    def test_date_in_range_is_inclusive(self):
        week = IsoWeek(2026, 3).date_range()
        assert date_in_range(date(2026, 1, 12), week)
        assert date_in_range(date(2026, 1, 18), week)
        assert not date_in_range(date(2026, 1, 19), week)


# =============================================================================
# resolve()
# =============================================================================


class TestResolve:
    def test_last_week(self):
        ref = resolve("what did i write last week?", WEDNESDAY)
        assert ref == IsoWeek(2026, 3)
        assert ref.as_range() == DateRange(date(2026, 1, 12), date(2026, 1, 18))

    def test_this_and_next_week(self):
        assert resolve("plans for this week", WEDNESDAY) == IsoWeek(2026, 4)
        assert resolve("anything next week?", WEDNESDAY) == IsoWeek(2026, 5)

    def test_explicit_week_token(self):
        assert resolve("show the 2026-W3 note", WEDNESDAY) == IsoWeek(2026, 3)

    def test_accepts_datetime(self):
        assert resolve("today", datetime(2026, 1, 21, 23, 59)) == SingleDate(WEDNESDAY)

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("next monday", date(2026, 1, 26)),
            ("last friday", date(2026, 1, 16)),
            ("this thursday", date(2026, 1, 22)),
            ("this monday", date(2026, 1, 19)),
            ("monday", date(2026, 1, 26)),
            ("last wed", date(2026, 1, 14)),
            ("yesterday", date(2026, 1, 20)),
            ("tomorrow", date(2026, 1, 22)),
            ("day after tomorrow", date(2026, 1, 23)),
            ("3 days ago", date(2026, 1, 18)),
            ("in 3 days", date(2026, 1, 24)),
        ],
    )
    def test_single_days(self, text, expected):
        assert resolve(text, WEDNESDAY) == SingleDate(expected)

    def test_bare_abbreviation_is_not_a_date(self):
        assert resolve("wed", WEDNESDAY) is None

    def test_last_month_crosses_year(self):
        assert resolve("last month", WEDNESDAY) == DateRange(date(2025, 12, 1), date(2025, 12, 31))

    def test_relative_range(self):
        assert resolve("the last 7 days", WEDNESDAY) == DateRange(date(2026, 1, 14), WEDNESDAY)

    def test_week_phrase_wins_over_day_keyword(self):
        assert resolve("yesterday and last week", WEDNESDAY) == IsoWeek(2026, 3)

    def test_no_reference(self):
        assert resolve("tell me a joke", WEDNESDAY) is None


# =============================================================================
# Note names and formatting
# =============================================================================


class TestParsing:
    def test_parse_week_token_skips_invalid(self):
        assert parse_week_token("2025-W53 then 2026-W02") == IsoWeek(2026, 2)
        assert parse_week_token("nothing here") is None

    def test_parse_daily_name(self):
        assert parse_daily_name("2026-01-14") == date(2026, 1, 14)
        assert parse_daily_name("2026-02-30") is None
        assert parse_daily_name("Garden") is None

    def test_parse_weekly_name(self):
        assert parse_weekly_name("2026-w3") == IsoWeek(2026, 3)
        assert parse_weekly_name("2025-W53") is None

    def test_format_long_date(self):
        assert format_long_date(WEDNESDAY) == "Wednesday, January 21, 2026"
