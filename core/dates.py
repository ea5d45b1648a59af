"""
dates.py

Date/time reference resolver.
Turns English phrases ("last week", "next Monday", "2026-W04", "in 3 days")
into a DateReference relative to a supplied "now". Pure functions only;
callers must handle a None result with a non-date fallback.

ISO week arithmetic follows ISO 8601: weeks start on Monday and week 1 is
the week containing the year's first Thursday.
Part of Vesper — Local-First Personal Assistant.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union


# ===========================================================================
# Types
# ===========================================================================

@dataclass(frozen=True)
class DateRange:
    """Inclusive date range."""

    start: date
    end: date

    def as_range(self) -> "DateRange":
        return self

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end

    def label(self) -> str:
        return f"{self.start:%Y-%m-%d} to {self.end:%Y-%m-%d}"


@dataclass(frozen=True)
class SingleDate:
    """One calendar day."""

    value: date

    def as_range(self) -> DateRange:
        return DateRange(self.value, self.value)

    def label(self) -> str:
        return f"{self.value:%Y-%m-%d}"


@dataclass(frozen=True)
class IsoWeek:
    """
    An ISO 8601 week.

    Raises:
        ValueError: If week is outside 1..weeks_in_year(year).

    Example:
        IsoWeek(2026, 1).previous()  # IsoWeek(year=2025, week=52)
    """

    year: int
    week: int

    def __post_init__(self) -> None:
        if not 1 <= self.week <= weeks_in_year(self.year):
            raise ValueError(f"{self.year} has no ISO week {self.week}")

    def monday(self) -> date:
        return date.fromisocalendar(self.year, self.week, 1)

    def date_range(self) -> DateRange:
        monday = self.monday()
        return DateRange(monday, monday + timedelta(days=6))

    def as_range(self) -> DateRange:
        return self.date_range()

    def previous(self) -> "IsoWeek":
        return iso_week_of(self.monday() - timedelta(days=7))

    def next(self) -> "IsoWeek":
        return iso_week_of(self.monday() + timedelta(days=7))

    def label(self) -> str:
        return f"{self.year}-W{self.week:02d}"


DateReference = Union[SingleDate, DateRange, IsoWeek]


# ===========================================================================
# ISO week helpers
# ===========================================================================

def weeks_in_year(year: int) -> int:
    """Return 52 or 53. December 28th always falls in the year's last ISO week."""
    return date(year, 12, 28).isocalendar()[1]


def iso_week_of(value: date) -> IsoWeek:
    """Return the ISO week containing a date."""
    iso_year, iso_week, _ = value.isocalendar()
    return IsoWeek(iso_year, iso_week)


def date_in_range(value: date, date_range: DateRange) -> bool:
    """Checks if a date falls within a range (inclusive)."""
    return date_range.contains(value)


_WEEK_TOKEN = re.compile(r"(?<![\w])(\d{4})-w(\d{1,2})(?![\d])", re.IGNORECASE)
_DAILY_NAME = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_WEEKLY_NAME = re.compile(r"^(\d{4})-w(\d{1,2})$", re.IGNORECASE)


def parse_week_token(text: str) -> Optional[IsoWeek]:
    """
    Find the first valid "YYYY-Www" / "YYYY-Ww" token in text.

    Example:
        parse_week_token("show me 2026-W4 note")  # IsoWeek(2026, 4)
    """
    for match in _WEEK_TOKEN.finditer(text):
        try:
            return IsoWeek(int(match.group(1)), int(match.group(2)))
        except ValueError:
            continue
    return None


def parse_daily_name(stem: str) -> Optional[date]:
    """Parse a daily note file stem ("2026-01-14")."""
    match = _DAILY_NAME.match(stem.strip())
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def parse_weekly_name(stem: str) -> Optional[IsoWeek]:
    """Parse a weekly note file stem ("2026-W03", "2026-w3")."""
    match = _WEEKLY_NAME.match(stem.strip())
    if not match:
        return None
    try:
        return IsoWeek(int(match.group(1)), int(match.group(2)))
    except ValueError:
        return None


def format_long_date(value: date) -> str:
    """Format as "Wednesday, January 21, 2026"."""
    return value.strftime("%A, %B %d, %Y")


# ===========================================================================
# Resolver
# ===========================================================================

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_WEEKDAY_ABBREVIATIONS = {
    "mon": 0, "tue": 1, "tues": 1, "wed": 2, "thu": 3, "thur": 3, "thurs": 3,
    "fri": 4, "sat": 5, "sun": 6,
}
_FUTURE_QUALIFIERS = ("next", "coming")
_PAST_QUALIFIERS = ("last", "past", "previous")

_WEEKDAY_FULL = re.compile(
    r"(?:\b(this|next|coming|last|past|previous)\s+)?\b(" + "|".join(_WEEKDAYS) + r")\b"
)
_WEEKDAY_SHORT = re.compile(
    r"\b(this|next|coming|last|past|previous)\s+("
    + "|".join(sorted(_WEEKDAY_ABBREVIATIONS, key=len, reverse=True))
    + r")\b\.?"
)
_DAYS_AGO = re.compile(r"\b(\d+)\s+days?\s+(ago|back)\b")
_DAYS_AHEAD = re.compile(r"\bin\s+(\d+)\s+days?\b|\b(\d+)\s+days?\s+from\s+now\b")
_RELATIVE_RANGE = re.compile(r"\b(last|past|next)\s+(\d+)\s+(days?|weeks?|months?)\b")


def _today(reference_now: date | datetime) -> date:
    if isinstance(reference_now, datetime):
        return reference_now.date()
    return reference_now


def _month_range(year: int, month: int) -> DateRange:
    start = date(year, month, 1)
    if month == 12:
        end = date(year + 1, 1, 1) - timedelta(days=1)
    else:
        end = date(year, month + 1, 1) - timedelta(days=1)
    return DateRange(start, end)


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _year_range(year: int) -> DateRange:
    return DateRange(date(year, 1, 1), date(year, 12, 31))


def _resolve_explicit_week(lowered: str, today: date) -> Optional[DateReference]:
    return parse_week_token(lowered)


def _resolve_relative_week(lowered: str, today: date) -> Optional[DateReference]:
    current = iso_week_of(today)
    if "this week" in lowered or "current week" in lowered:
        return current
    if any(phrase in lowered for phrase in ("last week", "past week", "previous week")):
        return current.previous()
    if "next week" in lowered:
        return current.next()
    return None


def _resolve_relative_month(lowered: str, today: date) -> Optional[DateReference]:
    if "this month" in lowered:
        return _month_range(today.year, today.month)
    if any(phrase in lowered for phrase in ("last month", "past month", "previous month")):
        return _month_range(*_shift_month(today.year, today.month, -1))
    if "next month" in lowered:
        return _month_range(*_shift_month(today.year, today.month, 1))
    return None


def _resolve_relative_year(lowered: str, today: date) -> Optional[DateReference]:
    if "this year" in lowered:
        return _year_range(today.year)
    if any(phrase in lowered for phrase in ("last year", "past year", "previous year")):
        return _year_range(today.year - 1)
    if "next year" in lowered:
        return _year_range(today.year + 1)
    return None


def _resolve_day_keyword(lowered: str, today: date) -> Optional[DateReference]:
    if "day after tomorrow" in lowered:
        return SingleDate(today + timedelta(days=2))
    if "day before yesterday" in lowered:
        return SingleDate(today - timedelta(days=2))
    if re.search(r"\btoday\b", lowered):
        return SingleDate(today)
    if re.search(r"\btomorrow\b", lowered):
        return SingleDate(today + timedelta(days=1))
    if re.search(r"\byesterday\b", lowered):
        return SingleDate(today - timedelta(days=1))
    return None


def _resolve_day_offset(lowered: str, today: date) -> Optional[DateReference]:
    match = _DAYS_AGO.search(lowered)
    if match:
        return SingleDate(today - timedelta(days=int(match.group(1))))
    match = _DAYS_AHEAD.search(lowered)
    if match:
        count = int(match.group(1) or match.group(2))
        return SingleDate(today + timedelta(days=count))
    return None


def _resolve_weekday(lowered: str, today: date) -> Optional[DateReference]:
    match = _WEEKDAY_FULL.search(lowered)
    if match:
        qualifier, target = match.group(1), _WEEKDAYS.index(match.group(2))
    else:
        match = _WEEKDAY_SHORT.search(lowered)
        if not match:
            return None
        qualifier, target = match.group(1), _WEEKDAY_ABBREVIATIONS[match.group(2)]

    delta = target - today.weekday()
    if qualifier in _PAST_QUALIFIERS:
        if delta >= 0:
            delta -= 7
    elif qualifier == "this":
        pass  # same ISO week, either direction
    elif delta <= 0:
        # bare names and next/coming both mean the next future occurrence
        delta += 7
    return SingleDate(today + timedelta(days=delta))


def _resolve_relative_range(lowered: str, today: date) -> Optional[DateReference]:
    match = _RELATIVE_RANGE.search(lowered)
    if not match:
        return None
    direction, count, unit = match.group(1), int(match.group(2)), match.group(3)
    if unit.startswith("day"):
        span = timedelta(days=count)
    elif unit.startswith("week"):
        span = timedelta(weeks=count)
    else:
        span = timedelta(days=count * 30)
    if direction == "next":
        return DateRange(today, today + span)
    return DateRange(today - span, today)


# First match wins.
_RESOLVERS = (
    _resolve_explicit_week,
    _resolve_relative_week,
    _resolve_relative_month,
    _resolve_relative_year,
    _resolve_day_keyword,
    _resolve_day_offset,
    _resolve_weekday,
    _resolve_relative_range,
)


def resolve(text: str, reference_now: date | datetime) -> Optional[DateReference]:
    """
    Resolve the first date reference found in text.

    Args:
        text: Raw user text.
        reference_now: The moment "today" refers to.

    Returns:
        A SingleDate, DateRange or IsoWeek, or None when nothing matches.

    Example:
        resolve("what did i write last week?", date(2026, 1, 21))
        # IsoWeek(year=2026, week=3)
    """
    lowered = text.lower()
    today = _today(reference_now)
    for resolver in _RESOLVERS:
        reference = resolver(lowered, today)
        if reference is not None:
            return reference
    return None
