from __future__ import annotations

import math
import re
from collections.abc import Iterable
from datetime import date, datetime, timedelta

import dateparser

from birthday_sms.models import Record

# Day 0 of the spreadsheet serial calendar. Using 1899-12-30 instead of
# 1900-01-01 absorbs the phantom 1900-02-29 of the 1900 date system.
EXCEL_EPOCH = date(1899, 12, 30)

_SLASH_YEAR_LAST = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
_ISO = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")
_DASH_YEAR_LAST = re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})")

_DATEPARSER_SETTINGS = {
    "PARSERS": ["absolute-time"],
    "REQUIRE_PARTS": ["day", "month", "year"],
    "DATE_ORDER": "MDY",
    "PREFER_LOCALE_DATE_ORDER": False,
}


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def excel_serial_to_date(serial: float) -> date | None:
    if math.isnan(serial) or math.isinf(serial):
        return None
    try:
        return EXCEL_EPOCH + timedelta(days=int(serial))
    except OverflowError:
        return None


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _year_last_date(first: int, second: int, year: int) -> date | None:
    """Resolve ``first``/``second`` into month and day for year-last layouts.

    A component above 12 can only be a day. When both fit as a month the
    value is read month-first, so 01/02/2000 becomes January 2nd.
    """
    if first > 12:
        return _safe_date(year, second, first)
    return _safe_date(year, first, second)


def _parse_with_patterns(text: str) -> date | None:
    match = _SLASH_YEAR_LAST.fullmatch(text) or _DASH_YEAR_LAST.fullmatch(text)
    if match:
        first, second, year = (int(group) for group in match.groups())
        return _year_last_date(first, second, year)

    match = _ISO.fullmatch(text)
    if match:
        year, month, day = (int(group) for group in match.groups())
        return _safe_date(year, month, day)

    return None


def _parse_text(value: str) -> date | None:
    text = value.strip()
    if not text:
        return None

    parsed = dateparser.parse(text, settings=_DATEPARSER_SETTINGS)
    if parsed is not None:
        return parsed.date()

    return _parse_with_patterns(text)


def normalize_birth_date(value: object) -> date | None:
    """Turn a raw spreadsheet cell into a calendar date.

    Accepts native dates, serial day numbers and text in the layouts people
    actually type. Returns None for anything that does not name a real day.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return excel_serial_to_date(float(value))
    if isinstance(value, str):
        return _parse_text(value)
    return None


def find_birthdays_on(records: Iterable[Record] | None, target: date | None) -> list[Record]:
    """Records whose birthday falls on ``target``, ignoring the birth year.

    People born on February 29 only match a February 29 target.
    """
    if records is None or target is None:
        return []

    month_day = (target.month, target.day)
    return [
        record
        for record in records
        if (record.birth_date.month, record.birth_date.day) == month_day
    ]
