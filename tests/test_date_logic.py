from datetime import date, datetime

import pytest

from birthday_sms.birthday_service import format_notification
from birthday_sms.date_logic import (
    excel_serial_to_date,
    find_birthdays_on,
    is_leap_year,
    normalize_birth_date,
)
from birthday_sms.models import Record


def test_normalize_us_slash_date() -> None:
    assert normalize_birth_date("01/15/1990") == date(1990, 1, 15)


def test_normalize_iso_date() -> None:
    assert normalize_birth_date("1985-03-22") == date(1985, 3, 22)


def test_normalize_dash_year_last_date() -> None:
    assert normalize_birth_date("12-05-1988") == date(1988, 12, 5)


def test_normalize_trims_whitespace() -> None:
    assert normalize_birth_date("  1985-03-22 \n") == date(1985, 3, 22)


def test_normalize_day_first_when_first_component_exceeds_twelve() -> None:
    assert normalize_birth_date("25/12/1990") == date(1990, 12, 25)
    assert normalize_birth_date("31-01-2001") == date(2001, 1, 31)


def test_normalize_ambiguous_slash_date_is_month_first() -> None:
    assert normalize_birth_date("01/02/2000") == date(2000, 1, 2)


def test_normalize_serial_uses_1899_12_30_epoch() -> None:
    assert excel_serial_to_date(0) == date(1899, 12, 30)
    assert excel_serial_to_date(36526) == date(2000, 1, 1)
    assert normalize_birth_date(33658) == date(1992, 2, 24)


def test_normalize_serial_truncates_fraction() -> None:
    assert normalize_birth_date(33658.99) == date(1992, 2, 24)


def test_normalize_passes_native_dates_through() -> None:
    assert normalize_birth_date(datetime(1990, 1, 15, 13, 45)) == date(1990, 1, 15)
    assert normalize_birth_date(date(1975, 7, 4)) == date(1975, 7, 4)


@pytest.mark.parametrize(
    "value",
    [None, "", "   ", "not a date", True, float("nan"), float("inf"), 1e12, ["1990-01-01"]],
)
def test_normalize_rejects_unusable_values(value: object) -> None:
    assert normalize_birth_date(value) is None


def test_normalize_rejects_impossible_calendar_dates() -> None:
    assert normalize_birth_date("02/30/2000") is None
    assert normalize_birth_date("2001-02-29") is None
    assert normalize_birth_date("13/13/2000") is None


def test_normalize_accepts_leap_day_in_leap_year() -> None:
    assert normalize_birth_date("2000-02-29") == date(2000, 2, 29)


def test_is_leap_year() -> None:
    assert is_leap_year(2024) is True
    assert is_leap_year(2000) is True
    assert is_leap_year(1900) is False
    assert is_leap_year(2023) is False


def _record(name: str, birth_date: date, row_number: int = 2) -> Record:
    return Record(name=name, birth_date=birth_date, row_number=row_number)


def test_match_ignores_birth_year() -> None:
    alice = _record("Alice", date(1990, 3, 14))

    assert find_birthdays_on([alice], date(2026, 3, 14)) == [alice]
    assert find_birthdays_on([alice], date(2026, 3, 15)) == []
    assert find_birthdays_on([alice], date(2026, 4, 14)) == []


def test_match_accepts_datetime_target() -> None:
    alice = _record("Alice", date(1990, 3, 14))
    assert find_birthdays_on([alice], datetime(2026, 3, 14, 9, 0)) == [alice]


def test_leap_day_birthday_only_matches_february_29() -> None:
    leap = _record("Leap", date(2000, 2, 29))

    assert find_birthdays_on([leap], date(2024, 2, 29)) == [leap]
    assert find_birthdays_on([leap], date(2023, 2, 28)) == []
    assert find_birthdays_on([leap], date(2023, 3, 1)) == []


def test_match_preserves_input_order() -> None:
    records = [
        _record("Zed", date(1980, 6, 1), row_number=2),
        _record("Other", date(1980, 6, 2), row_number=3),
        _record("Amy", date(1999, 6, 1), row_number=4),
    ]

    matches = find_birthdays_on(records, date(2026, 6, 1))

    assert [record.name for record in matches] == ["Zed", "Amy"]


def test_match_handles_missing_inputs() -> None:
    alice = _record("Alice", date(1990, 3, 14))

    assert find_birthdays_on(None, date(2026, 3, 14)) == []
    assert find_birthdays_on([], date(2026, 3, 14)) == []
    assert find_birthdays_on([alice], None) == []


def test_match_and_format_are_repeatable() -> None:
    records = [_record("Alice", date(1990, 3, 14)), _record("Bob", date(1985, 3, 14), row_number=3)]
    target = date(2026, 3, 14)

    first = find_birthdays_on(records, target)
    second = find_birthdays_on(records, target)

    assert first == second
    assert format_notification(first) == format_notification(second)
