from datetime import date

import pytest

from workload.data import format_ledger_date, parse_ledger_date


def test_parse_two_digit_years():
    assert parse_ledger_date("01/01/25") == date(2025, 1, 1)
    assert parse_ledger_date("15/06/95") == date(1995, 6, 15)
    assert parse_ledger_date("05/03/30") == date(2030, 3, 5)


def test_parse_four_digit_year_and_noise():
    assert parse_ledger_date("15/06/1999") == date(1999, 6, 15)
    assert parse_ledger_date(' "05/03/24" ') == date(2024, 3, 5)


@pytest.mark.parametrize(
    "raw",
    [
        "31/02/25",
        "29/02/25",
        "9999",
        "2025-01-01",
        "aa/bb/cc",
        "01/13/25",
        "00/01/25",
        "32/01/25",
        "01/01/31",
        "01/01/2051",
        "1/2/3/4",
        "",
        None,
    ],
)
def test_parse_rejects_malformed(raw):
    assert parse_ledger_date(raw) is None


def test_leap_day():
    assert parse_ledger_date("29/02/24") == date(2024, 2, 29)


def test_format_then_parse_is_stable():
    for value in (date(2025, 1, 1), date(1995, 5, 1), date(1990, 1, 1), date(2030, 12, 31), date(2031, 7, 4)):
        assert parse_ledger_date(format_ledger_date(value)) == value


def test_format_uses_four_digits_when_two_would_change_the_century():
    assert format_ledger_date(date(2025, 3, 7)) == "07/03/25"
    assert format_ledger_date(date(2031, 1, 1)) == "01/01/2031"
