from __future__ import annotations

from datetime import date, datetime

import pytest

from subservice.core.exceptions import ValidationError
from subservice.core.months import first_of_month, format_month, parse_month, parse_optional_month


def test_parse_month_returns_first_day():
    assert parse_month('07-2025') == date(2025, 7, 1)
    assert parse_month('12-1999') == date(1999, 12, 1)


@pytest.mark.parametrize(
    'value',
    [
        '2025-07',
        '13-2025',
        '00-2025',
        '7-2025',
        '07-25',
        '',
        ' 07-2025',
        '07/2025',
        '07-2025\n',
        '\u0660\u0667-\u0662\u0660\u0662\u0665',
    ],
)
def test_parse_month_rejects_other_shapes(value):
    with pytest.raises(ValidationError):
        parse_month(value, 'start_date')


def test_parse_month_names_the_field():
    with pytest.raises(ValidationError, match='end_date'):
        parse_month('2025-07', 'end_date')


def test_optional_month_passes_through_none():
    assert parse_optional_month(None) is None
    assert parse_optional_month('01-2024') == date(2024, 1, 1)


def test_first_of_month_drops_day_and_time():
    assert first_of_month(datetime(2025, 3, 17, 13, 45)) == date(2025, 3, 1)
    assert first_of_month(date(2025, 3, 31)) == date(2025, 3, 1)


def test_format_month():
    assert format_month(date(2025, 7, 1)) == '07-2025'
    assert format_month(None) is None
