from datetime import date

import pytest

from backend.scheduling.normalizer import (
    clean_phone,
    format_date_for_display,
    format_phone_for_display,
    format_time_for_display,
    is_in_time_band,
    normalize_date,
    normalize_time,
    normalize_time_band,
)

TODAY = date(2026, 2, 17)


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [
        ('today', '2026-02-17'),
        (' Tomorrow ', '2026-02-18'),
        ('2026-02-18', '2026-02-18'),
        ('2/18/2026', '2026-02-18'),
        ('02/18/2026', '2026-02-18'),
        ('February 18, 2026', '2026-02-18'),
        ('Feb 20', '2026-02-20'),
    ],
)
def test_normalize_date_accepts_spoken_and_written_formats(raw: str, expected: str) -> None:
    assert normalize_date(raw, today=TODAY) == expected


@pytest.mark.parametrize('raw', [None, '', '   ', 'not a date', '2026-02-30', '13/40/2026'])
def test_normalize_date_fails_closed(raw) -> None:
    assert normalize_date(raw, today=TODAY) is None


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [
        ('9am', '09:00'),
        ('9 AM', '09:00'),
        ('9 a.m.', '09:00'),
        ('9:30 PM', '21:30'),
        ('12 am', '00:00'),
        ('12pm', '12:00'),
        ('14:00', '14:00'),
        ('7:05', '07:05'),
        ('0:15', '00:15'),
    ],
)
def test_normalize_time_returns_twenty_four_hour_clock(raw: str, expected: str) -> None:
    assert normalize_time(raw) == expected


@pytest.mark.parametrize('raw', [None, '', 'noon', '13:00pm', '24:00', '0am', '9:60 am', '9 o clock'])
def test_normalize_time_rejects_ambiguous_or_invalid_input(raw) -> None:
    assert normalize_time(raw) is None


@pytest.mark.parametrize('raw', ['(555) 010-1234', '15550101234', '+1 555 010 1234', '555.010.1234', 5550101234])
def test_clean_phone_formats_us_numbers(raw) -> None:
    assert clean_phone(raw) == '555-010-1234'


@pytest.mark.parametrize('raw', [None, '', '12345', '25550101234', '555-010-12345'])
def test_clean_phone_rejects_wrong_digit_counts(raw) -> None:
    assert clean_phone(raw) is None


@pytest.mark.parametrize('raw', ['５５５０１０１２３４', '٥٥٥٠١٠١٢٣٤'])
def test_clean_phone_ignores_non_ascii_digits(raw) -> None:
    assert clean_phone(raw) is None


@pytest.mark.parametrize('raw', ['１４:００', '９ am', '٢:٣٠ pm'])
def test_normalize_time_ignores_non_ascii_digits(raw) -> None:
    assert normalize_time(raw) is None


def test_format_phone_for_display() -> None:
    assert format_phone_for_display('555-010-1234') == '(555) 010-1234'
    assert format_phone_for_display('555-0101') == '555-0101'


def test_format_date_for_display_uses_weekday_month_day() -> None:
    assert format_date_for_display('2026-02-18') == 'Wednesday, February 18'
    assert format_date_for_display('someday') == 'someday'


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [
        ('09:00', '9:00 AM'),
        ('00:30', '12:30 AM'),
        ('12:00', '12:00 PM'),
        ('17:45', '5:45 PM'),
    ],
)
def test_format_time_for_display(raw: str, expected: str) -> None:
    assert format_time_for_display(raw) == expected


def test_time_bands() -> None:
    assert normalize_time_band(' Morning ') == 'morning'
    assert normalize_time_band('night') is None
    assert normalize_time_band(None) is None

    assert is_in_time_band('08:00', 'morning')
    assert is_in_time_band('11:59', 'morning')
    assert not is_in_time_band('07:30', 'morning')
    assert is_in_time_band('12:00', 'afternoon')
    assert not is_in_time_band('17:00', 'afternoon')
    assert is_in_time_band('17:00', 'evening')
