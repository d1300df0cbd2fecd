"""
Unit tests for cell value parsing and comparison.
"""
from datetime import date, datetime, timezone

from table_engine.values import compare_text, parse_date_ms, parse_number, stringify


def test_stringify():
    assert stringify(None) == ''
    assert stringify(42) == '42'
    assert stringify('x') == 'x'


def test_parse_number():
    assert parse_number(' 42 ') == 42.0
    assert parse_number(3) == 3.0
    assert parse_number('-1.5') == -1.5
    assert parse_number('') is None
    assert parse_number('abc') is None
    assert parse_number(None) is None
    assert parse_number(True) is None
    assert parse_number('nan') is None
    assert parse_number('inf') is None


def test_parse_date_ms_strings():
    assert parse_date_ms('1970-01-02') == 86400000.0
    assert parse_date_ms('1970-01-01 00:00:01') == 1000.0
    assert parse_date_ms('1970-01-01T00:00:01Z') == 1000.0
    assert parse_date_ms('1970-01-01T01:00:00+01:00') == 0.0
    assert parse_date_ms('yesterday') is None
    assert parse_date_ms('') is None
    assert parse_date_ms(None) is None


def test_parse_date_ms_objects():
    assert parse_date_ms(date(1970, 1, 2)) == 86400000.0
    assert parse_date_ms(datetime(1970, 1, 1, 0, 0, 2)) == 2000.0
    assert parse_date_ms(datetime(1970, 1, 1, 0, 0, 2, tzinfo=timezone.utc)) == 2000.0


def test_compare_text_is_case_insensitive():
    assert compare_text('apple', 'Banana') < 0
    assert compare_text('Zebra', 'apple') > 0
    assert compare_text('same', 'same') == 0
    # case-only differences still give a deterministic order
    assert compare_text('A', 'a') == -compare_text('a', 'A') != 0
