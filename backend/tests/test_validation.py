from datetime import date, datetime

import pytest

from stockflow.errors import ValidationError
from stockflow.time_utils import parse_iso_datetime, to_utc_z
from stockflow.validation import (
    VariantLine,
    coerce_int,
    parse_optional_datetime,
    parse_quantity,
    parse_variant_lines,
    require_fields,
)


@pytest.mark.parametrize("value,expected", [(3, 3), ("12", 12), (" 7 ", 7), (-2, -2)])
def test_coerce_int_accepts_plain_integers(value, expected):
    assert coerce_int(value, "quantity") == expected


@pytest.mark.parametrize("value", [True, 2.0, "1e3", "3.5", "", "abc", None, [1]])
def test_coerce_int_rejects_everything_else(value):
    with pytest.raises(ValidationError):
        coerce_int(value, "quantity")


def test_parse_quantity_must_be_positive():
    assert parse_quantity("4") == 4
    with pytest.raises(ValidationError):
        parse_quantity(0)


def test_variant_lines_accept_every_shape():
    lines = parse_variant_lines([
        {"name": "S", "quantity": 1},
        {"nombre": "M", "cantidad": "2"},
        ("L", 3),
        VariantLine(name="XL", quantity=4),
    ])
    assert lines == [
        VariantLine("S", 1),
        VariantLine("M", 2),
        VariantLine("L", 3),
        VariantLine("XL", 4),
    ]


def test_variant_lines_edge_cases():
    assert parse_variant_lines(None) is None
    assert parse_variant_lines([{"name": "S", "quantity": 0}]) == []
    with pytest.raises(ValidationError):
        parse_variant_lines([{"name": "S", "quantity": -1}])
    with pytest.raises(ValidationError):
        parse_variant_lines([{"name": "", "quantity": 1}])
    with pytest.raises(ValidationError):
        parse_variant_lines({"name": "S", "quantity": 1})


def test_require_fields():
    assert require_fields({"a": 1, "b": "x"}, "a", "b")
    with pytest.raises(ValidationError):
        require_fields({"a": ""}, "a")
    with pytest.raises(ValidationError):
        require_fields(None, "a")


def test_datetimes_are_utc_naive():
    assert parse_iso_datetime("2026-03-01T10:00:00-03:00") == datetime(2026, 3, 1, 13, 0)
    assert parse_iso_datetime("2026-03-01") == datetime(2026, 3, 1)
    assert parse_iso_datetime("2026-03-01", end_of_day=True) == datetime(2026, 3, 1, 23, 59, 59, 999999)
    assert parse_optional_datetime("2026-03-01", "end", end_of_day=True).date() == date(2026, 3, 1)
    assert parse_iso_datetime("") is None
    assert to_utc_z(datetime(2026, 3, 1, 13, 0, 5, 999)) == "2026-03-01T13:00:05Z"
    with pytest.raises(ValidationError):
        parse_optional_datetime("yesterday", "sold_at")
