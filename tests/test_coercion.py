from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from theater_app.shared.coercion import (
    first_present,
    first_truthy,
    json_string_or_none,
    normalize_mongo_id,
    parse_date,
    parse_datetime,
    to_int_or_none,
    to_number_or_none,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, None),
        ("", None),
        ("   ", None),
        ("abc", None),
        ("12.5", 12.5),
        (" 7 ", 7.0),
        (0, 0),
        (42, 42),
        (3.25, 3.25),
        (Decimal("10.50"), 10.5),
        (float("nan"), None),
        (float("inf"), None),
        ([1], None),
    ],
)
def test_to_number_or_none(value, expected) -> None:
    assert to_number_or_none(value) == expected


def test_zero_is_not_treated_as_missing() -> None:
    assert to_number_or_none(0) == 0
    assert to_number_or_none(0) is not None
    assert to_int_or_none("0") == 0


def test_to_int_or_none_truncates() -> None:
    assert to_int_or_none("4") == 4
    assert to_int_or_none(4.9) == 4
    assert to_int_or_none("four") is None


def test_first_present_keeps_falsy_values() -> None:
    assert first_present(None, 0, 5) == 0
    assert first_present(None, "", "x") == ""
    assert first_present(None, None) is None


def test_first_truthy_skips_falsy_values() -> None:
    assert first_truthy(None, 0, "", "x") == "x"
    assert first_truthy(None, "") is None


def test_parse_datetime_normalizes_to_naive_utc() -> None:
    assert parse_datetime("2026-03-10T15:30:00Z") == datetime(2026, 3, 10, 15, 30)
    assert parse_datetime("2026-03-10T21:00:00+05:30") == datetime(2026, 3, 10, 15, 30)
    assert parse_datetime({"$date": "2026-03-10T15:30:00Z"}) == datetime(2026, 3, 10, 15, 30)
    assert parse_datetime(0) == datetime(1970, 1, 1)
    assert parse_datetime("yesterday") is None
    assert parse_datetime(None) is None


def test_parse_date_accepts_dates_and_timestamps() -> None:
    assert parse_date("2026-03-14") == date(2026, 3, 14)
    assert parse_date("2026-03-14T10:00:00Z") == date(2026, 3, 14)
    assert parse_date("Saturday") is None


def test_json_string_or_none() -> None:
    assert json_string_or_none(None) is None
    assert json_string_or_none("  ") is None
    assert json_string_or_none(" raw ") == "raw"
    assert json_string_or_none({"a": [1, 2]}) == '{"a":[1,2]}'


def test_normalize_mongo_id() -> None:
    object_id = "65f1c2a9e4b0a1b2c3d4e5f6"

    class ObjectIdLike:
        def __str__(self) -> str:
            return f"ObjectId('{object_id}')"

    assert normalize_mongo_id(object_id) == object_id
    assert normalize_mongo_id({"$oid": object_id}) == object_id
    assert normalize_mongo_id(ObjectIdLike()) == object_id
    assert normalize_mongo_id(12) == "12"
    assert normalize_mongo_id("") is None
    assert normalize_mongo_id(None) is None


def test_display_format_booking_dates_are_parsed() -> None:
    assert parse_date("Thursday, October 2, 2025") == date(2025, 10, 2)
    assert parse_date("October 2, 2025") == date(2025, 10, 2)
    assert parse_datetime("Thu, 02 Oct 2025 18:30:00 GMT") == datetime(2025, 10, 2, 18, 30)
    assert parse_datetime("tomorrow") is None
