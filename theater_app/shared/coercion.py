"""Value coercion helpers for turning loosely-typed booking documents into column values"""

import json
import math
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Union

from dateutil import parser as date_parser

Number = Union[int, float]

_OBJECT_ID_PATTERN = re.compile(r"[a-f0-9]{24}", re.IGNORECASE)
_DIGIT_PATTERN = re.compile(r"\d")


def to_number_or_none(value: Any) -> Optional[Number]:
    """
    Strict number-or-null coercion for money and count fields.

    None, empty strings and anything that does not parse to a finite number
    become None - never 0 - so missing amounts are not reported as free.
    Integers (including 0) are returned unchanged.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            number = float(stripped)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_int_or_none(value: Any) -> Optional[int]:
    number = to_number_or_none(value)
    return int(number) if number is not None else None


def first_present(*values: Any) -> Any:
    """First value that is not None"""
    for value in values:
        if value is not None:
            return value
    return None


def first_truthy(*values: Any) -> Any:
    """First truthy value, else None"""
    for value in values:
        if value:
            return value
    return None


def _parse_datetime_string(text: str) -> Optional[datetime]:
    """
    ISO-8601 first, then free-form dates such as "Thursday, October 2, 2025".

    Strings without any digit ("Saturday", "tomorrow") are not dates.
    """
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    if not _DIGIT_PATTERN.search(text):
        return None
    try:
        return date_parser.parse(text)
    except (ValueError, OverflowError):
        return None


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO or display-format strings / epoch millis / datetimes into naive UTC datetimes"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        parsed = _parse_datetime_string(value.strip())
        if parsed is None:
            return None
    elif isinstance(value, dict) and "$date" in value:
        return parse_datetime(value["$date"])
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, str):
        stripped = value.strip()
        try:
            return date.fromisoformat(stripped[:10])
        except ValueError:
            pass
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def json_string_or_none(value: Any) -> Optional[str]:
    """Serialize collections for TEXT columns; strings pass through trimmed"""
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    try:
        return json.dumps(value, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return None


def safe_json_loads(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return json.loads(value)
    except ValueError:
        return None


def normalize_mongo_id(value: Any) -> Optional[str]:
    """Operational document id as a string: plain ids, {"$oid": ...} or ObjectId-like objects"""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, dict):
        oid = value.get("$oid")
        return oid if isinstance(oid, str) else None
    as_string = str(value)
    match = _OBJECT_ID_PATTERN.search(as_string)
    return match.group(0) if match else as_string


def optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
