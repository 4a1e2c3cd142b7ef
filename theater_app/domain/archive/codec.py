"""Snapshot codec for the original_booking_data column.

Snapshots are stored as base64 of compact JSON so the payload sits in a single
TEXT column as an opaque token. Rows written before encoding was introduced
hold plain JSON; decode_snapshot reads both.
"""

import base64
import binascii
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def encode_snapshot(record: Any) -> str:
    """Compact JSON, then base64"""
    json_string = json.dumps(record, separators=(",", ":"), ensure_ascii=False, default=str)
    return base64.b64encode(json_string.encode("utf-8")).decode("ascii")


def _unwrap_quotes(raw: str) -> str:
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ("'", '"'):
        try:
            unwrapped = json.loads(raw) if raw[0] == '"' else raw[1:-1]
        except ValueError:
            return raw
        if isinstance(unwrapped, str):
            return unwrapped.strip()
    return raw


def decode_snapshot(token: Any) -> Any:
    """Reverse encode_snapshot; falls back to plain JSON for legacy rows, None if unreadable"""
    if token is None:
        return None
    if isinstance(token, (bytes, bytearray)):
        token = token.decode("utf-8", errors="replace")
    if not isinstance(token, str):
        # JSON column drivers hand back already-parsed values
        return token

    trimmed = _unwrap_quotes(token.strip())
    if not trimmed:
        return None

    try:
        json_string = base64.b64decode(trimmed, validate=True).decode("utf-8")
        return json.loads(json_string)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        pass

    try:
        return json.loads(trimmed)
    except ValueError:
        logger.warning(f"⚠️ Unreadable archived snapshot ({len(trimmed)} chars), skipping payload")
        return None


def storage_saving(record: Any, token: str) -> str:
    """Human readable size comparison of the raw JSON and the stored token"""
    original_size = len(json.dumps(record, default=str))
    stored_size = len(token)
    if not original_size:
        return "0.0% (0 → 0 bytes)"
    saved_percent = (original_size - stored_size) / original_size * 100
    return f"{saved_percent:.1f}% ({original_size} → {stored_size} bytes)"
