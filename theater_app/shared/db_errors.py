"""Driver error classification for the archive database.

The archive store can be MySQL (production), PostgreSQL or SQLite (tests), and
each driver reports the same condition differently: MySQL by error number in
``args[0]``, psycopg by SQLSTATE, SQLite only by message text.
"""

import errno
from typing import Iterator, Optional

# MySQL server / client error numbers
ER_DUP_FIELDNAME = 1060
ER_BAD_FIELD_ERROR = 1054
CR_SERVER_GONE_ERROR = 2006
CR_SERVER_LOST = 2013

# PostgreSQL SQLSTATE codes
PG_DUPLICATE_COLUMN = "42701"
PG_UNDEFINED_COLUMN = "42703"

TRANSIENT_MYSQL_CODES = {CR_SERVER_GONE_ERROR, CR_SERVER_LOST}
TRANSIENT_ERRNOS = {errno.ETIMEDOUT, errno.ECONNRESET}


def _error_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield the exception, its DBAPI ``orig`` and its cause/context chain."""
    seen = set()
    stack = [exc]
    while stack:
        current = stack.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        stack.append(getattr(current, "orig", None))
        stack.append(current.__cause__)
        stack.append(current.__context__)


def mysql_error_code(exc: BaseException) -> Optional[int]:
    for err in _error_chain(exc):
        args = getattr(err, "args", ())
        if args and isinstance(args[0], int) and not isinstance(args[0], bool):
            return args[0]
    return None


def sqlstate(exc: BaseException) -> Optional[str]:
    for err in _error_chain(exc):
        code = getattr(err, "sqlstate", None) or getattr(err, "pgcode", None)
        if code:
            return str(code)
    return None


def _message(exc: BaseException) -> str:
    return " ".join(str(err) for err in _error_chain(exc)).lower()


def is_duplicate_column_error(exc: BaseException) -> bool:
    """Column already exists - the expected outcome of a repeated ADD COLUMN."""
    if mysql_error_code(exc) == ER_DUP_FIELDNAME:
        return True
    if sqlstate(exc) == PG_DUPLICATE_COLUMN:
        return True
    message = _message(exc)
    return "duplicate column" in message or (
        "column" in message and "already exists" in message
    )


def is_unknown_column_error(exc: BaseException) -> bool:
    """Statement referenced a column the table does not have (unmigrated schema)."""
    if mysql_error_code(exc) == ER_BAD_FIELD_ERROR:
        return True
    if sqlstate(exc) == PG_UNDEFINED_COLUMN:
        return True
    message = _message(exc)
    return "has no column named" in message or "no such column" in message or "unknown column" in message


def is_transient_connection_error(exc: BaseException) -> bool:
    """Timeouts and resets worth exactly one reconnect attempt."""
    for err in _error_chain(exc):
        if isinstance(err, (TimeoutError, ConnectionResetError)):
            return True
        if isinstance(err, OSError) and err.errno in TRANSIENT_ERRNOS:
            return True
    return mysql_error_code(exc) in TRANSIENT_MYSQL_CODES
