"""Additive self-healing of archive table schemas.

Archive tables grew columns over several releases and older deployments still
run the first-version tables. Instead of a migration tool, the first write to
a table in each process creates it if missing and adds every column newer
than ``__baseline_columns__`` with ``ALTER TABLE ... ADD COLUMN``.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from ...database import SchemaState
from ...shared.db_errors import is_duplicate_column_error

logger = logging.getLogger(__name__)


class SchemaEnsureOutcome(str, enum.Enum):
    APPLIED = "applied"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


@dataclass
class ColumnEnsureResult:
    column: str
    outcome: SchemaEnsureOutcome
    reason: Optional[str] = None


@dataclass
class SchemaEnsureReport:
    table: str
    cached: bool = False
    columns: list[ColumnEnsureResult] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when at least one column could not be ensured"""
        return any(c.outcome is SchemaEnsureOutcome.FAILED for c in self.columns)

    @property
    def applied(self) -> list[str]:
        return [c.column for c in self.columns if c.outcome is SchemaEnsureOutcome.APPLIED]

    def summary(self) -> dict:
        return {
            "table": self.table,
            "cached": self.cached,
            "applied": self.applied,
            "failed": {
                c.column: c.reason for c in self.columns if c.outcome is SchemaEnsureOutcome.FAILED
            },
        }


def added_columns(model) -> list:
    """Columns introduced after the table's first version, in declaration order"""
    baseline = set(model.__baseline_columns__)
    return [column for column in model.__table__.columns if column.name not in baseline]


def add_column_ddl(conn: AsyncConnection, table_name: str, column) -> str:
    dialect = conn.dialect
    quote = dialect.identifier_preparer.quote
    column_type = column.type.compile(dialect=dialect)
    return f"ALTER TABLE {quote(table_name)} ADD COLUMN {quote(column.name)} {column_type} NULL"


async def _add_column(conn: AsyncConnection, table_name: str, column) -> ColumnEnsureResult:
    try:
        await conn.execute(text(add_column_ddl(conn, table_name, column)))
        await conn.commit()
        logger.info(f"✅ Added column {table_name}.{column.name}")
        return ColumnEnsureResult(column.name, SchemaEnsureOutcome.APPLIED)
    except SQLAlchemyError as e:
        await conn.rollback()
        if is_duplicate_column_error(e):
            return ColumnEnsureResult(column.name, SchemaEnsureOutcome.ALREADY_EXISTS)
        logger.warning(f"⚠️ Failed to ensure {table_name}.{column.name} exists: {e}")
        return ColumnEnsureResult(column.name, SchemaEnsureOutcome.FAILED, str(e))


async def ensure_schema(conn: AsyncConnection, model, state: SchemaState) -> SchemaEnsureReport:
    """
    Bring ``model``'s table up to the current column set.

    Idempotent and cached in ``state``: a table is marked ensured only when no
    column failed, so a degraded table is retried on its next use while a
    healthy one is never re-checked in this process.
    """
    table = model.__table__
    report = SchemaEnsureReport(table=table.name)
    if state.is_ensured(table.name):
        report.cached = True
        return report

    try:
        await conn.run_sync(table.create, checkfirst=True)
        await conn.commit()
    except SQLAlchemyError as e:
        await conn.rollback()
        logger.warning(f"⚠️ Could not create table {table.name}: {e}")

    for column in added_columns(model):
        report.columns.append(await _add_column(conn, table.name, column))

    if report.degraded:
        logger.warning(f"⚠️ Schema for {table.name} is degraded: {report.summary()['failed']}")
    else:
        state.mark_ensured(table.name)
        if report.applied:
            logger.info(f"📊 Schema for {table.name} upgraded: {', '.join(report.applied)}")
    return report
