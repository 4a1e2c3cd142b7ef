"""Archive repository - Statements against the archive tables"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncConnection

from ...models import CancelledBooking, CompletedBooking


def build_upsert(dialect_name: str, table, values: dict[str, Any], key: str):
    """
    INSERT that updates the existing row when ``key`` already exists.

    MySQL uses ON DUPLICATE KEY UPDATE; PostgreSQL and SQLite use
    ON CONFLICT (key) DO UPDATE. ``updated_at`` is refreshed on update.
    """
    update_columns = [name for name in values if name != key]

    if dialect_name in ("mysql", "mariadb"):
        stmt = mysql_insert(table).values(**values)
        updates = {name: stmt.inserted[name] for name in update_columns}
        updates["updated_at"] = func.now()
        return stmt.on_duplicate_key_update(updates)

    if dialect_name == "postgresql":
        stmt = postgresql_insert(table).values(**values)
    elif dialect_name == "sqlite":
        stmt = sqlite_insert(table).values(**values)
    else:
        raise ValueError(f"Upsert is not supported for dialect {dialect_name!r}")

    updates = {name: stmt.excluded[name] for name in update_columns}
    updates["updated_at"] = func.now()
    return stmt.on_conflict_do_update(index_elements=[key], set_=updates)


class ArchiveRepository:
    """Repository for archive table statements"""

    @staticmethod
    async def upsert_booking(conn: AsyncConnection, model, values: dict[str, Any]) -> int:
        """Upsert one archived booking keyed by booking_id; returns affected rows"""
        stmt = build_upsert(conn.dialect.name, model.__table__, values, key="booking_id")
        result = await conn.execute(stmt)
        return result.rowcount

    @staticmethod
    async def get_booking_row(conn: AsyncConnection, model, booking_id: str) -> Optional[dict]:
        """Full archived row for one booking id"""
        table = model.__table__
        result = await conn.execute(select(table).where(table.c.booking_id == booking_id))
        row = result.mappings().first()
        return dict(row) if row else None

    @staticmethod
    async def get_cancelled_history(conn: AsyncConnection, start: datetime, end: datetime) -> list:
        table = CancelledBooking.__table__
        stmt = (
            select(
                table.c.booking_id,
                table.c.name,
                table.c.email,
                table.c.phone,
                table.c.theater_name,
                table.c.booking_date,
                table.c.booking_time,
                table.c.total_amount,
                table.c.cancelled_at,
                table.c.original_booking_data,
                table.c.cancellation_reason,
                table.c.refund_amount,
                table.c.refund_status,
            )
            .where(table.c.cancelled_at.between(start, end))
            .order_by(table.c.cancelled_at.desc())
        )
        result = await conn.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    @staticmethod
    async def get_completed_history(conn: AsyncConnection, start: datetime, end: datetime) -> list:
        table = CompletedBooking.__table__
        stmt = (
            select(
                table.c.booking_id,
                table.c.name,
                table.c.email,
                table.c.phone,
                table.c.theater_name,
                table.c.booking_date,
                table.c.booking_time,
                table.c.total_amount,
                table.c.completed_at,
            )
            .where(table.c.completed_at.between(start, end))
            .order_by(table.c.completed_at.desc())
        )
        result = await conn.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    @staticmethod
    async def get_period_counts(
        conn: AsyncConnection, model, now: Optional[datetime] = None
    ) -> dict[str, int]:
        """Archived rows in total, today, this ISO week, this month and this year"""
        now = now or datetime.now(timezone.utc).replace(tzinfo=None)
        table = model.__table__
        archived_at = table.c[model.__archived_at_column__]

        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        boundaries = {
            "today": today,
            "this_week": today - timedelta(days=today.weekday()),
            "this_month": today.replace(day=1),
            "this_year": today.replace(month=1, day=1),
        }

        counts = {}
        total = await conn.execute(select(func.count()).select_from(table))
        counts["total"] = total.scalar_one()
        for label, since in boundaries.items():
            result = await conn.execute(
                select(func.count()).select_from(table).where(archived_at >= since)
            )
            counts[label] = result.scalar_one()
        return counts
