"""Archive service - Moves finished bookings into the reporting store"""

import csv
import logging
from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from decimal import Decimal
from io import StringIO
from typing import Any, Callable

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError

from ...database import ArchiveDatabase
from ...models import ARCHIVE_MODELS, CancelledBooking, CompletedBooking, Feedback
from ...shared.db_errors import is_unknown_column_error
from .codec import decode_snapshot, encode_snapshot, storage_saving
from .projection import (
    legacy_columns,
    project_cancelled_columns,
    project_completed_columns,
    resolve_booking_id,
)
from .reconcile import ORIGINAL_BOOKING_KEY, reconcile_booking
from .repository import ArchiveRepository
from .schema_guard import ensure_schema
from .schemas import ArchivedBookingResult, ArchiveResult, HistoryResult, StatsResult

logger = logging.getLogger(__name__)

# (connection errors, driver errors, unexpected payload types)
ARCHIVE_ERRORS = (SQLAlchemyError, OSError, TypeError, ValueError)

HISTORY_CSV_HEADER = [
    "Booking ID",
    "Status",
    "Name",
    "Email",
    "Phone",
    "Theater",
    "Date",
    "Time",
    "Total Amount",
    "Archived At",
    "Cancellation Reason",
    "Refund Amount",
    "Refund Status",
]


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def flatten_archived_snapshot(decoded: Any) -> dict:
    """Decoded snapshot with any nested original lifted under the top level"""
    source = decoded if isinstance(decoded, Mapping) else {}
    nested = source.get(ORIGINAL_BOOKING_KEY)
    if isinstance(nested, Mapping):
        flattened = {**flatten_archived_snapshot(nested), **source}
        flattened.pop(ORIGINAL_BOOKING_KEY, None)
        return flattened
    return dict(source)


def build_cancelled_history_record(row: Mapping) -> dict:
    """One flat record per cancelled row; snapshot fields win, row columns fill the gaps"""
    row = {key: _json_value(value) for key, value in row.items()}
    source = flatten_archived_snapshot(decode_snapshot(row.get("original_booking_data")))

    booking_id = source.get("bookingId") or source.get("id") or row.get("booking_id")
    cancelled_at = source.get("cancelledAt") or row.get("cancelled_at")
    total_amount = source.get("totalAmount")
    refund_amount = source.get("refundAmount")
    refund_status = source.get("refundStatus")

    return {
        **source,
        "bookingId": booking_id,
        "id": source.get("id") or booking_id,
        "name": source.get("name") or row.get("name"),
        "email": source.get("email") or row.get("email"),
        "phone": source.get("phone") or row.get("phone"),
        "theaterName": source.get("theaterName") or row.get("theater_name"),
        "date": source.get("date") or row.get("booking_date"),
        "time": source.get("time") or row.get("booking_time"),
        "status": "cancelled",
        "totalAmount": total_amount if total_amount is not None else row.get("total_amount"),
        "createdAt": cancelled_at,
        "cancelledAt": cancelled_at,
        "cancellationReason": (
            source.get("cancellationReason")
            or source.get("cancelReason")
            or row.get("cancellation_reason")
        ),
        "refundAmount": refund_amount if refund_amount is not None else row.get("refund_amount"),
        "refundStatus": refund_status if refund_status is not None else row.get("refund_status"),
    }


def build_completed_history_record(row: Mapping) -> dict:
    row = {key: _json_value(value) for key, value in row.items()}
    return {
        "bookingId": row.get("booking_id"),
        "name": row.get("name"),
        "email": row.get("email"),
        "phone": row.get("phone"),
        "theaterName": row.get("theater_name"),
        "date": row.get("booking_date"),
        "time": row.get("booking_time"),
        "status": "completed",
        "totalAmount": row.get("total_amount"),
        "createdAt": row.get("completed_at"),
    }


class ArchiveService:
    """Service layer for booking archival and history"""

    def __init__(self, database: ArchiveDatabase):
        self.database = database
        self.repo = ArchiveRepository()

    # ------------------------------------------------------------------
    # Upsert writer
    # ------------------------------------------------------------------

    async def archive_cancelled(self, record: Mapping) -> ArchiveResult:
        """Archive a cancelled booking into cancelled_bookings"""
        return await self._archive(CancelledBooking, record, project_cancelled_columns)

    async def archive_completed(self, record: Mapping) -> ArchiveResult:
        """Archive a completed booking into completed_bookings"""
        return await self._archive(CompletedBooking, record, project_completed_columns)

    async def archive_manual(self, record: Mapping) -> ArchiveResult:
        """Manual (walk-in) bookings are kept in completed_bookings for reporting parity"""
        normalized = dict(record)
        normalized["status"] = normalized.get("status") or "manual"
        normalized["completedAt"] = (
            normalized.get("completedAt")
            or normalized.get("createdAt")
            or datetime.now(timezone.utc).isoformat()
        )
        normalized["paymentStatus"] = normalized.get("paymentStatus") or "unpaid"
        return await self.archive_completed(normalized)

    async def _archive(
        self,
        model,
        record: Mapping,
        project: Callable[[Mapping, str], dict],
    ) -> ArchiveResult:
        table_name = model.__tablename__
        if not isinstance(record, Mapping):
            return ArchiveResult(success=False, error="Booking snapshot must be an object")

        reconciled = reconcile_booking(record)
        booking_id = resolve_booking_id(reconciled)
        if not booking_id:
            logger.error(f"❌ Refusing to archive into {table_name}: missing bookingId")
            return ArchiveResult(success=False, error="Missing bookingId")

        logger.info(f"🔄 Archiving booking {booking_id} into {table_name}")
        try:
            async with self.database.connection() as conn:
                report = await ensure_schema(conn, model, self.database.schema_state)

                values = project(reconciled, booking_id)
                token = encode_snapshot(reconciled)
                values["original_booking_data"] = token

                legacy_fallback = False
                try:
                    rows = await self.repo.upsert_booking(conn, model, values)
                    await conn.commit()
                except SQLAlchemyError as e:
                    await conn.rollback()
                    if not is_unknown_column_error(e):
                        raise
                    logger.warning(
                        f"⚠️ {table_name} is missing newer columns, using legacy column set: {e}"
                    )
                    legacy_fallback = True
                    rows = await self.repo.upsert_booking(conn, model, legacy_columns(model, values))
                    await conn.commit()

            logger.info(f"✅ Booking {booking_id} archived into {table_name}")
            logger.info(f"💾 Storage saved: {storage_saving(reconciled, token)}")
            return ArchiveResult(
                success=True,
                booking_id=booking_id,
                rows_affected=rows,
                legacy_fallback=legacy_fallback,
                schema_report=report.summary(),
            )
        except ARCHIVE_ERRORS as e:
            logger.error(f"❌ Failed to archive booking {booking_id} into {table_name}: {e}")
            return ArchiveResult(success=False, booking_id=booking_id, error=str(e))

    # ------------------------------------------------------------------
    # History reader
    # ------------------------------------------------------------------

    async def query_archived(self, kind: str, start: date, end: date) -> HistoryResult:
        """Archived bookings with archival time in [start 00:00:00, end 23:59:59], newest first"""
        if kind not in ARCHIVE_MODELS:
            return HistoryResult(success=False, error=f"Unknown archive table: {kind}")

        start_dt = datetime.combine(start, time(0, 0, 0))
        end_dt = datetime.combine(end, time(23, 59, 59))
        try:
            async with self.database.connection() as conn:
                if kind == "cancelled":
                    rows = await self.repo.get_cancelled_history(conn, start_dt, end_dt)
                    records = [build_cancelled_history_record(row) for row in rows]
                else:
                    rows = await self.repo.get_completed_history(conn, start_dt, end_dt)
                    records = [build_completed_history_record(row) for row in rows]
        except ARCHIVE_ERRORS as e:
            logger.error(f"❌ Failed to fetch {kind} booking history: {e}")
            return HistoryResult(success=False, error=str(e))

        logger.info(f"📊 Loaded {len(records)} {kind} bookings ({start} → {end})")
        return HistoryResult(success=True, records=records, total=len(records))

    async def get_archived_booking(self, kind: str, booking_id: str) -> ArchivedBookingResult:
        """Stored row for a booking with its snapshot decoded"""
        model = ARCHIVE_MODELS.get(kind)
        if model is None:
            return ArchivedBookingResult(success=False, error=f"Unknown archive table: {kind}")
        try:
            async with self.database.connection() as conn:
                row = await self.repo.get_booking_row(conn, model, booking_id)
        except ARCHIVE_ERRORS as e:
            logger.error(f"❌ Failed to fetch archived {kind} booking {booking_id}: {e}")
            return ArchivedBookingResult(success=False, error=str(e))

        if row is None:
            return ArchivedBookingResult(success=True)
        row = {key: _json_value(value) for key, value in row.items()}
        row["original_booking_data"] = decode_snapshot(row.get("original_booking_data"))
        return ArchivedBookingResult(success=True, booking=row)

    async def export_history_csv(self, kind: str, start: date, end: date) -> StreamingResponse:
        """Archived history as a CSV download"""
        history = await self.query_archived(kind, start, end)
        if not history.success:
            logger.error(f"❌ CSV export of {kind} bookings failed: {history.error}")
            raise HTTPException(
                status_code=500, detail="Failed to export archived bookings. Please try again."
            )

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(HISTORY_CSV_HEADER)
        for record in history.records:
            writer.writerow(
                [
                    record.get("bookingId") or "",
                    record.get("status") or "",
                    record.get("name") or "",
                    record.get("email") or "",
                    record.get("phone") or "",
                    record.get("theaterName") or "",
                    record.get("date") or "",
                    record.get("time") or "",
                    "" if record.get("totalAmount") is None else record.get("totalAmount"),
                    record.get("createdAt") or "",
                    record.get("cancellationReason") or "",
                    "" if record.get("refundAmount") is None else record.get("refundAmount"),
                    record.get("refundStatus") or "",
                ]
            )

        output.seek(0)
        filename = f"{kind}_bookings_{start.isoformat()}_{end.isoformat()}.csv"
        logger.info(f"✅ CSV export ready: {filename} ({history.total} bookings)")
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename={filename}",
                "Cache-Control": "no-cache",
            },
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def get_booking_stats(self) -> StatsResult:
        try:
            async with self.database.connection() as conn:
                stats = {
                    kind: await self.repo.get_period_counts(conn, model)
                    for kind, model in ARCHIVE_MODELS.items()
                }
        except ARCHIVE_ERRORS as e:
            logger.error(f"❌ Failed to get archive booking stats: {e}")
            return StatsResult(success=False, error=str(e))
        return StatsResult(success=True, stats=stats)

    async def create_tables(self) -> dict:
        """Create all archive tables and force a fresh column check on next use"""
        try:
            async with self.database.connection() as conn:
                for model in (CancelledBooking, CompletedBooking, Feedback):
                    await conn.run_sync(model.__table__.create, checkfirst=True)
                await conn.commit()
        except ARCHIVE_ERRORS as e:
            logger.error(f"❌ Failed to create archive tables: {e}")
            return {"success": False, "error": str(e)}

        self.database.schema_state.reset()
        logger.info("✅ Archive tables created successfully")
        return {"success": True, "message": "Tables created successfully"}
