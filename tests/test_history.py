from __future__ import annotations

from datetime import date, datetime

import pytest
from sqlalchemy import update

from theater_app.domain.archive.codec import encode_snapshot
from theater_app.domain.archive.repository import ArchiveRepository
from theater_app.models import CancelledBooking, CompletedBooking


@pytest.mark.asyncio
async def test_cancelled_history_in_range_newest_first(archive_service, cancelled_booking) -> None:
    await archive_service.archive_cancelled({**cancelled_booking, "bookingId": "B1", "cancelledAt": "2026-03-01T09:00:00Z"})
    await archive_service.archive_cancelled({**cancelled_booking, "bookingId": "B2", "cancelledAt": "2026-03-05T23:30:00Z"})
    await archive_service.archive_cancelled({**cancelled_booking, "bookingId": "B3", "cancelledAt": "2026-03-06T00:00:01Z"})

    history = await archive_service.query_archived("cancelled", date(2026, 3, 1), date(2026, 3, 5))

    assert history.success
    assert [r["bookingId"] for r in history.records] == ["B2", "B1"]
    assert history.total == 2
    first = history.records[0]
    assert first["status"] == "cancelled"
    assert first["cancelledAt"] == "2026-03-05T23:30:00Z"
    assert first["createdAt"] == first["cancelledAt"]
    assert first["cancellationReason"] == "Customer requested"
    assert first["totalAmount"] == 5000
    assert first["occasion"] == "Birthday"


@pytest.mark.asyncio
async def test_cancelled_history_flattens_nested_original(archive_service, database) -> None:
    await archive_service.archive_cancelled(
        {"bookingId": "B4", "cancelledAt": "2026-03-02T10:00:00Z", "cancelReason": "Rain"}
    )
    # Rows written before reconciliation kept the nested original in the blob
    nested = {
        "bookingId": "B4",
        "cancelReason": "Rain",
        "_originalBooking": {"theaterName": "Royal Screen", "phone": "555"},
    }
    async with database.connection() as conn:
        table = CancelledBooking.__table__
        await conn.execute(
            update(table)
            .where(table.c.booking_id == "B4")
            .values(original_booking_data=encode_snapshot(nested))
        )
        await conn.commit()

    history = await archive_service.query_archived("cancelled", date(2026, 3, 2), date(2026, 3, 2))

    record = history.records[0]
    assert "_originalBooking" not in record
    assert record["theaterName"] == "Royal Screen"
    assert record["phone"] == "555"
    assert record["cancellationReason"] == "Rain"
    assert record["name"] == "Unknown"
    assert record["cancelledAt"] == "2026-03-02T10:00:00"


@pytest.mark.asyncio
async def test_cancelled_history_survives_unreadable_blob(archive_service, database, cancelled_booking) -> None:
    await archive_service.archive_cancelled(cancelled_booking)
    async with database.connection() as conn:
        table = CancelledBooking.__table__
        await conn.execute(update(table).values(original_booking_data="%%%not-a-snapshot"))
        await conn.commit()

    history = await archive_service.query_archived("cancelled", date(2026, 3, 10), date(2026, 3, 10))

    record = history.records[0]
    assert record["bookingId"] == "B100"
    assert record["name"] == "Asha"
    assert record["theaterName"] == "Royal Screen"
    assert record["refundStatus"] == "pending"


@pytest.mark.asyncio
async def test_completed_history_projection(archive_service) -> None:
    await archive_service.archive_completed(
        {
            "bookingId": "C1",
            "name": "Ravi",
            "email": "ravi@example.com",
            "theaterName": "Royal Screen",
            "date": "2026-04-01",
            "time": "6:00 PM",
            "totalAmount": 3200,
            "completedAt": "2026-04-01T21:00:00Z",
        }
    )

    history = await archive_service.query_archived("completed", date(2026, 4, 1), date(2026, 4, 1))

    assert history.records == [
        {
            "bookingId": "C1",
            "name": "Ravi",
            "email": "ravi@example.com",
            "phone": None,
            "theaterName": "Royal Screen",
            "date": "2026-04-01",
            "time": "6:00 PM",
            "status": "completed",
            "totalAmount": 3200.0,
            "createdAt": "2026-04-01T21:00:00",
        }
    ]


@pytest.mark.asyncio
async def test_unknown_kind(archive_service) -> None:
    history = await archive_service.query_archived("deleted", date(2026, 1, 1), date(2026, 1, 2))

    assert not history.success
    assert "deleted" in history.error


@pytest.mark.asyncio
async def test_get_archived_booking_decodes_snapshot(archive_service, cancelled_booking) -> None:
    await archive_service.archive_cancelled(cancelled_booking)

    found = await archive_service.get_archived_booking("cancelled", "B100")
    missing = await archive_service.get_archived_booking("cancelled", "missing")

    assert found.success
    assert found.booking["booking_id"] == "B100"
    assert found.booking["original_booking_data"] == cancelled_booking
    assert missing.success
    assert missing.booking is None


@pytest.mark.asyncio
async def test_get_archived_booking_reports_driver_errors(archive_service) -> None:
    # Nothing has been archived yet, so the table does not exist
    result = await archive_service.get_archived_booking("completed", "C1")

    assert not result.success
    assert result.booking is None
    assert "completed_bookings" in result.error


@pytest.mark.asyncio
async def test_period_counts(archive_service, database) -> None:
    for booking_id, completed_at in [
        ("C1", "2026-10-18T08:00:00Z"),
        ("C2", "2026-10-13T08:00:00Z"),
        ("C3", "2026-10-02T08:00:00Z"),
        ("C4", "2026-02-02T08:00:00Z"),
        ("C5", "2025-12-31T08:00:00Z"),
    ]:
        await archive_service.archive_completed({"bookingId": booking_id, "completedAt": completed_at})

    async with database.connection() as conn:
        counts = await ArchiveRepository.get_period_counts(
            conn, CompletedBooking, now=datetime(2026, 10, 18, 12, 0)
        )

    # 2026-10-18 is a Sunday; its ISO week starts on Monday 2026-10-12
    assert counts == {"total": 5, "today": 1, "this_week": 2, "this_month": 3, "this_year": 4}


@pytest.mark.asyncio
async def test_booking_stats_cover_both_tables(archive_service, cancelled_booking) -> None:
    await archive_service.archive_cancelled(cancelled_booking)

    stats = await archive_service.get_booking_stats()

    assert stats.success
    assert stats.stats["cancelled"]["total"] == 1
    assert stats.stats["completed"]["total"] == 0


@pytest.mark.asyncio
async def test_export_history_csv(archive_service, cancelled_booking) -> None:
    await archive_service.archive_cancelled(cancelled_booking)

    response = await archive_service.export_history_csv("cancelled", date(2026, 3, 1), date(2026, 3, 31))

    body = "".join([chunk async for chunk in response.body_iterator])
    lines = body.strip().splitlines()
    assert response.media_type == "text/csv"
    assert "cancelled_bookings_2026-03-01_2026-03-31.csv" in response.headers["content-disposition"]
    assert lines[0].startswith("Booking ID,Status,Name")
    assert lines[1].startswith("B100,cancelled,Asha,asha@example.com")


@pytest.mark.asyncio
async def test_create_tables_resets_schema_cache(archive_service, database) -> None:
    database.schema_state.mark_ensured("cancelled_bookings")

    result = await archive_service.create_tables()

    assert result["success"]
    assert not database.schema_state.is_ensured("cancelled_bookings")
