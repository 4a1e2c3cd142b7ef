"""Archive router - FastAPI endpoints for booking archival and history"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import ValidationError

from ...database import ArchiveDatabase, get_database
from ...models import ARCHIVE_MODELS
from .schemas import ArchiveResult, BookingSnapshot, DateRange
from .service import ArchiveService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/archive", tags=["Archive"])


def get_archive_service(database: ArchiveDatabase = Depends(get_database)) -> ArchiveService:
    """Dependency injection for ArchiveService"""
    return ArchiveService(database)


def _validated_snapshot(payload: dict[str, Any]) -> dict[str, Any]:
    try:
        BookingSnapshot.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors()[0]["msg"])
    return payload


def _validated_range(start: str, end: str) -> DateRange:
    try:
        return DateRange(start=start, end=end)
    except ValidationError:
        raise HTTPException(
            status_code=400, detail="start and end must be YYYY-MM-DD dates with start <= end"
        )


def _validated_kind(kind: str) -> str:
    if kind not in ARCHIVE_MODELS:
        raise HTTPException(status_code=404, detail=f"Unknown archive table: {kind}")
    return kind


def _archive_response(result: ArchiveResult) -> dict:
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error or "Archival failed")
    return result.model_dump()


# ============================================================================
# ARCHIVAL
# ============================================================================


@router.post("/cancelled")
async def archive_cancelled_booking(
    payload: dict[str, Any] = Body(...),
    service: ArchiveService = Depends(get_archive_service),
):
    """Archive a cancelled booking snapshot"""
    result = await service.archive_cancelled(_validated_snapshot(payload))
    return _archive_response(result)


@router.post("/completed")
async def archive_completed_booking(
    payload: dict[str, Any] = Body(...),
    service: ArchiveService = Depends(get_archive_service),
):
    """Archive a completed booking snapshot"""
    result = await service.archive_completed(_validated_snapshot(payload))
    return _archive_response(result)


@router.post("/manual")
async def archive_manual_booking(
    payload: dict[str, Any] = Body(...),
    service: ArchiveService = Depends(get_archive_service),
):
    """Archive a manual booking into the completed table"""
    result = await service.archive_manual(_validated_snapshot(payload))
    return _archive_response(result)


# ============================================================================
# HISTORY
# ============================================================================


@router.get("/history/{kind}")
async def get_archive_history(
    kind: str,
    start: str = Query(...),
    end: str = Query(...),
    service: ArchiveService = Depends(get_archive_service),
):
    """Archived bookings of one kind within a date range, newest first"""
    date_range = _validated_range(start, end)
    history = await service.query_archived(_validated_kind(kind), date_range.start, date_range.end)
    if not history.success:
        raise HTTPException(status_code=500, detail=history.error)
    return history.model_dump()


@router.get("/history/{kind}/export")
async def export_archive_history(
    kind: str,
    start: str = Query(...),
    end: str = Query(...),
    service: ArchiveService = Depends(get_archive_service),
):
    """Export archived bookings as CSV"""
    date_range = _validated_range(start, end)
    return await service.export_history_csv(
        _validated_kind(kind), date_range.start, date_range.end
    )


@router.get("/bookings/{kind}/{booking_id}")
async def get_archived_booking(
    kind: str,
    booking_id: str,
    service: ArchiveService = Depends(get_archive_service),
):
    """Stored archive row for one booking, snapshot decoded"""
    result = await service.get_archived_booking(_validated_kind(kind), booking_id)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    if result.booking is None:
        raise HTTPException(status_code=404, detail="Archived booking not found")
    return result.booking


# ============================================================================
# MAINTENANCE
# ============================================================================


@router.get("/status")
async def get_archive_status(
    database: ArchiveDatabase = Depends(get_database),
    service: ArchiveService = Depends(get_archive_service),
):
    """Connection test plus per-table booking counts"""
    connection = await database.test_connection()
    stats = await service.get_booking_stats() if connection["success"] else None
    return {
        "connection": connection,
        "stats": stats.stats if stats and stats.success else {},
    }


@router.post("/tables")
async def create_archive_tables(service: ArchiveService = Depends(get_archive_service)):
    """Create the archive tables if they do not exist"""
    result = await service.create_tables()
    if not result["success"]:
        raise HTTPException(status_code=500, detail=result["error"])
    return result
