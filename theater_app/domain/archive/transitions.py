"""Booking transition guard - archive first, delete the operational row second"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Protocol

from .projection import resolve_booking_id
from .reconcile import reconcile_booking
from .schemas import ArchiveResult, TransitionResult
from .service import ArchiveService

logger = logging.getLogger(__name__)


class OperationalBookingStore(Protocol):
    """The primary booking store; only deletion is needed here"""

    async def delete_booking(self, booking_id: str) -> bool: ...


class BookingTransitionService:
    """
    Runs a cancel/complete transition across both stores.

    There is no cross-store transaction: the operational booking is deleted
    only after the archive write succeeded. When archival fails the booking
    stays where it is, so a retry of the same transition is always safe
    (archival is an upsert keyed on booking_id).
    """

    def __init__(self, archive_service: ArchiveService, operational_store: OperationalBookingStore):
        self.archive_service = archive_service
        self.operational_store = operational_store

    async def cancel(self, snapshot: Mapping) -> TransitionResult:
        return await self._transition("cancel", snapshot, self.archive_service.archive_cancelled)

    async def complete(self, snapshot: Mapping) -> TransitionResult:
        return await self._transition("complete", snapshot, self.archive_service.archive_completed)

    async def complete_manual(self, snapshot: Mapping) -> TransitionResult:
        return await self._transition("complete", snapshot, self.archive_service.archive_manual)

    async def _transition(
        self,
        action: str,
        snapshot: Mapping,
        archive: Callable[[Mapping], Awaitable[ArchiveResult]],
    ) -> TransitionResult:
        archived = await archive(snapshot)
        booking_id = archived.booking_id or (
            resolve_booking_id(reconcile_booking(snapshot)) if isinstance(snapshot, Mapping) else None
        )

        if not archived.success:
            logger.error(
                f"❌ Not deleting booking {booking_id} after failed {action} archival: {archived.error}"
            )
            return TransitionResult(
                success=False,
                booking_id=booking_id,
                archived=False,
                deleted=False,
                error=archived.error,
            )

        try:
            deleted = await self.operational_store.delete_booking(booking_id)
        except Exception as e:
            # Archive row stays; a retried transition re-upserts it
            logger.error(f"❌ Booking {booking_id} archived but operational delete failed: {e}")
            return TransitionResult(
                success=False,
                booking_id=booking_id,
                archived=True,
                deleted=False,
                error=str(e),
            )

        if not deleted:
            logger.warning(f"⚠️ Booking {booking_id} archived but was not found in the operational store")
        else:
            logger.info(f"✅ Booking {booking_id} {action} transition finished")
        return TransitionResult(success=True, booking_id=booking_id, archived=True, deleted=deleted)
