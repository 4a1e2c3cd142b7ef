"""Archive domain - Cancelled and completed booking archival, history and stats"""

from .router import router
from .service import ArchiveService
from .transitions import BookingTransitionService, OperationalBookingStore

__all__ = ["router", "ArchiveService", "BookingTransitionService", "OperationalBookingStore"]
