"""Archive domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BookingSnapshot(BaseModel):
    """
    Booking document at the moment of a lifecycle transition.

    Only identity and contact fields are declared. Routers validate the
    request body against this model and hand the raw document on, so every
    other field (amounts, payment metadata, selected* collections,
    _originalBooking) reaches the archive untouched.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    bookingId: Optional[Any] = None
    id: Optional[Any] = None
    mongo_id: Optional[Any] = Field(default=None, alias="_id")
    name: Optional[str] = None
    email: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def validate_identity(cls, data):
        if not isinstance(data, dict):
            raise ValueError("booking snapshot must be an object")
        nested = data.get("_originalBooking")
        nested = nested if isinstance(nested, dict) else {}
        candidates = (
            data.get("bookingId"),
            data.get("id"),
            data.get("_id"),
            nested.get("bookingId"),
            nested.get("id"),
            nested.get("_id"),
        )
        if not any(candidates):
            raise ValueError("bookingId is required")
        return data


class ArchiveResult(BaseModel):
    """Outcome of one archival write"""

    success: bool
    booking_id: Optional[str] = None
    error: Optional[str] = None
    rows_affected: int = 0
    legacy_fallback: bool = False  # Written with the first-version column set only
    schema_report: Optional[dict] = None


class DateRange(BaseModel):
    start: date
    end: date

    @model_validator(mode="after")
    def validate_order(self):
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self


class HistoryResult(BaseModel):
    success: bool
    records: list[dict] = Field(default_factory=list)
    total: int = 0
    error: Optional[str] = None


class ArchivedBookingResult(BaseModel):
    """One stored archive row; ``booking`` is None when no row matched"""

    success: bool
    booking: Optional[dict] = None
    error: Optional[str] = None


class StatsResult(BaseModel):
    success: bool
    stats: dict[str, dict[str, int]] = Field(default_factory=dict)
    error: Optional[str] = None


class TransitionResult(BaseModel):
    """Outcome of a cancel/complete transition seen by the booking-update handler"""

    success: bool
    booking_id: Optional[str] = None
    archived: bool = False
    deleted: bool = False
    error: Optional[str] = None
