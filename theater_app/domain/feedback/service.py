"""Feedback service - Mirrors operational feedback documents into the archive store"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ...database import ArchiveDatabase
from ...models import Feedback
from ...shared.coercion import (
    first_present,
    normalize_mongo_id,
    parse_datetime,
    to_int_or_none,
    to_number_or_none,
)
from ..archive.schema_guard import ensure_schema
from .repository import FeedbackRepository
from .schemas import FeedbackListResult, FeedbackResult

logger = logging.getLogger(__name__)

FEEDBACK_ERRORS = (SQLAlchemyError, OSError, TypeError, ValueError)

# Update keys that map straight onto a column
UPDATABLE_FIELDS = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "avatar": "avatar",
    "avatarType": "avatar_type",
    "socialHandle": "social_handle",
    "socialPlatform": "social_platform",
    "message": "message",
    "status": "status",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_feedback_id(value: Any) -> Optional[int]:
    """Numeric feedback id from a number or a numeric string, else None"""
    if isinstance(value, bool):
        return None
    number = to_number_or_none(value)
    if number is None or float(number) != int(number):
        return None
    return int(number)


def feedback_columns(record: Mapping) -> dict[str, Any]:
    submitted_at = parse_datetime(first_present(record.get("submittedAt"), record.get("submitted_at")))
    created_at = parse_datetime(first_present(record.get("createdAt"), record.get("created_at")))
    updated_at = parse_datetime(first_present(record.get("updatedAt"), record.get("updated_at")))
    return {
        "mongo_id": normalize_mongo_id(
            first_present(record.get("mongoId"), record.get("mongo_id"), record.get("_id"))
        ),
        "feedback_id": parse_feedback_id(
            first_present(record.get("feedbackId"), record.get("feedback_id"))
        ),
        "name": record.get("name"),
        "email": record.get("email"),
        "phone": record.get("phone"),
        "avatar": record.get("avatar"),
        "avatar_type": first_present(record.get("avatarType"), record.get("avatar_type")),
        "social_handle": first_present(record.get("socialHandle"), record.get("social_handle")),
        "social_platform": first_present(
            record.get("socialPlatform"), record.get("social_platform")
        ),
        "message": record.get("message"),
        "rating": to_int_or_none(record.get("rating")),
        "submitted_at": submitted_at,
        "status": record.get("status"),
        "is_testimonial": record.get("isTestimonial") is True,
        "created_at_source": created_at or submitted_at or _utcnow(),
        "updated_at_source": updated_at or _utcnow(),
    }


def feedback_update_values(updates: Mapping) -> dict[str, Any]:
    """SET values for the keys present in ``updates``; source and row timestamps always refresh"""
    values = {column: updates[key] for key, column in UPDATABLE_FIELDS.items() if key in updates}
    if "rating" in updates:
        values["rating"] = to_int_or_none(updates["rating"])
    if "isTestimonial" in updates:
        values["is_testimonial"] = updates["isTestimonial"] is True
    if "submittedAt" in updates:
        values["submitted_at"] = parse_datetime(updates["submittedAt"])
    if "createdAt" in updates:
        values["created_at_source"] = parse_datetime(updates["createdAt"])
    values["updated_at_source"] = parse_datetime(updates.get("updatedAt")) or _utcnow()
    values["updated_at"] = func.now()
    return values


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


def feedback_record(row: Mapping) -> dict:
    return {
        "_id": row.get("mongo_id"),
        "mongoId": row.get("mongo_id"),
        "feedbackId": row.get("feedback_id"),
        "name": row.get("name"),
        "email": row.get("email"),
        "phone": row.get("phone"),
        "avatar": row.get("avatar"),
        "avatarType": row.get("avatar_type"),
        "socialHandle": row.get("social_handle"),
        "socialPlatform": row.get("social_platform"),
        "message": row.get("message"),
        "rating": row.get("rating"),
        "submittedAt": _iso(row.get("submitted_at")),
        "status": row.get("status"),
        "isTestimonial": bool(row.get("is_testimonial")),
        "createdAt": _iso(row.get("created_at_source")),
        "updatedAt": _iso(row.get("updated_at_source")),
    }


class FeedbackService:
    """Service layer for the feedback mirror"""

    def __init__(self, database: ArchiveDatabase):
        self.database = database
        self.repo = FeedbackRepository()

    async def upsert_feedback(self, record: Mapping) -> FeedbackResult:
        """Insert or refresh a feedback document, keyed by its operational id"""
        try:
            values = feedback_columns(record)
            async with self.database.connection() as conn:
                await ensure_schema(conn, Feedback, self.database.schema_state)
                rows = await self.repo.upsert_feedback(conn, values)
                await conn.commit()
        except FEEDBACK_ERRORS as e:
            logger.error(f"❌ Failed to upsert feedback: {e}")
            return FeedbackResult(success=False, error=str(e))

        logger.info(f"✅ Feedback {values['mongo_id'] or values['feedback_id']} synced")
        return FeedbackResult(success=True, mongo_id=values["mongo_id"], rows_affected=rows)

    async def delete_feedback(self, mongo_id: Any = None, feedback_id: Any = None) -> FeedbackResult:
        """Delete by every identifier given; at least one is required"""
        normalized_mongo_id = normalize_mongo_id(mongo_id)
        normalized_feedback_id = parse_feedback_id(feedback_id)
        if not normalized_mongo_id and normalized_feedback_id is None:
            return FeedbackResult(success=False, error="Missing identifier for feedback delete")

        try:
            async with self.database.connection() as conn:
                await ensure_schema(conn, Feedback, self.database.schema_state)
                rows = 0
                if normalized_mongo_id:
                    rows += await self.repo.delete_by_mongo_id(conn, normalized_mongo_id)
                if normalized_feedback_id is not None:
                    rows += await self.repo.delete_by_feedback_id(conn, normalized_feedback_id)
                await conn.commit()
        except FEEDBACK_ERRORS as e:
            logger.error(f"❌ Failed to delete feedback: {e}")
            return FeedbackResult(success=False, error=str(e))

        logger.info(f"🗑️ Deleted {rows} feedback row(s)")
        return FeedbackResult(success=True, mongo_id=normalized_mongo_id, rows_affected=rows)

    async def update_feedback(
        self, mongo_id: Any = None, feedback_id: Any = None, updates: Optional[Mapping] = None
    ) -> FeedbackResult:
        """Partial update of the rows matching either identifier"""
        normalized_mongo_id = normalize_mongo_id(mongo_id)
        normalized_feedback_id = parse_feedback_id(feedback_id)
        if not normalized_mongo_id and normalized_feedback_id is None:
            return FeedbackResult(success=False, error="Missing identifier for feedback update")

        try:
            values = feedback_update_values(updates or {})
            async with self.database.connection() as conn:
                await ensure_schema(conn, Feedback, self.database.schema_state)
                rows = await self.repo.update_feedback(
                    conn, normalized_mongo_id, normalized_feedback_id, values
                )
                await conn.commit()
        except FEEDBACK_ERRORS as e:
            logger.error(f"❌ Failed to update feedback: {e}")
            return FeedbackResult(success=False, error=str(e))

        return FeedbackResult(success=True, mongo_id=normalized_mongo_id, rows_affected=rows)

    async def list_feedback(self, limit: int = 20, testimonials_only: bool = False) -> FeedbackListResult:
        limit = limit if isinstance(limit, int) and limit > 0 else 20
        try:
            async with self.database.connection() as conn:
                await ensure_schema(conn, Feedback, self.database.schema_state)
                rows = await self.repo.list_feedback(conn, limit, testimonials_only)
        except FEEDBACK_ERRORS as e:
            logger.error(f"❌ Failed to fetch feedback list: {e}")
            return FeedbackListResult(success=False, error=str(e))

        feedback = [feedback_record(row) for row in rows]
        return FeedbackListResult(success=True, feedback=feedback, total=len(feedback))
