"""Feedback router - FastAPI endpoints for the feedback mirror"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from ...database import ArchiveDatabase, get_database
from .schemas import FeedbackResult, FeedbackUpdateRequest
from .service import FeedbackService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feedback", tags=["Feedback"])


def get_feedback_service(database: ArchiveDatabase = Depends(get_database)) -> FeedbackService:
    """Dependency injection for FeedbackService"""
    return FeedbackService(database)


def _feedback_response(result: FeedbackResult) -> dict:
    if not result.success:
        status_code = 400 if (result.error or "").startswith("Missing identifier") else 500
        raise HTTPException(status_code=status_code, detail=result.error)
    return result.model_dump()


@router.get("")
async def list_feedback(
    limit: int = Query(20, ge=1, le=500),
    testimonials_only: bool = Query(False),
    service: FeedbackService = Depends(get_feedback_service),
):
    """Most recent feedback, optionally testimonials only"""
    result = await service.list_feedback(limit=limit, testimonials_only=testimonials_only)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return result.model_dump()


@router.put("")
async def upsert_feedback(
    payload: dict[str, Any] = Body(...),
    service: FeedbackService = Depends(get_feedback_service),
):
    """Insert or refresh a feedback document"""
    return _feedback_response(await service.upsert_feedback(payload))


@router.patch("")
async def update_feedback(
    data: FeedbackUpdateRequest,
    service: FeedbackService = Depends(get_feedback_service),
):
    """Partially update feedback by operational id or feedback id"""
    result = await service.update_feedback(data.mongoId, data.feedbackId, data.updates)
    return _feedback_response(result)


@router.delete("")
async def delete_feedback(
    mongo_id: Optional[str] = Query(None),
    feedback_id: Optional[str] = Query(None),
    service: FeedbackService = Depends(get_feedback_service),
):
    """Delete feedback by operational id and/or feedback id"""
    return _feedback_response(await service.delete_feedback(mongo_id, feedback_id))
