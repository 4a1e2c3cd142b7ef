"""Feedback domain schemas - Pydantic models for validation"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class FeedbackUpdateRequest(BaseModel):
    """Partial update addressed by operational id and/or numeric feedback id"""

    mongoId: Optional[Any] = None
    feedbackId: Optional[Any] = None
    updates: dict[str, Any] = Field(default_factory=dict)


class FeedbackResult(BaseModel):
    success: bool
    mongo_id: Optional[str] = None
    rows_affected: int = 0
    error: Optional[str] = None


class FeedbackListResult(BaseModel):
    success: bool
    feedback: list[dict] = Field(default_factory=list)
    total: int = 0
    error: Optional[str] = None
