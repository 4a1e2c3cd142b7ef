"""Feedback domain - Mirror of operational feedback documents"""

from .router import router
from .service import FeedbackService

__all__ = ["router", "FeedbackService"]
