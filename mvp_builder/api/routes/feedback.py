"""
Feedback listing.

Feedback is submitted per session under /sessions/{id}/feedback.
"""

from typing import List, Optional

from fastapi import APIRouter, Query

from mvp_builder.api.dependencies import FeedbackStoreDep
from mvp_builder.domain.models.feedback import Feedback

router = APIRouter(prefix="/feedback", tags=["feedback"])


@router.get("", response_model=List[Feedback])
async def list_feedback(
    feedback_store: FeedbackStoreDep,
    session_id: Optional[str] = Query(default=None),
):
    """All stored feedback, newest first, optionally for one session."""
    return await feedback_store.list(session_id=session_id)
