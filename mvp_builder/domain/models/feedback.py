"""Feedback submitted at the end of the wizard."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class Feedback(BaseModel):
    id: Optional[int] = None
    session_id: str
    rating: int = Field(ge=1, le=5)
    helpfulness: int = Field(ge=1, le=5)
    improvements: str = ""
    most_valuable: str = ""
    would_recommend: Literal["yes", "no", "maybe", ""] = ""
    recommendation_reason: str = ""
    created_at: Optional[datetime] = None
