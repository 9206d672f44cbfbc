"""Feedback repository for database operations."""

from datetime import datetime, timezone
from typing import List, Optional

import aiosqlite
import structlog

from mvp_builder.domain.models.feedback import Feedback

log = structlog.get_logger(__name__)


class FeedbackRepository:
    """Append-only feedback storage (SQLite)."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def create(self, feedback: Feedback) -> Feedback:
        created_at = feedback.created_at or datetime.now(timezone.utc)
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """INSERT INTO feedback (
                    session_id, rating, helpfulness, improvements, most_valuable,
                    would_recommend, recommendation_reason, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    feedback.session_id,
                    feedback.rating,
                    feedback.helpfulness,
                    feedback.improvements,
                    feedback.most_valuable,
                    feedback.would_recommend,
                    feedback.recommendation_reason,
                    created_at.isoformat(),
                ),
            )
            await db.commit()
            feedback_id = cursor.lastrowid

        log.info(
            "feedback_stored",
            feedback_id=feedback_id,
            session_id=feedback.session_id,
            rating=feedback.rating,
        )
        return feedback.model_copy(update={"id": feedback_id, "created_at": created_at})

    async def list(self, session_id: Optional[str] = None) -> List[Feedback]:
        """List feedback newest first, optionally for one session."""
        query = "SELECT * FROM feedback"
        params: tuple = ()
        if session_id is not None:
            query += " WHERE session_id = ?"
            params = (session_id,)
        query += " ORDER BY id DESC"

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            return [self._row_to_feedback(row) for row in await cursor.fetchall()]

    def _row_to_feedback(self, row: aiosqlite.Row) -> Feedback:
        return Feedback(
            id=row["id"],
            session_id=row["session_id"],
            rating=row["rating"],
            helpfulness=row["helpfulness"],
            improvements=row["improvements"],
            most_valuable=row["most_valuable"],
            would_recommend=row["would_recommend"],
            recommendation_reason=row["recommendation_reason"],
            created_at=row["created_at"],
        )
