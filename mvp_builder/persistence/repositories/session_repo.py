"""Session repository for database operations."""

import json
from typing import List, Optional

import aiosqlite
import structlog

from mvp_builder.core.exceptions import SessionExistsError
from mvp_builder.domain.models.session import Session

log = structlog.get_logger(__name__)


class SessionRepository:
    """Repository for session CRUD operations (SQLite)."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def create(self, session: Session) -> Session:
        """Insert a new session.

        Raises:
            SessionExistsError: a session with this id is already stored
        """
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            try:
                await db.execute(
                    "INSERT INTO sessions (id, current_stage, completed_stages, data, "
                    "conversation_history, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    self._session_params(session),
                )
            except aiosqlite.IntegrityError as e:
                raise SessionExistsError(
                    f"Session {session.session_id} already exists"
                ) from e
            await db.commit()

        log.info("session_created", session_id=session.session_id)
        return session

    async def get(self, session_id: str) -> Optional[Session]:
        """Get a session by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM sessions WHERE id = ?", (session_id,)
            )
            row = await cursor.fetchone()
            if not row:
                return None
            return self._row_to_session(row)

    async def save(self, session: Session) -> Session:
        """Write the full session back (last write wins)."""
        session.touch()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO sessions (id, current_stage, completed_stages, data, "
                "conversation_history, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET "
                "current_stage = excluded.current_stage, "
                "completed_stages = excluded.completed_stages, "
                "data = excluded.data, "
                "conversation_history = excluded.conversation_history, "
                "updated_at = excluded.updated_at",
                self._session_params(session),
            )
            await db.commit()
        return session

    async def list(self, limit: int = 100) -> List[Session]:
        """List sessions, newest first."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM sessions ORDER BY created_at DESC LIMIT ?", (limit,)
            )
            rows = await cursor.fetchall()
            return [self._row_to_session(row) for row in rows]

    @staticmethod
    def _session_params(session: Session) -> tuple:
        dumped = session.model_dump(mode="json")
        return (
            session.session_id,
            session.current_stage.value,
            json.dumps(dumped["completed_stages"]),
            json.dumps(dumped["data"]),
            json.dumps(dumped["conversation_history"]),
            dumped["created_at"],
            dumped["updated_at"],
        )

    def _row_to_session(self, row: aiosqlite.Row) -> Session:
        """Convert database row to Session model."""
        return Session(
            session_id=row["id"],
            current_stage=row["current_stage"],
            completed_stages=json.loads(row["completed_stages"] or "[]"),
            data=json.loads(row["data"] or "{}"),
            conversation_history=json.loads(row["conversation_history"] or "[]"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
