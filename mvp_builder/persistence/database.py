"""
SQLite database connection management.

Provides async database initialization and a health probe.
Uses aiosqlite for async SQLite access.

Schema is defined in schema.sql (consolidated, no migrations). When no
database path is configured the application runs on the in-memory stores in
memory_store.py instead and none of this module is used.
"""

from pathlib import Path
from typing import Optional

import aiosqlite
import structlog

from mvp_builder.core.config import settings
from mvp_builder.core.exceptions import ConfigurationError

log = structlog.get_logger(__name__)

# Path to consolidated schema file
SCHEMA_FILE = Path(__file__).parent / "schema.sql"


def _resolve_path(db_path: Optional[Path]) -> Path:
    path = db_path or settings.database_path
    if path is None:
        raise ConfigurationError("DATABASE_PATH is not configured")
    return Path(path)


async def init_database(db_path: Optional[Path] = None) -> None:
    """
    Initialize database from consolidated schema.

    Args:
        db_path: Optional path to database file. Uses settings.database_path if not provided.

    Creates the database file if it doesn't exist and applies the schema.
    Existing databases are left intact (CREATE TABLE IF NOT EXISTS).
    """
    db_path = _resolve_path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    log.info("initializing_database", path=str(db_path))

    if not SCHEMA_FILE.exists():
        log.error("schema_file_not_found", path=str(SCHEMA_FILE))
        raise FileNotFoundError(f"Schema file not found: {SCHEMA_FILE}")

    async with aiosqlite.connect(db_path) as db:
        await db.execute("PRAGMA foreign_keys = ON")
        await db.execute("PRAGMA journal_mode = WAL")
        await db.executescript(SCHEMA_FILE.read_text())
        await db.commit()

    log.info("database_initialized", path=str(db_path))


async def check_database_health(db_path: Optional[Path] = None) -> dict:
    """
    Check database health for the health endpoint.

    Returns:
        Dict with status ("healthy" / "unhealthy" / "memory") and basic counts.
    """
    if db_path is None and settings.database_path is None:
        return {"status": "memory", "provider": "memory"}

    path = _resolve_path(db_path)
    try:
        async with aiosqlite.connect(path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM sessions")
            row = await cursor.fetchone()
            session_count = row[0] if row else 0

            cursor = await db.execute("PRAGMA integrity_check")
            integrity = await cursor.fetchone()

            return {
                "status": "healthy",
                "provider": "sqlite",
                "session_count": session_count,
                "integrity": integrity[0] if integrity else "unknown",
                "path": str(path),
            }
    except (aiosqlite.Error, OSError) as e:
        log.error("database_health_check_failed", error=str(e))
        return {"status": "unhealthy", "provider": "sqlite", "error": str(e)}
