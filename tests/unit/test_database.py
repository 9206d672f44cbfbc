"""Tests for database initialization and health."""

import aiosqlite
import pytest

from mvp_builder.core.exceptions import ConfigurationError
from mvp_builder.persistence.database import check_database_health, init_database


@pytest.mark.asyncio
async def test_init_creates_tables(tmp_path):
    """init_database() applies the schema."""
    db_path = tmp_path / "nested" / "mvp.db"

    await init_database(db_path)

    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row[0] for row in await cursor.fetchall()}
    assert {"sessions", "feedback", "customers"} <= tables


@pytest.mark.asyncio
async def test_init_is_idempotent(tmp_path):
    db_path = tmp_path / "mvp.db"

    await init_database(db_path)
    await init_database(db_path)


@pytest.mark.asyncio
async def test_init_without_path_raises(monkeypatch):
    from mvp_builder.persistence import database

    monkeypatch.setattr(database.settings, "database_path", None)

    with pytest.raises(ConfigurationError):
        await init_database()


@pytest.mark.asyncio
async def test_health_healthy(test_db):
    health = await check_database_health(test_db)

    assert health["status"] == "healthy"
    assert health["provider"] == "sqlite"
    assert health["session_count"] == 0


@pytest.mark.asyncio
async def test_health_memory_mode(monkeypatch):
    from mvp_builder.persistence import database

    monkeypatch.setattr(database.settings, "database_path", None)

    health = await check_database_health()

    assert health == {"status": "memory", "provider": "memory"}


@pytest.mark.asyncio
async def test_health_unhealthy(tmp_path):
    """A database without the schema reports unhealthy."""
    health = await check_database_health(tmp_path / "empty.db")

    assert health["status"] == "unhealthy"
