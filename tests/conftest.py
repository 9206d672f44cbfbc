"""
Shared test fixtures.

SQLite fixtures use a temporary database; service fixtures use the in-memory
stores and a scripted LLM client so no test touches the network.
"""

import json
import tempfile
from pathlib import Path
from typing import Any, List, Optional, Union
from unittest.mock import patch

import pytest

from mvp_builder.llm.client import LLMClient, LLMResponse
from mvp_builder.persistence.database import init_database
from mvp_builder.persistence.memory_store import (
    InMemoryCustomerRepository,
    InMemoryFeedbackRepository,
    InMemorySessionRepository,
)
from mvp_builder.persistence.repositories.customer_repo import CustomerRepository
from mvp_builder.persistence.repositories.feedback_repo import FeedbackRepository
from mvp_builder.persistence.repositories.session_repo import SessionRepository
from mvp_builder.services.ai_gateway import AIGateway
from mvp_builder.services.stage_controller import StageController


class ScriptedLLMClient(LLMClient):
    """LLM client that replays queued responses and records every call.

    Queue items may be strings, dicts (sent as JSON) or exceptions (raised).
    """

    def __init__(self, responses: Optional[List[Union[str, dict, Exception]]] = None):
        self.responses = list(responses or [])
        self.calls: List[dict] = []

    def queue(self, *responses: Union[str, dict, Exception]) -> None:
        self.responses.extend(responses)

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        self.calls.append({"prompt": prompt, "system": system, "json_mode": json_mode})
        if not self.responses:
            raise AssertionError("Unexpected LLM call")
        item: Any = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        content = json.dumps(item) if isinstance(item, dict) else item
        return LLMResponse(content=content, model="test-model", latency_ms=5.0)


@pytest.fixture
async def test_db():
    """Create and initialize test database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        await init_database(db_path)

        from mvp_builder.core import config

        original_path = config.settings.database_path
        config.settings.database_path = db_path

        with patch("mvp_builder.persistence.database.settings", config.settings):
            yield db_path

        config.settings.database_path = original_path


@pytest.fixture
async def session_repo(test_db):
    return SessionRepository(str(test_db))


@pytest.fixture
async def customer_repo(test_db):
    return CustomerRepository(str(test_db))


@pytest.fixture
async def feedback_repo(test_db):
    return FeedbackRepository(str(test_db))


@pytest.fixture
def memory_sessions():
    return InMemorySessionRepository()


@pytest.fixture
def memory_customers():
    return InMemoryCustomerRepository()


@pytest.fixture
def memory_feedback():
    return InMemoryFeedbackRepository()


@pytest.fixture
def llm():
    """Scripted LLM client; queue responses with llm.queue(...)."""
    return ScriptedLLMClient()


@pytest.fixture
def gateway(llm):
    return AIGateway(client_factory=lambda: llm)


@pytest.fixture
def controller(memory_sessions, memory_feedback, gateway):
    """Stage controller over in-memory stores and the scripted client."""
    return StageController(
        sessions=memory_sessions,
        gateway=gateway,
        feedback=memory_feedback,
        max_conversation_answers=4,
    )


@pytest.fixture
def unconfigured_controller(memory_sessions, memory_feedback):
    """Stage controller whose LLM client cannot be created (no API key)."""

    def no_client() -> LLMClient:
        raise ValueError("API key for openai not configured. Set it in .env.")

    return StageController(
        sessions=memory_sessions,
        gateway=AIGateway(client_factory=no_client),
        feedback=memory_feedback,
    )
