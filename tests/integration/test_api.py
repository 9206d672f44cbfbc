"""Integration tests for API endpoints."""

import pytest
from httpx import AsyncClient, ASGITransport

from mvp_builder.api import dependencies
from mvp_builder.api.dependencies import (
    get_export_service,
    get_memory_customer_store,
    get_memory_feedback_store,
    get_memory_session_store,
    get_stage_controller,
)
from mvp_builder.services.ai_gateway import AIGateway
from mvp_builder.services.export_service import ExportService
from mvp_builder.services.stage_controller import StageController

PROBLEM = "Freelance designers lose track of unpaid invoices in email threads"


@pytest.fixture
def app(monkeypatch, tmp_path, llm):
    """App on the in-memory stores with a scripted LLM client."""
    from mvp_builder.core import config
    from mvp_builder.main import app

    monkeypatch.setattr(config.settings, "database_path", None)
    monkeypatch.setattr(config.settings, "environment", "production")
    monkeypatch.setattr(config.settings, "openai_api_key", None)

    for cached in (
        get_memory_session_store,
        get_memory_customer_store,
        get_memory_feedback_store,
    ):
        cached.cache_clear()

    def controller():
        return StageController(
            sessions=dependencies.get_session_store(),
            gateway=AIGateway(client_factory=lambda: llm),
            feedback=dependencies.get_feedback_store(),
            max_conversation_answers=4,
        )

    app.dependency_overrides[get_stage_controller] = controller
    app.dependency_overrides[get_export_service] = lambda: ExportService(tmp_path)

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def create_session(client, session_id=None) -> dict:
    body = {"session_id": session_id} if session_id else {}
    response = await client.post("/api/sessions", json=body)
    assert response.status_code in (200, 201)
    return response.json()


# ============ SYSTEM ============


@pytest.mark.asyncio
async def test_root_endpoint(client):
    """Root endpoint returns basic info."""
    response = await client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "MVP Builder"
    assert data["status"] == "running"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_health_degraded_without_api_key(client):
    """A missing model key reports degraded with 503."""
    response = await client.get("/api/health")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "degraded"
    assert data["missing"] == ["OPENAI_API_KEY"]
    assert data["database"]["provider"] == "memory"


@pytest.mark.asyncio
async def test_liveness_and_readiness(client):
    assert (await client.get("/api/health/live")).json() == {"status": "alive"}
    ready = await client.get("/api/health/ready")
    assert ready.status_code == 200
    assert ready.json() == {"status": "ready"}


@pytest.mark.asyncio
async def test_integrations_status(client):
    data = (await client.get("/api/integrations/status")).json()

    assert data["openai"]["enabled"] is False
    assert data["database"]["status"] == "memory-only"


# ============ STAGES ============


@pytest.mark.asyncio
async def test_list_stages(client):
    response = await client.get("/api/stages")

    stages = response.json()
    assert [s["position"] for s in stages] == list(range(1, 11))
    assert stages[0]["id"] == "problem-discovery"
    assert "output_spec" not in stages[0]
    assert stages[0]["required_fields"][0]["id"] == "problem"


@pytest.mark.asyncio
async def test_get_stage_by_position_and_unknown(client):
    by_position = await client.get("/api/stages/3")
    unknown = await client.get("/api/stages/nonsense")

    assert by_position.json()["id"] == "root-cause-analysis"
    assert unknown.status_code == 400
    assert unknown.json()["error"]["type"] == "UnknownStageError"


# ============ SESSIONS ============


@pytest.mark.asyncio
async def test_create_and_resume_session(client):
    """201 for a new id, 200 with the same state for a known one."""
    created = await client.post("/api/sessions", json={"session_id": "founder-1"})
    resumed = await client.post("/api/sessions", json={"session_id": "founder-1"})

    assert created.status_code == 201
    assert resumed.status_code == 200
    assert resumed.json()["session_id"] == "founder-1"
    assert created.json()["current_stage"] == "problem-discovery"
    assert created.json()["current_position"] == 1
    assert created.json()["progress"] == 0.0


@pytest.mark.asyncio
async def test_create_session_without_body(client):
    response = await client.post("/api/sessions")

    assert response.status_code == 201
    assert response.json()["session_id"]


@pytest.mark.asyncio
async def test_get_missing_session(client):
    response = await client.get("/api/sessions/nope")

    assert response.status_code == 404
    assert response.json()["error"]["type"] == "SessionNotFoundError"


@pytest.mark.asyncio
async def test_list_sessions(client):
    await create_session(client, "a")
    await create_session(client, "b")

    data = (await client.get("/api/sessions", params={"limit": 1})).json()

    assert data["total"] == 1
    assert len(data["sessions"]) == 1


@pytest.mark.asyncio
async def test_patch_session(client):
    await create_session(client, "s1")

    response = await client.patch(
        "/api/sessions/s1",
        json={
            "current_stage": 4,
            "completed_stages": ["problem-discovery"],
            "data": {"root_cause": {"primary_cause": "Manual invoicing"}},
        },
    )

    data = response.json()
    assert data["current_stage"] == "existing-solutions"
    assert data["completed_stages"] == ["problem-discovery"]
    assert data["data"]["root_cause"]["primary_cause"] == "Manual invoicing"


@pytest.mark.asyncio
async def test_patch_rejects_unknown_artifact(client):
    await create_session(client, "s1")

    response = await client.patch("/api/sessions/s1", json={"data": {"bogus": {}}})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_complete_navigate_reset(client):
    await create_session(client, "s1")

    completed = await client.post(
        "/api/sessions/s1/complete",
        json={"stage": "problem-discovery", "data": {"problem_statement": {"original": "p"}}},
    )
    stale = await client.post("/api/sessions/s1/complete", json={"stage": "export"})
    navigated = await client.post("/api/sessions/s1/navigate", json={"stage": "prioritization"})
    reset = await client.post("/api/sessions/s1/reset", json={"stage": 1})

    assert completed.json()["current_stage"] == "market-research"
    assert stale.json()["current_stage"] == "market-research"
    assert navigated.json()["current_stage"] == "prioritization"
    assert reset.json()["current_stage"] == "problem-discovery"
    assert reset.json()["completed_stages"] == []
    assert reset.json()["data"]["problem_statement"]["original"] == "p"


# ============ GENERATION ============


@pytest.mark.asyncio
async def test_problem_analysis(client, llm):
    await create_session(client, "s1")
    llm.queue({"refined": "Designers lose 10% of billings", "ai_suggestions": ["Quantify"]})

    response = await client.post("/api/sessions/s1/problem-analysis", json={"problem": PROBLEM})

    assert response.status_code == 200
    data = response.json()
    assert data["applied"] is True
    assert data["used_fallback"] is False
    assert data["artifact"]["refined"] == "Designers lose 10% of billings"
    assert data["session"]["current_stage"] == "market-research"


@pytest.mark.asyncio
async def test_invalid_input_returns_details(client, llm):
    await create_session(client, "s1")

    response = await client.post("/api/sessions/s1/problem-analysis", json={"problem": ""})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "ValidationError"
    assert error["details"] == ["Problem description is required"]
    assert llm.calls == []


@pytest.mark.asyncio
async def test_fallback_reported(client, llm):
    """A model failure still advances, flagged as a fallback."""
    await create_session(client, "s1")
    llm.queue("this is not json")

    data = (
        await client.post("/api/sessions/s1/problem-analysis", json={"problem": PROBLEM})
    ).json()

    assert data["used_fallback"] is True
    assert data["error"]["kind"] == "parse"
    assert data["artifact"]["refined"] == PROBLEM
    assert data["session"]["current_stage"] == "market-research"


@pytest.mark.asyncio
async def test_stale_generation_not_applied(client, llm):
    await create_session(client, "s1")

    data = (await client.post("/api/sessions/s1/root-cause", json={})).json()

    assert data["applied"] is False
    assert data["artifact"] is None
    assert llm.calls == []


@pytest.mark.asyncio
async def test_problem_conversation(client, llm):
    await create_session(client, "s1")
    llm.queue({"refined_problem": "Designers lose 10% of billings", "is_complete": True})

    response = await client.post(
        "/api/sessions/s1/problem-conversation",
        json={"question": "Who?", "answer": "Freelance designers", "original_problem": PROBLEM},
    )

    data = response.json()
    assert data["is_complete"] is True
    assert data["refined_problem"] == "Designers lose 10% of billings"
    assert data["session"]["current_stage"] == "market-research"


@pytest.mark.asyncio
async def test_stage_graph(client, llm):
    await create_session(client, "s1")
    await client.post("/api/sessions/s1/navigate", json={"stage": "root-cause-analysis"})
    llm.queue(
        {
            "causes": [{"level": 1, "question": "Why?", "answer": "No reminders"}],
            "primary_cause": "Manual invoicing",
        }
    )
    await client.post("/api/sessions/s1/root-cause", json={})

    graph = (await client.get("/api/sessions/s1/graphs/root-cause-analysis")).json()
    missing = await client.get("/api/sessions/s1/graphs/market-research")

    assert [n["id"] for n in graph["nodes"]] == ["problem", "why-1", "root"]
    assert missing.status_code == 404


# ============ EXPORT / FEEDBACK ============


@pytest.mark.asyncio
async def test_export_and_download(client):
    await create_session(client, "s1")
    await client.post(
        "/api/sessions/s1/complete",
        json={"stage": 1, "data": {"problem_statement": {"original": "p", "refined": "Refined"}}},
    )

    exported = await client.post("/api/sessions/s1/export", json={"format": "markdown"})
    body = exported.json()
    download = await client.get(body["download_url"])
    session = (await client.get("/api/sessions/s1")).json()

    assert exported.status_code == 200
    assert body["format"] == "markdown"
    assert download.status_code == 200
    assert "**Problem:** Refined" in download.text
    assert session["data"]["export"]["filename"] == body["filename"]


@pytest.mark.asyncio
async def test_export_bad_format_and_missing_file(client):
    await create_session(client, "s1")

    bad = await client.post("/api/sessions/s1/export", json={"format": "pdf"})
    missing = await client.get("/api/exports/mvp-configuration-1.md")

    assert bad.status_code == 400
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_feedback(client):
    await create_session(client, "s1")
    await client.post("/api/sessions/s1/navigate", json={"stage": "feedback"})

    created = await client.post(
        "/api/sessions/s1/feedback",
        json={"rating": 5, "helpfulness": 4, "would_recommend": "yes"},
    )
    listed = await client.get("/api/feedback", params={"session_id": "s1"})
    session = (await client.get("/api/sessions/s1")).json()

    assert created.status_code == 201
    assert created.json()["id"] == 1
    assert [f["rating"] for f in listed.json()] == [5]
    assert "feedback" in session["completed_stages"]


@pytest.mark.asyncio
async def test_feedback_rating_out_of_range(client):
    await create_session(client, "s1")

    response = await client.post(
        "/api/sessions/s1/feedback", json={"rating": 9, "helpfulness": 4}
    )

    assert response.status_code == 422


# ============ CUSTOMERS / ACCESS ============


@pytest.mark.asyncio
async def test_customer_lifecycle(client):
    created = await client.post("/api/customers", json={"customer_id": "c1", "email": "a@b.co"})
    duplicate = await client.post("/api/customers", json={"customer_id": "c1"})
    updated = await client.put("/api/customers/c1", json={"first_name": "Ada"})
    status = await client.get("/api/customers/c1/subscription-status")
    deleted = await client.delete("/api/customers/c1")
    missing = await client.get("/api/customers/c1")

    assert created.status_code == 201
    assert created.json()["data"]["plan_name"] == "Free"
    assert duplicate.status_code == 409
    assert duplicate.json() == {"success": False, "error": "Customer already exists"}
    assert updated.json()["data"]["first_name"] == "Ada"
    assert status.json()["data"]["status"] == "active"
    assert deleted.json()["success"] is True
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "error": "Customer not found"}


@pytest.mark.asyncio
async def test_increment_attempt_until_refused(client):
    await client.post("/api/customers", json={"customer_id": "c1", "actual_attempts": 1})

    first = (await client.post("/api/customers/c1/increment-attempt")).json()
    second = await client.post("/api/customers/c1/increment-attempt")

    assert first["success"] is True
    assert first["data"]["subscription_status"] == "expired"
    assert second.status_code == 200
    assert second.json()["success"] is False
    assert second.json()["data"]["used_attempt"] == 1


@pytest.mark.asyncio
async def test_access_decisions(client):
    await client.post(
        "/api/customers", json={"customer_id": "c1", "actual_attempts": 3, "used_attempt": 1}
    )

    anonymous = (await client.get("/api/access")).json()
    exempt = (await client.get("/api/access", params={"path": "/admin/x"})).json()
    unknown = (await client.get("/api/access", params={"customer_id": "ghost"})).json()
    free = (await client.get("/api/access", params={"customer_id": "c1"})).json()

    assert anonymous["state"] == "access_required"
    assert anonymous["allowed"] is False
    assert exempt["state"] == "exempt"
    assert unknown["state"] == "not_found"
    assert free["allowed"] is True
    assert free["banner"] == "2 of 3 uses remaining"
