"""Tests for integration and health reporting."""

from pathlib import Path

from mvp_builder.core.config import Settings
from mvp_builder.services.integration_status import (
    get_health_report,
    get_integration_status,
)


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_integration_status_without_keys(monkeypatch):
    for name in ("OPENAI_API_KEY", "GITHUB_TOKEN", "DATABASE_PATH"):
        monkeypatch.delenv(name, raising=False)

    status = get_integration_status(make_settings())

    assert status["openai"]["enabled"] is False
    assert status["openai"]["status"] == "disabled"
    assert status["database"]["status"] == "memory-only"
    assert status["security"]["enabled"] is True
    assert "Market Research" in status["search"]["features"]


def test_integration_status_with_keys():
    status = get_integration_status(
        make_settings(openai_api_key="sk-test", database_path=Path("data/mvp.db"))
    )

    assert status["openai"]["status"] == "active"
    assert status["database"]["status"] == "active"


def test_health_degraded_without_openai_key():
    report = get_health_report(
        make_settings(openai_api_key=None), {"status": "memory", "provider": "memory"}
    )

    assert report["status"] == "degraded"
    assert report["missing"] == ["OPENAI_API_KEY"]
    assert report["services"]["database"] is True


def test_health_healthy():
    report = get_health_report(
        make_settings(openai_api_key="sk-test"), {"status": "healthy", "provider": "sqlite"}
    )

    assert report["status"] == "healthy"
    assert report["database"] == {"connected": True, "provider": "sqlite"}


def test_health_degraded_when_database_unhealthy():
    report = get_health_report(
        make_settings(openai_api_key="sk-test"), {"status": "unhealthy", "provider": "sqlite"}
    )

    assert report["status"] == "degraded"
    assert report["services"]["database"] is False
