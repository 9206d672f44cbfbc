"""Integration and health reporting.

Summarises which optional integrations are configured, and whether the
service is healthy enough to run the wizard. A missing model API key makes the
service degraded (every stage falls back to defaults) but never stops it.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

from mvp_builder.core.config import Settings

VERSION = "0.1.0"

INTEGRATION_FEATURES: Dict[str, List[str]] = {
    "openai": ["AI Conversation", "Problem Analysis", "Content Generation"],
    "search": ["Market Research", "Competitor Analysis", "Trend Analysis"],
    "database": ["Persistent Storage", "User Sessions", "Analytics"],
    "shopify": ["Customer Authentication", "Embedded App", "Metafields Storage"],
    "github": ["Repository Export", "Issue Creation", "Collaborative Development"],
    "security": ["Rate Limiting", "CORS Protection", "Request Validation", "JWT Authentication"],
}


def _entry(name: str, enabled: bool, status: str = "") -> Dict[str, Any]:
    return {
        "enabled": enabled,
        "features": INTEGRATION_FEATURES[name],
        "status": status or ("active" if enabled else "disabled"),
    }


def get_integration_status(settings: Settings) -> Dict[str, Dict[str, Any]]:
    """Status of every integration, keyed by integration name."""
    has_db = settings.database_path is not None
    return {
        "openai": _entry("openai", bool(settings.openai_api_key)),
        "search": _entry("search", bool(settings.search_api_key)),
        "database": _entry("database", has_db, "active" if has_db else "memory-only"),
        "shopify": _entry(
            "shopify", bool(settings.shopify_api_key and settings.shopify_api_secret)
        ),
        "github": _entry("github", bool(settings.github_token)),
        "security": _entry("security", True),
    }


def get_health_report(settings: Settings, db_health: Dict[str, Any]) -> Dict[str, Any]:
    """Health summary for /api/health.

    Args:
        settings: Application settings
        db_health: Result of check_database_health()

    Returns:
        Report with status "healthy" or "degraded"
    """
    database_ok = db_health.get("status") in ("healthy", "memory")
    missing = [] if settings.openai_api_key else ["OPENAI_API_KEY"]
    healthy = database_ok and not missing

    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "api": True,
            "database": database_ok,
            "openai": bool(settings.openai_api_key),
            "github": bool(settings.github_token),
            "shopify": bool(settings.shopify_api_key),
            "search": bool(settings.search_api_key),
        },
        "database": {
            "connected": database_ok,
            "provider": db_health.get("provider", "memory"),
        },
        "missing": missing,
        "version": VERSION,
    }
