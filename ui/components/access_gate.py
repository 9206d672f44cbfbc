"""
Access gate screens for Streamlit UI.

Asks the API whether the visitor may use the wizard and renders the
blocking screen (access required, not found, renewal / upgrade required) or
the free-plan usage banner.
"""

from typing import Any, Dict, Optional
import streamlit as st

from ui.api_client import APIClient

BLOCKED_ICONS = {
    "access_required": "🔒",
    "not_found": "❓",
    "renewal_required": "⏳",
    "upgrade_required": "⬆️",
}


def render_access_gate(
    api_client: APIClient, customer_id: Optional[str], path: str = "/"
) -> bool:
    """
    Check access and render the outcome.

    Returns:
        True when the wizard may be shown
    """
    try:
        decision = api_client.check_access(customer_id, path)
    except Exception:
        render_blocked(unreachable_decision(customer_id))
        return False

    if decision.get("allowed"):
        render_banner(decision)
        return True

    render_blocked(decision)
    return False


def unreachable_decision(customer_id: Optional[str]) -> Dict[str, Any]:
    """Blocking decision shown when the access check itself could not be made.

    A failed lookup reads the same as an unknown customer.
    """
    if not customer_id:
        return {
            "allowed": False,
            "state": "access_required",
            "title": "Access Required",
            "message": "Please access this app through your store to use your subscription.",
        }
    return {
        "allowed": False,
        "state": "not_found",
        "title": "Customer Not Found",
        "message": (
            f"No customer found with ID: {customer_id}. "
            "Please check your customer ID and try again."
        ),
    }


def render_banner(decision: Dict[str, Any]):
    banner = decision.get("banner")
    if not banner:
        return
    if decision.get("state") == "dev_bypass":
        st.warning(banner)
    else:
        st.info(f"🎟️ {banner}")


def render_blocked(decision: Dict[str, Any]):
    icon = BLOCKED_ICONS.get(decision.get("state", ""), "🔒")
    st.title(f"{icon} {decision.get('title', 'Access Required')}")
    st.write(decision.get("message", ""))
