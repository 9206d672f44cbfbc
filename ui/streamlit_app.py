"""
Main Streamlit application for the MVP builder wizard.

Integrates all UI components:
- Access gate screens and usage banner
- Stage stepper and session controls
- Per-stage forms and results
- Diagrams of stage artifacts

Run with: streamlit run ui/streamlit_app.py
Pass ?customer_id=<id> in the URL to check a customer's subscription.
"""

from typing import Any, Dict, List, Optional
import streamlit as st

from ui.api_client import APIClient, SessionInfo
from ui.components.access_gate import render_access_gate
from ui.components.controls import WizardControls, initialize_session_state
from ui.components.graph import GraphVisualizer, render_graph_stats
from ui.components.stage_forms import StageForm

GRAPH_STAGES = {
    "market-research",
    "root-cause-analysis",
    "existing-solutions",
    "use-case-definition",
    "product-requirements",
    "prioritization",
}


# Page configuration
st.set_page_config(
    page_title="MVP Builder",
    page_icon="🚀",
    layout="wide",
    initial_sidebar_state="expanded",
)


def initialize_api_client() -> APIClient:
    """Initialize or get existing API client from session state."""
    if "api_client" not in st.session_state:
        api_url = st.session_state.get("api_url", "http://localhost:8000")
        st.session_state.api_client = APIClient(base_url=api_url)
    return st.session_state.api_client


def load_stages(api_client: APIClient) -> List[Dict[str, Any]]:
    """Stage catalog, fetched once per browser session."""
    if not st.session_state.get("stages"):
        st.session_state.stages = api_client.list_stages()
    return st.session_state.stages


def main():
    """Main application entry point."""
    initialize_session_state()
    api_client = initialize_api_client()

    customer_id = st.query_params.get("customer_id")
    st.session_state.customer_id = customer_id

    if not render_access_gate(api_client, customer_id, path="/"):
        return

    try:
        stages = load_stages(api_client)
    except Exception as e:
        st.error(f"Failed to reach the API: {str(e)}")
        return

    controls = WizardControls(api_client, stages)
    current = controls.render()

    st.sidebar.divider()
    api_url = st.sidebar.text_input(
        "API URL",
        value=st.session_state.get("api_url", "http://localhost:8000"),
        help="FastAPI backend URL",
    )
    if st.sidebar.button("🔄 Reconnect"):
        st.session_state.api_url = api_url
        st.session_state.api_client = APIClient(base_url=api_url)
        st.session_state.stages = None
        st.sidebar.success("Reconnected!")

    if not current:
        _render_welcome_screen()
    else:
        _render_wizard(api_client, current, stages)


def _render_welcome_screen():
    """Render welcome screen when no session is active."""
    st.title("🚀 MVP Builder")
    st.info("👋 Start a new MVP from the sidebar, or resume one with its session id.")
    st.markdown("""
    Ten guided stages take you from a rough problem to a prioritised MVP brief:

    1. **Problem Discovery**: sharpen who is hurting and why
    2. **Market Research**: competitors, substitutes and trends
    3. **Root Cause Analysis**: five whys down to the real cause
    4. **Existing Solutions**: what is out there and where it falls short
    5. **Customer Profile**: who to build for first
    6. **Use Case Definition**: the journey your MVP enables
    7. **Product Requirements**: functional and non-functional requirements
    8. **Prioritization**: RICE, ICE or MoSCoW ranking
    9. **Export**: download your MVP brief
    10. **Feedback**: tell us how it went
    """)


def _render_wizard(api_client: APIClient, current: SessionInfo, stages: List[Dict[str, Any]]):
    """Render the active stage and, when available, its diagram."""
    session = _get_session(api_client, current.id)
    if not session:
        return

    stage = next((s for s in stages if s["id"] == session["current_stage"]), stages[0])
    form_tab, diagram_tab = st.tabs(["📝 Stage", "🕸️ Diagram"])

    with form_tab:
        StageForm(api_client).render(session, stage)

    with diagram_tab:
        _render_diagram(api_client, session, stages)


def _render_diagram(
    api_client: APIClient, session: Dict[str, Any], stages: List[Dict[str, Any]]
):
    """Diagram of any stage that has a stored artifact."""
    available = [
        s for s in stages
        if s["id"] in GRAPH_STAGES and s["artifact_key"] in session.get("data", {})
    ]
    if not available:
        st.info("Diagrams appear once market research or a later stage is complete.")
        return

    titles = {s["title"]: s for s in available}
    stage = titles[st.selectbox("Stage", options=list(titles), index=len(titles) - 1)]
    graph_data = _get_stage_graph(api_client, session["session_id"], stage["id"])
    if not graph_data:
        st.info("Complete this stage to see its diagram.")
        return

    visualizer = GraphVisualizer()
    controls = visualizer.render_controls(key=stage["id"])
    fig = visualizer.render(graph_data, controls, title=stage["title"])
    if fig:
        st.plotly_chart(fig, use_container_width=True)
    render_graph_stats(graph_data)


def _get_session(api_client: APIClient, session_id: str) -> Optional[Dict[str, Any]]:
    try:
        return api_client.get_session(session_id)
    except Exception as e:
        st.error(f"Failed to load session: {str(e)}")
        return None


def _get_stage_graph(api_client: APIClient, session_id: str, stage_id: str) -> Optional[Dict[str, Any]]:
    try:
        return api_client.get_stage_graph(session_id, stage_id)
    except Exception as e:
        st.error(f"Failed to get diagram: {str(e)}")
        return None


if __name__ == "__main__":
    main()
