"""
Wizard controls component for Streamlit UI.

Provides sidebar controls for:
- Starting a new session (consumes one subscription attempt)
- Resuming a session by id
- The stage stepper with navigate / reset actions
"""

from typing import Optional, Dict, Any, List
import streamlit as st

from ui.api_client import APIClient, SessionInfo

STATUS_ICONS = {"completed": "✅", "current": "▶️", "pending": "⬜"}


def stage_status(stage_id: str, session: Dict[str, Any]) -> str:
    """'completed', 'current' or 'pending' for a stage of `session`."""
    if stage_id == session.get("current_stage"):
        return "current"
    if stage_id in session.get("completed_stages", []):
        return "completed"
    return "pending"


class WizardControls:
    """
    Manages session and stepper controls in the sidebar.

    Provides:
    - New session creation
    - Session resume by id
    - Stage stepper with progress
    """

    def __init__(self, api_client: APIClient, stages: List[Dict[str, Any]]):
        """
        Initialize wizard controls.

        Args:
            api_client: API client for backend communication
            stages: Stage catalog from the API, in wizard order
        """
        self.api_client = api_client
        self.stages = stages

    def render(self) -> Optional[SessionInfo]:
        """
        Render controls in sidebar.

        Returns:
            Current SessionInfo, or None
        """
        st.sidebar.title("🚀 MVP Builder")
        st.sidebar.divider()

        tab1, tab2 = st.sidebar.tabs(["New", "Resume"])
        with tab1:
            self._render_new_session()
        with tab2:
            self._render_resume()

        current = st.session_state.get("current_session")
        if current:
            st.sidebar.divider()
            self._render_stepper(current)
        return current

    def _render_new_session(self):
        if st.button("Start new MVP", type="primary", use_container_width=True):
            self._create_session()

    def _create_session(self):
        """Create a session, charging one attempt to the visiting customer."""
        customer_id = st.session_state.get("customer_id")
        if customer_id:
            result = self.api_client.increment_attempt(customer_id)
            if not result.get("success"):
                st.error(result.get("error", "No attempts remaining"))
                return

        try:
            session_info = self.api_client.create_session()
        except Exception as e:
            st.error(f"Failed to create session: {str(e)}")
            return

        st.session_state.current_session = session_info
        st.session_state.conversation = None
        st.success(f"Session {session_info.id[:8]} created!")
        st.rerun()

    def _render_resume(self):
        session_id = st.text_input("Session ID", key="resume_session_id")
        if st.button("📂 Resume", use_container_width=True) and session_id:
            try:
                data = self.api_client.get_session(session_id.strip())
            except Exception as e:
                st.error(f"Failed to load session: {str(e)}")
                return
            st.session_state.current_session = SessionInfo.from_response(data)
            st.session_state.conversation = None
            st.rerun()

    def _render_stepper(self, current: SessionInfo):
        """Stage list with status icons; clicking a stage jumps to it."""
        session = {
            "current_stage": current.current_stage,
            "completed_stages": current.completed_stages,
        }
        st.sidebar.progress(current.progress, text=f"{len(current.completed_stages)} of {len(self.stages)} stages")

        for stage in self.stages:
            status = stage_status(stage["id"], session)
            label = f"{STATUS_ICONS[status]} {stage['position']}. {stage['title']}"
            if st.sidebar.button(label, key=f"step_{stage['id']}", use_container_width=True):
                self._navigate(current.id, stage["id"])

        with st.sidebar.expander("Redo from a stage"):
            options = {s["title"]: s["id"] for s in self.stages}
            target = st.selectbox("Stage", options=list(options), key="reset_target")
            if st.button("↩️ Reset to stage", key="reset_button"):
                self._reset(current.id, options[target])

    def _navigate(self, session_id: str, stage_id: str):
        try:
            data = self.api_client.navigate(session_id, stage_id)
        except Exception as e:
            st.error(f"Failed to navigate: {str(e)}")
            return
        st.session_state.current_session = SessionInfo.from_response(data)
        st.rerun()

    def _reset(self, session_id: str, stage_id: str):
        try:
            data = self.api_client.reset(session_id, stage_id)
        except Exception as e:
            st.error(f"Failed to reset: {str(e)}")
            return
        st.session_state.current_session = SessionInfo.from_response(data)
        st.session_state.conversation = None
        st.rerun()


def initialize_session_state():
    """Initialize Streamlit session state with defaults."""
    if "current_session" not in st.session_state:
        st.session_state.current_session = None
    if "stages" not in st.session_state:
        st.session_state.stages = None
    if "customer_id" not in st.session_state:
        st.session_state.customer_id = None
    if "conversation" not in st.session_state:
        st.session_state.conversation = None


def get_current_session() -> Optional[SessionInfo]:
    """Get current session from state."""
    return st.session_state.get("current_session")
