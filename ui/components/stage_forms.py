"""
Stage forms for Streamlit UI.

One form per catalog stage, built from the stage's declared fields. AI stages
post to their generation endpoint; export and feedback have their own flows.
The problem stage can also be refined through a short guided conversation.
"""

from typing import Any, Dict, List, Optional
import streamlit as st

import httpx

from ui.api_client import APIClient, SessionInfo

OPENING_QUESTION = "Who feels this problem most, and in which moment does it hurt?"


def error_details(error: httpx.HTTPStatusError) -> List[str]:
    """Messages from an API error body; falls back to the status line."""
    try:
        body = error.response.json()
    except ValueError:
        return [str(error)]
    detail = body.get("error", {})
    return detail.get("details") or [detail.get("message", str(error))]


def collect_field(field: Dict[str, Any], key: str) -> Any:
    """Render the widget for one catalog field and return its value."""
    label = field["label"] + (" *" if field.get("required") else "")
    field_type = field["type"]

    if field_type == "short_text":
        return st.text_input(label, key=key)
    if field_type == "long_text":
        return st.text_area(label, key=key)
    if field_type == "number":
        return st.number_input(
            label,
            min_value=field.get("min_value"),
            max_value=field.get("max_value"),
            value=field.get("min_value"),
            key=key,
        )
    if field_type == "select":
        return st.selectbox(label, options=field.get("options", []), key=key)
    # multi / links: one entry per line
    raw = st.text_area(f"{label} (one per line)", key=key)
    return [line.strip() for line in raw.splitlines() if line.strip()]


class StageForm:
    """
    Renders the active stage: guidance, input form and stored artifact.

    Args:
        api_client: API client for backend communication
    """

    def __init__(self, api_client: APIClient):
        self.api_client = api_client

    def render(self, session: Dict[str, Any], stage: Dict[str, Any]):
        st.header(f"{stage['position']}. {stage['title']}")
        self._render_guidance(stage)

        if stage["id"] == "export":
            self._render_export(session)
        elif stage["id"] == "feedback":
            self._render_feedback(session)
        elif stage["id"] == "problem-discovery":
            mode = st.radio(
                "How do you want to define the problem?",
                options=["Quick analysis", "Guided conversation"],
                horizontal=True,
            )
            if mode == "Guided conversation":
                self._render_conversation(session)
            else:
                self._render_generation_form(session, stage)
        else:
            self._render_generation_form(session, stage)

        artifact = session.get("data", {}).get(stage["artifact_key"])
        if artifact:
            st.subheader("Result")
            render_artifact(stage, artifact)

    def _render_guidance(self, stage: Dict[str, Any]):
        with st.expander("How to approach this stage"):
            st.write(stage["concept"])
            if stage.get("example_good"):
                st.success(f"**Good:** {stage['example_good']}")
            if stage.get("example_bad"):
                st.error(f"**Weak:** {stage['example_bad']}")
            for criterion in stage.get("rubric", []):
                st.markdown(f"- **{criterion['label']}**: {criterion['description']}")

    def _render_generation_form(self, session: Dict[str, Any], stage: Dict[str, Any]):
        with st.form(f"form_{stage['id']}"):
            values = {
                field["id"]: collect_field(field, key=f"{stage['id']}_{field['id']}")
                for field in stage.get("required_fields", [])
            }
            submitted = st.form_submit_button("Generate", type="primary")

        if not submitted:
            return

        with st.spinner("Working on it..."):
            try:
                result = self.api_client.run_stage(session["session_id"], stage["id"], values)
            except httpx.HTTPStatusError as e:
                for message in error_details(e):
                    st.error(message)
                return

        if result.get("used_fallback"):
            st.warning("The AI assistant was unavailable, so a starting template was used.")
        if not result.get("applied", True):
            st.info("This stage is not the current one; the stored result was kept.")
        self._store_session(result["session"])

    def _render_conversation(self, session: Dict[str, Any]):
        conversation: Optional[Dict[str, Any]] = st.session_state.get("conversation")

        if conversation is None:
            original = st.text_area("Describe the problem in your own words", key="conv_original")
            if st.button("Start conversation", type="primary") and original.strip():
                st.session_state.conversation = {
                    "original": original.strip(),
                    "question": OPENING_QUESTION,
                    "history": [],
                }
                st.rerun()
            return

        for question, answer in conversation["history"]:
            st.chat_message("assistant").write(question)
            st.chat_message("user").write(answer)

        st.chat_message("assistant").write(conversation["question"])
        answer = st.chat_input("Your answer")
        if not answer:
            return

        with st.spinner("Thinking..."):
            try:
                turn = self.api_client.problem_conversation(
                    session["session_id"],
                    question=conversation["question"],
                    answer=answer,
                    original_problem=conversation["original"],
                )
            except httpx.HTTPStatusError as e:
                for message in error_details(e):
                    st.error(message)
                return

        conversation["history"].append((conversation["question"], answer))
        if turn.get("is_complete"):
            st.session_state.conversation = None
            st.success(f"Refined problem: {turn['refined_problem']}")
        else:
            conversation["question"] = turn.get("next_question") or OPENING_QUESTION
        self._store_session(turn["session"])

    def _render_export(self, session: Dict[str, Any]):
        fmt = st.selectbox("Format", options=["markdown", "json"], key="export_format")
        if st.button("📥 Export MVP", type="primary"):
            try:
                result = self.api_client.export_session(session["session_id"], fmt)
                content = self.api_client.download_export(result["download_url"])
            except httpx.HTTPError as e:
                st.error(f"Export failed: {str(e)}")
                return
            st.download_button(
                "Download",
                data=content,
                file_name=result["filename"],
                mime="application/json" if fmt == "json" else "text/markdown",
            )

        if st.button("Continue to feedback"):
            updated = self.api_client.complete_stage(session["session_id"], "export")
            self._store_session(updated)

    def _render_feedback(self, session: Dict[str, Any]):
        with st.form("form_feedback"):
            rating = st.slider("Overall rating", 1, 5, 4)
            helpfulness = st.slider("How helpful was the wizard?", 1, 5, 4)
            improvements = st.text_area("What could be improved?")
            most_valuable = st.text_area("What was most valuable?")
            would_recommend = st.selectbox(
                "Would you recommend it?", options=["yes", "no", "maybe"]
            )
            reason = st.text_area("Why?")
            submitted = st.form_submit_button("Send feedback", type="primary")

        if not submitted:
            return

        try:
            self.api_client.submit_feedback(
                session["session_id"],
                {
                    "rating": rating,
                    "helpfulness": helpfulness,
                    "improvements": improvements,
                    "most_valuable": most_valuable,
                    "would_recommend": would_recommend,
                    "recommendation_reason": reason,
                },
            )
        except httpx.HTTPStatusError as e:
            for message in error_details(e):
                st.error(message)
            return
        st.success("Thank you for your feedback!")

    def _store_session(self, data: Dict[str, Any]):
        st.session_state.current_session = SessionInfo.from_response(data)
        st.rerun()


def render_artifact(stage: Dict[str, Any], artifact: Dict[str, Any]):
    """Readable view of the stored artifact; JSON for shapes without one."""
    kind = artifact.get("kind")
    if kind == "problem_statement":
        st.markdown(f"**{artifact.get('refined') or artifact.get('original')}**")
        for suggestion in artifact.get("ai_suggestions", []):
            st.markdown(f"- {suggestion}")
        questions = artifact.get("clarifying_questions", [])
        if questions:
            st.caption("Questions to consider: " + " · ".join(questions))
    elif kind == "prioritization":
        st.caption(f"Method: {artifact.get('method')}")
        st.table(
            [
                {
                    "Feature": f["name"],
                    "Score": f.get("score"),
                    "Priority": f.get("priority"),
                }
                for f in artifact.get("features", [])
            ]
        )
    elif kind == "existing_solutions":
        for solution in artifact.get("solutions", []):
            with st.expander(solution["name"]):
                st.write(solution.get("description", ""))
                if solution.get("pricing"):
                    st.caption(f"Pricing: {solution['pricing']}")
                st.caption(solution.get("disclaimer", ""))
        for gap in artifact.get("gaps", []):
            st.markdown(f"- {gap}")
    else:
        st.json(artifact, expanded=False)
