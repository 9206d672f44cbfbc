"""Tests for the stage controller (wizard state machine)."""

import httpx
import pytest

from mvp_builder.core.exceptions import (
    LLMTimeoutError,
    SessionNotFoundError,
    ValidationError,
)
from mvp_builder.domain.models.artifacts import (
    ExportArtifact,
    ProblemStatementArtifact,
    RootCauseArtifact,
)
from mvp_builder.domain.models.feedback import Feedback
from mvp_builder.stages.catalog import Stage

PROBLEM = "Freelance designers lose track of unpaid invoices in email threads"


async def advance_to(controller, session_id: str, stage: Stage):
    """Move a session to `stage` with every earlier stage completed."""
    session = await controller.get_session(session_id)
    for earlier in Stage.ordered()[: stage.position - 1]:
        session = await controller.complete_stage(session, earlier, {})
    return session


class TestSessionAccess:
    """Tests for creating and loading sessions."""

    @pytest.mark.asyncio
    async def test_create_session(self, controller):
        """New sessions start at the first stage with nothing completed."""
        session, created = await controller.create_session()

        assert created
        assert session.session_id
        assert session.current_stage == Stage.PROBLEM_DISCOVERY
        assert session.completed_stages == []
        assert session.data == {}

    @pytest.mark.asyncio
    async def test_create_with_known_id_resumes(self, controller):
        """Creating with an existing id returns the stored session."""
        first, _ = await controller.create_session("founder-1")
        await controller.complete_stage(first, Stage.PROBLEM_DISCOVERY, {})

        again, created = await controller.create_session("founder-1")

        assert not created
        assert again.current_stage == Stage.MARKET_RESEARCH

    @pytest.mark.asyncio
    async def test_get_unknown_session(self, controller):
        with pytest.raises(SessionNotFoundError):
            await controller.get_session("missing")

    @pytest.mark.asyncio
    async def test_update_session_merges_data(self, controller):
        """Partial updates validate artifacts and merge them by key."""
        session, _ = await controller.create_session("s1")

        await controller.update_session(
            "s1", data={"root_cause": {"primary_cause": "No reminders"}}
        )
        updated = await controller.update_session(
            "s1",
            current_stage=Stage.ROOT_CAUSE_ANALYSIS,
            completed_stages=[Stage.PROBLEM_DISCOVERY, Stage.PROBLEM_DISCOVERY],
        )

        assert updated.current_stage == Stage.ROOT_CAUSE_ANALYSIS
        assert updated.completed_stages == [Stage.PROBLEM_DISCOVERY]
        assert isinstance(updated.data["root_cause"], RootCauseArtifact)

    @pytest.mark.asyncio
    async def test_update_session_rejects_unknown_key(self, controller):
        await controller.create_session("s1")

        with pytest.raises(ValidationError, match="Unknown artifact key"):
            await controller.update_session("s1", data={"bogus": {}})


class TestTransitions:
    """Tests for complete / navigate / reset."""

    @pytest.mark.asyncio
    async def test_complete_advances_one_stage(self, controller):
        session, _ = await controller.create_session("s1")
        artifact = ProblemStatementArtifact(original="p", refined="p")

        session = await controller.complete_stage(
            session, Stage.PROBLEM_DISCOVERY, {"problem_statement": artifact}
        )

        assert session.current_stage == Stage.MARKET_RESEARCH
        assert session.completed_stages == [Stage.PROBLEM_DISCOVERY]
        stored = await controller.get_session("s1")
        assert stored.data["problem_statement"] == artifact

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stage", Stage.ordered()[:-1], ids=lambda s: s.value)
    async def test_complete_advances_to_next_stage(self, controller, stage):
        """Completing stage N moves the session to stage N+1."""
        await controller.create_session("s1")
        session = await advance_to(controller, "s1", stage)

        session = await controller.complete_stage(session, stage, {})

        assert session.current_stage == Stage.from_position(stage.position + 1)
        assert session.completed_stages[-1] == stage

    @pytest.mark.asyncio
    async def test_stage_completed_twice_is_recorded_once(self, controller):
        await controller.create_session("s1")
        session = await advance_to(controller, "s1", Stage.ROOT_CAUSE_ANALYSIS)
        session = await controller.complete_stage(session, Stage.ROOT_CAUSE_ANALYSIS, {})

        session = await controller.go_to_step(session, Stage.ROOT_CAUSE_ANALYSIS)
        session = await controller.complete_stage(session, Stage.ROOT_CAUSE_ANALYSIS, {})

        assert session.completed_stages.count(Stage.ROOT_CAUSE_ANALYSIS) == 1
        assert session.current_stage == Stage.EXISTING_SOLUTIONS

    @pytest.mark.asyncio
    async def test_stale_completion_is_ignored(self, controller):
        """Completing a stage that is not current changes nothing."""
        session, _ = await controller.create_session("s1")

        session = await controller.complete_stage(session, Stage.ROOT_CAUSE_ANALYSIS, {})

        assert session.current_stage == Stage.PROBLEM_DISCOVERY
        assert session.completed_stages == []

    @pytest.mark.asyncio
    async def test_last_stage_is_terminal(self, controller):
        """Completing feedback keeps the session on feedback."""
        await controller.create_session("s1")
        session = await advance_to(controller, "s1", Stage.FEEDBACK)

        session = await controller.complete_stage(session, Stage.FEEDBACK, {})

        assert session.current_stage == Stage.FEEDBACK
        assert session.progress == 1.0

    @pytest.mark.asyncio
    async def test_go_to_step_skips_prerequisites(self, controller):
        session, _ = await controller.create_session("s1")

        session = await controller.go_to_step(session, Stage.PRIORITIZATION)

        assert session.current_stage == Stage.PRIORITIZATION
        assert session.completed_stages == []

    @pytest.mark.asyncio
    async def test_reset_drops_later_completions_keeps_data(self, controller):
        """Reset forgets completion from the target on but keeps artifacts."""
        await controller.create_session("s1")
        session = await advance_to(controller, "s1", Stage.CUSTOMER_PROFILE)
        session.data["root_cause"] = RootCauseArtifact(primary_cause="c")

        session = await controller.reset_to_step(session, Stage.ROOT_CAUSE_ANALYSIS)

        assert session.current_stage == Stage.ROOT_CAUSE_ANALYSIS
        assert session.completed_stages == [Stage.PROBLEM_DISCOVERY, Stage.MARKET_RESEARCH]
        assert session.data["root_cause"].primary_cause == "c"


class TestRunStage:
    """Tests for run_stage."""

    @pytest.mark.asyncio
    async def test_generates_and_completes(self, controller, llm):
        await controller.create_session("s1")
        llm.queue({"refined": "Designers lose 10% of billings to late invoices"})

        run = await controller.run_stage("s1", Stage.PROBLEM_DISCOVERY, {"problem": PROBLEM})

        assert run.applied
        assert not run.used_fallback
        assert run.artifact.refined == "Designers lose 10% of billings to late invoices"
        assert run.session.current_stage == Stage.MARKET_RESEARCH
        assert run.session.data["problem_statement"].original == PROBLEM
        roles = [m.role for m in run.session.conversation_history]
        assert roles == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_invalid_input_raises_before_model_call(self, controller, llm):
        await controller.create_session("s1")

        with pytest.raises(ValidationError) as exc_info:
            await controller.run_stage("s1", Stage.PROBLEM_DISCOVERY, {"problem": "short"})

        assert exc_info.value.errors == [
            "Problem description must be at least 20 characters"
        ]
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_fallback_on_model_failure(self, controller, llm):
        """A failed generation stores the stage default and still advances."""
        await controller.create_session("s1")
        await advance_to(controller, "s1", Stage.ROOT_CAUSE_ANALYSIS)
        llm.queue(LLMTimeoutError("timed out"))

        run = await controller.run_stage("s1", Stage.ROOT_CAUSE_ANALYSIS, {})

        assert run.used_fallback
        assert run.error.kind == "network"
        assert run.artifact.primary_cause == "Failed to analyze root cause"
        assert run.session.current_stage == Stage.EXISTING_SOLUTIONS

    @pytest.mark.asyncio
    async def test_fallback_when_not_configured(self, unconfigured_controller):
        await unconfigured_controller.create_session("s1")

        run = await unconfigured_controller.run_stage(
            "s1", Stage.PROBLEM_DISCOVERY, {"problem": PROBLEM}
        )

        assert run.used_fallback
        assert run.error.kind == "not_configured"
        assert run.artifact.refined == PROBLEM

    @pytest.mark.asyncio
    async def test_stale_request_does_not_call_model(self, controller, llm):
        """A run for a stage other than the current one is not applied."""
        await controller.create_session("s1")

        run = await controller.run_stage("s1", Stage.ROOT_CAUSE_ANALYSIS, {})

        assert not run.applied
        assert run.artifact is None
        assert run.session.current_stage == Stage.PROBLEM_DISCOVERY
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_market_research_without_permission(self, controller, llm):
        """Declined market research stores the founder's data without a model call."""
        await controller.create_session("s1")
        await advance_to(controller, "s1", Stage.MARKET_RESEARCH)

        run = await controller.run_stage(
            "s1", Stage.MARKET_RESEARCH, {"permission": "no", "existing_data": "40 interviews"}
        )

        assert llm.calls == []
        assert run.artifact.permission is False
        assert run.artifact.existing_data == "40 interviews"
        assert run.session.current_stage == Stage.ROOT_CAUSE_ANALYSIS

    @pytest.mark.asyncio
    async def test_prompt_includes_dependencies(self, controller, llm):
        """Artifacts of dependency stages are sent as context."""
        await controller.create_session("s1")
        llm.queue({"refined": "Refined problem text for context"})
        await controller.run_stage("s1", Stage.PROBLEM_DISCOVERY, {"problem": PROBLEM})
        await advance_to(controller, "s1", Stage.ROOT_CAUSE_ANALYSIS)
        llm.queue({"primary_cause": "No reminders"})

        await controller.run_stage("s1", Stage.ROOT_CAUSE_ANALYSIS, {"symptom": "late pay"})

        assert "Refined problem text for context" in llm.calls[-1]["prompt"]

    @pytest.mark.asyncio
    async def test_malformed_feature_rejected_while_model_down(self, controller, llm):
        """Feature errors surface as ValidationError whether or not the model answers."""
        await controller.create_session("s1")
        await advance_to(controller, "s1", Stage.PRIORITIZATION)
        llm.queue(httpx.ConnectError("connection refused"))

        with pytest.raises(ValidationError) as exc_info:
            await controller.run_stage(
                "s1",
                Stage.PRIORITIZATION,
                {"method": "RICE", "features": [{"description": "no name", "reach": "lots"}]},
            )

        errors = exc_info.value.errors
        assert "Feature 1 name: Field required" in errors
        assert any(e.startswith("Feature 1 reach:") for e in errors)
        assert llm.calls == []
        stored = await controller.get_session("s1")
        assert stored.current_stage == Stage.PRIORITIZATION

    @pytest.mark.asyncio
    async def test_prioritization_fallback_scores_input_features(self, controller, llm):
        await controller.create_session("s1")
        await advance_to(controller, "s1", Stage.PRIORITIZATION)
        llm.queue(httpx.ConnectError("connection refused"))

        feature = {"name": "Reminders", "reach": 8, "impact": 6, "confidence": 5, "effort": 4}

        run = await controller.run_stage(
            "s1", Stage.PRIORITIZATION, {"method": "RICE", "features": [feature]}
        )

        assert run.used_fallback
        assert run.error.kind == "network"
        assert [f.name for f in run.artifact.features] == ["Reminders"]
        assert run.artifact.features[0].score is not None

    @pytest.mark.asyncio
    async def test_unknown_session(self, controller):
        with pytest.raises(SessionNotFoundError):
            await controller.run_stage("missing", Stage.PROBLEM_DISCOVERY, {"problem": PROBLEM})


class TestProblemConversation:
    """Tests for the problem-refinement conversation."""

    @pytest.mark.asyncio
    async def test_asks_next_question(self, controller, llm):
        await controller.create_session("s1")
        llm.queue({"next_question": "How much revenue is lost?", "is_complete": False})

        turn = await controller.continue_problem_conversation(
            "s1", "Who feels this?", "Freelance designers", PROBLEM
        )

        assert not turn.is_complete
        assert turn.next_question == "How much revenue is lost?"
        assert turn.session.current_stage == Stage.PROBLEM_DISCOVERY
        stored = await controller.get_session("s1")
        assert len(stored.data["problem_conversation"].exchanges) == 1
        assert len(stored.conversation_history) == 2

    @pytest.mark.asyncio
    async def test_completion_stores_refined_problem(self, controller, llm):
        await controller.create_session("s1")
        llm.queue({"refined_problem": "Designers lose 10% of billings", "is_complete": True})

        turn = await controller.continue_problem_conversation("s1", "Q?", "A", PROBLEM)

        assert turn.is_complete
        assert turn.refined_problem == "Designers lose 10% of billings"
        assert turn.session.current_stage == Stage.MARKET_RESEARCH
        statement = turn.session.data["problem_statement"]
        assert statement.original == PROBLEM
        assert statement.refined == "Designers lose 10% of billings"
        assert turn.session.data["problem_conversation"].is_complete

    @pytest.mark.asyncio
    async def test_forced_after_max_answers(self, controller, llm):
        """The fourth answer forces a plain refinement request."""
        await controller.create_session("s1")
        for _ in range(3):
            llm.queue({"next_question": "More?", "is_complete": False})
        llm.queue('"Forced refinement"')

        for i in range(3):
            turn = await controller.continue_problem_conversation("s1", "Q", f"A{i}", PROBLEM)
            assert not turn.is_complete
        turn = await controller.continue_problem_conversation("s1", "Q", "A3", PROBLEM)

        assert turn.is_complete
        assert turn.refined_problem == "Forced refinement"
        assert llm.calls[-1]["json_mode"] is False

    @pytest.mark.asyncio
    async def test_new_problem_after_reset_starts_fresh(self, controller, llm):
        """A finished conversation is not carried into the next problem."""
        await controller.create_session("s1")
        for _ in range(3):
            llm.queue({"next_question": "More?", "is_complete": False})
        llm.queue('"First refinement"')
        for i in range(4):
            turn = await controller.continue_problem_conversation("s1", "Q", f"A{i}", PROBLEM)
        assert turn.is_complete
        await controller.reset_to_step(turn.session, Stage.PROBLEM_DISCOVERY)

        second = "Dog walkers cannot see which clients have paid this month"
        llm.queue({"next_question": "How many clients?", "is_complete": False})
        turn = await controller.continue_problem_conversation("s1", "Who?", "Solo walkers", second)

        assert not turn.is_complete
        assert turn.next_question == "How many clients?"
        conversation = turn.session.data["problem_conversation"]
        assert conversation.original == second
        assert [e.answer for e in conversation.exchanges] == ["Solo walkers"]
        assert "A0" not in llm.calls[-1]["prompt"]

    @pytest.mark.asyncio
    async def test_changed_problem_starts_fresh(self, controller, llm):
        await controller.create_session("s1")
        llm.queue(
            {"next_question": "More?", "is_complete": False},
            {"next_question": "Anything else?", "is_complete": False},
        )
        await controller.continue_problem_conversation("s1", "Q", "A0", PROBLEM)

        turn = await controller.continue_problem_conversation(
            "s1", "Q", "B0", "A different problem statement entirely"
        )

        exchanges = turn.session.data["problem_conversation"].exchanges
        assert [e.answer for e in exchanges] == ["B0"]

    @pytest.mark.asyncio
    async def test_model_failure_completes_with_original(self, controller, llm):
        await controller.create_session("s1")
        llm.queue("not json at all")

        turn = await controller.continue_problem_conversation("s1", "Q", "A", PROBLEM)

        assert turn.is_complete
        assert turn.used_fallback
        assert turn.refined_problem == PROBLEM

    @pytest.mark.asyncio
    async def test_empty_answer_rejected(self, controller, llm):
        await controller.create_session("s1")

        with pytest.raises(ValidationError):
            await controller.continue_problem_conversation("s1", "Q", "  ", PROBLEM)
        assert llm.calls == []


class TestExportAndFeedback:
    """Tests for export recording and feedback submission."""

    @pytest.mark.asyncio
    async def test_record_export_does_not_advance(self, controller):
        session, _ = await controller.create_session("s1")
        session = await advance_to(controller, "s1", Stage.EXPORT)

        session = await controller.record_export(
            session, ExportArtifact(format="json", filename="mvp-configuration-1.json")
        )

        assert session.current_stage == Stage.EXPORT
        assert session.data["export"].filename == "mvp-configuration-1.json"

    @pytest.mark.asyncio
    async def test_feedback_completes_final_stage(self, controller, memory_feedback):
        await controller.create_session("s1")
        await advance_to(controller, "s1", Stage.FEEDBACK)

        stored = await controller.submit_feedback(
            "s1", Feedback(session_id="s1", rating=5, helpfulness=4, would_recommend="yes")
        )

        assert stored.id == 1
        assert await memory_feedback.list("s1") == [stored]
        session = await controller.get_session("s1")
        assert Stage.FEEDBACK in session.completed_stages
        assert session.data["feedback"].rating == 5

    @pytest.mark.asyncio
    async def test_early_feedback_is_stored_without_completion(self, controller):
        await controller.create_session("s1")

        await controller.submit_feedback("s1", Feedback(session_id="s1", rating=3, helpfulness=3))

        session = await controller.get_session("s1")
        assert session.completed_stages == []
        assert session.data["feedback"].rating == 3
